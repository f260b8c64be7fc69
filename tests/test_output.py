"""Output rendering tests."""

from __future__ import annotations

import json
from datetime import UTC, datetime

from umbraco_audit.code_search import CodeSnippet
from umbraco_audit.output import render_console, render_html, render_json
from umbraco_audit.report import AuditReport, Diagnostic, ProjectInfo, build_report
from umbraco_audit.rules import build_registry
from umbraco_audit.rules.base import ConfigurationMetadata, Finding, PackageFindingMetadata


def _package(name: str, framework: bool) -> Finding:
    return Finding(
        rule_id="rule-01-nuget-packages",
        file_path="/site/Web/Web.csproj",
        line_number=0,
        line_content=f"{name}: 1.0.0 -> 2.0.0",
        hours=0.5,
        metadata=PackageFindingMetadata(
            package_name=name,
            current_version="1.0.0",
            latest_version="2.0.0",
            is_framework_package=framework,
            is_compatible=True,
            files_affected=("/site/Web/Web.csproj",),
        ),
    )


def _report() -> AuditReport:
    findings = [
        _package("Umbraco.Forms", True),
        _package("Serilog", False),
        Finding(
            rule_id="rule-05-program-cs",
            file_path="/site/Web/Program.cs",
            line_number=3,
            line_content="app.UseInstallerEndpoints();",
            hours=0.5,
            metadata=ConfigurationMetadata(occurrence_count=1, file_names=("Program.cs",)),
            snippet=CodeSnippet(
                before=("var app = builder.Build();", "await app.BootUmbracoAsync();"),
                line="app.UseInstallerEndpoints();",
                after=("app.Run();",),
                start_line=1,
            ),
        ),
    ]
    return build_report(
        project=ProjectInfo(
            root_path="/site",
            framework_version="13.5.0",
            project_files=["/site/Web/Web.csproj"],
            files_scanned=12,
            scan_duration_ms=34,
        ),
        findings=findings,
        registry=build_registry(),
        diagnostics=[Diagnostic(level="warning", message="Upgrade to <13.13.0> first")],
        timestamp=datetime(2026, 1, 2, 3, 4, 5, 678, tzinfo=UTC),
    )


def test_render_console_shows_triggered_rules_and_totals() -> None:
    output = render_console(_report(), color=False)

    assert "Umbraco version: 13.5.0" in output
    assert "Files scanned: 12 in 34 ms" in output
    assert "NuGet Package Updates" in output
    assert "Umbraco.* packages" in output
    assert "Other packages" in output
    assert "Program.cs Changes" in output
    assert "Tiptap Import Changes" not in output
    assert "TOTAL ESTIMATE: 1.5 hours (~0.2 days @ 8h/day)" in output
    assert "WARNING: Upgrade to <13.13.0> first" in output
    assert "Detailed findings:" not in output
    assert "\x1b[" not in output


def test_render_console_verbose_includes_snippets() -> None:
    output = render_console(_report(), verbose=True, color=False)

    assert "Detailed findings:" in output
    assert "/site/Web/Program.cs:3" in output
    assert " >     3 | app.UseInstallerEndpoints();" in output
    assert "    4 | app.Run();" in output


def test_render_console_color_uses_ansi_styles() -> None:
    assert "\x1b[" in render_console(_report(), color=True)


def test_render_console_without_findings() -> None:
    report = build_report(
        project=ProjectInfo(root_path="/site", framework_version="13.13.0"),
        findings=[],
        registry=build_registry(),
    )
    output = render_console(report, color=False)
    assert "No upgrade issues found." in output
    assert "TOTAL ESTIMATE: 0.0 hours (~0.0 days @ 8h/day)" in output


def test_render_json_has_stable_schema() -> None:
    payload = json.loads(render_json(_report()))

    assert set(payload) == {
        "meta",
        "project",
        "summary",
        "rules",
        "diagnostics",
        "unattributed_findings",
    }
    assert payload["meta"] == {"generated_at": "2026-01-02T03:04:05Z", "version": "0.1.0"}
    assert payload["project"]["framework_version"] == "13.5.0"
    assert payload["summary"]["total_hours"] == 1.5
    assert payload["summary"]["total_days"] == 0.2
    assert payload["summary"]["rules_triggered"] == 2
    assert payload["summary"]["by_category"] == [
        {"category": "package-update", "findings": 2, "hours": 1.0},
        {"category": "configuration", "findings": 1, "hours": 0.5},
    ]

    rules = {item["rule_id"]: item for item in payload["rules"]}
    assert len(rules) == 11
    packages = rules["rule-01-nuget-packages"]
    assert packages["findings_count"] == 2
    assert packages["findings"][0]["metadata"]["category"] == "package-update"
    assert packages["findings"][0]["metadata"]["is_framework_package"] is True
    assert rules["rule-05-program-cs"]["findings"][0]["snippet"]["start_line"] == 1
    assert rules["rule-10-license-files"]["findings"] == []
    assert payload["diagnostics"] == [
        {"level": "warning", "message": "Upgrade to <13.13.0> first", "file": None}
    ]
    assert payload["unattributed_findings"] == []


def test_render_json_keeps_findings_from_unregistered_rules() -> None:
    ghost = Finding(
        rule_id="ghost-rule",
        file_path="/site/Web/Startup.cs",
        line_number=7,
        line_content="services.AddGhost();",
        hours=1.5,
    )
    report = build_report(
        project=ProjectInfo(root_path="/site", framework_version="13.13.0"),
        findings=[_package("Serilog", False), ghost],
        registry=build_registry(),
    )

    payload = json.loads(render_json(report))

    assert payload["summary"]["total_hours"] == 2.0
    assert all(item["rule_id"] != "ghost-rule" for item in payload["rules"])
    assert payload["unattributed_findings"] == [
        {
            "rule_id": "ghost-rule",
            "file_path": "/site/Web/Startup.cs",
            "line_number": 7,
            "line_content": "services.AddGhost();",
            "hours": 1.5,
            "severity": "warning",
            "metadata": None,
            "snippet": None,
        }
    ]
    assert "ghost-rule" in payload["diagnostics"][0]["message"]


def test_render_html_escapes_content() -> None:
    output = render_html(_report())

    assert output.startswith("<!DOCTYPE html>")
    assert "Umbraco version: 13.5.0" in output
    assert "Upgrade to &lt;13.13.0&gt; first" in output
    assert "<13.13.0>" not in output
    assert "Program.cs Changes" in output
    assert "Total estimate: 1.5 hours" in output
