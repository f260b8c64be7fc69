"""Output rendering."""

from __future__ import annotations

import html
import json
from typing import Any

import click

from umbraco_audit.hours import HOURS_PER_DAY
from umbraco_audit.report import AuditReport, Diagnostic, RuleResult
from umbraco_audit.rules.base import Finding, PackageFindingMetadata

PACKAGE_RULE_ID = "rule-01-nuget-packages"

_SEVERITY_COLORS = {"error": "red", "warning": "yellow", "info": "cyan"}


def render_console(report: AuditReport, *, verbose: bool = False, color: bool = True) -> str:
    """Render the effort table, totals and diagnostics for a terminal."""

    def style(text: str, **styles: Any) -> str:
        return click.style(text, **styles) if color else text

    project = report.project
    lines: list[str] = [
        style("Umbraco 13 -> 17 upgrade audit", bold=True),
        f"Project: {project.root_path}",
        f"Umbraco version: {project.framework_version or 'unknown'}",
        f"Files scanned: {project.files_scanned} in {project.scan_duration_ms} ms",
        "",
    ]

    triggered = [row for row in report.rule_results if row.findings_count > 0]
    if triggered:
        lines.append(style(f"{'Rule':<45} {'Findings':>8} {'Hours':>8}", bold=True))
        for row in triggered:
            lines.append(_table_row(row.rule_name, row.findings_count, row.total_hours))
            if row.rule_id == PACKAGE_RULE_ID:
                lines.extend(_package_rows(report.findings))
    else:
        lines.append(style("No upgrade issues found.", fg="green"))

    if report.summary.by_category:
        lines.append("")
        lines.append(style("By category:", bold=True))
        for item in report.summary.by_category:
            lines.append(_table_row(f"  {item.category}", item.findings, item.hours))

    lines.append("")
    lines.append(
        style(
            f"TOTAL ESTIMATE: {_format_hours(report.summary.total_hours)} hours "
            f"(~{report.summary.total_days} days @ {HOURS_PER_DAY}h/day)",
            fg="yellow" if report.summary.total_hours else "green",
            bold=True,
        )
    )

    if verbose and report.findings:
        lines.append("")
        lines.append(style("Detailed findings:", bold=True))
        for finding in report.findings:
            lines.extend(_finding_lines(finding, style))

    if report.diagnostics:
        lines.append("")
        lines.append(style("Diagnostics:", bold=True))
        for diagnostic in report.diagnostics:
            label = style(diagnostic.level.upper(), fg=_SEVERITY_COLORS[diagnostic.level])
            suffix = f" ({diagnostic.file})" if diagnostic.file else ""
            lines.append(f"- {label}: {diagnostic.message}{suffix}")
    return "\n".join(lines)


def render_json(report: AuditReport) -> str:
    """Render stable JSON output for CI and automation."""
    return json.dumps(build_json_payload(report), sort_keys=True, indent=2)


def build_json_payload(report: AuditReport) -> dict[str, Any]:
    """Build the JSON payload.

    Findings are grouped under their rule. Findings whose rule id is not in the
    registry are listed under `unattributed_findings`.
    """
    findings_by_rule: dict[str, list[dict[str, Any]]] = {}
    for finding in report.findings:
        findings_by_rule.setdefault(finding.rule_id, []).append(_serialize_finding(finding))
    registered = {row.rule_id for row in report.rule_results}

    return {
        "meta": {
            "generated_at": report.timestamp.replace(microsecond=0)
            .isoformat()
            .replace("+00:00", "Z"),
            "version": report.tool_version,
        },
        "project": {
            "root_path": report.project.root_path,
            "framework_version": report.project.framework_version,
            "project_files": list(report.project.project_files),
            "files_scanned": report.project.files_scanned,
            "scan_duration_ms": report.project.scan_duration_ms,
        },
        "summary": {
            "total_hours": report.summary.total_hours,
            "total_days": report.summary.total_days,
            "rules_triggered": report.summary.rules_triggered,
            "total_findings": report.summary.total_findings,
            "by_category": [
                {"category": item.category, "findings": item.findings, "hours": item.hours}
                for item in report.summary.by_category
            ],
        },
        "rules": [
            _serialize_rule(row, findings_by_rule.get(row.rule_id, []))
            for row in report.rule_results
        ],
        "diagnostics": [_serialize_diagnostic(item) for item in report.diagnostics],
        "unattributed_findings": [
            _serialize_finding(finding)
            for finding in report.findings
            if finding.rule_id not in registered
        ],
    }


def render_html(report: AuditReport) -> str:
    """Render a standalone HTML page."""
    esc = html.escape
    project = report.project
    rows = "\n".join(
        "<tr>"
        f"<td>{esc(row.rule_name)}</td><td>{esc(row.category)}</td>"
        f"<td>{row.findings_count}</td><td>{_format_hours(row.total_hours)}</td>"
        "</tr>"
        for row in report.rule_results
        if row.findings_count > 0
    )
    findings = "\n".join(
        "<li>"
        f"<code>{esc(item.rule_id)}</code> {esc(item.file_path)}"
        f"{':' + str(item.line_number) if item.line_number else ''} "
        f"&mdash; {esc(item.line_content)} ({_format_hours(item.hours)}h)"
        "</li>"
        for item in report.findings
    )
    diagnostics = "\n".join(
        f'<li class="{esc(item.level)}">{esc(item.level.upper())}: {esc(item.message)}</li>'
        for item in report.diagnostics
    )
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Umbraco upgrade audit - {esc(project.root_path)}</title>
<style>
body {{ font-family: sans-serif; margin: 2rem; }}
table {{ border-collapse: collapse; }}
td, th {{ border: 1px solid #ccc; padding: 0.3rem 0.6rem; }}
.error {{ color: #b00020; }}
.warning {{ color: #a66a00; }}
</style>
</head>
<body>
<h1>Umbraco 13 &rarr; 17 upgrade audit</h1>
<p>Project: {esc(project.root_path)}<br>
Umbraco version: {esc(project.framework_version or "unknown")}<br>
Generated: {esc(report.timestamp.isoformat())} by umbraco-audit {esc(report.tool_version)}</p>
<table>
<tr><th>Rule</th><th>Category</th><th>Findings</th><th>Hours</th></tr>
{rows}
</table>
<h2>Total estimate: {_format_hours(report.summary.total_hours)} hours
(~{report.summary.total_days} days)</h2>
<h2>Findings</h2>
<ul>
{findings}
</ul>
<h2>Diagnostics</h2>
<ul>
{diagnostics}
</ul>
</body>
</html>
"""


def _package_rows(findings: list[Finding]) -> list[str]:
    framework: list[Finding] = []
    others: list[Finding] = []
    for finding in findings:
        if finding.rule_id != PACKAGE_RULE_ID:
            continue
        metadata = finding.metadata
        if isinstance(metadata, PackageFindingMetadata) and metadata.is_framework_package:
            framework.append(finding)
        else:
            others.append(finding)

    rows: list[str] = []
    for label, group in (("Umbraco.* packages", framework), ("Other packages", others)):
        if group:
            rows.append(_table_row(f"  {label}", len(group), sum(item.hours for item in group)))
    return rows


def _finding_lines(finding: Finding, style: Any) -> list[str]:
    location = finding.file_path
    if finding.line_number:
        location = f"{location}:{finding.line_number}"
    lines = [
        f"[{style(finding.rule_id, fg=_SEVERITY_COLORS[finding.severity])}] {location} "
        f"({_format_hours(finding.hours)}h)",
        f"   {finding.line_content}",
    ]
    snippet = finding.snippet
    if snippet is not None:
        number = snippet.start_line
        for text in snippet.before:
            lines.append(f"   {number:>5} | {text}")
            number += 1
        lines.append(style(f" > {number:>5} | {snippet.line}", bold=True))
        number += 1
        for text in snippet.after:
            lines.append(f"   {number:>5} | {text}")
            number += 1
    return lines


def _table_row(label: str, count: int, hours: float) -> str:
    return f"{label:<45} {count:>8} {_format_hours(hours):>8}"


def _format_hours(hours: float) -> str:
    return f"{hours:.1f}"


def _serialize_rule(row: RuleResult, findings: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "rule_id": row.rule_id,
        "name": row.rule_name,
        "category": row.category,
        "enabled": row.enabled,
        "findings_count": row.findings_count,
        "total_hours": row.total_hours,
        "findings": findings,
    }


def _serialize_finding(finding: Finding) -> dict[str, Any]:
    return {
        "rule_id": finding.rule_id,
        "file_path": finding.file_path,
        "line_number": finding.line_number,
        "line_content": finding.line_content,
        "hours": finding.hours,
        "severity": finding.severity,
        "metadata": finding.metadata.to_dict() if finding.metadata is not None else None,
        "snippet": finding.snippet.to_dict() if finding.snippet is not None else None,
    }


def _serialize_diagnostic(diagnostic: Diagnostic) -> dict[str, Any]:
    return {"level": diagnostic.level, "message": diagnostic.message, "file": diagnostic.file}
