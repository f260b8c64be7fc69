"""CLI entrypoint for umbraco-audit."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import Annotated

import typer

from umbraco_audit import __version__
from umbraco_audit.config import (
    OUTPUT_FORMATS,
    AppConfig,
    default_config_template,
    load_app_config,
)
from umbraco_audit.engine import AuditEngine, attach_snippets
from umbraco_audit.manifest import extract_primary_version, parse_manifest
from umbraco_audit.nuget import NuGetResolver
from umbraco_audit.output import render_console, render_html, render_json
from umbraco_audit.report import (
    AuditReport,
    ProjectInfo,
    build_report,
    run_diagnostics,
    version_diagnostics,
)
from umbraco_audit.rules import RuleRegistry, build_registry, describe_rules
from umbraco_audit.rules.base import ScanContext
from umbraco_audit.scanner import DEFAULT_EXCLUDES, FileDiscovery, find_project_files

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="umbraco-audit",
    no_args_is_help=True,
    help="Estimate the effort of upgrading an Umbraco 13 site to Umbraco 17.",
)


def version_callback(value: bool) -> None:
    """Print version and exit when --version is provided."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option("--version", help="Show version and exit.", callback=version_callback),
    ] = False,
) -> None:
    """Root command callback."""
    _ = version


@app.command("audit")
def audit_command(
    path: Annotated[Path, typer.Argument(help="Umbraco project or solution directory.")] = Path(
        "."
    ),
    output: Annotated[
        str | None,
        typer.Option("--output", "-o", help="Output format: console|json|html."),
    ] = None,
    verbose: Annotated[
        bool | None,
        typer.Option("--verbose/--no-verbose", "-v", help="Show detailed findings."),
    ] = None,
    debug: Annotated[bool, typer.Option("--debug", help="Log debug output to stderr.")] = False,
    no_color: Annotated[bool, typer.Option("--no-color", help="Disable colors.")] = False,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Scan a project and print the upgrade effort estimate."""
    root = path.resolve()
    if not root.is_dir():
        typer.echo(f"Error: path does not exist or is not a directory: {root}", err=True)
        raise typer.Exit(code=1)

    app_config = _load_config_or_raise(root, config_file)
    _configure_logging(debug)

    output_format = (output or app_config.format).lower()
    if output_format not in OUTPUT_FORMATS:
        raise typer.BadParameter(
            "output must be one of: console, html, json", param_hint="--output"
        )
    show_details = verbose if verbose is not None else app_config.verbose

    report = _run_audit(root, app_config, debug=debug, verbose=show_details)

    if output_format == "json":
        typer.echo(render_json(report))
    elif output_format == "html":
        typer.echo(render_html(report))
    else:
        typer.echo(render_console(report, verbose=show_details, color=not no_color))


@app.command("rules")
def rules_command(
    path: Annotated[Path, typer.Option("--path", help="Project path.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """List the detection rules and their effective settings."""
    output_format = _human_or_json(format)
    app_config = _load_config_or_raise(path, config_file)
    registry = _build_registry_or_raise(app_config)
    rule_info = describe_rules(registry)

    if output_format == "json":
        payload = {
            "rules": [
                {
                    "rule_id": item.rule_id,
                    "name": item.name,
                    "description": item.description,
                    "category": item.category,
                    "base_hours": item.base_hours,
                    "enabled": item.enabled,
                }
                for item in rule_info
            ],
            "meta": {"config_source": app_config.source},
        }
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    lines = ["Available rules:"]
    for item in rule_info:
        status = "enabled" if item.enabled else "disabled"
        lines.append(
            f"- {item.rule_id} [{status}, {item.category}, {item.base_hours}h] - "
            f"{item.description}"
        )
    typer.echo("\n".join(lines))


@app.command("config")
def config_command(
    path: Annotated[Path, typer.Option("--path", help="Project path.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Show resolved configuration."""
    output_format = _human_or_json(format)
    app_config = _load_config_or_raise(path, config_file)
    registry = _build_registry_or_raise(app_config)
    payload = app_config.to_dict()
    payload["active_rule_ids"] = [rule.rule_id for rule in registry.enabled()]

    if output_format == "json":
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    lines = [
        "Resolved configuration:",
        f"- source: {payload['source'] or 'defaults'}",
        f"- format: {payload['format']}",
        f"- verbose: {payload['verbose']}",
        f"- context_lines: {payload['context_lines']}",
        f"- exclude: {payload['exclude']}",
        f"- nuget.registration_url: {payload['nuget']['registration_url']}",
        f"- nuget.flat_container_url: {payload['nuget']['flat_container_url']}",
        f"- active_rule_ids: {payload['active_rule_ids']}",
    ]
    typer.echo("\n".join(lines))


@app.command("config-init")
def config_init_command(
    out: Annotated[Path, typer.Option(help="Output path for starter config TOML.")] = Path(
        ".umbraco-audit.toml"
    ),
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite if file already exists."),
    ] = False,
) -> None:
    """Create a starter project config file."""
    out_path = out.resolve()
    if out_path.exists() and not force:
        raise typer.BadParameter(
            f"Refusing to overwrite existing file: {out_path}. Use --force to overwrite."
        )
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(default_config_template(), encoding="utf-8")
    typer.echo(f"Wrote starter config: {out_path}")


@app.command("config-validate")
def config_validate_command(
    path: Annotated[Path, typer.Option("--path", help="Project path.")] = Path("."),
    config_file: Annotated[
        Path,
        typer.Option("--config", help="Path to config TOML file to validate."),
    ] = Path(".umbraco-audit.toml"),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
) -> None:
    """Validate a config file and report active rules."""
    output_format = _human_or_json(format)
    app_config = _load_config_or_raise(path, config_file)
    registry = _build_registry_or_raise(app_config)
    payload = {
        "ok": True,
        "source": app_config.source,
        "active_rule_ids": [rule.rule_id for rule in registry.enabled()],
    }
    if output_format == "json":
        typer.echo(json.dumps(payload, sort_keys=True))
        return
    typer.echo(
        "\n".join(
            [
                "Config is valid.",
                f"- source: {payload['source']}",
                f"- active_rule_ids: {payload['active_rule_ids']}",
            ]
        )
    )


ROOT_OPTIONS = frozenset({"--help", "--version", "--install-completion", "--show-completion"})


def main() -> None:
    """Console script entrypoint; `umbraco-audit <path>` runs `audit`."""
    app(args=default_to_audit(sys.argv[1:]))


def default_to_audit(args: list[str]) -> list[str]:
    """Prefix `audit` unless the arguments name a command or a root option."""
    if not args or args[0] in ROOT_OPTIONS:
        return args
    commands = {command.name for command in app.registered_commands}
    if args[0] in commands:
        return args
    return ["audit", *args]


def _run_audit(root: Path, app_config: AppConfig, *, debug: bool, verbose: bool) -> AuditReport:
    start = time.perf_counter()
    files = FileDiscovery(root, exclude=(*DEFAULT_EXCLUDES, *app_config.exclude))

    project_files = find_project_files(root, exclude=files.exclude)
    if not project_files:
        typer.echo(f"Error: no .csproj files found under {root}", err=True)
        raise typer.Exit(code=1)

    framework_version = _detect_framework_version(project_files)
    if framework_version is None:
        typer.echo(
            "Error: could not detect the Umbraco version (no Umbraco.Cms package reference).",
            err=True,
        )
        raise typer.Exit(code=1)
    logger.info("Detected Umbraco %s in %d project files", framework_version, len(project_files))

    registry = _build_registry_or_raise(app_config)
    context = ScanContext(
        root_path=root,
        project_files=tuple(project_files),
        files=files,
        debug=debug,
    )
    engine = AuditEngine(registry)
    findings = asyncio.run(engine.run_all(context))
    if verbose:
        findings = attach_snippets(findings, context_lines=app_config.context_lines)

    project = ProjectInfo(
        root_path=str(root),
        framework_version=framework_version,
        project_files=[str(item) for item in project_files],
        files_scanned=files.files_seen,
        scan_duration_ms=int((time.perf_counter() - start) * 1000),
    )
    return build_report(
        project=project,
        findings=findings,
        registry=registry,
        diagnostics=[
            *version_diagnostics(framework_version),
            *run_diagnostics(engine.runs),
        ],
    )


def _detect_framework_version(project_files: list[Path]) -> str | None:
    for project_file in project_files:
        version = extract_primary_version(parse_manifest(project_file))
        if version is not None:
            return version
    return None


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def _load_config_or_raise(path: Path, config_file: Path | None = None) -> AppConfig:
    try:
        return load_app_config(path, config_path=config_file)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config") from exc


def _build_registry_or_raise(app_config: AppConfig) -> RuleRegistry:
    resolver = NuGetResolver(
        registration_url=app_config.nuget.registration_url,
        flat_container_url=app_config.nuget.flat_container_url,
        timeout_seconds=app_config.nuget.timeout_seconds,
    )
    try:
        return build_registry(resolver=resolver, overrides=app_config.rules)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config.rules") from exc


def _human_or_json(value: str) -> str:
    output_format = value.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")
    return output_format
