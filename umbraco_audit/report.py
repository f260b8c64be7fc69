"""Effort aggregation and the audit report model."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal

from umbraco_audit import __version__
from umbraco_audit.engine import RuleRun
from umbraco_audit.hours import hours_to_days
from umbraco_audit.rules import KNOWN_CATEGORIES, Category, RuleRegistry
from umbraco_audit.rules.base import Finding

logger = logging.getLogger(__name__)

REQUIRED_INTERMEDIATE_VERSION = "13.13.0"


@dataclass(slots=True)
class ProjectInfo:
    """Metadata about the scanned project."""

    root_path: str
    framework_version: str | None
    project_files: list[str] = field(default_factory=list)
    files_scanned: int = 0
    scan_duration_ms: int = 0


@dataclass(slots=True)
class RuleResult:
    """Per-rule result row."""

    rule_id: str
    rule_name: str
    category: Category
    findings_count: int
    total_hours: float
    enabled: bool


@dataclass(slots=True)
class CategorySummary:
    """Findings and hours for one category."""

    category: Category
    findings: int = 0
    hours: float = 0.0


@dataclass(slots=True)
class AuditSummary:
    """Aggregate totals."""

    total_hours: float
    total_days: float
    rules_triggered: int
    total_findings: int
    by_category: list[CategorySummary] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """Non-fatal message surfaced to the user."""

    level: Literal["error", "warning", "info"]
    message: str
    file: str | None = None


@dataclass(slots=True)
class AuditReport:
    """Complete audit report consumed by the renderers."""

    project: ProjectInfo
    timestamp: datetime
    tool_version: str
    findings: list[Finding]
    summary: AuditSummary
    rule_results: list[RuleResult]
    diagnostics: list[Diagnostic] = field(default_factory=list)


def build_report(
    *,
    project: ProjectInfo,
    findings: list[Finding],
    registry: RuleRegistry,
    diagnostics: Iterable[Diagnostic] = (),
    timestamp: datetime | None = None,
) -> AuditReport:
    """Aggregate findings into per-rule rows, category rows and totals."""
    all_diagnostics = list(diagnostics)
    unknown_ids = sorted({item.rule_id for item in findings if item.rule_id not in registry})
    for rule_id in unknown_ids:
        logger.warning("Findings reference unregistered rule %s", rule_id)
        all_diagnostics.append(
            Diagnostic(
                level="warning",
                message=f"Findings from unregistered rule {rule_id} are excluded from categories.",
            )
        )

    rule_results = summarize_rules(findings, registry)
    total_hours = sum(item.hours for item in findings)
    summary = AuditSummary(
        total_hours=total_hours,
        total_days=hours_to_days(total_hours),
        rules_triggered=sum(1 for row in rule_results if row.findings_count > 0),
        total_findings=len(findings),
        by_category=summarize_categories(findings, registry),
    )
    return AuditReport(
        project=project,
        timestamp=timestamp or datetime.now(tz=UTC),
        tool_version=__version__,
        findings=list(findings),
        summary=summary,
        rule_results=rule_results,
        diagnostics=all_diagnostics,
    )


def summarize_rules(findings: Iterable[Finding], registry: RuleRegistry) -> list[RuleResult]:
    """One row per registered rule, in registration order, zero when nothing was found."""
    counts: dict[str, int] = {}
    hours: dict[str, float] = {}
    for finding in findings:
        counts[finding.rule_id] = counts.get(finding.rule_id, 0) + 1
        hours[finding.rule_id] = hours.get(finding.rule_id, 0.0) + finding.hours

    return [
        RuleResult(
            rule_id=rule.rule_id,
            rule_name=rule.name,
            category=rule.category,
            findings_count=counts.get(rule.rule_id, 0),
            total_hours=hours.get(rule.rule_id, 0.0),
            enabled=rule.enabled,
        )
        for rule in registry.all()
    ]


def summarize_categories(
    findings: Iterable[Finding], registry: RuleRegistry
) -> list[CategorySummary]:
    """Sum findings by the category of their rule; unregistered rules are skipped."""
    by_category: dict[Category, CategorySummary] = {}
    for finding in findings:
        rule = registry.get(finding.rule_id)
        if rule is None:
            continue
        summary = by_category.setdefault(rule.category, CategorySummary(category=rule.category))
        summary.findings += 1
        summary.hours += finding.hours
    return [by_category[category] for category in KNOWN_CATEGORIES if category in by_category]


def run_diagnostics(runs: Iterable[RuleRun]) -> list[Diagnostic]:
    """Turn failed rule runs into error diagnostics."""
    return [
        Diagnostic(level="error", message=f"Rule {run.rule_id} failed: {run.reason}")
        for run in runs
        if run.status == "failed"
    ]


def version_diagnostics(framework_version: str | None) -> list[Diagnostic]:
    """Warn when a v13 site is not yet on the final v13 LTS release."""
    if framework_version is None:
        return []
    if framework_version.startswith("13.") and framework_version != REQUIRED_INTERMEDIATE_VERSION:
        return [
            Diagnostic(
                level="warning",
                message=(
                    f"Before upgrading to v17, upgrade from {framework_version} to "
                    f"{REQUIRED_INTERMEDIATE_VERSION} (the final LTS release of v13)."
                ),
            )
        ]
    return []
