"""Rule execution."""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from umbraco_audit.code_search import extract_snippet, read_source
from umbraco_audit.rules import RuleRegistry
from umbraco_audit.rules.base import Finding, ScanContext

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RuleRun:
    """Per-rule execution record."""

    rule_id: str
    status: Literal["ran", "failed"] = "ran"
    reason: str = "completed"
    elapsed_ms: int = 0
    findings: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "rule_id": self.rule_id,
            "status": self.status,
            "reason": self.reason,
            "elapsed_ms": self.elapsed_ms,
            "findings": self.findings,
        }


class AuditEngine:
    """Run every enabled rule of a registry against one scan context."""

    def __init__(self, registry: RuleRegistry) -> None:
        self.registry = registry
        self.runs: list[RuleRun] = []

    async def run_all(self, context: ScanContext) -> list[Finding]:
        """Execute enabled rules one at a time and concatenate their findings.

        The enabled set is captured once, before the first rule runs. A rule
        that raises contributes no findings and does not stop the others.
        """
        rules = self.registry.enabled()
        logger.debug("Executing %d enabled rules", len(rules))

        all_findings: list[Finding] = []
        for rule in rules:
            run = RuleRun(rule_id=rule.rule_id)
            start = time.perf_counter()
            logger.debug("Executing rule: %s", rule.rule_id)
            try:
                findings = await rule.execute(context)
            except Exception as exc:  # noqa: BLE001
                run.status = "failed"
                run.reason = f"{exc.__class__.__name__}: {exc}"
                logger.warning("Rule %s failed: %s", rule.rule_id, run.reason)
                logger.debug("Rule %s traceback", rule.rule_id, exc_info=True)
            else:
                run.findings = len(findings)
                all_findings.extend(findings)
                logger.debug("Rule %s found %d findings", rule.rule_id, len(findings))
            finally:
                run.elapsed_ms = int((time.perf_counter() - start) * 1000)
                self.runs.append(run)

        logger.debug("Total findings from all rules: %d", len(all_findings))
        return all_findings

    def failed_runs(self) -> list[RuleRun]:
        return [run for run in self.runs if run.status == "failed"]


def attach_snippets(findings: Iterable[Finding], context_lines: int = 3) -> list[Finding]:
    """Return findings with code context attached to line-addressable ones."""
    contents: dict[str, str | None] = {}
    output: list[Finding] = []
    for finding in findings:
        if finding.line_number <= 0:
            output.append(finding)
            continue
        if finding.file_path not in contents:
            contents[finding.file_path] = _read_or_none(Path(finding.file_path))
        content = contents[finding.file_path]
        if content is None:
            output.append(finding)
            continue
        snippet = extract_snippet(content, finding.line_number, context_lines)
        output.append(dataclasses.replace(finding, snippet=snippet))
    return output


def _read_or_none(path: Path) -> str | None:
    try:
        return read_source(path)
    except OSError as exc:
        logger.debug("Cannot read %s for snippet: %s", path, exc)
        return None
