"""Outdated property editors in Umbraco Deploy (*.uda) files."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from umbraco_audit.code_search import read_source, search
from umbraco_audit.hours import estimate_hours
from umbraco_audit.rules.base import BreakingChangeMetadata, Finding, RuleBase, ScanContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OutdatedEditor:
    name: str
    pattern: re.Pattern[str]
    replacement: str


OUTDATED_EDITORS = (
    # The closing quote keeps "Umbraco.MediaPicker3" from matching.
    OutdatedEditor("Umbraco.MediaPicker", re.compile(r'"Umbraco\.MediaPicker"'), "MediaPicker3"),
    OutdatedEditor("Nested Content", re.compile(r'"Nested Content"'), "Block List Editor"),
    OutdatedEditor("Stacked Content", re.compile(r'"Stacked Content"'), "Block List Editor"),
)


class UdaPropertyEditorsRule(RuleBase):
    """Detects obsolete property editors in *.uda files that need migration for Umbraco 17."""

    rule_id = "rule-09-uda-property-editors"
    name = "Outdated Property Editors"
    category = "breaking-change"
    base_hours = 1.0

    async def execute(self, context: ScanContext) -> list[Finding]:
        findings: list[Finding] = []
        for path in context.files.discover("**/*.uda"):
            content = read_source(path)
            hits: list[tuple[int, int, Finding]] = []
            for order, editor in enumerate(OUTDATED_EDITORS):
                for match in search(content, editor.pattern, file_path=str(path)):
                    finding = Finding(
                        rule_id=self.rule_id,
                        file_path=str(path),
                        line_number=match.line_number,
                        line_content=match.line_content,
                        hours=estimate_hours(self.base_hours, 1),
                        metadata=BreakingChangeMetadata(
                            symbol=editor.name,
                            replacement=editor.replacement,
                        ),
                    )
                    hits.append((match.line_number, order, finding))
            findings.extend(finding for _, _, finding in sorted(hits, key=lambda item: item[:2]))

        logger.debug("[%s] Created %d findings", self.rule_id, len(findings))
        return findings
