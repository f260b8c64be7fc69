"""Smidge references in _ViewImports.cshtml."""

from __future__ import annotations

import logging

from umbraco_audit.code_search import search_file_multiple
from umbraco_audit.hours import estimate_hours
from umbraco_audit.rules.base import ConfigurationMetadata, Finding, RuleBase, ScanContext

logger = logging.getLogger(__name__)

SMIDGE_PATTERNS = (
    "@addTagHelper *, Smidge",
    "@inject Smidge",
    "Smidge",
)


class ViewImportsRule(RuleBase):
    """Detects Smidge references in _ViewImports.cshtml that need removal."""

    rule_id = "rule-06-view-imports"
    name = "ViewImports Smidge Removal"
    category = "configuration"
    base_hours = 0.5

    async def execute(self, context: ScanContext) -> list[Finding]:
        findings: list[Finding] = []
        for path in context.files.discover("**/_ViewImports.cshtml"):
            matches = search_file_multiple(path, SMIDGE_PATTERNS, case_sensitive=False)
            if not matches:
                continue
            findings.append(
                Finding(
                    rule_id=self.rule_id,
                    file_path=str(path),
                    line_number=matches[0].line_number,
                    line_content=matches[0].line_content,
                    hours=estimate_hours(self.base_hours, 1),
                    metadata=ConfigurationMetadata(
                        occurrence_count=len(matches),
                        file_names=(path.name,),
                        action="Remove Smidge tag helpers and injections",
                    ),
                )
            )

        logger.debug("[%s] Created %d findings", self.rule_id, len(findings))
        return findings
