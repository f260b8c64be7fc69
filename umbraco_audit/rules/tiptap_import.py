"""Tiptap import path rule."""

from __future__ import annotations

import logging

from umbraco_audit.code_search import search_file
from umbraco_audit.hours import estimate_hours
from umbraco_audit.rules.base import Finding, FrontendMetadata, RuleBase, ScanContext

logger = logging.getLogger(__name__)

TIPTAP_IMPORT = "@umbraco-cms/backoffice/external/tiptap"
FILE_PATTERNS = ("**/*.ts", "**/*.js")


class TiptapImportRule(RuleBase):
    """Detects Tiptap imports that need updating for the Umbraco 17 backoffice."""

    rule_id = "rule-03-tiptap-import"
    name = "Tiptap Import Changes"
    category = "frontend"
    base_hours = 0.5

    async def execute(self, context: ScanContext) -> list[Finding]:
        findings: list[Finding] = []
        for path in context.files.discover(FILE_PATTERNS):
            matches = search_file(path, TIPTAP_IMPORT)
            if not matches:
                continue
            findings.append(
                Finding(
                    rule_id=self.rule_id,
                    file_path=str(path),
                    line_number=matches[0].line_number,
                    line_content=matches[0].line_content,
                    hours=estimate_hours(self.base_hours, 1),
                    metadata=FrontendMetadata(match_count=len(matches)),
                )
            )

        logger.debug("[%s] Created %d findings", self.rule_id, len(findings))
        return findings
