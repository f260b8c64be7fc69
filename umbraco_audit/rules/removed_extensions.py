"""Removed extension method rule."""

from __future__ import annotations

import logging
import re

from umbraco_audit.code_search import search_file
from umbraco_audit.hours import estimate_hours
from umbraco_audit.rules.base import BreakingChangeMetadata, Finding, RuleBase, ScanContext

logger = logging.getLogger(__name__)

REMOVED_METHODS = (
    "GetAssemblyFile",
    "ToSingleItemCollection",
    "GenerateDataTable",
    "CreateTableData",
    "AddRowData",
    "ChildrenAsTable",
    "RetryUntilSuccessOrTimeout",
    "RetryUntilSuccessOrMaxAttempts",
    "HasFlagAny",
    "Deconstruct",
    "AsEnumerable",
    "ContainsKey",
    "GetValue",
    "DisposeIfDisposable",
    "SafeCast",
    "ToDictionary",
    "SanitizeThreadCulture",
)

# Matches a call such as ".ToSingleItemCollection(" or ".GetValue ("
PATTERN = re.compile(rf"\.({'|'.join(REMOVED_METHODS)})\s*\(")


class RemovedExtensionsRule(RuleBase):
    """Detects calls to extension methods removed in Umbraco 17."""

    rule_id = "rule-02-removed-extensions"
    name = "Removed Extension Methods"
    category = "breaking-change"
    base_hours = 1.0

    async def execute(self, context: ScanContext) -> list[Finding]:
        findings: list[Finding] = []
        for path in context.files.discover("**/*.cs"):
            for match in search_file(path, PATTERN, case_sensitive=True):
                method = PATTERN.search(match.line_content)
                findings.append(
                    Finding(
                        rule_id=self.rule_id,
                        file_path=str(path),
                        line_number=match.line_number,
                        line_content=match.line_content,
                        hours=estimate_hours(self.base_hours, 1),
                        severity="error",
                        metadata=BreakingChangeMetadata(
                            symbol=method.group(1) if method else "Unknown",
                        ),
                    )
                )

        logger.debug("[%s] Created %d findings", self.rule_id, len(findings))
        return findings
