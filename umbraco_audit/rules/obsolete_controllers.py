"""Obsolete controller base class rule."""

from __future__ import annotations

import logging
import re

from umbraco_audit.code_search import search_file_multiple
from umbraco_audit.hours import estimate_hours
from umbraco_audit.rules.base import BreakingChangeMetadata, Finding, RuleBase, ScanContext

logger = logging.getLogger(__name__)

OBSOLETE_CLASSES = (
    "UmbracoApiController",
    "UmbracoAuthorizedApiController",
    "UmbracoAuthorizedJsonController",
)

PATTERNS = [re.compile(rf"\b{name}\b") for name in OBSOLETE_CLASSES]
_CLASS_RE = re.compile(rf"\b({'|'.join(OBSOLETE_CLASSES)})\b", re.IGNORECASE)


class ObsoleteControllersRule(RuleBase):
    """Detects controller base classes that no longer exist in Umbraco 17.

    Counted once per file: moving a controller to the new base class is a
    single refactoring whatever the number of references.
    """

    rule_id = "rule-02-obsolete-controllers"
    name = "Obsolete Controller Classes"
    category = "breaking-change"
    base_hours = 1.0

    async def execute(self, context: ScanContext) -> list[Finding]:
        findings: list[Finding] = []
        for path in context.files.discover("**/*.cs"):
            matches = search_file_multiple(path, PATTERNS, case_sensitive=False)
            if not matches:
                continue

            first = matches[0]
            class_match = _CLASS_RE.search(first.line_content)
            findings.append(
                Finding(
                    rule_id=self.rule_id,
                    file_path=str(path),
                    line_number=first.line_number,
                    line_content=first.line_content,
                    hours=estimate_hours(self.base_hours, 1),
                    severity="error",
                    metadata=BreakingChangeMetadata(
                        symbol=class_match.group(1) if class_match else "Unknown",
                        replacement="Controller / ManagementApiControllerBase",
                        occurrence_count=len(matches),
                    ),
                )
            )

        logger.debug("[%s] Created %d findings", self.rule_id, len(findings))
        return findings
