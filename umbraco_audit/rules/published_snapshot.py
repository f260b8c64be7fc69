"""IPublishedSnapshot / IPublishedSnapshotAccessor usage."""

from __future__ import annotations

import logging
import re

from umbraco_audit.code_search import SearchMatch, search_file_multiple
from umbraco_audit.hours import estimate_hours
from umbraco_audit.rules.base import BreakingChangeMetadata, Finding, RuleBase, ScanContext

logger = logging.getLogger(__name__)

SNAPSHOT_INTERFACES = ("IPublishedSnapshotAccessor", "IPublishedSnapshot")

PATTERNS = [re.compile(rf"\b{name}\b") for name in SNAPSHOT_INTERFACES]
_INTERFACE_RE = re.compile(rf"\b({'|'.join(SNAPSHOT_INTERFACES)})\b", re.IGNORECASE)

GENERATED_SUFFIX = ".generated.cs"
REPLACEMENT = "IPublishedContentCache / IPublishedMediaCache"


class PublishedSnapshotRule(RuleBase):
    """Detects IPublishedSnapshotAccessor and IPublishedSnapshot usage requiring updates.

    Generated model files share a single finding, since regenerating all
    models is a one-time task; every other file is counted separately.
    """

    rule_id = "rule-08-published-snapshot-interfaces"
    name = "Published Snapshot Interfaces"
    category = "breaking-change"
    base_hours = 0.5

    async def execute(self, context: ScanContext) -> list[Finding]:
        generated: list[tuple[str, list[SearchMatch]]] = []
        regular: list[tuple[str, list[SearchMatch]]] = []
        for path in context.files.discover("**/*.cs"):
            matches = search_file_multiple(path, PATTERNS, case_sensitive=False)
            if not matches:
                continue
            bucket = generated if path.name.endswith(GENERATED_SUFFIX) else regular
            bucket.append((str(path), matches))

        findings: list[Finding] = []
        if generated:
            file_path, matches = generated[0]
            findings.append(
                self._finding(
                    file_path,
                    matches[0],
                    BreakingChangeMetadata(
                        symbol=_interface_name(matches[0].line_content),
                        replacement=REPLACEMENT,
                        occurrence_count=sum(len(item[1]) for item in generated),
                        file_type="generated",
                        file_count=len(generated),
                        note="Regenerating all models is a one-time task",
                    ),
                )
            )

        for file_path, matches in regular:
            findings.append(
                self._finding(
                    file_path,
                    matches[0],
                    BreakingChangeMetadata(
                        symbol=_interface_name(matches[0].line_content),
                        replacement=REPLACEMENT,
                        occurrence_count=len(matches),
                        file_type="regular",
                    ),
                )
            )

        logger.debug(
            "[%s] Created %d findings (%d generated files, %d regular files)",
            self.rule_id,
            len(findings),
            len(generated),
            len(regular),
        )
        return findings

    def _finding(
        self, file_path: str, match: SearchMatch, metadata: BreakingChangeMetadata
    ) -> Finding:
        return Finding(
            rule_id=self.rule_id,
            file_path=file_path,
            line_number=match.line_number,
            line_content=match.line_content,
            hours=estimate_hours(self.base_hours, 1),
            metadata=metadata,
        )


def _interface_name(line_content: str) -> str:
    match = _INTERFACE_RE.search(line_content)
    return match.group(1) if match else "Unknown"
