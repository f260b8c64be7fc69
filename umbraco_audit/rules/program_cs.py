"""Program.cs startup pipeline rule."""

from __future__ import annotations

import logging

from umbraco_audit.code_search import search_file
from umbraco_audit.hours import estimate_hours
from umbraco_audit.rules.base import ConfigurationMetadata, Finding, RuleBase, ScanContext

logger = logging.getLogger(__name__)

PATTERN = "UseInstallerEndpoints()"


class ProgramCsRule(RuleBase):
    """Detects the removed UseInstallerEndpoints() call in Program.cs."""

    rule_id = "rule-05-program-cs"
    name = "Program.cs Changes"
    category = "configuration"
    base_hours = 0.5

    async def execute(self, context: ScanContext) -> list[Finding]:
        findings: list[Finding] = []
        for path in context.files.discover("**/Program.cs"):
            matches = search_file(path, PATTERN)
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
                        action="Remove UseInstallerEndpoints() from the startup pipeline",
                    ),
                )
            )

        logger.debug("[%s] Created %d findings", self.rule_id, len(findings))
        return findings
