"""Legacy Umbraco Forms / Deploy license files."""

from __future__ import annotations

import logging

from umbraco_audit.hours import estimate_hours
from umbraco_audit.rules.base import ConfigurationMetadata, Finding, RuleBase, ScanContext

logger = logging.getLogger(__name__)

LICENSE_FILES = ("umbracoDeploy.lic", "umbracoForms.lic")


class LicenseFilesRule(RuleBase):
    """Detects Umbraco Forms and Deploy license files that need updating for new licensing.

    A single finding covers every license file found.
    """

    rule_id = "rule-10-license-files"
    name = "License File Structure Changes"
    category = "configuration"
    base_hours = 0.5

    async def execute(self, context: ScanContext) -> list[Finding]:
        found = [path for path in context.files.discover("**/*.lic") if path.name in LICENSE_FILES]
        if not found:
            return []

        file_names = tuple(path.name for path in found)
        if len(found) == 1:
            description = (
                f"Legacy license file detected: {file_names[0]}. "
                "Requires update for new Umbraco 17 licensing structure."
            )
        else:
            description = (
                f"Legacy license files detected ({len(found)} files). "
                "Requires update for new Umbraco 17 licensing structure."
            )

        logger.debug("[%s] Found license files: %s", self.rule_id, ", ".join(file_names))
        return [
            Finding(
                rule_id=self.rule_id,
                file_path=str(found[0]),
                line_number=0,
                line_content=", ".join(file_names),
                hours=estimate_hours(self.base_hours, 1),
                metadata=ConfigurationMetadata(
                    occurrence_count=len(found),
                    file_names=file_names,
                    action="Change licensing structure for Forms and Deploy",
                    description=description,
                ),
            )
        ]
