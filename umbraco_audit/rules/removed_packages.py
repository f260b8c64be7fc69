"""Removed package reference rule."""

from __future__ import annotations

import logging

from umbraco_audit.hours import estimate_hours
from umbraco_audit.manifest import is_framework_package, parse_manifest
from umbraco_audit.rules.base import Finding, PackageFindingMetadata, RuleBase, ScanContext

logger = logging.getLogger(__name__)

REMOVED_PACKAGES = frozenset(
    {
        "Umbraco.Cloud.Cms.PublicAccess",
        "Umbraco.Cloud.Identity.Cms",
        "Umbraco.Cms.Web.BackOffice",
    }
)


class RemovedPackagesRule(RuleBase):
    """Detects packages that have been removed in Umbraco 17 and must be uninstalled."""

    rule_id = "rule-04-removed-packages"
    name = "Removed Packages"
    category = "package-update"
    base_hours = 0.5

    async def execute(self, context: ScanContext) -> list[Finding]:
        findings: list[Finding] = []
        for manifest_path in context.project_files:
            for reference in parse_manifest(manifest_path):
                if reference.name not in REMOVED_PACKAGES:
                    continue
                findings.append(
                    Finding(
                        rule_id=self.rule_id,
                        file_path=str(manifest_path),
                        line_number=0,
                        line_content=(
                            f"{reference.name} ({reference.version}) - "
                            "Package removed in Umbraco 17"
                        ),
                        hours=estimate_hours(self.base_hours, 1),
                        severity="error",
                        metadata=PackageFindingMetadata(
                            package_name=reference.name,
                            current_version=reference.version,
                            is_framework_package=is_framework_package(reference.name),
                            files_affected=(str(manifest_path),),
                            reason="Package removed or functionality merged into core",
                        ),
                    )
                )

        logger.debug("[%s] Created %d findings", self.rule_id, len(findings))
        return findings
