"""Outdated or incompatible NuGet package rule."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from umbraco_audit.hours import estimate_hours
from umbraco_audit.manifest import is_framework_package, parse_manifest
from umbraco_audit.nuget import NuGetResolver, compare_versions
from umbraco_audit.rules.base import Finding, PackageFindingMetadata, RuleBase, ScanContext

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _DeclaredPackage:
    version: str
    files: list[str] = field(default_factory=list)


class NuGetPackagesRule(RuleBase):
    """Detects NuGet packages that need updating for Umbraco 17 and .NET 10.

    One finding per unique package, whatever the number of projects
    referencing it. Packages the registry cannot resolve are skipped, and so
    is unknown compatibility; only an explicit incompatibility counts.
    """

    rule_id = "rule-01-nuget-packages"
    name = "NuGet Package Updates"
    category = "package-update"
    base_hours = 0.5

    def __init__(self, resolver: NuGetResolver) -> None:
        super().__init__()
        self.resolver = resolver

    async def execute(self, context: ScanContext) -> list[Finding]:
        declared = _collect_packages(context)
        logger.debug("[%s] Found %d unique packages", self.rule_id, len(declared))
        resolved = await self.resolver.resolve_batch(declared)

        findings: list[Finding] = []
        for package_name, package in declared.items():
            metadata = resolved.get(package_name)
            if metadata is None or metadata.latest_version is None:
                logger.debug(
                    "[%s] Skipping %s: %s",
                    self.rule_id,
                    package_name,
                    metadata.error if metadata else "not resolved",
                )
                continue

            outdated = compare_versions(package.version, metadata.latest_version) < 0
            incompatible = metadata.is_compatible is False
            if not outdated and not incompatible:
                continue

            findings.append(
                Finding(
                    rule_id=self.rule_id,
                    file_path=package.files[0],
                    line_number=0,
                    line_content=f"{package_name}: {package.version} -> {metadata.latest_version}",
                    hours=estimate_hours(self.base_hours, 1),
                    severity="error" if incompatible else "warning",
                    metadata=PackageFindingMetadata(
                        package_name=package_name,
                        current_version=package.version,
                        latest_version=metadata.latest_version,
                        is_framework_package=is_framework_package(package_name),
                        is_compatible=metadata.is_compatible,
                        files_affected=tuple(package.files),
                    ),
                )
            )

        logger.debug("[%s] Created %d findings", self.rule_id, len(findings))
        return findings


def _collect_packages(context: ScanContext) -> dict[str, _DeclaredPackage]:
    packages: dict[str, _DeclaredPackage] = {}
    for manifest_path in context.project_files:
        for reference in parse_manifest(manifest_path):
            package = packages.setdefault(reference.name, _DeclaredPackage(reference.version))
            package.files.append(str(manifest_path))
    return packages
