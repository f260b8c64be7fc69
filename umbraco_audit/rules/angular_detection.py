"""AngularJS code in App_Plugins."""

from __future__ import annotations

import logging
import re

from umbraco_audit.code_search import SearchMatch, search_file_multiple
from umbraco_audit.hours import split_hours
from umbraco_audit.rules.base import Finding, FrontendMetadata, RuleBase, ScanContext

logger = logging.getLogger(__name__)

FILE_PATTERNS = (
    "**/App_Plugins/**/*.js",
    "**/App_Plugins/**/*.ts",
    "**/App_Plugins/**/*.html",
)

ANGULAR_PATTERNS = (
    "angular.module(",
    "ng-controller",
    "ng-app",
    re.compile(r"\$scope"),
    re.compile(r"\$http"),
    re.compile(r"\.controller\("),
    re.compile(r"\.directive\("),
    re.compile(r"\.service\("),
    re.compile(r"\.factory\("),
)

ADDITIONAL_HOURS_PER_10_FILES = 0.5


class AngularDetectionRule(RuleBase):
    """Detects AngularJS code in App_Plugins that needs migrating to Web Components.

    The estimate is a lump sum (base hours plus half an hour per full ten
    files) spread across the affected files in half-hour units.
    """

    rule_id = "rule-07-angular-detection"
    name = "Angular Files Detected"
    category = "frontend"
    base_hours = 2.0

    async def execute(self, context: ScanContext) -> list[Finding]:
        matched: list[tuple[str, list[SearchMatch]]] = []
        for path in context.files.discover(FILE_PATTERNS):
            matches = search_file_multiple(path, ANGULAR_PATTERNS, case_sensitive=False)
            if matches:
                matched.append((str(path), matches))

        if not matched:
            return []

        file_count = len(matched)
        total_hours = self.base_hours + (file_count // 10) * ADDITIONAL_HOURS_PER_10_FILES
        logger.debug(
            "[%s] %d files with Angular code, %.1fh total", self.rule_id, file_count, total_hours
        )

        findings: list[Finding] = []
        for (file_path, matches), hours in zip(matched, split_hours(total_hours, file_count)):
            findings.append(
                Finding(
                    rule_id=self.rule_id,
                    file_path=file_path,
                    line_number=matches[0].line_number,
                    line_content=matches[0].line_content,
                    hours=hours,
                    metadata=FrontendMetadata(match_count=len(matches)),
                )
            )
        return findings
