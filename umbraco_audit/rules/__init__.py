"""Rules package: the rule registry and the default detector catalogue."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass

from umbraco_audit.config import RuleOverride
from umbraco_audit.nuget import NuGetResolver
from umbraco_audit.rules.angular_detection import AngularDetectionRule
from umbraco_audit.rules.base import KNOWN_CATEGORIES, Category, Finding, Rule, ScanContext
from umbraco_audit.rules.license_files import LicenseFilesRule
from umbraco_audit.rules.nuget_packages import NuGetPackagesRule
from umbraco_audit.rules.obsolete_controllers import ObsoleteControllersRule
from umbraco_audit.rules.program_cs import ProgramCsRule
from umbraco_audit.rules.published_snapshot import PublishedSnapshotRule
from umbraco_audit.rules.removed_extensions import RemovedExtensionsRule
from umbraco_audit.rules.removed_packages import RemovedPackagesRule
from umbraco_audit.rules.tiptap_import import TiptapImportRule
from umbraco_audit.rules.uda_property_editors import UdaPropertyEditorsRule
from umbraco_audit.rules.view_imports import ViewImportsRule

__all__ = [
    "KNOWN_CATEGORIES",
    "Category",
    "Finding",
    "Rule",
    "RuleInfo",
    "RuleRegistry",
    "ScanContext",
    "build_registry",
    "default_rule_ids",
    "describe_rules",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RuleInfo:
    """Rule metadata for listing."""

    rule_id: str
    name: str
    description: str
    category: Category
    base_hours: float
    enabled: bool


class RuleRegistry:
    """Ordered mapping of rule id to rule for one audit run.

    Registration order is report order. Registering an id again replaces the
    rule in place.
    """

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules: dict[str, Rule] = {}
        for rule in rules:
            self.register(rule)

    def register(self, rule: Rule) -> None:
        if rule.category not in KNOWN_CATEGORIES:
            raise ValueError(f"Unknown category '{rule.category}' for rule {rule.rule_id}")
        if rule.base_hours < 0:
            raise ValueError(f"Base hours for {rule.rule_id} must be non-negative")
        logger.debug("Registering rule: %s - %s", rule.rule_id, rule.name)
        self._rules[rule.rule_id] = rule

    def get(self, rule_id: str) -> Rule | None:
        return self._rules.get(rule_id)

    def enable(self, rule_id: str) -> None:
        self._require(rule_id).enabled = True
        logger.debug("Enabled rule: %s", rule_id)

    def disable(self, rule_id: str) -> None:
        self._require(rule_id).enabled = False
        logger.debug("Disabled rule: %s", rule_id)

    def set_base_hours(self, rule_id: str, base_hours: float) -> None:
        if base_hours < 0:
            raise ValueError(f"Base hours for {rule_id} must be non-negative, got {base_hours}")
        self._require(rule_id).base_hours = base_hours
        logger.debug("Updated rule %s base hours to %s", rule_id, base_hours)

    def apply_overrides(self, overrides: Mapping[str, RuleOverride]) -> None:
        """Apply per-rule ``enabled`` / ``base_hours`` overrides from configuration."""
        unknown = sorted(rule_id for rule_id in overrides if rule_id not in self._rules)
        if unknown:
            raise ValueError(f"Unknown rule ids: {', '.join(unknown)}")
        for rule_id, override in overrides.items():
            if override.enabled is True:
                self.enable(rule_id)
            elif override.enabled is False:
                self.disable(rule_id)
            if override.base_hours is not None:
                self.set_base_hours(rule_id, override.base_hours)

    def all(self) -> list[Rule]:
        return list(self._rules.values())

    def enabled(self) -> list[Rule]:
        return [rule for rule in self._rules.values() if rule.enabled]

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def _require(self, rule_id: str) -> Rule:
        rule = self._rules.get(rule_id)
        if rule is None:
            raise ValueError(f"Unknown rule id: {rule_id}")
        return rule


def build_registry(
    *,
    resolver: NuGetResolver | None = None,
    overrides: Mapping[str, RuleOverride] | None = None,
) -> RuleRegistry:
    """Build a fresh registry holding the default rules in report order."""
    effective_resolver = resolver or NuGetResolver()
    registry = RuleRegistry(factory() for factory in _rule_factories(effective_resolver))
    if overrides:
        registry.apply_overrides(overrides)
    return registry


def default_rule_ids() -> list[str]:
    """Return the ids of the default rules in registration order."""
    return [rule.rule_id for rule in build_registry().all()]


def describe_rules(registry: RuleRegistry) -> list[RuleInfo]:
    """Return listing metadata for every registered rule."""
    return [
        RuleInfo(
            rule_id=rule.rule_id,
            name=rule.name,
            description=rule.description,
            category=rule.category,
            base_hours=rule.base_hours,
            enabled=rule.enabled,
        )
        for rule in registry.all()
    ]


def _rule_factories(resolver: NuGetResolver) -> list[Callable[[], Rule]]:
    return [
        lambda: NuGetPackagesRule(resolver),
        ObsoleteControllersRule,
        RemovedExtensionsRule,
        TiptapImportRule,
        RemovedPackagesRule,
        ProgramCsRule,
        ViewImportsRule,
        AngularDetectionRule,
        PublishedSnapshotRule,
        UdaPropertyEditorsRule,
        LicenseFilesRule,
    ]
