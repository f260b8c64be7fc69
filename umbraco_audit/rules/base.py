"""Rule contract, scan context and finding model."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Literal, Protocol

from umbraco_audit.code_search import CodeSnippet
from umbraco_audit.hours import is_half_hour_multiple
from umbraco_audit.scanner import FileDiscovery

Category = Literal["package-update", "breaking-change", "configuration", "frontend"]
Severity = Literal["error", "warning", "info"]

KNOWN_CATEGORIES: tuple[Category, ...] = (
    "package-update",
    "breaking-change",
    "configuration",
    "frontend",
)


@dataclass(frozen=True, slots=True)
class PackageFindingMetadata:
    """Details attached by package-update rules."""

    package_name: str
    current_version: str
    latest_version: str | None = None
    is_framework_package: bool = False
    is_compatible: bool | None = None
    files_affected: tuple[str, ...] = ()
    reason: str | None = None
    category: Literal["package-update"] = field(default="package-update", init=False)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class BreakingChangeMetadata:
    """Details attached by breaking-change rules."""

    symbol: str
    replacement: str | None = None
    occurrence_count: int = 1
    file_type: str | None = None
    file_count: int = 1
    note: str | None = None
    category: Literal["breaking-change"] = field(default="breaking-change", init=False)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ConfigurationMetadata:
    """Details attached by configuration rules."""

    occurrence_count: int = 1
    file_names: tuple[str, ...] = ()
    action: str | None = None
    description: str | None = None
    category: Literal["configuration"] = field(default="configuration", init=False)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class FrontendMetadata:
    """Details attached by frontend rules."""

    match_count: int = 1
    category: Literal["frontend"] = field(default="frontend", init=False)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


FindingMetadata = (
    PackageFindingMetadata | BreakingChangeMetadata | ConfigurationMetadata | FrontendMetadata
)


@dataclass(frozen=True, slots=True)
class Finding:
    """One detected occurrence of a rule's pattern.

    ``line_number`` is 1-based, or 0 for findings not tied to a line.
    """

    rule_id: str
    file_path: str
    line_number: int
    line_content: str
    hours: float
    severity: Severity = "warning"
    metadata: FindingMetadata | None = None
    snippet: CodeSnippet | None = None

    def __post_init__(self) -> None:
        if self.hours < 0 or not is_half_hour_multiple(self.hours):
            raise ValueError(
                f"Finding hours must be a non-negative multiple of 0.5, got {self.hours}"
            )
        if self.line_number < 0:
            raise ValueError(f"line_number must be >= 0, got {self.line_number}")


@dataclass(frozen=True, slots=True)
class ScanContext:
    """Read-only inputs shared by every rule in one audit run."""

    root_path: Path
    project_files: tuple[Path, ...]
    files: FileDiscovery
    debug: bool = False


class Rule(Protocol):
    """Protocol every detector implements."""

    rule_id: str
    name: str
    category: Category
    base_hours: float
    enabled: bool

    @property
    def description(self) -> str:
        """Human-readable summary of what the rule detects."""

    async def execute(self, context: ScanContext) -> list[Finding]:
        """Scan the project and return findings."""


class RuleBase:
    """Base class for detectors.

    ``enabled`` and ``base_hours`` are per-instance so registry overrides never
    leak between audit runs.
    """

    rule_id: str = ""
    name: str = ""
    category: Category = "breaking-change"
    base_hours: float = 0.0

    def __init__(self) -> None:
        self.enabled = True
        self.base_hours = type(self).base_hours

    @property
    def description(self) -> str:
        doc = (type(self).__doc__ or "").strip()
        return doc.splitlines()[0] if doc else ""

    async def execute(self, context: ScanContext) -> list[Finding]:
        """Scan the project and return findings."""
        raise NotImplementedError
