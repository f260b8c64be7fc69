"""Configuration loading for umbraco-audit."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from umbraco_audit.nuget import DEFAULT_FLAT_CONTAINER_URL, DEFAULT_REGISTRATION_URL

CONFIG_FILENAMES = (".umbraco-audit.toml", "umbraco-audit.toml")
PYPROJECT_FILENAME = "pyproject.toml"
PYPROJECT_TOOL_KEYS = ("umbraco_audit", "umbraco-audit")
OUTPUT_FORMATS = {"console", "json", "html"}


@dataclass(slots=True)
class RuleOverride:
    """Per-rule override of the enabled flag and base hours."""

    enabled: bool | None = None
    base_hours: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"enabled": self.enabled, "base_hours": self.base_hours}


@dataclass(slots=True)
class NuGetConfig:
    """Package registry endpoints."""

    registration_url: str = DEFAULT_REGISTRATION_URL
    flat_container_url: str = DEFAULT_FLAT_CONTAINER_URL
    timeout_seconds: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "registration_url": self.registration_url,
            "flat_container_url": self.flat_container_url,
            "timeout_seconds": self.timeout_seconds,
        }


@dataclass(slots=True)
class AppConfig:
    """Runtime configuration values resolved from project files."""

    format: str = "console"
    verbose: bool = False
    context_lines: int = 3
    exclude: list[str] = field(default_factory=list)
    rules: dict[str, RuleOverride] = field(default_factory=dict)
    nuget: NuGetConfig = field(default_factory=NuGetConfig)
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format,
            "verbose": self.verbose,
            "context_lines": self.context_lines,
            "exclude": list(self.exclude),
            "rules": {rule_id: item.to_dict() for rule_id, item in self.rules.items()},
            "nuget": self.nuget.to_dict(),
            "source": self.source,
        }


def load_app_config(project: Path, config_path: Path | None = None) -> AppConfig:
    """Load config from explicit path or project-local files with precedence."""
    project = project.resolve()
    base_dir = project if project.is_dir() else project.parent
    if config_path is not None:
        resolved = config_path if config_path.is_absolute() else (base_dir / config_path)
        if not resolved.exists() and (Path.cwd() / config_path).exists():
            resolved = Path.cwd() / config_path
        if not resolved.exists():
            raise ValueError(f"Config file does not exist: {resolved}")
        mapping = _extract_config_mapping(_load_toml(resolved), source_path=resolved)
        return _from_mapping(mapping, source=str(resolved))

    for filename in CONFIG_FILENAMES:
        resolved = base_dir / filename
        if resolved.exists():
            mapping = _extract_config_mapping(_load_toml(resolved), source_path=resolved)
            return _from_mapping(mapping, source=str(resolved))

    pyproject_path = base_dir / PYPROJECT_FILENAME
    if pyproject_path.exists():
        mapping = _extract_config_mapping(_load_toml(pyproject_path), source_path=pyproject_path)
        if mapping:
            return _from_mapping(mapping, source=str(pyproject_path))

    return AppConfig()


def default_config_template() -> str:
    """Return a starter config template."""
    return "\n".join(
        [
            'format = "console"',
            "verbose = false",
            "context_lines = 3",
            'exclude = ["**/wwwroot/lib/**"]',
            "",
            "[rules.rule-01-nuget-packages]",
            "enabled = true",
            "base_hours = 0.5",
            "",
            "[rules.rule-07-angular-detection]",
            "base_hours = 4.0",
            "",
            "# [rules.rule-10-license-files]",
            "# enabled = false",
            "",
            "[nuget]",
            f'registration_url = "{DEFAULT_REGISTRATION_URL}"',
            f'flat_container_url = "{DEFAULT_FLAT_CONTAINER_URL}"',
            "# timeout_seconds = 10",
            "",
        ]
    )


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as file_obj:
            loaded = tomllib.load(file_obj)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        return {}
    return loaded


def _extract_config_mapping(loaded: dict[str, Any], *, source_path: Path) -> dict[str, Any]:
    if source_path.name == PYPROJECT_FILENAME:
        section = _find_pyproject_tool_section(loaded)
        return section if section is not None else {}

    tool_section = _find_pyproject_tool_section(loaded)
    if tool_section is not None:
        return tool_section
    return loaded


def _find_pyproject_tool_section(loaded: dict[str, Any]) -> dict[str, Any] | None:
    tool = loaded.get("tool")
    if not isinstance(tool, dict):
        return None
    for key in PYPROJECT_TOOL_KEYS:
        section = tool.get(key)
        if isinstance(section, dict):
            return section
    return None


def _from_mapping(mapping: dict[str, Any], *, source: str) -> AppConfig:
    rules_mapping = _as_table(mapping.get("rules"), "rules")
    nuget_mapping = _as_table(mapping.get("nuget"), "nuget")

    context_lines = _as_int(mapping.get("context_lines", 3), "context_lines")
    if context_lines < 0:
        raise ValueError("context_lines must be >= 0")

    return AppConfig(
        format=_as_choice(mapping.get("format", "console"), OUTPUT_FORMATS, "format"),
        verbose=_as_bool(mapping.get("verbose", False), "verbose"),
        context_lines=context_lines,
        exclude=_as_str_list(mapping.get("exclude"), "exclude"),
        rules=_parse_rule_overrides(rules_mapping),
        nuget=_parse_nuget_config(nuget_mapping),
        source=source,
    )


def _parse_rule_overrides(value: dict[str, Any]) -> dict[str, RuleOverride]:
    overrides: dict[str, RuleOverride] = {}
    for rule_id, raw in value.items():
        field_name = f"rules.{rule_id}"
        table = _as_table(raw, field_name)
        unknown_keys = sorted(set(table) - {"enabled", "base_hours"})
        if unknown_keys:
            raise ValueError(f"{field_name} has unknown keys: {', '.join(unknown_keys)}")

        enabled = table.get("enabled")
        base_hours = table.get("base_hours")
        override = RuleOverride(
            enabled=None if enabled is None else _as_bool(enabled, f"{field_name}.enabled"),
            base_hours=(
                None if base_hours is None else _as_float(base_hours, f"{field_name}.base_hours")
            ),
        )
        if override.base_hours is not None and override.base_hours < 0:
            raise ValueError(f"{field_name}.base_hours must be >= 0")
        overrides[rule_id] = override
    return overrides


def _parse_nuget_config(value: dict[str, Any]) -> NuGetConfig:
    raw_timeout = value.get("timeout_seconds")
    timeout = None if raw_timeout is None else _as_float(raw_timeout, "nuget.timeout_seconds")
    if timeout is not None and timeout <= 0:
        raise ValueError("nuget.timeout_seconds must be > 0")
    return NuGetConfig(
        registration_url=_as_str(
            value.get("registration_url", DEFAULT_REGISTRATION_URL), "nuget.registration_url"
        ),
        flat_container_url=_as_str(
            value.get("flat_container_url", DEFAULT_FLAT_CONTAINER_URL),
            "nuget.flat_container_url",
        ),
        timeout_seconds=timeout,
    )


def _as_table(value: Any, field_name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{field_name} must be a table/object")
    return value


def _as_str_list(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be a list of strings")
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"{field_name} must be a list of strings")
        items.append(item)
    return items


def _as_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")
    return value


def _as_choice(raw: Any, allowed: set[str], field_name: str) -> str:
    value = str(raw).lower()
    if value not in allowed:
        choices = ", ".join(sorted(allowed))
        raise ValueError(f"{field_name} must be one of: {choices}")
    return value


def _as_int(raw: Any, field_name: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ValueError(f"{field_name} must be an integer")
    return raw


def _as_bool(raw: Any, field_name: str) -> bool:
    if not isinstance(raw, bool):
        raise ValueError(f"{field_name} must be a boolean")
    return raw


def _as_float(raw: Any, field_name: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValueError(f"{field_name} must be a number")
    return float(raw)
