"""Config loading tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from umbraco_audit.config import RuleOverride, default_config_template, load_app_config
from umbraco_audit.nuget import DEFAULT_REGISTRATION_URL


def test_defaults_without_config_files(tmp_path: Path) -> None:
    config = load_app_config(tmp_path)
    assert config.format == "console"
    assert config.verbose is False
    assert config.context_lines == 3
    assert config.exclude == []
    assert config.rules == {}
    assert config.nuget.registration_url == DEFAULT_REGISTRATION_URL
    assert config.source is None


def test_dot_file_wins_over_pyproject(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text(
        '[tool.umbraco_audit]\nformat = "html"\n', encoding="utf-8"
    )
    (tmp_path / ".umbraco-audit.toml").write_text(
        "\n".join(
            [
                'format = "json"',
                "verbose = true",
                "context_lines = 5",
                'exclude = ["**/wwwroot/lib/**"]',
                "",
                "[rules.rule-01-nuget-packages]",
                "enabled = false",
                "",
                "[rules.rule-07-angular-detection]",
                "base_hours = 4",
                "",
                "[nuget]",
                "timeout_seconds = 5",
            ]
        ),
        encoding="utf-8",
    )

    config = load_app_config(tmp_path)

    assert config.format == "json"
    assert config.verbose is True
    assert config.context_lines == 5
    assert config.exclude == ["**/wwwroot/lib/**"]
    assert config.rules == {
        "rule-01-nuget-packages": RuleOverride(enabled=False),
        "rule-07-angular-detection": RuleOverride(base_hours=4.0),
    }
    assert config.nuget.timeout_seconds == 5.0
    assert config.source == str((tmp_path / ".umbraco-audit.toml").resolve())


def test_pyproject_tool_section_is_used(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text(
        '[tool.umbraco-audit]\nformat = "html"\n', encoding="utf-8"
    )
    config = load_app_config(tmp_path)
    assert config.format == "html"
    assert config.source is not None and config.source.endswith("pyproject.toml")


def test_pyproject_without_tool_section_falls_back_to_defaults(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text('[project]\nname = "x"\n', encoding="utf-8")
    assert load_app_config(tmp_path).source is None


def test_explicit_config_path(tmp_path: Path) -> None:
    custom = tmp_path / "ci" / "audit.toml"
    custom.parent.mkdir()
    custom.write_text('format = "json"\n', encoding="utf-8")
    assert load_app_config(tmp_path, config_path=Path("ci/audit.toml")).format == "json"

    with pytest.raises(ValueError, match="does not exist"):
        load_app_config(tmp_path, config_path=Path("missing.toml"))


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ('format = "xml"', "format must be one of"),
        ('verbose = "yes"', "verbose must be a boolean"),
        ("context_lines = -1", "context_lines must be >= 0"),
        ("exclude = [1]", "exclude must be a list of strings"),
        ("rules = 3", "rules must be a table"),
        ("[rules.rule-05-program-cs]\nweight = 2", "unknown keys: weight"),
        ("[rules.rule-05-program-cs]\nbase_hours = -1", "base_hours must be >= 0"),
        ("[rules.rule-05-program-cs]\nenabled = 1", "enabled must be a boolean"),
        ("[nuget]\ntimeout_seconds = 0", "timeout_seconds must be > 0"),
        ("format = ", "Invalid TOML"),
    ],
)
def test_invalid_config_values_raise(tmp_path: Path, content: str, message: str) -> None:
    (tmp_path / ".umbraco-audit.toml").write_text(content + "\n", encoding="utf-8")
    with pytest.raises(ValueError, match=message):
        load_app_config(tmp_path)


def test_default_template_round_trips(tmp_path: Path) -> None:
    (tmp_path / "umbraco-audit.toml").write_text(default_config_template(), encoding="utf-8")
    config = load_app_config(tmp_path)
    assert config.format == "console"
    assert config.rules["rule-07-angular-detection"].base_hours == 4.0
    assert config.rules["rule-01-nuget-packages"].enabled is True
    assert config.to_dict()["nuget"]["registration_url"] == DEFAULT_REGISTRATION_URL
