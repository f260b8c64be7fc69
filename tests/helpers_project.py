"""Helpers for building synthetic Umbraco project trees in tests."""

from __future__ import annotations

from pathlib import Path


def write_file(root: Path, rel_path: str, content: str) -> Path:
    target = root / rel_path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    return target


def csproj(*references: tuple[str, str], sdk: str = "Microsoft.NET.Sdk.Web") -> str:
    items = "\n".join(
        f'    <PackageReference Include="{name}" Version="{version}" />'
        for name, version in references
    )
    return "\n".join(
        [
            f'<Project Sdk="{sdk}">',
            "  <PropertyGroup>",
            "    <TargetFramework>net8.0</TargetFramework>",
            "  </PropertyGroup>",
            "  <ItemGroup>",
            items,
            "  </ItemGroup>",
            "</Project>",
            "",
        ]
    )


def init_project(tmp_path: Path, version: str = "13.13.0") -> Path:
    root = tmp_path / "site"
    root.mkdir()
    write_file(root, "Site.Web/Site.Web.csproj", csproj(("Umbraco.Cms", version)))
    return root


def disable_package_lookup(root: Path) -> None:
    write_file(
        root,
        ".umbraco-audit.toml",
        "[rules.rule-01-nuget-packages]\nenabled = false\n",
    )
