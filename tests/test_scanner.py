"""File discovery tests."""

from __future__ import annotations

from pathlib import Path

from tests.helpers_project import write_file
from umbraco_audit.scanner import FileDiscovery, discover, find_project_files


def test_discover_returns_sorted_absolute_paths(tmp_path: Path) -> None:
    write_file(tmp_path, "b/Two.cs", "")
    write_file(tmp_path, "a/One.cs", "")
    write_file(tmp_path, "a/notes.txt", "")

    found = discover("**/*.cs", tmp_path)

    assert found == [(tmp_path / "a/One.cs").resolve(), (tmp_path / "b/Two.cs").resolve()]
    assert all(path.is_absolute() for path in found)


def test_discover_skips_build_output_and_node_modules(tmp_path: Path) -> None:
    write_file(tmp_path, "Web/Program.cs", "")
    write_file(tmp_path, "Web/bin/Release/Program.cs", "")
    write_file(tmp_path, "Web/obj/Program.cs", "")
    write_file(tmp_path, "bin/Program.cs", "")
    write_file(tmp_path, "Client/node_modules/x/Program.cs", "")

    found = discover("**/Program.cs", tmp_path)

    assert [path.relative_to(tmp_path.resolve()).as_posix() for path in found] == [
        "Web/Program.cs"
    ]


def test_discover_multiple_patterns_deduplicates(tmp_path: Path) -> None:
    write_file(tmp_path, "App_Plugins/x/a.js", "")
    write_file(tmp_path, "App_Plugins/x/b.ts", "")
    found = discover(["**/*.js", "**/*.ts", "App_Plugins/**/*.js"], tmp_path)
    assert [path.name for path in found] == ["a.js", "b.ts"]


def test_find_project_files_and_custom_excludes(tmp_path: Path) -> None:
    write_file(tmp_path, "Web/Web.csproj", "<Project />")
    write_file(tmp_path, "tests/Web.Tests/Web.Tests.csproj", "<Project />")

    assert len(find_project_files(tmp_path)) == 2
    assert [path.name for path in find_project_files(tmp_path, exclude=["tests/**"])] == [
        "Web.csproj"
    ]


def test_file_discovery_counts_distinct_files(tmp_path: Path) -> None:
    write_file(tmp_path, "a.cs", "")
    write_file(tmp_path, "b.cs", "")
    write_file(tmp_path, "c.js", "")
    files = FileDiscovery(tmp_path)

    files.discover("**/*.cs")
    files.discover("**/*.cs")
    assert files.files_seen == 2
    files.discover(["**/*.js", "**/*.cs"])
    assert files.files_seen == 3
