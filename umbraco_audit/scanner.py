"""File discovery for detectors."""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDES = ("**/node_modules/**", "**/bin/**", "**/obj/**")


def discover(
    patterns: str | Sequence[str],
    root: Path,
    exclude: Sequence[str] = DEFAULT_EXCLUDES,
) -> list[Path]:
    """Return absolute, sorted file paths under ``root`` matching any glob pattern."""
    root = root.resolve()
    pattern_list = [patterns] if isinstance(patterns, str) else list(patterns)
    found: set[Path] = set()
    for pattern in pattern_list:
        for path in root.glob(pattern):
            if not path.is_file():
                continue
            relative = path.relative_to(root).as_posix()
            if any(_matches(relative, excluded) for excluded in exclude):
                continue
            found.add(path)

    files = sorted(found)
    logger.debug("Discovered %d files for %s under %s", len(files), pattern_list, root)
    return files


def find_project_files(root: Path, exclude: Sequence[str] = DEFAULT_EXCLUDES) -> list[Path]:
    """Return all ``.csproj`` files below ``root``."""
    return discover("**/*.csproj", root, exclude)


class FileDiscovery:
    """Discovery bound to one project root; remembers every file it handed out."""

    def __init__(self, root: Path, exclude: Sequence[str] = DEFAULT_EXCLUDES) -> None:
        self.root = root.resolve()
        self.exclude = tuple(exclude)
        self._seen: set[Path] = set()

    def discover(self, patterns: str | Sequence[str]) -> list[Path]:
        files = discover(patterns, self.root, self.exclude)
        self._seen.update(files)
        return files

    @property
    def files_seen(self) -> int:
        return len(self._seen)


def _matches(relative: str, pattern: str) -> bool:
    # "**/bin/**" should also exclude a top-level "bin/" directory.
    return fnmatch.fnmatch(relative, pattern) or fnmatch.fnmatch(f"/{relative}", pattern)
