"""Line-oriented pattern search over source file contents.

Patterns are evaluated one line at a time, so a match never spans lines and
every match has a stable 1-based line number. Plain string patterns are
matched literally; compiled ``re.Pattern`` objects are matched as regexes.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

Pattern = str | re.Pattern[str]


@dataclass(frozen=True, slots=True)
class SearchMatch:
    """One line matching a pattern."""

    line_number: int
    line_content: str
    file_path: str
    pattern: str


@dataclass(frozen=True, slots=True)
class CodeSnippet:
    """Lines surrounding a finding, for verbose reporting."""

    before: tuple[str, ...]
    line: str
    after: tuple[str, ...]
    start_line: int

    def to_dict(self) -> dict[str, object]:
        return {
            "before": list(self.before),
            "line": self.line,
            "after": list(self.after),
            "start_line": self.start_line,
        }


def search(
    content: str,
    pattern: Pattern,
    case_sensitive: bool = True,
    *,
    file_path: str = "",
) -> list[SearchMatch]:
    """Return every line of ``content`` matching ``pattern``."""
    regex = _compile(pattern, case_sensitive)
    label = _pattern_label(pattern)
    matches: list[SearchMatch] = []
    for index, line in enumerate(_split_lines(content)):
        if regex.search(line):
            matches.append(
                SearchMatch(
                    line_number=index + 1,
                    line_content=line.strip(),
                    file_path=file_path,
                    pattern=label,
                )
            )
    return matches


def search_multiple(
    content: str,
    patterns: Sequence[Pattern],
    case_sensitive: bool = True,
    *,
    file_path: str = "",
) -> list[SearchMatch]:
    """Return lines matching any pattern, one match per line, ordered by line.

    When a line matches several patterns the match is attributed to the
    earliest pattern in ``patterns``.
    """
    by_line: dict[int, SearchMatch] = {}
    for pattern in patterns:
        for match in search(content, pattern, case_sensitive, file_path=file_path):
            by_line.setdefault(match.line_number, match)
    return [by_line[line_number] for line_number in sorted(by_line)]


def search_file(path: Path, pattern: Pattern, case_sensitive: bool = True) -> list[SearchMatch]:
    """Read ``path`` and search it. Read errors propagate to the caller."""
    matches = search(read_source(path), pattern, case_sensitive, file_path=str(path))
    logger.debug("Found %d matches for %s in %s", len(matches), _pattern_label(pattern), path)
    return matches


def search_file_multiple(
    path: Path,
    patterns: Sequence[Pattern],
    case_sensitive: bool = True,
) -> list[SearchMatch]:
    """Read ``path`` and search it for any of ``patterns``."""
    matches = search_multiple(read_source(path), patterns, case_sensitive, file_path=str(path))
    logger.debug("Found %d matching lines in %s", len(matches), path)
    return matches


def extract_snippet(content: str, line_number: int, context_lines: int = 3) -> CodeSnippet:
    """Return up to ``context_lines`` lines either side of ``line_number``."""
    lines = _split_lines(content)
    index = line_number - 1
    start = max(0, index - context_lines)
    end = min(len(lines) - 1, index + context_lines)
    line = lines[index] if 0 <= index < len(lines) else ""
    return CodeSnippet(
        before=tuple(lines[start:index]),
        line=line,
        after=tuple(lines[index + 1 : end + 1]),
        start_line=start + 1,
    )


def read_source(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


def _split_lines(content: str) -> list[str]:
    return [line.rstrip("\r") for line in content.split("\n")]


def _compile(pattern: Pattern, case_sensitive: bool) -> re.Pattern[str]:
    flags = 0 if case_sensitive else re.IGNORECASE
    if isinstance(pattern, re.Pattern):
        if case_sensitive or pattern.flags & re.IGNORECASE:
            return pattern
        return re.compile(pattern.pattern, pattern.flags | re.IGNORECASE)
    return re.compile(re.escape(pattern), flags)


def _pattern_label(pattern: Pattern) -> str:
    return pattern.pattern if isinstance(pattern, re.Pattern) else pattern
