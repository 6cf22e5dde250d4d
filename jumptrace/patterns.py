"""Compiled line patterns and typed ``path:line`` references.

Regexes are validated once when configuration loads; matching then yields a
``PathReference`` or ``None`` instead of loosely-typed capture groups.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .errors import ConfigurationError
from .paths import is_windows_platform, normalize_path

WINDOWS_PATH_REGEX = r"^([A-Za-z]:[/\\].*?):(\d+)$"
POSIX_PATH_REGEX = r"^([/\\].*?):(\d+)$"
DEFAULT_SKIP_REGEX = r"^\s"


@dataclass(frozen=True)
class PathReference:
    """One ``path:line`` token found in a reference-file line.

    ``path`` is normalized; ``line`` is the 1-based source line number.
    """

    path: str
    line: int


def default_path_regex(platform: str | None = None) -> str:
    """Return the platform default regex used when ``pathRegex`` is unset."""
    if is_windows_platform(platform):
        return WINDOWS_PATH_REGEX
    return POSIX_PATH_REGEX


def _is_unset(value: str | None) -> bool:
    """Blank and single-space values mean "use the default"."""
    return value is None or value.strip() == ""


def _compile(label: str, source: str) -> re.Pattern[str]:
    try:
        return re.compile(source)
    except re.error as exc:
        raise ConfigurationError(f"Invalid {label} {source!r}: {exc}") from exc


@dataclass(frozen=True)
class LinePatterns:
    """Compiled path and skip regexes plus the normalization mode for paths."""

    path_regex: re.Pattern[str]
    skip_regex: re.Pattern[str]
    windows: bool = False

    @classmethod
    def compile(
        cls,
        path_regex: str | None = None,
        skip_regex: str | None = None,
        *,
        platform: str | None = None,
    ) -> LinePatterns:
        """Compile and validate user-supplied regex sources.

        Unset values fall back to platform defaults. The path regex must expose
        at least two capture groups, ``(filePath, lineNumber)``.
        """
        path_source = default_path_regex(platform) if _is_unset(path_regex) else str(path_regex)
        skip_source = DEFAULT_SKIP_REGEX if _is_unset(skip_regex) else str(skip_regex)

        compiled_path = _compile("pathRegex", path_source)
        if compiled_path.groups < 2:
            raise ConfigurationError(
                f"pathRegex {path_source!r} must define two capture groups (path, line)"
            )
        compiled_skip = _compile("skipRegex", skip_source)
        return cls(
            path_regex=compiled_path,
            skip_regex=compiled_skip,
            windows=is_windows_platform(platform),
        )

    def is_skipped(self, line: str) -> bool:
        """Return whether ``line`` is invisible to extraction and scanning."""
        return self.skip_regex.search(line) is not None

    def match(self, line: str) -> PathReference | None:
        """Return the typed reference on ``line``, or ``None``.

        Both capture groups must participate and the line group must be a
        decimal integer.
        """
        found = self.path_regex.search(line)
        if found is None:
            return None
        raw_path, raw_line = found.group(1), found.group(2)
        if not raw_path or raw_line is None:
            return None
        try:
            line_number = int(raw_line, 10)
        except ValueError:
            return None
        path = normalize_path(raw_path, windows=self.windows)
        if path is None:
            return None
        return PathReference(path=path, line=line_number)


def find_reference(
    line_at: Callable[[int], str] | Sequence[str],
    start_line: int,
    patterns: LinePatterns,
) -> tuple[int, PathReference] | None:
    """Scan upward from ``start_line`` for the nearest reference line.

    Skip lines are passed over. Returns ``(offset, reference)`` for the first
    matching line at or above ``start_line`` or ``None`` when the top of the
    file is reached.
    """
    get_line = line_at.__getitem__ if isinstance(line_at, Sequence) else line_at
    for offset in range(start_line, -1, -1):
        text = get_line(offset)
        if patterns.is_skipped(text):
            continue
        reference = patterns.match(text)
        if reference is not None:
            return offset, reference
    return None


__all__ = [
    "DEFAULT_SKIP_REGEX",
    "LinePatterns",
    "POSIX_PATH_REGEX",
    "PathReference",
    "WINDOWS_PATH_REGEX",
    "default_path_regex",
    "find_reference",
]
