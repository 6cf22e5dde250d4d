"""Location index built from a reference file.

The reference file is scanned once, bottom to top, producing
``normalized path -> source line -> LocationEntry``. Each entry remembers the
reference-file line holding the token and how many lines below it belong to it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from . import logger
from .errors import ReferenceFileNotFound
from .patterns import LinePatterns
from .syntax import read_text, split_lines

FileLocations = Mapping[int, "LocationEntry"]


@dataclass(frozen=True)
class LocationEntry:
    """Reference-file block for one ``(path, line)`` token.

    ``log_line_offset`` is the zero-based reference line holding the token;
    ``highlight_span`` counts the lines from there down to the next boundary.
    """

    log_line_offset: int
    highlight_span: int

    def __post_init__(self) -> None:
        if self.log_line_offset < 0:
            raise ValueError(f"log_line_offset must be >= 0, got {self.log_line_offset}")
        if self.highlight_span < 1:
            raise ValueError(f"highlight_span must be >= 1, got {self.highlight_span}")

    @property
    def last_line(self) -> int:
        """Zero-based index of the last reference line in the block."""
        return self.log_line_offset + self.highlight_span - 1


_EMPTY: FileLocations = MappingProxyType({})


class LocationIndex:
    """Per-file, per-line lookup table over one reference file.

    Instances are owned by a single sync context and only touched from the
    event loop thread.
    """

    def __init__(self) -> None:
        self._files: dict[str, dict[int, LocationEntry]] = {}
        self.source: Path | None = None

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, path: object) -> bool:
        return path in self._files

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    @property
    def is_empty(self) -> bool:
        return not self._files

    @property
    def entry_count(self) -> int:
        """Total number of ``(path, line)`` entries across all files."""
        return sum(len(lines) for lines in self._files.values())

    def files_for(self, path: str | None) -> FileLocations | None:
        """Return a read-only line map for ``path`` or ``None`` when untracked."""
        if not path:
            return None
        lines = self._files.get(path)
        if lines is None:
            return None
        return MappingProxyType(lines)

    def lookup(self, path: str, line: int) -> LocationEntry | None:
        """Return the entry for 1-based ``line`` in ``path``, if any."""
        return self._files.get(path, _EMPTY).get(line)

    def items(self) -> Iterator[tuple[str, int, LocationEntry]]:
        """Yield ``(path, line, entry)`` ordered by path then source line."""
        for path in sorted(self._files):
            lines = self._files[path]
            for line in sorted(lines):
                yield path, line, lines[line]

    def clear(self) -> None:
        """Drop every entry and forget the source file."""
        self._files.clear()
        self.source = None

    def _store(self, path: str, line: int, entry: LocationEntry) -> None:
        self._files.setdefault(path, {})[line] = entry

    def build_from_text(self, text: str, patterns: LinePatterns) -> int:
        """Populate the index from reference-file ``text``.

        Lines are walked from last to first. Skip lines are transparent: they
        neither open nor close a span. A path line records an entry whose span
        reaches down to the previous boundary and becomes the new boundary.
        Any other line is a boundary by itself. Since earlier lines are visited
        later, the topmost occurrence of a repeated token is the one kept.

        Returns the number of token lines recorded.
        """
        lines = split_lines(text)
        last_boundary = len(lines)
        recorded = 0
        for offset in range(len(lines) - 1, -1, -1):
            line = lines[offset]
            if patterns.is_skipped(line):
                continue
            reference = patterns.match(line)
            if reference is not None:
                self._store(
                    reference.path,
                    reference.line,
                    LocationEntry(log_line_offset=offset, highlight_span=last_boundary - offset),
                )
                recorded += 1
            last_boundary = offset
        return recorded


async def extract_locations(
    reference_file: Path,
    index: LocationIndex,
    patterns: LinePatterns,
) -> LocationIndex:
    """Read ``reference_file`` and merge its tokens into ``index``.

    The read runs in a worker thread so the event loop keeps dispatching
    selection events meanwhile. A missing or unreadable file raises
    ``ReferenceFileNotFound`` and leaves ``index`` untouched.
    """
    if not reference_file.is_file():
        raise ReferenceFileNotFound(str(reference_file))
    try:
        text = await asyncio.to_thread(read_text, reference_file)
    except OSError as exc:
        raise ReferenceFileNotFound(str(reference_file), str(exc)) from exc

    recorded = index.build_from_text(text, patterns)
    index.source = reference_file
    logger.log(
        f"Indexed {reference_file}: {recorded} token lines across {len(index)} files"
    )
    return index


__all__ = ["FileLocations", "LocationEntry", "LocationIndex", "extract_locations"]
