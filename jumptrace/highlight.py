"""Whole-line highlight decorations on editor views."""

from __future__ import annotations

from . import logger
from .host import DecorationType, Document, EditorHost, EditorView, LineRange


def line_ranges(document: Document, start_line: int, line_count: int) -> list[LineRange]:
    """Build ``line_count`` whole-line ranges from ``start_line``.

    Raises ``IndexError`` when the block leaves the document.
    """
    if start_line < 0 or line_count < 0:
        raise IndexError(f"invalid highlight block {start_line}+{line_count}")
    end_line = start_line + line_count
    if end_line > document.line_count:
        raise IndexError(
            f"highlight block {start_line}..{end_line - 1} exceeds {document.line_count} lines"
        )
    return [LineRange(line) for line in range(start_line, end_line)]


class HighlightApplier:
    """Replace the decoration set of one decoration type on a view."""

    def __init__(self, host: EditorHost, decoration_type: DecorationType) -> None:
        self.host = host
        self.decoration_type = decoration_type

    def apply(self, view: EditorView, start_line: int, line_count: int) -> bool:
        """Highlight exactly ``line_count`` lines from ``start_line``.

        Any previous set for this decoration type is replaced. Failures are
        shown to the user and reported as ``False``.
        """
        try:
            ranges = line_ranges(view.document, start_line, line_count)
            self.host.set_decorations(view, self.decoration_type, ranges)
        except Exception as exc:
            self._report("Failed to highlight lines", exc)
            return False
        return True

    def clear(self, view: EditorView) -> bool:
        """Remove this decoration type from ``view``."""
        try:
            self.host.set_decorations(view, self.decoration_type, [])
        except Exception as exc:
            self._report("Failed to clear highlight", exc)
            return False
        return True

    def replace_decoration_type(self, decoration_type: DecorationType) -> None:
        """Swap in a new decoration type and dispose the old one."""
        previous = self.decoration_type
        self.decoration_type = decoration_type
        if previous is not decoration_type:
            previous.dispose()

    def dispose(self) -> None:
        self.decoration_type.dispose()

    def _report(self, message: str, exc: Exception) -> None:
        logger.error(message, exc)
        self.host.show_error_message(f"{message}: {exc}")


__all__ = ["HighlightApplier", "line_ranges"]
