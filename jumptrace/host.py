"""Editor-host contracts consumed by the sync engine.

Only the surface the engine needs is modelled: documents, views, whole-line
decorations, reveal, selection events, commands, and user-facing messages.
"""

from __future__ import annotations

import enum
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


class ViewColumn(enum.Enum):
    """Where ``show_view`` places a view."""

    ACTIVE = "active"
    ONE = "one"
    BESIDE = "beside"


class RevealMode(enum.Enum):
    """Scrolling policy for ``reveal_range``."""

    DEFAULT = "default"
    IN_CENTER = "in-center"
    IN_CENTER_IF_OUTSIDE_VIEWPORT = "in-center-if-outside-viewport"


@dataclass(frozen=True)
class LineRange:
    """Whole-line decoration range for zero-based ``line``."""

    line: int


@runtime_checkable
class Document(Protocol):
    """Read-only text document as exposed by the host."""

    @property
    def path(self) -> str: ...

    @property
    def is_file(self) -> bool: ...

    @property
    def line_count(self) -> int: ...

    def line_text(self, line: int) -> str: ...


@runtime_checkable
class EditorView(Protocol):
    """Visible editor showing one document."""

    @property
    def document(self) -> Document: ...

    @property
    def active_line(self) -> int: ...

    @property
    def view_column(self) -> ViewColumn: ...


class DecorationType(Protocol):
    def dispose(self) -> None: ...


SelectionCallback = Callable[[EditorView, int], Awaitable[object] | object]
CommandCallback = Callable[[], Awaitable[object] | object]
Disposer = Callable[[], None]


class EditorHost(Protocol):
    """Document/view operations provided by the hosting editor.

    ``open_document`` raises ``NotFoundError`` for missing files and
    ``show_view`` raises ``NavigationFailure`` when a view cannot be shown.
    """

    async def open_document(self, path: str) -> Document: ...

    def find_open_document(self, path: str) -> Document | None: ...

    def find_visible_view(self, document: Document) -> EditorView | None: ...

    async def show_view(
        self,
        document: Document,
        *,
        line: int | None = None,
        view_column: ViewColumn | None = None,
        preview: bool = False,
    ) -> EditorView: ...

    def set_selection(self, view: EditorView, line: int) -> None: ...

    def reveal_range(self, view: EditorView, line: int, mode: RevealMode) -> None: ...

    def set_decorations(
        self,
        view: EditorView,
        decoration_type: DecorationType,
        ranges: Sequence[LineRange],
    ) -> None: ...

    def create_decoration_type(self, background_color: str) -> DecorationType: ...

    def on_selection_changed(self, callback: SelectionCallback) -> Disposer: ...

    def register_command(self, name: str, callback: CommandCallback) -> Disposer: ...

    def show_error_message(self, message: str) -> None: ...

    def show_information_message(self, message: str) -> None: ...


__all__ = [
    "CommandCallback",
    "DecorationType",
    "Disposer",
    "Document",
    "EditorHost",
    "EditorView",
    "LineRange",
    "RevealMode",
    "SelectionCallback",
    "ViewColumn",
]
