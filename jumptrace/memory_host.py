"""In-process editor host.

Keeps documents, views, decorations and selection listeners in memory.
Selection listeners run as event-loop tasks, so programmatic selection changes
re-enter the engine the way they do in a real editor.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from .errors import NavigationFailure, NotFoundError
from .host import (
    CommandCallback,
    Disposer,
    LineRange,
    RevealMode,
    SelectionCallback,
    ViewColumn,
)
from .paths import normalize_path
from .syntax import read_text, split_lines


@dataclass(eq=False)
class MemoryDocument:
    """Text document held as a list of lines."""

    path: str
    lines: list[str]
    is_file: bool = True

    @classmethod
    def from_text(cls, path: str, text: str, *, is_file: bool = True) -> MemoryDocument:
        return cls(path=path, lines=split_lines(text), is_file=is_file)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def line_text(self, line: int) -> str:
        if line < 0 or line >= len(self.lines):
            raise IndexError(f"line {line} out of range for {self.path} ({len(self.lines)} lines)")
        return self.lines[line]


@dataclass(eq=False)
class MemoryDecorationType:
    background_color: str
    disposed: bool = False

    def dispose(self) -> None:
        self.disposed = True


@dataclass(eq=False)
class MemoryView:
    """Editor view with a single caret line and per-type decoration sets."""

    document: MemoryDocument
    view_column: ViewColumn = ViewColumn.ONE
    active_line: int = 0
    top_line: int = 0
    decorations: dict[MemoryDecorationType, tuple[LineRange, ...]] = field(default_factory=dict)
    reveals: list[tuple[int, RevealMode]] = field(default_factory=list)

    def decorated_lines(self, decoration_type: MemoryDecorationType) -> list[int]:
        """Return decorated zero-based lines for ``decoration_type``."""
        return [item.line for item in self.decorations.get(decoration_type, ())]


class MemoryEditorHost:
    """``EditorHost`` implementation backed by plain Python objects."""

    def __init__(self) -> None:
        self._registered: dict[str, MemoryDocument] = {}
        self.documents: dict[str, MemoryDocument] = {}
        self.views: list[MemoryView] = []
        self.active_view: MemoryView | None = None
        self.commands: dict[str, CommandCallback] = {}
        self.errors: list[str] = []
        self.infos: list[str] = []
        self.failing_paths: set[str] = set()
        self.open_calls = 0
        self.show_calls = 0
        self.decoration_calls = 0
        self._listeners: list[SelectionCallback] = []
        self._pending: set[asyncio.Future] = set()

    @staticmethod
    def _key(path: str) -> str:
        return normalize_path(path) or path

    def add_document(self, path: str, text: str, *, is_file: bool = True) -> MemoryDocument:
        """Register content for ``path`` so ``open_document`` skips the disk."""
        document = MemoryDocument.from_text(path, text, is_file=is_file)
        self._registered[self._key(path)] = document
        return document

    async def open_document(self, path: str) -> MemoryDocument:
        self.open_calls += 1
        key = self._key(path)
        existing = self.documents.get(key)
        if existing is not None:
            return existing
        document = self._registered.get(key)
        if document is None:
            target = Path(path)
            if not target.is_file():
                raise NotFoundError(path)
            try:
                text = await asyncio.to_thread(read_text, target)
            except OSError as exc:
                raise NotFoundError(path, str(exc)) from exc
            document = MemoryDocument.from_text(path, text)
        else:
            await asyncio.sleep(0)
        self.documents[key] = document
        return document

    def find_open_document(self, path: str) -> MemoryDocument | None:
        return self.documents.get(self._key(path))

    def find_visible_view(self, document: MemoryDocument) -> MemoryView | None:
        for view in self.views:
            if view.document is document:
                return view
        return None

    def _resolve_column(self, view_column: ViewColumn | None) -> ViewColumn:
        if view_column is None or view_column is ViewColumn.ACTIVE:
            return self.active_view.view_column if self.active_view is not None else ViewColumn.ONE
        return view_column

    async def show_view(
        self,
        document: MemoryDocument,
        *,
        line: int | None = None,
        view_column: ViewColumn | None = None,
        preview: bool = False,
    ) -> MemoryView:
        del preview
        self.show_calls += 1
        await asyncio.sleep(0)
        if self._key(document.path) in self.failing_paths:
            raise NavigationFailure(document.path, "view could not be shown")

        column = self._resolve_column(view_column)
        view = next(
            (item for item in self.views if item.document is document and item.view_column is column),
            None,
        )
        if view is None:
            view = MemoryView(document=document, view_column=column)
            self.views.append(view)
        self.active_view = view
        if line is not None:
            self.set_selection(view, line)
        return view

    def close_view(self, view: MemoryView) -> None:
        """Hide ``view``; its document stays open."""
        if view in self.views:
            self.views.remove(view)
        if self.active_view is view:
            self.active_view = self.views[-1] if self.views else None

    def set_selection(self, view: MemoryView, line: int) -> None:
        """Move the caret (clamped to the document) and notify listeners."""
        last_line = max(0, view.document.line_count - 1)
        view.active_line = max(0, min(line, last_line))
        self._emit(view, view.active_line)

    def reveal_range(self, view: MemoryView, line: int, mode: RevealMode) -> None:
        view.reveals.append((line, mode))
        view.top_line = line

    def set_decorations(
        self,
        view: MemoryView,
        decoration_type: MemoryDecorationType,
        ranges: Sequence[LineRange],
    ) -> None:
        self.decoration_calls += 1
        if decoration_type.disposed:
            raise ValueError("decoration type has been disposed")
        view.decorations[decoration_type] = tuple(ranges)

    def create_decoration_type(self, background_color: str) -> MemoryDecorationType:
        return MemoryDecorationType(background_color=background_color)

    def on_selection_changed(self, callback: SelectionCallback) -> Disposer:
        self._listeners.append(callback)

        def dispose() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return dispose

    def register_command(self, name: str, callback: CommandCallback) -> Disposer:
        self.commands[name] = callback

        def dispose() -> None:
            if self.commands.get(name) is callback:
                del self.commands[name]

        return dispose

    async def execute_command(self, name: str) -> object:
        """Invoke a registered command, awaiting it when it is a coroutine."""
        result = self.commands[name]()
        if inspect.isawaitable(result):
            return await result
        return result

    def show_error_message(self, message: str) -> None:
        self.errors.append(message)

    def show_information_message(self, message: str) -> None:
        self.infos.append(message)

    def _emit(self, view: MemoryView, line: int) -> None:
        for listener in list(self._listeners):
            result = listener(view, line)
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)

    async def select(self, view: MemoryView, line: int) -> None:
        """Simulate a user caret move and wait for listeners to settle."""
        self.active_view = view
        self.set_selection(view, line)
        await self.drain()

    async def drain(self) -> None:
        """Wait until every scheduled listener task (and its follow-ups) is done."""
        while self._pending:
            await asyncio.gather(*list(self._pending))


__all__ = ["MemoryDecorationType", "MemoryDocument", "MemoryEditorHost", "MemoryView"]
