"""Open a file at a line and guard against self-inflicted selection events.

Selection and reveal calls made here fire selection-change events of their
own. ``NavigationGuard`` stays raised until one loop turn after the navigation
completes so the sync engine can ignore that feedback.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator

from . import logger
from .errors import JumpTraceError
from .host import EditorHost, EditorView, RevealMode, ViewColumn


class NavigationGuard:
    """Counter of programmatic navigations currently in flight."""

    def __init__(self) -> None:
        self._depth = 0

    @property
    def active(self) -> bool:
        return self._depth > 0

    @contextlib.asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        """Raise the guard for the body plus one full event-loop turn."""
        self._depth += 1
        try:
            yield
        finally:
            try:
                await asyncio.sleep(0)
            finally:
                self._depth -= 1


class Navigator:
    """Reveal ``path:line`` in an editor view, reusing what is already open."""

    def __init__(self, host: EditorHost, guard: NavigationGuard) -> None:
        self.host = host
        self.guard = guard

    async def open(self, path: str, line: int) -> EditorView | None:
        """Show ``path`` with the caret on zero-based ``line``.

        An already open document and an already visible view are reused; the
        latter gets its selection moved in place. Otherwise a new, non-preview
        view is created in the first column. Failures are reported to the
        user and yield ``None``.
        """
        async with self.guard.hold():
            try:
                return await self._open(path, line)
            except (JumpTraceError, OSError) as exc:
                logger.error(f"Cannot open file or jump: {path}:{line + 1}", exc)
                self.host.show_error_message(f"Cannot open file or jump: {exc}")
                return None

    async def _open(self, path: str, line: int) -> EditorView:
        document = self.host.find_open_document(path)
        if document is None:
            document = await self.host.open_document(path)

        view = self.host.find_visible_view(document)
        if view is not None:
            self.host.set_selection(view, line)
            self.host.reveal_range(view, line, RevealMode.IN_CENTER_IF_OUTSIDE_VIEWPORT)
            return await self.host.show_view(document, view_column=view.view_column, preview=False)

        return await self.host.show_view(
            document,
            line=line,
            view_column=ViewColumn.ONE,
            preview=False,
        )


__all__ = ["NavigationGuard", "Navigator"]
