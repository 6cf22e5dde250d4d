"""Bidirectional focus synchronization between a reference file and sources.

The reference file is shown in the *master* view; the source file currently
being tracked is the *assistant*. Every selection change runs
``SyncEngine.handle_selection_change`` which works out which side moved, finds
the counterpart location, and moves both highlights there.

Role/line bookkeeping lives in an immutable ``SyncState`` snapshot that is
replaced wholesale, never patched in place across suspension points.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from types import MappingProxyType

from . import logger
from .config import JumpTraceConfig
from .highlight import HighlightApplier
from .host import EditorHost, EditorView, RevealMode
from .index import FileLocations, LocationEntry, LocationIndex
from .navigator import NavigationGuard, Navigator
from .paths import normalize_path
from .patterns import find_reference


class SyncMode(enum.Enum):
    OFF = "off"
    SINGLE = "single"
    BIDIRECTIONAL = "bidirectional"


def _empty_locations() -> FileLocations:
    return MappingProxyType({})


@dataclass(frozen=True)
class ViewState:
    """One role's view plus the line last processed for it."""

    view: EditorView | None = None
    path: str | None = None
    previous_line: int | None = None
    highlighted: bool = False


@dataclass(frozen=True)
class SyncState:
    """Master/assistant snapshot and the assistant's index slice."""

    master: ViewState = field(default_factory=ViewState)
    assistant: ViewState = field(default_factory=ViewState)
    active_file_index: FileLocations = field(default_factory=_empty_locations)


class BusyLatch:
    """Single-slot busy token. A failed ``try_acquire`` means drop, not wait."""

    def __init__(self) -> None:
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def try_acquire(self) -> bool:
        if self._held:
            return False
        self._held = True
        return True

    def release(self) -> None:
        self._held = False


@dataclass
class SyncContext:
    """Everything one sync session owns; passed explicitly, never global."""

    host: EditorHost
    config: JumpTraceConfig | None
    highlighter: HighlightApplier
    index: LocationIndex = field(default_factory=LocationIndex)
    state: SyncState = field(default_factory=SyncState)
    mapping_enabled: bool = False
    bidirectional_enabled: bool = False
    config_error: bool = False
    latch: BusyLatch = field(default_factory=BusyLatch)
    navigation_guard: NavigationGuard = field(default_factory=NavigationGuard)
    dropped_events: int = 0
    generation: int = 0
    navigator: Navigator | None = None

    def __post_init__(self) -> None:
        if self.navigator is None:
            self.navigator = Navigator(self.host, self.navigation_guard)

    @property
    def mode(self) -> SyncMode:
        if not self.mapping_enabled:
            return SyncMode.OFF
        if self.bidirectional_enabled:
            return SyncMode.BIDIRECTIONAL
        return SyncMode.SINGLE

    def invalidate(self) -> None:
        """Mark in-flight handler results stale; commands call this before changing state."""
        self.generation += 1

    def normalize(self, path: str | None) -> str | None:
        """Normalize ``path`` with the platform mode of the current patterns."""
        windows = self.config.patterns.windows if self.config is not None else None
        return normalize_path(path, windows=windows)


@dataclass(frozen=True)
class _Resolution:
    assistant: ViewState
    active_file_index: FileLocations
    entry: LocationEntry
    target_line: int


class SyncEngine:
    """Selection-change state machine over a ``SyncContext``."""

    def __init__(self, context: SyncContext) -> None:
        self.context = context

    def accepts(self, view: EditorView) -> bool:
        """Return whether an event from ``view`` may run the handler body."""
        ctx = self.context
        if not ctx.mapping_enabled or ctx.config_error or ctx.config is None:
            return False
        return bool(view.document.is_file)

    async def handle_selection_change(self, view: EditorView, active_line: int | None = None) -> bool:
        """Process one selection event; return whether highlights were committed.

        Events arriving while another invocation holds the latch, or while a
        programmatic navigation is settling, are dropped.
        """
        ctx = self.context
        if not self.accepts(view):
            return False
        if ctx.navigation_guard.active or not ctx.latch.try_acquire():
            ctx.dropped_events += 1
            return False
        try:
            line = view.active_line if active_line is None else active_line
            return await self._process(view, line)
        except Exception as exc:
            logger.error("Selection sync failed", exc)
            ctx.host.show_error_message(f"Execution failed: {exc}")
            return False
        finally:
            ctx.latch.release()

    async def _process(self, event_view: EditorView, event_line: int) -> bool:
        ctx = self.context
        generation = ctx.generation
        state = ctx.state
        master = state.master
        assistant = state.assistant
        active_index = state.active_file_index
        if master.view is None:
            return False

        if event_view is not master.view and event_view is not assistant.view:
            path = ctx.normalize(event_view.document.path)
            files = ctx.index.files_for(path)
            if files is None:
                return False
            assistant = ViewState(view=event_view, path=path)
            active_index = files
        if assistant.view is None:
            return False

        def line_of(view: EditorView) -> int:
            return event_line if view is event_view else view.active_line

        master_line = line_of(master.view)
        assistant_line = line_of(assistant.view)
        if master_line == master.previous_line and assistant_line == assistant.previous_line:
            return False

        master = self._cleared(master)
        assistant = self._cleared(assistant)
        ctx.state = SyncState(master=master, assistant=assistant, active_file_index=active_index)

        # Right after activation both roles share the master view; only the
        # master direction applies until a source file is tracked.
        assistant_moved = (
            assistant.view is not master.view and assistant_line != assistant.previous_line
        )
        if assistant_moved:
            entry = active_index.get(assistant_line + 1)
            if entry is None:
                return False
            ctx.host.reveal_range(
                master.view, entry.log_line_offset, RevealMode.IN_CENTER_IF_OUTSIDE_VIEWPORT
            )
            resolution = _Resolution(assistant, active_index, entry, assistant_line)
        elif master_line != master.previous_line and ctx.bidirectional_enabled:
            resolution = await self._resolve_from_master(master, assistant, active_index, master_line)
            if resolution is None:
                return False
        else:
            return False

        # A command ran while navigation was suspended; its state wins.
        if ctx.generation != generation or not ctx.mapping_enabled:
            return False
        self._commit(master, master_line, resolution, line_of)
        return True

    async def _resolve_from_master(
        self,
        master: ViewState,
        assistant: ViewState,
        active_index: FileLocations,
        master_line: int,
    ) -> _Resolution | None:
        """Find the source location for the reference block around ``master_line``."""
        ctx = self.context
        assert master.view is not None and assistant.view is not None and ctx.config is not None
        document = master.view.document
        start = min(master_line, document.line_count - 1)
        found = find_reference(document.line_text, start, ctx.config.patterns)
        if found is None:
            return None
        _, reference = found
        target_line = reference.line - 1
        if target_line < 0:
            return None

        if reference.path == assistant.path:
            entry = active_index.get(reference.line)
            if entry is None:
                return None
            ctx.host.reveal_range(
                assistant.view, target_line, RevealMode.IN_CENTER_IF_OUTSIDE_VIEWPORT
            )
            return _Resolution(assistant, active_index, entry, target_line)

        assert ctx.navigator is not None
        view = await ctx.navigator.open(reference.path, target_line)
        if view is None:
            return None
        path = ctx.normalize(view.document.path)
        files = ctx.index.files_for(path)
        if files is None:
            return None
        entry = files.get(reference.line)
        if entry is None:
            return None
        return _Resolution(ViewState(view=view, path=path), files, entry, target_line)

    def _commit(
        self,
        master: ViewState,
        master_line: int,
        resolution: _Resolution,
        line_of: Callable[[EditorView], int],
    ) -> None:
        ctx = self.context
        assistant = resolution.assistant
        assert master.view is not None and assistant.view is not None
        entry = resolution.entry

        assistant_highlighted = ctx.highlighter.apply(assistant.view, resolution.target_line, 1)
        master_highlighted = ctx.highlighter.apply(
            master.view, entry.log_line_offset, entry.highlight_span
        )
        ctx.state = SyncState(
            master=replace(master, previous_line=master_line, highlighted=master_highlighted),
            assistant=replace(
                assistant,
                previous_line=line_of(assistant.view),
                highlighted=assistant_highlighted,
            ),
            active_file_index=resolution.active_file_index,
        )

    def _cleared(self, role: ViewState) -> ViewState:
        if not role.highlighted or role.view is None:
            return role
        self.context.highlighter.clear(role.view)
        return replace(role, highlighted=False)

    def clear_highlights(self) -> None:
        """Clear both roles' highlights and record that in a fresh snapshot."""
        state = self.context.state
        master = self._cleared(state.master)
        assistant = self._cleared(state.assistant)
        self.context.state = replace(state, master=master, assistant=assistant)


__all__ = [
    "BusyLatch",
    "SyncContext",
    "SyncEngine",
    "SyncMode",
    "SyncState",
    "ViewState",
]
