"""Activation glue: commands, configuration reload, and teardown.

A ``JumpTraceSession`` wires one ``SyncContext``/``SyncEngine`` pair to an
editor host. Command handlers never raise into the host; every failure is
logged and shown to the user.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from . import logger
from .config import DEFAULT_HIGHLIGHT_COLOR, JumpTraceConfig
from .errors import ConfigurationError, JumpTraceError, NotFoundError
from .highlight import HighlightApplier
from .host import Disposer, EditorHost, ViewColumn
from .index import LocationIndex, extract_locations
from .sync import SyncContext, SyncEngine, SyncMode, SyncState, ViewState

TOGGLE_MAPPING_COMMAND = "jumptrace.toggleMappingMode"
DISABLE_MAPPING_COMMAND = "jumptrace.disableMapping"


class JumpTraceSession:
    """Own the sync context for one host and expose the user commands."""

    def __init__(
        self,
        host: EditorHost,
        settings: Mapping[str, object],
        *,
        workspace_root: Path | None = None,
        platform: str | None = None,
        log_path: Path | None = None,
    ) -> None:
        self.host = host
        self.workspace_root = workspace_root
        self.platform = platform
        self.log_path = log_path
        self._disposers: list[Disposer] = []

        config, problem = self._load_config(settings)
        color = config.highlight_color if config is not None else DEFAULT_HIGHLIGHT_COLOR
        highlighter = HighlightApplier(host, host.create_decoration_type(color))
        self.context = SyncContext(
            host=host,
            config=config,
            highlighter=highlighter,
            index=LocationIndex(),
            config_error=problem is not None,
        )
        self.engine = SyncEngine(self.context)
        if problem is not None:
            self._report_configuration_error(problem)

    def _load_config(
        self, settings: Mapping[str, object]
    ) -> tuple[JumpTraceConfig | None, ConfigurationError | None]:
        try:
            config = JumpTraceConfig.from_settings(
                settings,
                workspace_root=self.workspace_root,
                platform=self.platform,
            )
        except ConfigurationError as exc:
            return None, exc
        return config, None

    def _report_configuration_error(self, exc: Exception) -> None:
        logger.error("Configuration error", exc)
        self.host.show_error_message(f"Configuration error: {exc}")

    @property
    def mode(self) -> SyncMode:
        return self.context.mode

    def activate(self) -> None:
        """Register commands and the selection listener with the host."""
        logger.initialize_logger(self.log_path)
        self._disposers.extend(
            [
                self.host.register_command(TOGGLE_MAPPING_COMMAND, self.toggle_mapping_mode),
                self.host.register_command(DISABLE_MAPPING_COMMAND, self.disable_mapping),
                self.host.on_selection_changed(self.engine.handle_selection_change),
            ]
        )
        logger.log("jumptrace activated")

    async def toggle_mapping_mode(self) -> SyncMode:
        """Enter Single mode from Off, then alternate Single and Bidirectional.

        The first toggle with an empty index extracts the reference file and
        opens it beside the current editor as the master view.
        """
        ctx = self.context
        if ctx.config_error or ctx.config is None:
            self.host.show_error_message("Configuration error: fix the settings and reload")
            return ctx.mode

        async with ctx.navigation_guard.hold():
            ctx.invalidate()
            if ctx.mapping_enabled and not ctx.bidirectional_enabled:
                ctx.bidirectional_enabled = True
                self.host.show_information_message("Bidirectional mapping has been enabled")
            else:
                ctx.mapping_enabled = True
                ctx.bidirectional_enabled = False
                self.host.show_information_message("Single mapping has been enabled")
            logger.log(f"Mapping mode: {ctx.mode.value}")

            try:
                await self._ensure_master_view()
            except ConfigurationError as exc:
                ctx.config_error = True
                self._report_configuration_error(exc)
            except JumpTraceError as exc:
                logger.error("Cannot open reference file", exc)
                self.host.show_error_message(str(exc))
            except Exception as exc:
                logger.error("Toggling mapping mode failed", exc)
                self.host.show_error_message(f"Execution failed: {exc}")
        return ctx.mode

    async def _ensure_master_view(self) -> None:
        ctx = self.context
        assert ctx.config is not None
        reference = ctx.config.require_reference_file()
        if ctx.index.is_empty:
            await extract_locations(reference, ctx.index, ctx.config.patterns)

        master = ctx.state.master
        if master.view is not None and self.host.find_visible_view(master.view.document) is not None:
            return

        document = self.host.find_open_document(str(reference))
        if document is None:
            try:
                document = await self.host.open_document(str(reference))
            except OSError as exc:
                raise NotFoundError(str(reference), str(exc)) from exc
        view = await self.host.show_view(document, view_column=ViewColumn.BESIDE, preview=False)
        role = ViewState(view=view, path=ctx.normalize(document.path))
        state = ctx.state
        if state.master.view is None or state.assistant.view is state.master.view:
            ctx.state = SyncState(master=role, assistant=role)
        else:
            ctx.state = SyncState(
                master=role,
                assistant=state.assistant,
                active_file_index=state.active_file_index,
            )

    async def disable_mapping(self) -> SyncMode:
        """Return to Off and clear any highlights."""
        ctx = self.context
        async with ctx.navigation_guard.hold():
            ctx.invalidate()
            ctx.mapping_enabled = False
            ctx.bidirectional_enabled = False
            self.engine.clear_highlights()
            self.host.show_information_message("Mapping has been turned off")
            logger.log("Mapping mode: off")
        return ctx.mode

    async def reload_configuration(self, settings: Mapping[str, object]) -> bool:
        """Replace the configuration snapshot.

        A changed reference file invalidates the index, so the next toggle
        re-extracts it. Success clears the sticky configuration error.
        """
        ctx = self.context
        async with ctx.navigation_guard.hold():
            ctx.invalidate()
            config, problem = self._load_config(settings)
            if problem is not None:
                ctx.config_error = True
                self._report_configuration_error(problem)
                return False

            assert config is not None
            self.engine.clear_highlights()
            previous = ctx.config
            if previous is None or previous.highlight_color != config.highlight_color:
                ctx.highlighter.replace_decoration_type(
                    self.host.create_decoration_type(config.highlight_color)
                )
            if previous is None or previous.reference_file != config.reference_file:
                ctx.index.clear()
                ctx.state = SyncState()
                logger.log(f"Reference file changed to {config.reference_file}; index cleared")
            ctx.config = config
            ctx.config_error = False
        return True

    def deactivate(self) -> None:
        """Clear highlights, release host registrations, and drop the index."""
        ctx = self.context
        ctx.invalidate()
        self.engine.clear_highlights()
        ctx.highlighter.dispose()
        ctx.index.clear()
        ctx.state = SyncState()
        ctx.mapping_enabled = False
        ctx.bidirectional_enabled = False
        while self._disposers:
            self._disposers.pop()()
        logger.log("jumptrace deactivated")
        logger.dispose_logger()


__all__ = [
    "DISABLE_MAPPING_COMMAND",
    "JumpTraceSession",
    "TOGGLE_MAPPING_COMMAND",
]
