from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from jumptrace import logger
from jumptrace.host import ViewColumn
from jumptrace.memory_host import MemoryEditorHost
from jumptrace.session import (
    DISABLE_MAPPING_COMMAND,
    TOGGLE_MAPPING_COMMAND,
    JumpTraceSession,
)
from jumptrace.sync import SyncMode

REFERENCE_TEXT = "/src/a.c:2\n    asm0\n/src/a.c:4\n"
OTHER_REFERENCE_TEXT = "/src/b.c:1\n"


class SessionTestBase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.addCleanup(logger.dispose_logger)
        self.tmp = Path(tmp.name)
        self.reference = self.tmp / "build.log"
        self.reference.write_text(REFERENCE_TEXT, encoding="utf-8")
        self.host = MemoryEditorHost()
        self.host.add_document("/src/a.c", "one\ntwo\nthree\nfour\nfive")
        self.host.add_document("/src/b.c", "only")

    def make_session(self, settings: dict[str, object] | None = None, **kwargs) -> JumpTraceSession:
        if settings is None:
            settings = {"referenceFilePath": str(self.reference)}
        session = JumpTraceSession(
            self.host,
            settings,
            platform="linux",
            log_path=self.tmp / "jumptrace.log",
            **kwargs,
        )
        session.activate()
        return session


class ToggleTests(SessionTestBase):
    async def test_toggle_cycles_single_and_bidirectional(self) -> None:
        session = self.make_session()

        self.assertEqual(session.mode, SyncMode.OFF)
        self.assertEqual(await session.toggle_mapping_mode(), SyncMode.SINGLE)
        self.assertEqual(await session.toggle_mapping_mode(), SyncMode.BIDIRECTIONAL)
        self.assertEqual(await session.toggle_mapping_mode(), SyncMode.SINGLE)
        self.assertEqual(
            self.host.infos,
            [
                "Single mapping has been enabled",
                "Bidirectional mapping has been enabled",
                "Single mapping has been enabled",
            ],
        )

    async def test_first_toggle_indexes_and_opens_reference_beside(self) -> None:
        session = self.make_session()
        ctx = session.context

        await session.toggle_mapping_mode()

        self.assertEqual(ctx.index.entry_count, 2)
        self.assertEqual(ctx.index.source, self.reference)
        master = ctx.state.master.view
        self.assertIsNotNone(master)
        self.assertIs(master.view_column, ViewColumn.BESIDE)
        self.assertEqual(master.document.path, str(self.reference))
        self.assertIs(ctx.state.assistant.view, master)

    async def test_later_toggles_reuse_index_and_visible_master(self) -> None:
        session = self.make_session()
        await session.toggle_mapping_mode()
        open_calls = self.host.open_calls
        show_calls = self.host.show_calls

        await session.toggle_mapping_mode()

        self.assertEqual(self.host.open_calls, open_calls)
        self.assertEqual(self.host.show_calls, show_calls)

    async def test_toggle_reshows_master_after_it_was_closed(self) -> None:
        session = self.make_session()
        await session.toggle_mapping_mode()
        old_master = session.context.state.master.view
        self.host.close_view(old_master)

        await session.toggle_mapping_mode()

        new_master = session.context.state.master.view
        self.assertIsNot(new_master, old_master)
        self.assertIs(new_master.document, old_master.document)
        self.assertIn(new_master, self.host.views)

    async def test_missing_reference_is_reported_and_mode_stays_enabled(self) -> None:
        session = self.make_session({"referenceFilePath": str(self.tmp / "missing.log")})

        mode = await session.toggle_mapping_mode()

        self.assertEqual(mode, SyncMode.SINGLE)
        self.assertTrue(self.host.errors[-1].startswith("Failed to read file"))
        self.assertTrue(session.context.index.is_empty)
        self.assertIsNone(session.context.state.master.view)
        self.assertFalse(session.context.config_error)

    async def test_unset_reference_file_sets_configuration_error(self) -> None:
        session = self.make_session({})

        await session.toggle_mapping_mode()

        self.assertTrue(session.context.config_error)
        self.assertTrue(self.host.errors[-1].startswith("Configuration error"))

    async def test_commands_are_registered_with_the_host(self) -> None:
        session = self.make_session()

        self.assertEqual(await self.host.execute_command(TOGGLE_MAPPING_COMMAND), SyncMode.SINGLE)
        self.assertEqual(await self.host.execute_command(DISABLE_MAPPING_COMMAND), SyncMode.OFF)
        self.assertEqual(session.mode, SyncMode.OFF)


class ConfigurationErrorTests(SessionTestBase):
    async def test_bad_regex_is_sticky_until_reload(self) -> None:
        session = self.make_session(
            {"referenceFilePath": str(self.reference), "pathRegex": "("}
        )
        self.assertTrue(self.host.errors[0].startswith("Configuration error"))

        self.assertEqual(await session.toggle_mapping_mode(), SyncMode.OFF)
        self.assertTrue(session.context.config_error)

        reloaded = await session.reload_configuration({"referenceFilePath": str(self.reference)})

        self.assertTrue(reloaded)
        self.assertFalse(session.context.config_error)
        self.assertEqual(await session.toggle_mapping_mode(), SyncMode.SINGLE)

    async def test_failed_reload_sets_flag_and_keeps_previous_config(self) -> None:
        session = self.make_session()
        previous = session.context.config

        reloaded = await session.reload_configuration({"skipRegex": "["})

        self.assertFalse(reloaded)
        self.assertTrue(session.context.config_error)
        self.assertIs(session.context.config, previous)

    async def test_workspace_placeholder_without_workspace_is_an_error(self) -> None:
        session = self.make_session({"referenceFilePath": "$workspaceRoot/build.log"})

        self.assertTrue(session.context.config_error)

    async def test_workspace_placeholder_expands_against_root(self) -> None:
        session = self.make_session(
            {"referenceFilePath": "$workspaceRoot/build.log"}, workspace_root=self.tmp
        )

        await session.toggle_mapping_mode()

        self.assertEqual(session.context.index.source, self.reference)


class ReloadTests(SessionTestBase):
    async def test_changed_reference_clears_index_and_roles(self) -> None:
        session = self.make_session()
        await session.toggle_mapping_mode()
        other = self.tmp / "other.log"
        other.write_text(OTHER_REFERENCE_TEXT, encoding="utf-8")

        await session.reload_configuration({"referenceFilePath": str(other)})

        self.assertTrue(session.context.index.is_empty)
        self.assertIsNone(session.context.state.master.view)

        await session.toggle_mapping_mode()

        self.assertEqual(session.context.index.source, other)
        self.assertIsNotNone(session.context.index.lookup("/src/b.c", 1))
        self.assertIsNone(session.context.index.lookup("/src/a.c", 2))

    async def test_same_reference_keeps_index(self) -> None:
        session = self.make_session()
        await session.toggle_mapping_mode()

        await session.reload_configuration(
            {"referenceFilePath": str(self.reference), "skipRegex": r"^\s+asm"}
        )

        self.assertEqual(session.context.index.entry_count, 2)
        self.assertIsNotNone(session.context.state.master.view)

    async def test_color_change_replaces_decoration_type(self) -> None:
        session = self.make_session()
        old_type = session.context.highlighter.decoration_type

        await session.reload_configuration(
            {"referenceFilePath": str(self.reference), "highlightColor": "#ff0000"}
        )

        new_type = session.context.highlighter.decoration_type
        self.assertTrue(old_type.disposed)
        self.assertEqual(new_type.background_color, "#ff0000")
        self.assertFalse(new_type.disposed)

    async def test_default_highlight_color(self) -> None:
        session = self.make_session()

        self.assertEqual(
            session.context.highlighter.decoration_type.background_color,
            "rgba(131, 247, 95, 0.3)",
        )


class DisableAndTeardownTests(SessionTestBase):
    async def _highlight_source(self, session: JumpTraceSession):
        await session.toggle_mapping_mode()
        document = await self.host.open_document("/src/a.c")
        view = await self.host.show_view(document, view_column=ViewColumn.ONE)
        await self.host.select(view, 1)
        return view

    async def test_disable_clears_highlights_and_stops_sync(self) -> None:
        session = self.make_session()
        view = await self._highlight_source(session)
        decoration = session.context.highlighter.decoration_type
        self.assertEqual(view.decorated_lines(decoration), [1])

        await session.disable_mapping()

        self.assertEqual(session.mode, SyncMode.OFF)
        self.assertEqual(view.decorated_lines(decoration), [])
        self.assertEqual(self.host.infos[-1], "Mapping has been turned off")

        calls = self.host.decoration_calls
        await self.host.select(view, 3)
        self.assertEqual(self.host.decoration_calls, calls)

    async def test_deactivate_releases_host_registrations(self) -> None:
        session = self.make_session()
        view = await self._highlight_source(session)
        decoration = session.context.highlighter.decoration_type

        session.deactivate()

        self.assertEqual(self.host.commands, {})
        self.assertTrue(decoration.disposed)
        self.assertEqual(view.decorated_lines(decoration), [])
        self.assertTrue(session.context.index.is_empty)
        self.assertEqual(session.mode, SyncMode.OFF)

        calls = self.host.decoration_calls
        await self.host.select(view, 3)
        self.assertEqual(self.host.decoration_calls, calls)


if __name__ == "__main__":
    unittest.main()
