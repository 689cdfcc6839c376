"""Tests for command parsing and the built-in command handlers."""

from __future__ import annotations

import asyncio
import unittest

import httpx

from fakes import FakeConfigStore, TransportRecorder
from twitch_chat.commands import (
    COMMAND_DEFS,
    CommandContext,
    CommandDef,
    CommandInterpreter,
    FollowUp,
    _build_registry,
    handle_quit,
    parse_command,
)
from twitch_chat.config import Config
from twitch_chat.exceptions import (
    EmptyCommandError,
    MissingCommandNameError,
    NotACommandError,
    UnknownCommandError,
)
from twitch_chat.models import system_message
from twitch_chat.session import SessionManager
from twitch_chat.state import AppState, InputMode


class ParseCommandTests(unittest.TestCase):
    """Validate tokenization of ``:``-prefixed lines."""

    def test_name_is_case_folded_and_args_split_on_whitespace(self) -> None:
        self.assertEqual(parse_command("  :JOIN   Foo  "), ("join", ["Foo"]))
        self.assertEqual(
            parse_command(":login me tok  ref"), ("login", ["me", "tok", "ref"])
        )
        self.assertEqual(parse_command(":q"), ("q", []))

    def test_blank_line_is_rejected(self) -> None:
        with self.assertRaisesRegex(EmptyCommandError, "empty command"):
            parse_command("   ")

    def test_missing_sigil_is_rejected(self) -> None:
        with self.assertRaisesRegex(NotACommandError, "not a command"):
            parse_command("join foo")

    def test_sigil_without_name_is_rejected(self) -> None:
        with self.assertRaisesRegex(MissingCommandNameError, "missing command name"):
            parse_command(": join")

    def test_registry_rejects_duplicate_aliases(self) -> None:
        clash = (
            CommandDef("quit", ("q",), ":quit", handle_quit),
            CommandDef("query", ("q",), ":query", handle_quit),
        )
        with self.assertRaises(ValueError):
            _build_registry(clash)


class CommandInterpreterTests(unittest.IsolatedAsyncioTestCase):
    """Validate handler side effects on session, state and config."""

    async def asyncSetUp(self) -> None:
        self.client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(404))
        )
        self.transports = TransportRecorder()
        self.store = FakeConfigStore()
        self.reports: list[str] = []
        self._build(Config.model_validate({"twitch": {"channel": "somechannel"}}))

    async def asyncTearDown(self) -> None:
        await self.session.close()
        await self.client.aclose()

    def _build(self, config: Config) -> None:
        self.config = config
        self.session = SessionManager(
            config,
            config_store=self.store,  # type: ignore[arg-type]
            transport_factory=self.transports,
            http_client=self.client,
        )
        self.state = AppState.initial(config.twitch.channel)
        self.context = CommandContext(
            session=self.session,
            state=self.state,
            config=config,
            store=self.store,  # type: ignore[arg-type]
            report=self.reports.append,
        )
        self.interpreter = CommandInterpreter(self.context)

    async def _settle(self) -> None:
        for _ in range(10):
            await asyncio.sleep(0.005)

    async def test_parse_errors_are_reported(self) -> None:
        self.assertIsNone(self.interpreter.execute(":"))
        self.assertEqual(self.reports, ["missing command name"])

    async def test_unknown_command_is_reported(self) -> None:
        self.assertIsNone(self.interpreter.execute(":dance now"))
        self.assertEqual(self.reports, ["Unknown command: dance"])

    async def test_lookup_resolves_aliases_and_rejects_unknown_names(self) -> None:
        self.assertEqual(self.interpreter.lookup("j").name, "join")
        with self.assertRaisesRegex(UnknownCommandError, "Unknown command: dance"):
            self.interpreter.lookup("dance")

    async def test_quit_and_alias_request_exit(self) -> None:
        self.assertEqual(self.interpreter.execute(":quit"), FollowUp.QUIT)
        self.assertEqual(self.interpreter.execute(":Q"), FollowUp.QUIT)

    async def test_login_requires_three_arguments(self) -> None:
        self.interpreter.execute(":login me tok")
        self.assertEqual(self.reports, ["Usage: :login <user> <token> <refresh>"])
        self.assertFalse(self.session.session.authenticated)

    async def test_login_adopts_credentials_and_saves_config(self) -> None:
        self.interpreter.execute(":login Me tok ref")
        await self._settle()

        self.assertEqual(self.reports, ["Logged in as Me"])
        self.assertEqual(self.config.twitch.user, "Me")
        self.assertEqual(self.config.twitch.oauth, "oauth:tok")
        self.assertEqual(self.config.twitch.refresh, "ref")
        self.assertEqual(self.transports.current.token, "oauth:tok")
        self.assertEqual(
            self.store.calls, [("update_login", ("Me", "oauth:tok", "ref"))]
        )

    async def test_join_before_connect_requests_connect(self) -> None:
        self._build(Config())
        self.assertEqual(self.state.mode, InputMode.AWAITING_CHANNEL)

        follow_up = self.interpreter.run("join", ["#Foo"])
        await self._settle()

        self.assertEqual(follow_up, FollowUp.CONNECT)
        self.assertEqual(self.session.session.channel, "foo")
        self.assertEqual(self.config.twitch.channel, "foo")
        self.assertEqual(self.transports.built, [])
        self.assertEqual(self.store.calls, [("update_channel", ("foo",))])

    async def test_join_while_connected_switches_and_clears_scrollback(self) -> None:
        self.session.connect()
        transport = self.transports.current
        self.state.append(system_message("old line"))
        self.state.filter = "old"

        follow_up = self.interpreter.execute(":join #Bar")

        self.assertIsNone(follow_up)
        self.assertEqual(transport.departed, ["somechannel"])
        self.assertEqual(transport.joined, ["somechannel", "bar"])
        self.assertEqual(self.state.messages, [])
        self.assertEqual(self.state.filter, "")
        self.assertEqual(self.config.twitch.channel, "bar")
        self.assertEqual(self.config.twitch.channel_id, "")
        status = self.session.status.get_nowait()
        self.assertEqual(status.text, "Switched to channel: bar")

    async def test_join_without_channel_reports_usage(self) -> None:
        self.interpreter.execute(":join")
        self.assertEqual(self.reports, ["Usage: :join <channel>"])

    async def test_find_sets_and_clears_filter(self) -> None:
        self.interpreter.execute(":find Hello  World")
        self.assertEqual(self.state.filter, "Hello World")
        self.interpreter.execute(":f")
        self.assertEqual(self.state.filter, "")

    async def test_config_toggles_bits_api_and_emotes(self) -> None:
        self.interpreter.execute(":config api enable")
        self.interpreter.execute(":cfg emotes enable")
        await self._settle()

        self.assertTrue(self.config.api.bits.enable)
        self.assertTrue(self.session.formatter.bits_api.enable)
        self.assertTrue(self.session.emotes_enabled)
        self.assertEqual(self.reports, ["Bits API enabled", "Emotes enabled"])
        self.assertEqual(self.store.names(), ["update_config", "update_config"])
        saved = self.store.calls[-1][1][0]
        self.assertIsNot(saved, self.config)
        self.assertTrue(saved.emotes.enable)

        self.interpreter.execute(":config emotes disable")
        self.assertFalse(self.session.emotes_enabled)
        self.assertEqual(self.reports[-1], "Emotes disabled")

    async def test_config_rejects_bad_arguments(self) -> None:
        for line in (":config", ":config api maybe", ":config theme enable"):
            self.interpreter.execute(line)
        self.assertEqual(
            self.reports,
            [
                "Usage: :config [reload|api enable/disable|emotes enable/disable]",
            ]
            * 3,
        )

    async def test_config_reload_replaces_runtime_config(self) -> None:
        reloaded = Config.model_validate(
            {"twitch": {"channel": "somechannel"}, "api": {"bits": {"enable": True}}}
        )
        self.store.config = reloaded

        self.interpreter.execute(":config reload")

        self.assertIs(self.context.config, reloaded)
        self.assertTrue(self.session.formatter.bits_api.enable)
        self.assertEqual(self.reports, ["Config reloaded"])

    async def test_help_lists_every_command(self) -> None:
        self.interpreter.execute(":help")
        self.assertEqual(len(self.reports), len(COMMAND_DEFS))
        self.assertEqual(self.reports[0], ":login <user> <token> <refresh>  (:l)")
        self.assertIn(":help  (:h, :?)", self.reports)


if __name__ == "__main__":
    unittest.main()
