"""Parsing and dispatch of ``:``-prefixed input commands."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
import logging
from types import MappingProxyType

from .config import Config, ConfigStore
from .exceptions import (
    CommandError,
    EmptyCommandError,
    MissingCommandNameError,
    NotACommandError,
    NotConnectedError,
    TwitchChatError,
    UnknownCommandError,
    UsageError,
)
from .session import SessionManager
from .state import COMMAND_SIGIL, AppState

LOGGER = logging.getLogger(__name__)


class FollowUp(str, Enum):
    """Actions a handler asks the app to perform after it returns."""

    QUIT = "QUIT"
    CONNECT = "CONNECT"


def parse_command(line: str) -> tuple[str, list[str]]:
    """Split a command line into a case-folded name and positional args."""
    trimmed = line.strip()
    if not trimmed:
        raise EmptyCommandError("empty command")
    if not trimmed.startswith(COMMAND_SIGIL):
        raise NotACommandError("not a command")

    fields = trimmed.split()
    name = fields[0][len(COMMAND_SIGIL) :]
    if not name:
        raise MissingCommandNameError("missing command name")
    return name.lower(), fields[1:]


@dataclass
class CommandContext:
    """Everything a handler may read or change."""

    session: SessionManager
    state: AppState
    config: Config
    store: ConfigStore
    report: Callable[[str], None]

    def save(self, action: Callable[..., None], *args: object) -> None:
        self.session.persist(action, *args, failure="Failed to save config")


Handler = Callable[[CommandContext, list[str]], FollowUp | None]


@dataclass(frozen=True)
class CommandDef:
    name: str
    aliases: tuple[str, ...]
    usage: str
    handler: Handler


def handle_login(ctx: CommandContext, args: list[str]) -> FollowUp | None:
    if len(args) < 3:
        raise UsageError("Usage: :login <user> <token> <refresh>")
    user, token, refresh = args[0], args[1], args[2]
    try:
        ctx.session.login(user, token, refresh)
    except TwitchChatError as exc:
        raise CommandError(f"login failed: {exc}") from exc

    twitch = ctx.config.twitch
    twitch.user = user
    twitch.oauth = ctx.session.session.access_token
    twitch.refresh = refresh
    ctx.save(ctx.store.update_login, user, twitch.oauth, refresh)
    ctx.report(f"Logged in as {user}")
    return None


def handle_join(ctx: CommandContext, args: list[str]) -> FollowUp | None:
    channel = args[0].lstrip("#").lower() if args else ""
    if not channel:
        raise UsageError("Usage: :join <channel>")

    follow_up: FollowUp | None = None
    if ctx.session.has_transport:
        try:
            ctx.session.switch_channel(channel)
        except NotConnectedError as exc:
            raise CommandError(f"join failed: {exc}") from exc
    else:
        ctx.session.set_channel(channel)
        follow_up = FollowUp.CONNECT

    ctx.config.twitch.channel = channel
    ctx.config.twitch.channel_id = ""
    ctx.state.clear()
    ctx.save(ctx.store.update_channel, channel)
    return follow_up


def handle_find(ctx: CommandContext, args: list[str]) -> FollowUp | None:
    ctx.state.filter = " ".join(args).strip()
    return None


def _parse_toggle(value: str, usage: str) -> bool:
    if value == "enable":
        return True
    if value == "disable":
        return False
    raise UsageError(usage)


def handle_config(ctx: CommandContext, args: list[str]) -> FollowUp | None:
    usage = "Usage: " + CONFIG_USAGE
    if not args:
        raise UsageError(usage)

    section = args[0].lower()
    if section == "reload":
        if len(args) != 1:
            raise UsageError(usage)
        reloaded = ctx.store.load()
        ctx.config = reloaded
        ctx.session.update_config(reloaded)
        ctx.report("Config reloaded")
        return None

    if section not in {"api", "emotes"} or len(args) != 2:
        raise UsageError(usage)
    enabled = _parse_toggle(args[1].lower(), usage)
    if section == "api":
        ctx.config.api.bits.enable = enabled
        label = "Bits API"
    else:
        ctx.config.emotes.enable = enabled
        label = "Emotes"
    ctx.session.update_config(ctx.config)
    ctx.save(ctx.store.update_config, ctx.config.model_copy(deep=True))
    ctx.report(f"{label} {'enabled' if enabled else 'disabled'}")
    return None


def handle_quit(ctx: CommandContext, args: list[str]) -> FollowUp | None:
    return FollowUp.QUIT


def handle_help(ctx: CommandContext, args: list[str]) -> FollowUp | None:
    for definition in COMMAND_DEFS:
        aliases = ", ".join(COMMAND_SIGIL + alias for alias in definition.aliases)
        ctx.report(f"{definition.usage}  ({aliases})")
    return None


CONFIG_USAGE = ":config [reload|api enable/disable|emotes enable/disable]"

COMMAND_DEFS: tuple[CommandDef, ...] = (
    CommandDef("login", ("l",), ":login <user> <token> <refresh>", handle_login),
    CommandDef("join", ("j",), ":join <channel>", handle_join),
    CommandDef("find", ("f",), ":find <text>", handle_find),
    CommandDef("config", ("cfg",), CONFIG_USAGE, handle_config),
    CommandDef("quit", ("q",), ":quit", handle_quit),
    CommandDef("help", ("h", "?"), ":help", handle_help),
)


def _build_registry(definitions: tuple[CommandDef, ...]) -> Mapping[str, CommandDef]:
    registry: dict[str, CommandDef] = {}
    for definition in definitions:
        for key in (definition.name, *definition.aliases):
            if key in registry:
                raise ValueError(f"duplicate command name {key!r}")
            registry[key] = definition
    return MappingProxyType(registry)


COMMANDS: Mapping[str, CommandDef] = _build_registry(COMMAND_DEFS)


class CommandInterpreter:
    """Run one command line; never raises for user errors."""

    def __init__(
        self,
        context: CommandContext,
        registry: Mapping[str, CommandDef] = COMMANDS,
    ) -> None:
        self.context = context
        self.registry = registry

    def execute(self, line: str) -> FollowUp | None:
        try:
            name, args = parse_command(line)
        except CommandError as exc:
            self.context.report(str(exc))
            return None
        return self.run(name, args)

    def lookup(self, name: str) -> CommandDef:
        definition = self.registry.get(name)
        if definition is None:
            raise UnknownCommandError(f"Unknown command: {name}")
        return definition

    def run(self, name: str, args: list[str]) -> FollowUp | None:
        try:
            definition = self.lookup(name)
        except UnknownCommandError as exc:
            self.context.report(str(exc))
            return None

        LOGGER.debug(
            "command.execute",
            extra={"event": "command.execute", "command": definition.name},
        )
        try:
            return definition.handler(self.context, args)
        except TwitchChatError as exc:
            LOGGER.info(
                "command.failed",
                extra={
                    "event": "command.failed",
                    "command": definition.name,
                    "error_type": type(exc).__name__,
                },
            )
            self.context.report(str(exc))
            return None
