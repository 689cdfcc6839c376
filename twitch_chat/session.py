"""Session lifecycle: connect, channel switch, login, token refresh recovery.

``SessionManager`` is a single-owner actor. Transport callbacks and
background lookups never touch :class:`Session` directly; they enqueue
immutable :class:`StatusEvent` records on ``status``. The consumer (the
textual app) drains that queue and hands every update back through
:meth:`SessionManager.apply`, which is the only place session fields change.
Every update carries the generation that produced it so results that arrive
after a switch, login or restart are discarded.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
import logging
from typing import Any, Union

import httpx

from .bits import BitsNotifier
from .chat_log import ChatLog
from .config import Config, ConfigStore
from .exceptions import (
    AuthInvalidError,
    ConfigPersistError,
    LookupFailedError,
    MissingFieldError,
    NotConnectedError,
    RefreshError,
    TransportError,
)
from .formatter import MessageFormatter
from .identity import IdentityResolver
from .models import ChatMessage, Flare, Notice, PrivateMessage, UserNotice
from .refresh import TokenRefresher, normalize_access_token
from .task_manager import TaskManager
from .transport import ChatTransport, IrcTransport, TransportFactory

LOGGER = logging.getLogger(__name__)

AUTH_FAILED_NOTICE = "Login authentication failed"
NOT_LOGGED_IN_MESSAGE = (
    "Not logged in — user and channel IDs will not be fetched. "
    "Use :login to authenticate."
)
TRANSPORT_TASK = "transport"
REFRESH_TASK = "token_refresh"


class SessionState(str, Enum):
    """Logical connection state."""

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"


@dataclass
class Session:
    """Current channel, credentials and resolved numeric identities."""

    channel: str = ""
    channel_id: str = ""
    authenticated: bool = False
    access_token: str = ""
    refresh_token: str = ""
    refresh_api: str = ""
    user: str = ""
    user_id: str = ""
    client_id: str = ""
    generation: int = 0

    @classmethod
    def from_config(cls, config: Config) -> Session:
        twitch = config.twitch
        return cls(
            channel=twitch.channel,
            channel_id=twitch.channel_id,
            access_token=twitch.oauth,
            refresh_token=twitch.refresh,
            refresh_api=twitch.refresh_api,
            user=twitch.user,
            user_id=twitch.user_id,
            client_id=twitch.client_id,
        )


@dataclass(frozen=True)
class Connected:
    generation: int
    channel: str


@dataclass(frozen=True)
class ConnectionFailed:
    generation: int
    error: str


@dataclass(frozen=True)
class AuthFailed:
    generation: int


@dataclass(frozen=True)
class IdentityResolved:
    generation: int
    user_id: str
    login: str
    client_id: str


@dataclass(frozen=True)
class ChannelResolved:
    generation: int
    channel: str
    channel_id: str


@dataclass(frozen=True)
class TokensRefreshed:
    generation: int
    access_token: str
    refresh_token: str


SessionUpdate = Union[
    Connected,
    ConnectionFailed,
    AuthFailed,
    IdentityResolved,
    ChannelResolved,
    TokensRefreshed,
]


@dataclass(frozen=True)
class StatusEvent:
    """One status line for the user and/or one update for the session.

    Events with empty ``text`` are not displayed.
    """

    text: str = ""
    update: SessionUpdate | None = None


class SessionManager:
    """Own the logical chat connection and its two outbound streams."""

    def __init__(
        self,
        config: Config,
        *,
        config_store: ConfigStore | None = None,
        transport_factory: TransportFactory = IrcTransport.factory,
        http_client: httpx.AsyncClient | None = None,
        task_manager: TaskManager | None = None,
        chat_log: ChatLog | None = None,
    ) -> None:
        self.config = config
        self.session = Session.from_config(config)
        self.state = SessionState.DISCONNECTED
        self.emotes_enabled = config.emotes.enable
        self.messages: asyncio.Queue[ChatMessage] = asyncio.Queue()
        self.status: asyncio.Queue[StatusEvent] = asyncio.Queue()

        self._store = config_store or ConfigStore()
        self._transport_factory = transport_factory
        self._transport: ChatTransport | None = None
        self._tasks = task_manager or TaskManager()
        self._writes = TaskManager()
        self._write_lock = asyncio.Lock()
        self._identity = IdentityResolver(self._report, client=http_client)
        self._refresher = TokenRefresher(self._report, client=http_client)
        self._chat_log = chat_log or ChatLog(config.chat_log)
        self._bits = BitsNotifier(self._tasks)
        self.formatter = MessageFormatter(
            config.theme, config.api.bits, on_bits=self._bits.notify
        )

        if self.session.access_token:
            self.session.access_token = normalize_access_token(self.session.access_token)
            self.session.authenticated = True

    @property
    def has_transport(self) -> bool:
        return self._transport is not None

    @property
    def refresh_in_flight(self) -> bool:
        return self._tasks.is_running(REFRESH_TASK)

    # -- operations -----------------------------------------------------

    def connect(self) -> None:
        """Bind callbacks, join the current channel and start the transport."""
        if not self.session.channel:
            raise MissingFieldError("missing channel")
        LOGGER.info(
            "session.connect",
            extra={
                "event": "session.connect",
                "channel": self.session.channel,
                "authenticated": self.session.authenticated,
            },
        )
        self._start_session()

    def set_channel(self, name: str) -> None:
        """Adopt a channel before the first connect."""
        channel = name.strip().lstrip("#").lower()
        if not channel:
            raise MissingFieldError("missing channel")
        self.session.channel = channel
        self.session.channel_id = ""

    def switch_channel(self, name: str) -> None:
        transport = self._transport
        if transport is None:
            raise NotConnectedError("client not initialized")
        channel = name.strip().lstrip("#").lower()
        if not channel:
            raise MissingFieldError("missing channel")

        previous = self.session.channel
        transport.depart(previous)
        self.session.channel_id = ""
        self.session.channel = channel
        self.session.generation += 1
        transport.join(channel)
        LOGGER.info(
            "session.switch",
            extra={"event": "session.switch", "from": previous, "to": channel},
        )

        if self.session.authenticated:
            self._schedule_lookup(need_channel=True)
        self._report(f"Switched to channel: {channel}")

    def send(self, text: str) -> ChatMessage:
        """Forward ``text`` verbatim and return the local echo line."""
        transport = self._transport
        if transport is None:
            raise NotConnectedError("not connected to a channel")
        transport.say(self.session.channel, text)
        return ChatMessage(
            timestamp=datetime.now(),
            author=self.session.user,
            content=text,
            flare=Flare.TUI,
            channel=self.session.channel,
        )

    def login(self, user: str, token: str, refresh: str) -> None:
        if not user:
            raise MissingFieldError("missing user")
        if not token:
            raise MissingFieldError("missing token")
        if not refresh:
            raise MissingFieldError("missing refresh token")

        self._drop_transport()
        if user.lower() != self.session.user.lower():
            self.session.user_id = ""
        self.session.user = user
        self.session.access_token = normalize_access_token(token)
        self.session.refresh_token = refresh
        self.session.authenticated = True
        LOGGER.info("session.login", extra={"event": "session.login", "user": user})

        if self.session.channel:
            self._start_session()
        else:
            self.session.generation += 1

    def update_config(self, config: Config) -> None:
        """Swap runtime options: theme, bits API and emotes."""
        self.config = config
        self.formatter.update_config(config)
        self.emotes_enabled = config.emotes.enable
        if config.twitch.refresh_api:
            self.session.refresh_api = config.twitch.refresh_api

    def handle_auth_failure(self, generation: int) -> asyncio.Task[Any] | None:
        """Start the single refresh attempt for an authentication failure."""
        if generation != self.session.generation:
            return None
        if self.refresh_in_flight:
            LOGGER.debug(
                "session.refresh.in_flight",
                extra={"event": "session.refresh.in_flight"},
            )
            return None
        if not self.session.refresh_token:
            self._report("Refresh failed: no refresh token available")
            return None
        return self._tasks.spawn(
            self._refresh(
                generation, self.session.refresh_api, self.session.refresh_token
            ),
            name=REFRESH_TASK,
        )

    def persist(
        self, action: Callable[..., None], *args: Any, failure: str
    ) -> asyncio.Task[Any]:
        """Queue a config write; writes run one at a time, in call order."""
        return self._writes.spawn(self._persist(action, args, failure))

    async def close(self) -> None:
        """Stop the transport and background work; pending config writes finish."""
        self._drop_transport()
        await self._tasks.cancel_all()
        await self._writes.await_all()
        await self._identity.aclose()
        await self._refresher.aclose()
        self._chat_log.close()
        self.state = SessionState.DISCONNECTED

    # -- consumer side --------------------------------------------------

    def apply(self, update: SessionUpdate) -> bool:
        """Apply one update; return ``False`` when it was stale."""
        if update.generation != self.session.generation:
            LOGGER.debug(
                "session.update.stale",
                extra={
                    "event": "session.update.stale",
                    "update": type(update).__name__,
                    "generation": update.generation,
                    "current": self.session.generation,
                },
            )
            return False

        if isinstance(update, Connected):
            self._on_connected(update)
        elif isinstance(update, ConnectionFailed):
            self.state = SessionState.DISCONNECTED
        elif isinstance(update, AuthFailed):
            self.handle_auth_failure(update.generation)
        elif isinstance(update, IdentityResolved):
            self._on_identity(update)
        elif isinstance(update, ChannelResolved):
            if update.channel != self.session.channel:
                return False
            if update.channel_id != self.session.channel_id:
                self.session.channel_id = update.channel_id
                self.config.twitch.channel_id = update.channel_id
                self.persist(
                    self._store.update_channel_id,
                    update.channel_id,
                    failure="Failed to save channel ID",
                )
        elif isinstance(update, TokensRefreshed):
            self._on_tokens_refreshed(update)
        return True

    def _on_connected(self, update: Connected) -> None:
        self.state = SessionState.CONNECTED
        if not self.session.authenticated:
            self._report(NOT_LOGGED_IN_MESSAGE)
            return
        need_channel = not self.session.channel_id
        if need_channel or not self.session.user_id:
            self._schedule_lookup(need_channel=need_channel)

    def _on_identity(self, update: IdentityResolved) -> None:
        session = self.session
        if update.user_id and update.user_id != session.user_id:
            session.user_id = update.user_id
            self.config.twitch.user_id = update.user_id
            self.persist(
                self._store.update_user_id,
                update.user_id,
                failure="Failed to save user ID",
            )
        if not session.user and update.login:
            session.user = update.login
        if update.client_id and update.client_id != session.client_id:
            session.client_id = update.client_id
            self.config.twitch.client_id = update.client_id
            self.persist(
                self._store.update_client_id,
                update.client_id,
                failure="Failed to save client ID",
            )

    def _on_tokens_refreshed(self, update: TokensRefreshed) -> None:
        self.session.access_token = update.access_token
        self.session.refresh_token = update.refresh_token
        self.session.authenticated = True
        self.config.twitch.oauth = update.access_token
        self.config.twitch.refresh = update.refresh_token
        self.persist(
            self._store.update_tokens,
            update.access_token,
            update.refresh_token,
            failure="Refresh successful but failed to update config.toml",
        )
        self._report("Token refreshed successfully! Reconnecting...")
        self._drop_transport()
        self._start_session()

    # -- internals ------------------------------------------------------

    def _report(self, text: str) -> None:
        self.status.put_nowait(StatusEvent(text=text))

    def _emit(self, event: StatusEvent) -> None:
        self.status.put_nowait(event)

    def _build_transport(self) -> ChatTransport:
        if self.session.authenticated:
            return self._transport_factory(self.session.user, self.session.access_token)
        return self._transport_factory(None, None)

    def _start_session(self) -> None:
        self.session.generation += 1
        transport = self._build_transport()
        self._transport = transport
        self._bind(transport)
        transport.join(self.session.channel)
        self.state = SessionState.CONNECTING
        self._tasks.spawn(self._run_transport(transport), name=TRANSPORT_TASK)

    def _drop_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is not None:
            transport.disconnect()
        self.state = SessionState.DISCONNECTED

    def _bind(self, transport: ChatTransport) -> None:
        def is_current() -> bool:
            return transport is self._transport

        def on_private_message(message: PrivateMessage) -> None:
            if is_current():
                self.messages.put_nowait(self.formatter.format_private_message(message))

        def on_user_notice(notice: UserNotice) -> None:
            if not is_current():
                return
            formatted = self.formatter.format_user_notice(notice)
            if formatted is not None:
                self.messages.put_nowait(formatted)

        def on_connect() -> None:
            if is_current():
                self._emit(
                    StatusEvent(
                        text=f"Connected to #{self.session.channel}",
                        update=Connected(self.session.generation, self.session.channel),
                    )
                )

        def on_notice(notice: Notice) -> None:
            if is_current() and AUTH_FAILED_NOTICE in notice.message:
                LOGGER.warning(
                    "session.auth.failed",
                    extra={"event": "session.auth.failed", "msg_id": notice.msg_id},
                )
                self._emit(
                    StatusEvent(
                        text="Auth failed. Attempting auto-refresh...",
                        update=AuthFailed(self.session.generation),
                    )
                )

        transport.on_private_message(on_private_message)
        transport.on_user_notice(on_user_notice)
        transport.on_connect(on_connect)
        transport.on_notice(on_notice)
        transport.on_raw(self._chat_log.write)

    async def _run_transport(self, transport: ChatTransport) -> None:
        try:
            await transport.connect()
        except TransportError as exc:
            if transport is not self._transport:
                return
            LOGGER.warning(
                "session.connect.failed",
                extra={"event": "session.connect.failed", "error": str(exc)},
            )
            self._emit(
                StatusEvent(
                    text=f"Connection error: {exc}",
                    update=ConnectionFailed(self.session.generation, str(exc)),
                )
            )

    def _schedule_lookup(self, *, need_channel: bool) -> None:
        session = self.session
        self._tasks.spawn(
            self._resolve_ids(
                session.generation,
                session.channel,
                session.access_token,
                session.client_id,
                need_channel,
            )
        )

    async def _resolve_ids(
        self,
        generation: int,
        channel: str,
        token: str,
        client_id: str,
        need_channel: bool,
    ) -> None:
        label = "Channel" if need_channel else "User"
        try:
            identity = await self._identity.validate_and_identify(token)
        except AuthInvalidError as exc:
            self._report(f"{label} ID lookup failed: {exc}")
            return
        self._emit(
            StatusEvent(
                update=IdentityResolved(
                    generation, identity.user_id, identity.login, identity.client_id
                )
            )
        )
        if not need_channel:
            return

        try:
            channel_id = await self._identity.resolve_channel_id(
                channel, identity.client_id or client_id, token
            )
        except LookupFailedError as exc:
            self._report(f"Channel ID lookup failed: {exc}")
            return
        self._emit(StatusEvent(update=ChannelResolved(generation, channel, channel_id)))

    async def _refresh(self, generation: int, endpoint: str, refresh_token: str) -> None:
        try:
            pair = await self._refresher.refresh(endpoint, refresh_token)
        except RefreshError as exc:
            LOGGER.warning(
                "session.refresh.failed",
                extra={"event": "session.refresh.failed", "error": str(exc)},
            )
            return
        self._emit(
            StatusEvent(
                update=TokensRefreshed(
                    generation, normalize_access_token(pair.access), pair.refresh
                )
            )
        )

    async def _persist(
        self, action: Callable[..., None], args: tuple[Any, ...], failure: str
    ) -> None:
        try:
            async with self._write_lock:
                await asyncio.to_thread(action, *args)
        except ConfigPersistError as exc:
            LOGGER.warning(
                "session.persist.failed",
                extra={"event": "session.persist.failed", "error": str(exc)},
            )
            self._report(f"{failure}: {exc}")
