"""In-memory stand-ins for the chat transport and config store."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any

from twitch_chat.config import Config
from twitch_chat.exceptions import ConfigPersistError, TransportError
from twitch_chat.models import ChatUser, Notice, PrivateMessage, UserNotice


class FakeTransport:
    """Record protocol calls and let tests fire inbound callbacks."""

    def __init__(self, user: str | None = None, token: str | None = None) -> None:
        self.user = user
        self.token = token
        self.joined: list[str] = []
        self.departed: list[str] = []
        self.said: list[tuple[str, str]] = []
        self.disconnected = False
        self.connect_calls = 0
        self.fail_with: str | None = None
        self._closed = asyncio.Event()
        self._on_private_message: Callable[[PrivateMessage], None] | None = None
        self._on_user_notice: Callable[[UserNotice], None] | None = None
        self._on_connect: Callable[[], None] | None = None
        self._on_notice: Callable[[Notice], None] | None = None
        self._on_raw: Callable[[str], None] | None = None

    def on_private_message(self, callback: Callable[[PrivateMessage], None]) -> None:
        self._on_private_message = callback

    def on_user_notice(self, callback: Callable[[UserNotice], None]) -> None:
        self._on_user_notice = callback

    def on_connect(self, callback: Callable[[], None]) -> None:
        self._on_connect = callback

    def on_notice(self, callback: Callable[[Notice], None]) -> None:
        self._on_notice = callback

    def on_raw(self, callback: Callable[[str], None]) -> None:
        self._on_raw = callback

    def join(self, channel: str) -> None:
        self.joined.append(channel)

    def depart(self, channel: str) -> None:
        self.departed.append(channel)

    def say(self, channel: str, text: str) -> None:
        self.said.append((channel, text))

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.fail_with is not None:
            raise TransportError(self.fail_with)
        await self._closed.wait()

    def disconnect(self) -> None:
        self.disconnected = True
        self._closed.set()

    # -- inbound helpers -------------------------------------------------

    def fire_connect(self) -> None:
        assert self._on_connect is not None
        self._on_connect()

    def fire_notice(self, text: str, msg_id: str = "") -> None:
        assert self._on_notice is not None
        self._on_notice(Notice(channel="", message=text, msg_id=msg_id))

    def fire_message(self, message: PrivateMessage) -> None:
        assert self._on_private_message is not None
        self._on_private_message(message)

    def fire_user_notice(self, notice: UserNotice) -> None:
        assert self._on_user_notice is not None
        self._on_user_notice(notice)

    def fire_raw(self, raw: str) -> None:
        if self._on_raw is not None:
            self._on_raw(raw)


class TransportRecorder:
    """Transport factory that remembers every transport it built."""

    def __init__(self, *, fail_with: str | None = None) -> None:
        self.built: list[FakeTransport] = []
        self.fail_with = fail_with

    def __call__(self, user: str | None, token: str | None) -> FakeTransport:
        transport = FakeTransport(user, token)
        transport.fail_with = self.fail_with
        self.built.append(transport)
        return transport

    @property
    def current(self) -> FakeTransport:
        return self.built[-1]


class FakeConfigStore:
    """Config store that records writes instead of touching disk."""

    def __init__(self, config: Config | None = None, *, fail: bool = False) -> None:
        self.config = config or Config()
        self.fail = fail
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def load(self) -> Config:
        return self.config

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if self.fail:
            raise ConfigPersistError("disk full")

    def update_tokens(self, oauth: str, refresh: str) -> None:
        self._record("update_tokens", oauth, refresh)

    def update_login(self, user: str, oauth: str, refresh: str) -> None:
        self._record("update_login", user, oauth, refresh)

    def update_channel(self, channel: str) -> None:
        self._record("update_channel", channel)

    def update_channel_id(self, channel_id: str) -> None:
        self._record("update_channel_id", channel_id)

    def update_user_id(self, user_id: str) -> None:
        self._record("update_user_id", user_id)

    def update_client_id(self, client_id: str) -> None:
        self._record("update_client_id", client_id)

    def update_config(self, config: Config) -> None:
        self._record("update_config", config)

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]


def make_private_message(
    text: str,
    *,
    name: str = "viewer",
    color: str = "",
    badges: dict[str, str] | None = None,
    channel: str = "somechannel",
    bits: int = 0,
    first_message: bool = False,
    custom_reward_id: str = "",
    tags: dict[str, str] | None = None,
) -> PrivateMessage:
    return PrivateMessage(
        channel=channel,
        user=ChatUser(name=name, color=color, badges=badges or {}),
        message=text,
        timestamp=datetime(2024, 5, 1, 12, 30, 0),
        bits=bits,
        first_message=first_message,
        custom_reward_id=custom_reward_id,
        tags=tags or {},
    )
