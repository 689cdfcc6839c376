"""Chat transport: the protocol seam plus a Twitch IRC-over-TLS implementation."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging
import random
import ssl
from typing import Protocol

from .exceptions import TransportError
from .irc import IrcLine, parse_line, to_event
from .models import Notice, PrivateMessage, UserNotice

LOGGER = logging.getLogger(__name__)

TWITCH_IRC_HOST = "irc.chat.twitch.tv"
TWITCH_IRC_TLS_PORT = 6697
CAPABILITIES = "twitch.tv/tags twitch.tv/commands"


class ChatTransport(Protocol):
    """What the session needs from a chat connection.

    ``join``/``depart``/``say`` queue protocol writes and return immediately;
    ``connect`` runs until the connection ends.
    """

    def on_private_message(self, callback: Callable[[PrivateMessage], None]) -> None: ...

    def on_user_notice(self, callback: Callable[[UserNotice], None]) -> None: ...

    def on_connect(self, callback: Callable[[], None]) -> None: ...

    def on_notice(self, callback: Callable[[Notice], None]) -> None: ...

    def on_raw(self, callback: Callable[[str], None]) -> None: ...

    def join(self, channel: str) -> None: ...

    def depart(self, channel: str) -> None: ...

    def say(self, channel: str, text: str) -> None: ...

    async def connect(self) -> None: ...

    def disconnect(self) -> None: ...


TransportFactory = Callable[[str | None, str | None], ChatTransport]


class IrcTransport:
    """Twitch IRC client on top of ``asyncio.open_connection``.

    Constructed with ``user``/``token`` for an authenticated connection, or
    with neither for an anonymous read-only ``justinfan`` login.
    """

    def __init__(
        self,
        user: str | None = None,
        token: str | None = None,
        *,
        host: str = TWITCH_IRC_HOST,
        port: int = TWITCH_IRC_TLS_PORT,
        use_tls: bool = True,
        connect_timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.use_tls = use_tls
        self.connect_timeout = connect_timeout
        if user and token:
            self.nick = user.lower()
            self.password: str | None = token
        else:
            self.nick = f"justinfan{random.randint(10_000, 99_999)}"
            self.password = None

        self._channels: list[str] = []
        self._writer: asyncio.StreamWriter | None = None
        self._registered = False
        self._closing = False

        self._on_private_message: Callable[[PrivateMessage], None] | None = None
        self._on_user_notice: Callable[[UserNotice], None] | None = None
        self._on_connect: Callable[[], None] | None = None
        self._on_notice: Callable[[Notice], None] | None = None
        self._on_raw: Callable[[str], None] | None = None

    @classmethod
    def factory(cls, user: str | None, token: str | None) -> IrcTransport:
        return cls(user, token)

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
        channel = channel.lstrip("#").lower()
        if not channel or channel in self._channels:
            return
        self._channels.append(channel)
        if self._registered:
            self._send(f"JOIN #{channel}")

    def depart(self, channel: str) -> None:
        channel = channel.lstrip("#").lower()
        if channel in self._channels:
            self._channels.remove(channel)
        if self._registered:
            self._send(f"PART #{channel}")

    def say(self, channel: str, text: str) -> None:
        if not self._registered:
            raise TransportError("not connected")
        if self.password is None:
            raise TransportError("anonymous connections cannot send messages")
        self._send(f"PRIVMSG #{channel.lstrip('#').lower()} :{text}")

    def disconnect(self) -> None:
        self._closing = True
        self._registered = False
        writer, self._writer = self._writer, None
        if writer is not None:
            writer.close()

    async def connect(self) -> None:
        """Open the connection, register, and pump lines until it closes."""
        self._closing = False
        ssl_context = ssl.create_default_context() if self.use_tls else None
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port, ssl=ssl_context),
                timeout=self.connect_timeout,
            )
        except (OSError, asyncio.TimeoutError) as exc:
            raise TransportError(f"unable to reach {self.host}:{self.port}: {exc}") from exc

        self._writer = writer
        self._send(f"CAP REQ :{CAPABILITIES}")
        if self.password is not None:
            self._send(f"PASS {self.password}")
        self._send(f"NICK {self.nick}")
        LOGGER.info(
            "transport.connect",
            extra={"event": "transport.connect", "host": self.host, "nick": self.nick},
        )

        try:
            while not self._closing:
                data = await reader.readline()
                if not data:
                    break
                self.handle_line(data.decode("utf-8", errors="replace"))
        except (OSError, asyncio.IncompleteReadError) as exc:
            if not self._closing:
                raise TransportError(f"connection lost: {exc}") from exc
        finally:
            self._registered = False
            if self._writer is writer:
                self._writer = None
                writer.close()

        if not self._closing:
            raise TransportError("connection closed by server")

    def handle_line(self, raw: str) -> None:
        """Dispatch one inbound line to the registered callbacks."""
        if not raw.strip():
            return
        line = parse_line(raw)
        if self._on_raw is not None:
            self._on_raw(line.raw)

        if line.command == "PING":
            self._send(f"PONG :{line.trailing}")
            return
        if line.command == "001":
            self._registered = True
            for channel in self._channels:
                self._send(f"JOIN #{channel}")
            if self._on_connect is not None:
                self._on_connect()
            return
        if line.command == "RECONNECT":
            self._handle_reconnect(line)

        event = to_event(line)
        if isinstance(event, PrivateMessage) and self._on_private_message is not None:
            self._on_private_message(event)
        elif isinstance(event, UserNotice) and self._on_user_notice is not None:
            self._on_user_notice(event)
        elif isinstance(event, Notice) and self._on_notice is not None:
            self._on_notice(event)

    def _handle_reconnect(self, line: IrcLine) -> None:
        LOGGER.info(
            "transport.reconnect_requested",
            extra={"event": "transport.reconnect_requested", "raw": line.raw},
        )
        writer, self._writer = self._writer, None
        self._registered = False
        if writer is not None:
            writer.close()
        raise TransportError("server requested reconnect")

    def _send(self, line: str) -> None:
        if self._writer is None:
            return
        self._writer.write((line + "\r\n").encode("utf-8"))
