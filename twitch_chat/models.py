"""Message records shared by the transport, formatter, session, and UI."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Flare(str, Enum):
    """Role classification rendered in front of the author name."""

    NONE = ""
    MOD = "MOD"
    VIP = "VIP"
    REDEEM = "REDEEM"
    SYSTEM = "SYSTEM"
    TUI = "TUI"


@dataclass(frozen=True)
class Mention:
    """A mentioned login and the color assigned to it within one message."""

    login: str
    color: str


@dataclass(frozen=True)
class ChatMessage:
    """Normalized, immutable chat line."""

    timestamp: datetime
    author: str
    content: str
    flare: Flare = Flare.NONE
    author_color: str = ""
    mentions: tuple[Mention, ...] = ()
    bits: int = 0
    highlight: str | None = None
    prepend: str | None = None
    channel: str = ""

    @property
    def mentioned_logins(self) -> list[str]:
        return [mention.login for mention in self.mentions]

    def mention_color(self, login: str) -> str | None:
        for mention in self.mentions:
            if mention.login == login:
                return mention.color
        return None


def system_message(content: str, *, author: str = "System") -> ChatMessage:
    """Build a locally generated status line."""
    return ChatMessage(
        timestamp=datetime.now(),
        author=author,
        content=content,
        flare=Flare.SYSTEM,
    )


# Raw inbound protocol events, produced by the IRC parser.


@dataclass(frozen=True)
class ChatUser:
    name: str
    color: str = ""
    badges: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PrivateMessage:
    """A chat line sent to a channel."""

    channel: str
    user: ChatUser
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    bits: int = 0
    first_message: bool = False
    custom_reward_id: str = ""
    tags: dict[str, str] = field(default_factory=dict)
    raw: str = ""


@dataclass(frozen=True)
class UserNotice:
    """Subscription, gift, raid, shoutout and similar channel events."""

    channel: str
    user: ChatUser
    msg_id: str
    system_msg: str = ""
    message: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
    tags: dict[str, str] = field(default_factory=dict)
    raw: str = ""


@dataclass(frozen=True)
class Notice:
    """Server notice, e.g. authentication failures."""

    channel: str
    message: str
    msg_id: str = ""
    raw: str = ""
