"""Parsing of Twitch IRC lines (IRCv3 tags included) into chat events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Union

from .models import ChatUser, Notice, PrivateMessage, UserNotice

_TAG_ESCAPES = {":": ";", "s": " ", "\\": "\\", "r": "\r", "n": "\n"}


@dataclass(frozen=True)
class IrcLine:
    """Generic parsed IRC line."""

    raw: str
    command: str
    params: tuple[str, ...] = ()
    prefix: str = ""
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def nick(self) -> str:
        return self.prefix.split("!", 1)[0]

    @property
    def channel(self) -> str:
        if self.params and self.params[0].startswith("#"):
            return self.params[0][1:]
        return ""

    @property
    def trailing(self) -> str:
        return self.params[-1] if self.params else ""


def unescape_tag_value(value: str) -> str:
    out: list[str] = []
    index = 0
    while index < len(value):
        char = value[index]
        if char == "\\" and index + 1 < len(value):
            out.append(_TAG_ESCAPES.get(value[index + 1], value[index + 1]))
            index += 2
            continue
        if char != "\\":
            out.append(char)
        index += 1
    return "".join(out)


def parse_tags(raw_tags: str) -> dict[str, str]:
    tags: dict[str, str] = {}
    for item in raw_tags.split(";"):
        if not item:
            continue
        key, _, value = item.partition("=")
        tags[key] = unescape_tag_value(value)
    return tags


def parse_badges(raw_badges: str) -> dict[str, str]:
    badges: dict[str, str] = {}
    for item in raw_badges.split(","):
        if not item:
            continue
        name, _, version = item.partition("/")
        badges[name] = version
    return badges


def parse_line(raw: str) -> IrcLine:
    """Split one protocol line into tags, prefix, command and params."""
    line = raw.rstrip("\r\n")
    rest = line
    tags: dict[str, str] = {}
    prefix = ""

    if rest.startswith("@"):
        raw_tags, _, rest = rest[1:].partition(" ")
        tags = parse_tags(raw_tags)
        rest = rest.lstrip(" ")
    if rest.startswith(":"):
        prefix, _, rest = rest[1:].partition(" ")
        rest = rest.lstrip(" ")

    trailing: str | None = None
    if " :" in rest:
        rest, trailing = rest.split(" :", 1)
    elif rest.startswith(":"):
        rest, trailing = "", rest[1:]

    parts = rest.split()
    command = parts[0].upper() if parts else ""
    params = parts[1:]
    if trailing is not None:
        params.append(trailing)
    return IrcLine(raw=line, command=command, params=tuple(params), prefix=prefix, tags=tags)


def _timestamp(tags: dict[str, str]) -> datetime:
    sent = tags.get("tmi-sent-ts", "")
    if sent.isdigit():
        return datetime.fromtimestamp(int(sent) / 1000)
    return datetime.now()


def _user(line: IrcLine) -> ChatUser:
    tags = line.tags
    name = tags.get("display-name") or tags.get("login") or line.nick
    return ChatUser(
        name=name,
        color=tags.get("color", ""),
        badges=parse_badges(tags.get("badges", "")),
    )


def _int_tag(tags: dict[str, str], key: str) -> int:
    value = tags.get(key, "")
    return int(value) if value.isdigit() else 0


ChatEvent = Union[PrivateMessage, UserNotice, Notice]


def to_event(line: IrcLine) -> ChatEvent | None:
    """Map PRIVMSG / USERNOTICE / NOTICE lines to typed events."""
    if line.command == "PRIVMSG":
        text = line.trailing
        # /me actions arrive wrapped in CTCP ACTION markers.
        if text.startswith("\x01ACTION ") and text.endswith("\x01"):
            text = text[len("\x01ACTION ") : -1]
        return PrivateMessage(
            channel=line.channel,
            user=_user(line),
            message=text,
            timestamp=_timestamp(line.tags),
            bits=_int_tag(line.tags, "bits"),
            first_message=line.tags.get("first-msg") == "1",
            custom_reward_id=line.tags.get("custom-reward-id", ""),
            tags=dict(line.tags),
            raw=line.raw,
        )
    if line.command == "USERNOTICE":
        return UserNotice(
            channel=line.channel,
            user=_user(line),
            msg_id=line.tags.get("msg-id", ""),
            system_msg=line.tags.get("system-msg", ""),
            message=line.trailing if len(line.params) > 1 else "",
            timestamp=_timestamp(line.tags),
            tags=dict(line.tags),
            raw=line.raw,
        )
    if line.command == "NOTICE":
        return Notice(
            channel=line.channel,
            message=line.trailing,
            msg_id=line.tags.get("msg-id", ""),
            raw=line.raw,
        )
    return None
