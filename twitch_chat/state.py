"""Presentation state: input mode routing, display filter and scrollback."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .models import ChatMessage

COMMAND_SIGIL = ":"


class InputMode(str, Enum):
    """How the next submitted line is interpreted."""

    AWAITING_CHANNEL = "AWAITING_CHANNEL"
    AWAITING_COMMAND = "AWAITING_COMMAND"
    CHATTING = "CHATTING"

    @property
    def label(self) -> str:
        return _MODE_LABELS[self]


_MODE_LABELS = {
    InputMode.AWAITING_CHANNEL: "Channel",
    InputMode.AWAITING_COMMAND: "Command",
    InputMode.CHATTING: "Chat",
}


@dataclass
class AppState:
    """Mode, find filter and the ordered scrollback."""

    mode: InputMode = InputMode.AWAITING_CHANNEL
    filter: str = ""
    messages: list[ChatMessage] = field(default_factory=list)

    @classmethod
    def initial(cls, channel: str) -> AppState:
        mode = InputMode.CHATTING if channel else InputMode.AWAITING_CHANNEL
        return cls(mode=mode)

    def append(self, message: ChatMessage) -> None:
        self.messages.append(message)

    def clear(self) -> None:
        """Drop scrollback and filter; used when the active channel changes."""
        self.messages.clear()
        self.filter = ""

    def matches(self, message: ChatMessage) -> bool:
        if not self.filter:
            return True
        return self.filter.lower() in message.content.lower()

    def visible_messages(self) -> list[ChatMessage]:
        return [message for message in self.messages if self.matches(message)]


class RouteKind(str, Enum):
    NONE = "NONE"
    COMMAND = "COMMAND"
    JOIN = "JOIN"
    SEND = "SEND"


@dataclass(frozen=True)
class Route:
    kind: RouteKind
    value: str = ""


class InputRouter:
    """Decide what a keystroke change or a submitted line means."""

    def __init__(self, state: AppState) -> None:
        self.state = state

    @property
    def mode(self) -> InputMode:
        return self.state.mode

    def on_change(self, value: str) -> InputMode:
        """Toggle between chatting and command entry as the sigil appears."""
        if self.state.mode is InputMode.AWAITING_CHANNEL:
            return self.state.mode
        if value.startswith(COMMAND_SIGIL):
            self.state.mode = InputMode.AWAITING_COMMAND
        elif self.state.mode is InputMode.AWAITING_COMMAND:
            self.state.mode = InputMode.CHATTING
        return self.state.mode

    def submit(self, value: str) -> Route:
        text = value.strip()
        if text.startswith(COMMAND_SIGIL):
            self.state.mode = InputMode.CHATTING
            return Route(RouteKind.COMMAND, text)
        if not text:
            return Route(RouteKind.NONE)
        if self.state.mode is InputMode.AWAITING_CHANNEL:
            return Route(RouteKind.JOIN, text)
        self.state.mode = InputMode.CHATTING
        return Route(RouteKind.SEND, text)

    def channel_joined(self) -> None:
        self.state.mode = InputMode.CHATTING

    def prompt(self) -> bool:
        """Pre-fill a command shortcut; ignored while awaiting a channel."""
        if self.state.mode is InputMode.AWAITING_CHANNEL:
            return False
        self.state.mode = InputMode.AWAITING_COMMAND
        return True
