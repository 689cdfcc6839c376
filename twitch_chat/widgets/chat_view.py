"""Scrollback view that renders :class:`ChatMessage` lines with rich."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from rich.style import Style
from rich.text import Text
from textual.widgets import RichLog

from ..config import StyleConfig, ThemeConfig
from ..models import ChatMessage, Flare

_FLARE_COLORS = {
    Flare.VIP: "pink",
    Flare.SYSTEM: "yellow",
    Flare.TUI: "blue",
}


def render_message(
    message: ChatMessage, theme: ThemeConfig, style: StyleConfig
) -> Text:
    """Build one display line: time, [FLARE], author, content, cheer suffix."""
    line = Text()
    line.append(message.timestamp.strftime(style.date_format), style=theme.subtext1)
    line.append(" ")

    if message.flare is not Flare.NONE:
        flare_color = getattr(theme, _FLARE_COLORS.get(message.flare, "red"))
        line.append("[", style=theme.maroon)
        line.append(message.flare.value, style=flare_color)
        line.append("] ", style=theme.maroon)

    if message.flare is Flare.SYSTEM:
        author_color = theme.yellow
    else:
        author_color = message.author_color or theme.text
    line.append(message.author, style=Style(color=author_color, bold=True))
    line.append(": ", style=theme.text)

    if message.prepend:
        line.append(message.prepend + " ", style=Style(color=theme.peach, bold=True))

    content = Text(message.content, style=theme.text)
    for mention in message.mentions:
        content.highlight_words([f"@{mention.login}"], style=mention.color)
    if message.highlight:
        content.stylize(Style(bgcolor=message.highlight, color=theme.base))
    line.append_text(content)

    if message.bits > 0:
        line.append(f" Cheer{message.bits}", style=theme.peach)
    return line


class ChatView(RichLog):
    """Append-only log of rendered chat lines."""

    def __init__(
        self, theme: ThemeConfig, style: StyleConfig, **kwargs: Any
    ) -> None:
        super().__init__(wrap=True, markup=False, auto_scroll=True, **kwargs)
        self.palette = theme
        self.date_style = style

    def set_theme(self, theme: ThemeConfig, style: StyleConfig) -> None:
        self.palette = theme
        self.date_style = style

    def add_message(self, message: ChatMessage) -> None:
        self.write(render_message(message, self.palette, self.date_style))

    def rebuild(self, messages: Iterable[ChatMessage]) -> None:
        """Redraw from scratch, e.g. after the find filter changes."""
        self.clear()
        for message in messages:
            self.add_message(message)
