"""Header line: clock, channel, user and the active find filter."""

from __future__ import annotations

from datetime import datetime

from rich.text import Text
from textual.widgets import Static

from ..config import StyleConfig, ThemeConfig


def _label_with_id(name: str, numeric_id: str) -> str:
    return f"{name} ({numeric_id})" if numeric_id else name


def build_header(
    theme: ThemeConfig,
    style: StyleConfig,
    *,
    now: datetime,
    channel: str,
    channel_id: str,
    user: str,
    user_id: str,
    find: str,
) -> Text:
    segments = (
        (" Time: ", now.strftime(style.date_format), theme.subtext1),
        (" Channel: ", _label_with_id(channel, channel_id), theme.green),
        (" User: ", _label_with_id(user, user_id), theme.yellow),
    )
    line = Text()
    for label, value, color in segments:
        line.append("[", style=theme.maroon)
        line.append(label, style=theme.maroon)
        line.append(value, style=color)
        line.append(" ]", style=theme.maroon)
        line.append("─", style=theme.maroon)

    find_label = f'Find "{find}"' if find else "Find"
    line.append(f"[ {find_label} ]", style=theme.maroon)
    return line


class HeaderBar(Static):
    """Single-line session summary refreshed by the app."""

    DEFAULT_CSS = """
    HeaderBar {
        height: 1;
        padding: 0 1;
    }
    """

    def set_line(self, line: Text) -> None:
        self.update(line)
