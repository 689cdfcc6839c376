"""Footer line: input mode label and the character counter."""

from __future__ import annotations

from rich.text import Text
from textual.widgets import Static

from ..config import ThemeConfig
from ..state import InputMode

MAX_INPUT_LENGTH = 500


def build_footer(theme: ThemeConfig, mode: InputMode, length: int) -> Text:
    line = Text()
    line.append("[", style=theme.maroon)
    line.append(mode.label, style=theme.maroon)
    line.append("]─[", style=theme.maroon)
    line.append(str(length), style=theme.yellow)
    line.append(" / ", style=theme.maroon)
    line.append(str(MAX_INPUT_LENGTH), style=theme.yellow)
    line.append("]", style=theme.maroon)
    return line


class FooterBar(Static):
    """Mode and counter shown above the input."""

    DEFAULT_CSS = """
    FooterBar {
        height: 1;
        padding: 0 1;
    }
    """

    def set_status(self, theme: ThemeConfig, mode: InputMode, length: int) -> None:
        self.update(build_footer(theme, mode, length))
