"""Append-only log of raw protocol lines, enabled by ``[chat_log]``."""

from __future__ import annotations

import logging
from pathlib import Path

from .config import CONFIG_DIR, ChatLogConfig

LOGGER = logging.getLogger(__name__)

RAW_LOGGER_NAME = "twitch_chat.raw"
DEFAULT_CHAT_LOG_PATH = CONFIG_DIR / "chat.log"


class ChatLog:
    """Write every raw line to a file through a dedicated stdlib logger.

    The logger does not propagate, so raw traffic never reaches the app's
    stderr or structured log handlers. Opening the file is best effort: if it
    fails the log stays disabled and a warning is emitted.
    """

    def __init__(self, config: ChatLogConfig) -> None:
        self._handler: logging.FileHandler | None = None
        self._logger = logging.getLogger(RAW_LOGGER_NAME)
        self._logger.propagate = False
        self._logger.setLevel(logging.INFO)
        if not config.enable:
            return

        path = Path(config.path).expanduser() if config.path else DEFAULT_CHAT_LOG_PATH
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        except OSError as exc:
            LOGGER.warning(
                "chat_log.open.failed",
                extra={"event": "chat_log.open.failed", "path": str(path), "error": str(exc)},
            )
            return
        handler.setFormatter(logging.Formatter("%(message)s"))
        self._logger.addHandler(handler)
        self._handler = handler
        self.path = path

    @property
    def enabled(self) -> bool:
        return self._handler is not None

    def write(self, raw: str) -> None:
        if self._handler is None:
            return
        self._logger.info(raw)

    def close(self) -> None:
        handler, self._handler = self._handler, None
        if handler is None:
            return
        self._logger.removeHandler(handler)
        handler.close()
