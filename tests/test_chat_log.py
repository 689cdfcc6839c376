"""Tests for the raw protocol line log."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
import unittest

from twitch_chat.chat_log import RAW_LOGGER_NAME, ChatLog
from twitch_chat.config import ChatLogConfig


class ChatLogTests(unittest.TestCase):
    """Validate append-only writes and best-effort opening."""

    def test_disabled_log_writes_nothing(self) -> None:
        chat_log = ChatLog(ChatLogConfig(enable=False))
        self.assertFalse(chat_log.enabled)
        chat_log.write("PING :tmi.twitch.tv")
        chat_log.close()

    def test_lines_are_appended(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "logs" / "chat.log"
            path.parent.mkdir()
            path.write_text("earlier\n", encoding="utf-8")

            chat_log = ChatLog(ChatLogConfig(enable=True, path=str(path)))
            self.assertTrue(chat_log.enabled)
            chat_log.write(":v!v@v PRIVMSG #somechannel :hello")
            chat_log.write("PING :tmi.twitch.tv")
            chat_log.close()
            chat_log.close()

            self.assertEqual(
                path.read_text(encoding="utf-8").splitlines(),
                ["earlier", ":v!v@v PRIVMSG #somechannel :hello", "PING :tmi.twitch.tv"],
            )

    def test_raw_lines_do_not_reach_root_handlers(self) -> None:
        ChatLog(ChatLogConfig())
        self.assertFalse(logging.getLogger(RAW_LOGGER_NAME).propagate)

    def test_unopenable_path_disables_log(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            blocker = Path(temp_dir) / "file"
            blocker.write_text("", encoding="utf-8")
            with self.assertLogs("twitch_chat.chat_log", level="WARNING"):
                chat_log = ChatLog(
                    ChatLogConfig(enable=True, path=str(blocker / "chat.log"))
                )
            self.assertFalse(chat_log.enabled)
            chat_log.write("ignored")


if __name__ == "__main__":
    unittest.main()
