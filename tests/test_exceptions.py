"""Tests for domain exception hierarchy."""

from __future__ import annotations

import unittest

from twitch_chat.exceptions import (
    AuthInvalidError,
    CommandError,
    ConfigPersistError,
    ConfigValidationError,
    EmptyCommandError,
    LookupFailedError,
    MissingCommandNameError,
    MissingFieldError,
    NotACommandError,
    NotConnectedError,
    RefreshError,
    TransportError,
    TwitchChatError,
    UnknownCommandError,
    UsageError,
)


class ExceptionHierarchyTests(unittest.TestCase):
    """Validate exception inheritance contract."""

    def test_domain_errors_share_a_base(self) -> None:
        for error in (
            TransportError,
            NotConnectedError,
            AuthInvalidError,
            LookupFailedError,
            RefreshError,
            MissingFieldError,
            ConfigValidationError,
            ConfigPersistError,
            CommandError,
        ):
            self.assertTrue(issubclass(error, TwitchChatError), error)

    def test_command_errors(self) -> None:
        for error in (
            EmptyCommandError,
            NotACommandError,
            MissingCommandNameError,
            UnknownCommandError,
            UsageError,
        ):
            self.assertTrue(issubclass(error, CommandError), error)


if __name__ == "__main__":
    unittest.main()
