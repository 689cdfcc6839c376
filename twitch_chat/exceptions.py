"""Domain exception hierarchy for the Twitch chat client."""

from __future__ import annotations


class TwitchChatError(RuntimeError):
    """Base class for all domain-level chat errors."""


class TransportError(TwitchChatError):
    """Raised when the chat transport cannot connect, join, or send."""


class NotConnectedError(TwitchChatError):
    """Raised when a session action needs a transport that does not exist."""


class AuthInvalidError(TwitchChatError):
    """Raised when an access token is empty, rejected, or incomplete."""


class LookupFailedError(TwitchChatError):
    """Raised when a login cannot be resolved to a numeric id."""


class RefreshError(TwitchChatError):
    """Raised when the refresh endpoint fails to issue new tokens."""


class MissingFieldError(TwitchChatError):
    """Raised when a required credential field is empty."""


class ConfigValidationError(TwitchChatError):
    """Raised when configuration cannot be validated safely."""


class ConfigPersistError(TwitchChatError):
    """Raised when configuration cannot be written back to disk."""


class CommandError(TwitchChatError):
    """Base class for command parse and usage failures."""


class EmptyCommandError(CommandError):
    """Raised for a blank command line."""


class NotACommandError(CommandError):
    """Raised when the line does not start with the command sigil."""


class MissingCommandNameError(CommandError):
    """Raised when the sigil is followed by whitespace instead of a name."""


class UnknownCommandError(CommandError):
    """Raised when no command is registered under the given name."""


class UsageError(CommandError):
    """Raised when a command receives the wrong arguments."""
