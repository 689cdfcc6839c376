"""Top-level package for twitchterm."""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .app import TwitchChatApp
    from .commands import CommandInterpreter, parse_command
    from .config import ConfigStore, ensure_config_dir, load_config
    from .exceptions import (
        AuthInvalidError,
        CommandError,
        ConfigPersistError,
        ConfigValidationError,
        LookupFailedError,
        NotConnectedError,
        RefreshError,
        TransportError,
        TwitchChatError,
    )
    from .formatter import MessageFormatter
    from .models import ChatMessage, Flare
    from .session import SessionManager, SessionState
    from .state import AppState, InputMode, InputRouter

# Public name -> defining submodule. Imports are deferred so that the core can
# be used without loading textual.
_EXPORTS: dict[str, str] = {
    "AppState": "state",
    "AuthInvalidError": "exceptions",
    "ChatMessage": "models",
    "CommandError": "exceptions",
    "CommandInterpreter": "commands",
    "ConfigPersistError": "exceptions",
    "ConfigStore": "config",
    "ConfigValidationError": "exceptions",
    "Flare": "models",
    "InputMode": "state",
    "InputRouter": "state",
    "LookupFailedError": "exceptions",
    "MessageFormatter": "formatter",
    "NotConnectedError": "exceptions",
    "RefreshError": "exceptions",
    "SessionManager": "session",
    "SessionState": "session",
    "TransportError": "exceptions",
    "TwitchChatApp": "app",
    "TwitchChatError": "exceptions",
    "ensure_config_dir": "config",
    "load_config": "config",
    "parse_command": "commands",
}

__all__ = sorted(_EXPORTS)


def __getattr__(name: str) -> Any:
    """Lazily import exported symbols on first access."""
    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(f".{module_name}", __name__)
    return getattr(module, name)
