"""Configuration loading, validation, and persistence for the Twitch chat TUI."""

from __future__ import annotations

from copy import deepcopy
import logging
import os
from pathlib import Path
import re
import tomllib
from typing import Any

from platformdirs import user_config_path
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
import tomlkit

from .exceptions import ConfigPersistError, ConfigValidationError

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = user_config_path("twitchterm", appauthor=False)
CONFIG_PATH = CONFIG_DIR / "config.toml"

DEFAULT_REFRESH_API = "https://twitchtokengenerator.com/api/refresh/"

HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")
VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _strip_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str):
        raise ValueError("Expected a string value.")
    return value.strip()


class TwitchConfig(BaseModel):
    """Channel, credentials, and cached numeric identities."""

    channel: str = ""
    user: str = ""
    oauth: str = ""
    refresh: str = ""
    refresh_api: str = DEFAULT_REFRESH_API
    user_id: str = ""
    channel_id: str = ""
    client_id: str = ""

    @field_validator(
        "channel",
        "user",
        "oauth",
        "refresh",
        "user_id",
        "channel_id",
        "client_id",
        mode="before",
    )
    @classmethod
    def _normalize_string(cls, value: Any) -> str:
        return _strip_string(value)

    @field_validator("channel", mode="after")
    @classmethod
    def _normalize_channel(cls, value: str) -> str:
        return value.lstrip("#").lower()

    @field_validator("refresh_api", mode="before")
    @classmethod
    def _default_refresh_api(cls, value: Any) -> str:
        normalized = _strip_string(value)
        return normalized or DEFAULT_REFRESH_API


class ThemeConfig(BaseModel):
    """Named palette (Catppuccin Frappe by default)."""

    crust: str = "#232634"
    mantle: str = "#292c3c"
    base: str = "#303446"
    surface0: str = "#414559"
    surface1: str = "#51576d"
    surface2: str = "#626880"
    overlay0: str = "#737994"
    overlay1: str = "#838ba7"
    overlay2: str = "#949cbb"
    subtext0: str = "#a5adce"
    subtext1: str = "#949cbb"
    text: str = "#c6d0f5"
    lavender: str = "#babbf1"
    blue: str = "#8caaee"
    sapphire: str = "#85c1dc"
    sky: str = "#99d1db"
    teal: str = "#81c8be"
    green: str = "#a6d189"
    yellow: str = "#e5c890"
    peach: str = "#ef9f76"
    maroon: str = "#ea999c"
    red: str = "#e78284"
    mauve: str = "#ca9ee6"
    pink: str = "#f4b8e4"
    flamingo: str = "#eebebe"
    rosewater: str = "#f2d5cf"

    @field_validator("*", mode="before")
    @classmethod
    def _validate_hex_color(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Expected a string value.")
        normalized = value.strip()
        if not HEX_COLOR_PATTERN.match(normalized):
            raise ValueError("Color must use #RGB or #RRGGBB format.")
        return normalized


class StyleConfig(BaseModel):
    """Presentation formatting options."""

    date_format: str = "%H:%M:%S"

    @field_validator("date_format", mode="before")
    @classmethod
    def _validate_date_format(cls, value: Any) -> str:
        normalized = _strip_string(value)
        if not normalized:
            raise ValueError("date_format must not be empty.")
        return normalized


class BitsApiConfig(BaseModel):
    """Outbound cheer notification webhook."""

    enable: bool = False
    bits_amount: int = Field(default=0, ge=0)
    endpoint: str = ""

    @field_validator("endpoint", mode="before")
    @classmethod
    def _normalize_endpoint(cls, value: Any) -> str:
        return _strip_string(value)


class ApiConfig(BaseModel):
    """External integrations."""

    bits: BitsApiConfig = BitsApiConfig()


class EmotesConfig(BaseModel):
    """Emote rendering preference."""

    enable: bool = False


class ChatLogConfig(BaseModel):
    """Raw protocol line log."""

    enable: bool = False
    path: str = ""

    @field_validator("path", mode="before")
    @classmethod
    def _normalize_path(cls, value: Any) -> str:
        return _strip_string(value)


class LoggingConfig(BaseModel):
    """Logging behavior and output destinations."""

    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = "~/.local/state/twitchterm/app.log"

    @field_validator("level", mode="before")
    @classmethod
    def _validate_level(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Logging level must be a string.")
        normalized = value.strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(f"Unsupported log level {normalized!r}.")
        return normalized

    @field_validator("log_file_path", mode="before")
    @classmethod
    def _validate_log_file_path(cls, value: Any) -> str:
        normalized = _strip_string(value)
        if not normalized:
            raise ValueError("log_file_path must not be empty.")
        return normalized


class KeybindsConfig(BaseModel):
    """Keyboard shortcuts; the prompt binds pre-fill a command."""

    quit: str = "ctrl+q"
    find_prompt: str = "ctrl+f"
    join_prompt: str = "ctrl+j"
    config_prompt: str = "ctrl+o"

    @field_validator("*", mode="before")
    @classmethod
    def _validate_keybind(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Keybind must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("Keybind must not be empty.")
        return normalized


class Config(BaseModel):
    """Root configuration model for all sections."""

    model_config = ConfigDict(populate_by_name=True)
    twitch: TwitchConfig = TwitchConfig()
    theme: ThemeConfig = ThemeConfig()
    style: StyleConfig = StyleConfig()
    api: ApiConfig = ApiConfig()
    emotes: EmotesConfig = EmotesConfig()
    chat_log: ChatLogConfig = ChatLogConfig()
    logging: LoggingConfig = LoggingConfig()
    keybinds: KeybindsConfig = KeybindsConfig()

    @model_validator(mode="after")
    def _validate_bits_endpoint(self) -> Config:
        endpoint = self.api.bits.endpoint
        if endpoint and not endpoint.lower().startswith(("http://", "https://")):
            raise ValueError("api.bits.endpoint must use http or https scheme.")
        return self


DEFAULT_CONFIG: dict[str, Any] = Config().model_dump()


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    """Ensure that the config directory exists and return its path."""
    directory = config_dir or CONFIG_DIR
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning("Unable to create config directory %s: %s", directory, exc)
    return directory


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override values onto base values."""
    merged: dict[str, Any] = deepcopy(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _enforce_private_permissions(path: Path) -> None:
    """Best-effort enforcement of private file permissions on POSIX systems."""
    if os.name != "posix" or not path.exists():
        return
    try:
        path.chmod(0o600)
    except OSError as exc:
        LOGGER.warning("Unable to enforce 0600 permissions for %s: %s", path, exc)


def _validate_config(raw: dict[str, Any]) -> Config:
    """Validate merged config and fallback to safe defaults when possible."""
    try:
        return Config.model_validate(raw)
    except ValidationError as exc:
        LOGGER.warning("Configuration validation failed, using safe defaults: %s", exc)
        return Config()
    except Exception as exc:  # noqa: BLE001 - unexpected model construction failure.
        raise ConfigValidationError(f"Unable to validate configuration: {exc}") from exc


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from TOML, merge with defaults, and validate.

    The optional ``config_path`` argument is intended for tests and tooling.
    """
    target_path = config_path or CONFIG_PATH
    ensure_config_dir(target_path.parent)

    raw_data: dict[str, Any] = {}
    if target_path.exists():
        _enforce_private_permissions(target_path)
        try:
            raw_data = tomllib.loads(target_path.read_text(encoding="utf-8"))
        except (
            Exception
        ) as exc:  # noqa: BLE001 - we must not crash on invalid user config.
            LOGGER.warning("Failed to parse config at %s: %s", target_path, exc)
            raw_data = {}

    merged = _deep_merge(DEFAULT_CONFIG, raw_data)
    return _validate_config(merged)


class ConfigStore:
    """Durable, best-effort writer for the TOML config file.

    Each ``update_*`` call re-reads the file with tomlkit so that user comments
    and unknown keys survive, applies the change, and writes it back. Failures
    raise :class:`ConfigPersistError`; callers report them and carry on.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or CONFIG_PATH

    def load(self) -> Config:
        return load_config(self.path)

    def update_tokens(self, oauth: str, refresh: str) -> None:
        self._update({"twitch": {"oauth": oauth, "refresh": refresh}})

    def update_login(self, user: str, oauth: str, refresh: str) -> None:
        self._update({"twitch": {"user": user, "oauth": oauth, "refresh": refresh}})

    def update_channel(self, channel: str) -> None:
        self._update({"twitch": {"channel": channel, "channel_id": ""}})

    def update_channel_id(self, channel_id: str) -> None:
        self._update({"twitch": {"channel_id": channel_id}})

    def update_user_id(self, user_id: str) -> None:
        self._update({"twitch": {"user_id": user_id}})

    def update_client_id(self, client_id: str) -> None:
        self._update({"twitch": {"client_id": client_id}})

    def update_config(self, config: Config) -> None:
        """Write the runtime option sections.

        ``[twitch]`` is left alone; its keys only change through the
        targeted writers above.
        """
        self._update(config.model_dump(exclude={"twitch"}))

    def _read_document(self) -> tomlkit.TOMLDocument:
        if not self.path.exists():
            return tomlkit.document()
        try:
            return tomlkit.parse(self.path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigPersistError(f"failed to read config file: {exc}") from exc
        except Exception as exc:  # noqa: BLE001 - tomlkit raises its own parse errors.
            raise ConfigPersistError(f"failed to parse config file: {exc}") from exc

    def _update(self, changes: dict[str, Any]) -> None:
        document = self._read_document()
        _apply_changes(document, changes)
        twitch_table = document.get("twitch")
        if twitch_table is not None and not str(twitch_table.get("refresh_api", "")).strip():
            twitch_table["refresh_api"] = DEFAULT_REFRESH_API

        ensure_config_dir(self.path.parent)
        try:
            self.path.write_text(tomlkit.dumps(document), encoding="utf-8")
        except OSError as exc:
            raise ConfigPersistError(f"failed to write config file: {exc}") from exc
        _enforce_private_permissions(self.path)
        LOGGER.debug(
            "config.persisted",
            extra={"event": "config.persisted", "sections": sorted(changes)},
        )


def _apply_changes(container: Any, changes: dict[str, Any]) -> None:
    for key, value in changes.items():
        if isinstance(value, dict):
            child = container.get(key)
            if child is None or not hasattr(child, "get"):
                child = tomlkit.table()
                container[key] = child
            _apply_changes(child, value)
        else:
            container[key] = value
