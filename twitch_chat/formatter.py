"""Classify raw chat events into normalized :class:`ChatMessage` records."""

from __future__ import annotations

from collections.abc import Callable
import random

from .config import BitsApiConfig, Config, ThemeConfig
from .models import ChatMessage, Flare, Mention, PrivateMessage, UserNotice
from .theme import pick_accent

# Notice subtypes that surface as SYSTEM lines; everything else is dropped.
SYSTEM_NOTICE_IDS = frozenset(
    {
        "sub",
        "resub",
        "subgift",
        "anonsubgift",
        "submysterygift",
        "giftpaidupgrade",
        "anongiftpaidupgrade",
        "shoutout-received",
        "shoutout-sent",
    }
)

MENTION_TRAILING_PUNCTUATION = ",.:;!?"

# endpoint, author, text, author color
BitsCallback = Callable[[str, str, str, str], None]


def resolve_flare(message: PrivateMessage) -> Flare:
    """Redemption beats moderator/broadcaster, which beats VIP."""
    if message.custom_reward_id:
        return Flare.REDEEM
    badges = message.user.badges
    if "broadcaster" in badges or "moderator" in badges:
        return Flare.MOD
    if "vip" in badges:
        return Flare.VIP
    return Flare.NONE


def extract_mentions(text: str, color_fn: Callable[[], str]) -> tuple[Mention, ...]:
    """Return distinct ``@login`` mentions in first-occurrence order.

    ``color_fn`` is called once per distinct login.
    """
    mentions: list[Mention] = []
    seen: set[str] = set()
    for word in text.split():
        if not word.startswith("@"):
            continue
        login = word[1:].rstrip(MENTION_TRAILING_PUNCTUATION)
        if not login or login in seen:
            continue
        seen.add(login)
        mentions.append(Mention(login=login, color=color_fn()))
    return tuple(mentions)


class MessageFormatter:
    """Turn protocol events into display-ready messages.

    Pure apart from random color choice and the optional bits webhook, which
    is handed off to ``on_bits`` and never awaited.
    """

    def __init__(
        self,
        theme: ThemeConfig,
        bits_api: BitsApiConfig,
        *,
        on_bits: BitsCallback | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.theme = theme
        self.bits_api = bits_api
        self._on_bits = on_bits
        self._rng = rng or random.Random()

    def update_config(self, config: Config) -> None:
        self.theme = config.theme
        self.bits_api = config.api.bits

    def random_color(self) -> str:
        return pick_accent(self.theme, self._rng)

    def format_private_message(self, message: PrivateMessage) -> ChatMessage:
        flare = resolve_flare(message)
        mentions = extract_mentions(message.message, self.random_color)
        author_color = message.user.color or self.random_color()
        highlight, prepend = self._resolve_decoration(message, author_color)
        return ChatMessage(
            timestamp=message.timestamp,
            author=message.user.name,
            content=message.message,
            flare=flare,
            author_color=author_color,
            mentions=mentions,
            bits=message.bits,
            highlight=highlight,
            prepend=prepend,
            channel=message.channel,
        )

    def format_user_notice(self, notice: UserNotice) -> ChatMessage | None:
        """Return a SYSTEM message for interesting notices, else ``None``."""
        if notice.msg_id not in SYSTEM_NOTICE_IDS:
            return None

        author_color = notice.user.color or self.random_color()
        content = notice.system_msg
        highlight: str | None = None
        if notice.message:
            content += ": " + notice.message
            highlight = self.random_color()

        return ChatMessage(
            timestamp=notice.timestamp,
            author="SYSTEM",
            content=content,
            flare=Flare.SYSTEM,
            author_color=author_color,
            highlight=highlight,
            channel=notice.channel,
        )

    def _resolve_decoration(
        self, message: PrivateMessage, author_color: str
    ) -> tuple[str | None, str | None]:
        if message.bits > 0:
            self._maybe_forward_bits(message, author_color)
            return self.random_color(), f"- Cheer{message.bits} -"
        if message.first_message:
            return None, "- First -"
        if message.tags.get("msg-id") == "highlighted-message":
            return self.random_color(), None
        return None, None

    def _maybe_forward_bits(self, message: PrivateMessage, author_color: str) -> None:
        bits_api = self.bits_api
        if self._on_bits is None or not bits_api.enable or not bits_api.endpoint:
            return
        if message.bits < bits_api.bits_amount:
            return
        self._on_bits(bits_api.endpoint, message.user.name, message.message, author_color)
