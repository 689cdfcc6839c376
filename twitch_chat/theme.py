"""Accent palette helpers used for author, mention, and highlight colors."""

from __future__ import annotations

import random

from .config import ThemeConfig

# Fourteen named accents eligible for random assignment.
ACCENT_NAMES: tuple[str, ...] = (
    "lavender",
    "blue",
    "sapphire",
    "sky",
    "teal",
    "green",
    "yellow",
    "peach",
    "maroon",
    "red",
    "mauve",
    "pink",
    "flamingo",
    "rosewater",
)


def accent_palette(theme: ThemeConfig) -> list[str]:
    """Return the theme's accent colors in palette order."""
    return [getattr(theme, name) for name in ACCENT_NAMES]


def pick_accent(theme: ThemeConfig, rng: random.Random | None = None) -> str:
    """Fallback color: a uniform choice over the accent palette."""
    chooser = rng or random
    return chooser.choice(accent_palette(theme))
