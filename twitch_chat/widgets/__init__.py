"""Widget exports for the twitch_chat UI."""

from .chat_view import ChatView, render_message
from .footer_bar import FooterBar, build_footer
from .header_bar import HeaderBar, build_header

__all__ = [
    "ChatView",
    "FooterBar",
    "HeaderBar",
    "build_footer",
    "build_header",
    "render_message",
]
