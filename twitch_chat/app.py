"""Main Textual application for Twitch chat."""

from __future__ import annotations

from datetime import datetime
import logging
from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Input

from .commands import CommandContext, CommandInterpreter, FollowUp
from .config import ConfigStore
from .exceptions import TwitchChatError
from .logging_utils import configure_logging
from .models import ChatMessage, system_message
from .session import SessionManager
from .state import AppState, InputMode, InputRouter, RouteKind
from .task_manager import TaskManager
from .widgets.chat_view import ChatView
from .widgets.footer_bar import MAX_INPUT_LENGTH, FooterBar
from .widgets.header_bar import HeaderBar, build_header

LOGGER = logging.getLogger(__name__)

CHANNEL_PLACEHOLDER = "Enter channel"
CHAT_PLACEHOLDER = "Send a message..."


class TwitchChatApp(App[None]):
    """Terminal chat client for a single Twitch channel."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #chat_view {
        height: 1fr;
        padding: 0 1;
        scrollbar-size-vertical: 1;
    }

    #message_input {
        border: none;
        height: 1;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", show=False, priority=True, id="quit"),
        Binding("ctrl+f", "find_prompt", "Find", priority=True, id="find_prompt"),
        Binding("ctrl+j", "join_prompt", "Join", priority=True, id="join_prompt"),
        Binding("ctrl+o", "config_prompt", "Config", priority=True, id="config_prompt"),
    ]

    PROMPT_PREFIXES: dict[str, str] = {
        "find_prompt": ":find ",
        "join_prompt": ":join ",
        "config_prompt": ":config ",
    }

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        store: ConfigStore | None = None,
        session: SessionManager | None = None,
    ) -> None:
        self.store = store or ConfigStore(config_path)
        self.config = self.store.load()
        configure_logging(self.config.logging.model_dump())
        self.session = session or SessionManager(self.config, config_store=self.store)
        self.app_state = AppState.initial(self.session.session.channel)
        self.router = InputRouter(self.app_state)
        self.command_context = CommandContext(
            session=self.session,
            state=self.app_state,
            config=self.config,
            store=self.store,
            report=self._report_local,
        )
        self.interpreter = CommandInterpreter(self.command_context)
        self._tasks = TaskManager()
        super().__init__()
        # Binding ids match the [keybinds] option names.
        self.set_keymap(self.config.keybinds.model_dump())

    def compose(self) -> ComposeResult:
        yield HeaderBar(id="header_bar")
        yield ChatView(self.config.theme, self.config.style, id="chat_view")
        yield FooterBar(id="footer_bar")
        yield Input(
            placeholder=self._placeholder(),
            max_length=MAX_INPUT_LENGTH,
            id="message_input",
        )

    async def on_mount(self) -> None:
        self._w_input = self.query_one("#message_input", Input)
        self._w_chat = self.query_one("#chat_view", ChatView)
        self._w_header = self.query_one("#header_bar", HeaderBar)
        self._w_footer = self.query_one("#footer_bar", FooterBar)
        self._w_input.focus()

        self._tasks.spawn(self._consume_messages(), name="messages")
        self._tasks.spawn(self._consume_status(), name="status")
        self.set_interval(1.0, self._refresh_header)
        self._refresh_header()
        self._refresh_footer()
        LOGGER.info(
            "app.mount",
            extra={"event": "app.mount", "mode": self.app_state.mode.value},
        )

        if self.app_state.mode is InputMode.CHATTING:
            self._connect()

    async def on_unmount(self) -> None:
        await self._tasks.cancel_all()
        await self.session.close()

    # -- streams --------------------------------------------------------

    async def _consume_messages(self) -> None:
        while True:
            message = await self.session.messages.get()
            self._show(message)

    async def _consume_status(self) -> None:
        while True:
            event = await self.session.status.get()
            if event.text:
                self._show(system_message(event.text))
            if event.update is not None:
                self.session.apply(event.update)
            self._refresh_header()

    def _show(self, message: ChatMessage) -> None:
        self.app_state.append(message)
        if self.app_state.matches(message):
            self._w_chat.add_message(message)

    def _report_local(self, text: str) -> None:
        self._show(system_message(text))

    def _connect(self) -> None:
        try:
            self.session.connect()
        except TwitchChatError as exc:
            self._report_local(f"Connection error: {exc}")

    # -- input ----------------------------------------------------------

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id != "message_input":
            return
        self.router.on_change(event.value)
        self._refresh_footer()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "message_input":
            return
        route = self.router.submit(event.value)
        if route.kind is RouteKind.NONE:
            return
        event.input.value = ""

        if route.kind is RouteKind.SEND:
            try:
                echo = self.session.send(route.value)
            except TwitchChatError as exc:
                self._report_local(f"Send failed: {exc}")
            else:
                self._show(echo)
        elif route.kind is RouteKind.JOIN:
            self._after_command(self.interpreter.run("join", [route.value]))
        else:
            self._after_command(self.interpreter.execute(route.value))
        self._refresh_footer()

    def _after_command(self, follow_up: FollowUp | None) -> None:
        if self.command_context.config is not self.config:
            self.config = self.command_context.config
            self._w_chat.set_theme(self.config.theme, self.config.style)
        if follow_up is FollowUp.QUIT:
            self.exit()
            return
        if follow_up is FollowUp.CONNECT:
            self._connect()
            self.router.channel_joined()
        self._w_chat.rebuild(self.app_state.visible_messages())
        self._w_input.placeholder = self._placeholder()
        self._refresh_header()

    # -- chrome ---------------------------------------------------------

    def _placeholder(self) -> str:
        if self.app_state.mode is InputMode.AWAITING_CHANNEL:
            return CHANNEL_PLACEHOLDER
        return CHAT_PLACEHOLDER

    def _refresh_header(self) -> None:
        session = self.session.session
        self._w_header.set_line(
            build_header(
                self.config.theme,
                self.config.style,
                now=datetime.now(),
                channel=session.channel,
                channel_id=session.channel_id,
                user=session.user,
                user_id=session.user_id,
                find=self.app_state.filter,
            )
        )

    def _refresh_footer(self) -> None:
        self._w_footer.set_status(
            self.config.theme, self.app_state.mode, len(self._w_input.value)
        )

    # -- actions --------------------------------------------------------

    async def action_quit(self) -> None:
        self.exit()

    def _prefill(self, action: str) -> None:
        if not self.router.prompt():
            return
        prefix = self.PROMPT_PREFIXES[action]
        self._w_input.value = prefix
        self._w_input.cursor_position = len(prefix)
        self._w_input.focus()
        self._refresh_footer()

    def action_find_prompt(self) -> None:
        self._prefill("find_prompt")

    def action_join_prompt(self) -> None:
        self._prefill("join_prompt")

    def action_config_prompt(self) -> None:
        self._prefill("config_prompt")
