"""KiloApp — Textual fullscreen TUI for kilo."""

from __future__ import annotations

import traceback
from typing import Any, Optional

from textual.app import App, ComposeResult
from textual.widgets import RichLog
from textual.worker import Worker, WorkerState
from rich.markup import escape

from ..errors import AgentError
from ..rendering import DIM, ERROR, render_banner, render_user_message
from .console_adapter import TUIConsole
from .widgets import ActivityBar, ChatInput, StatusBar


class KiloApp(App):
    """Fullscreen TUI for kilo.

    Layout:
        RichLog       — scrollable message area
        ActivityBar   — "Kilo is thinking..." / current tool (hidden when idle)
        StatusBar     — model and message count
        ChatInput     — single-line input
    """

    CSS = """
    Screen {
        layout: vertical;
        background: #0D0D0D;
    }
    #messages {
        height: 1fr;
        padding: 0 1;
        scrollbar-size-vertical: 1;
    }
    #activity {
        height: 1;
        display: none;
    }
    #statusbar {
        height: 1;
        background: #1A1A1A;
    }
    #input {
        border: tall #B026FF;
    }
    """
    TITLE = "kilo"
    ENABLE_COMMAND_PALETTE = False

    BINDINGS = [
        ("ctrl+c", "quit_app", "Quit"),
        ("escape", "quit_app", "Quit"),
    ]

    def __init__(self, agent: Any, config: Any, **kwargs: Any):
        super().__init__(**kwargs)
        self.agent = agent
        self.config = config
        self._tui_console: Optional[TUIConsole] = None
        self._current_worker: Optional[Worker] = None

    def compose(self) -> ComposeResult:
        yield RichLog(id="messages", highlight=False, markup=True, wrap=True)
        yield ActivityBar(id="activity")
        yield StatusBar(id="statusbar")
        yield ChatInput(id="input")

    def on_mount(self) -> None:
        self._tui_console = TUIConsole(self)

        # Inject TUI console into agent module
        from .. import agent as agent_mod

        agent_mod.console = self._tui_console

        render_banner(self._tui_console)
        self._tui_console.print()
        self._update_status()
        self.query_one("#input", ChatInput).focus()

    # ── Input handling ─────────────────────────────────────

    def on_chat_input_submitted(self, event: ChatInput.Submitted) -> None:
        user_input = event.value.strip()
        if not user_input or self._current_worker is not None:
            return

        render_user_message(self._tui_console, user_input)
        self._run_chat(user_input)

    def _run_chat(self, user_input: str) -> None:
        """Launch agent.chat() in a background thread."""
        inp = self.query_one("#input", ChatInput)
        inp.disabled = True
        self.query_one("#activity", ActivityBar).set_thinking()
        self.query_one("#statusbar", StatusBar).busy = True

        self._current_worker = self.run_worker(
            lambda: self._chat_worker(user_input),
            thread=True,
            name="agent_chat",
        )

    def _chat_worker(self, user_input: str) -> None:
        """Runs in a background thread and calls agent.chat()."""
        try:
            self.agent.chat(user_input)
        except AgentError as error:
            self._tui_console.print(f"[{ERROR}]  {escape(str(error))}[/{ERROR}]")
        except Exception as error:
            self._tui_console.print(f"[{ERROR}]  Error: {escape(str(error))}[/{ERROR}]")
            if self.config.verbose:
                self._tui_console.print(f"[{DIM}]{escape(traceback.format_exc())}[/{DIM}]")

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if event.worker.name == "agent_chat" and event.state in (
            WorkerState.SUCCESS,
            WorkerState.ERROR,
            WorkerState.CANCELLED,
        ):
            self._on_chat_complete()

    def _on_chat_complete(self) -> None:
        """Re-enable input after the exchange finishes."""
        inp = self.query_one("#input", ChatInput)
        inp.disabled = False
        inp.focus()
        self.query_one("#activity", ActivityBar).clear()
        self._current_worker = None
        self._update_status()

    # ── Status bar ─────────────────────────────────────────

    def _update_status(self) -> None:
        statusbar = self.query_one("#statusbar", StatusBar)
        statusbar.model_name = self.config.active_model or "?"
        statusbar.message_count = len(self.agent.transcript)
        statusbar.busy = self._current_worker is not None

    # ── Activity bar (thread-safe, called from agent thread) ──

    def set_activity_tool(self, tool_name: str, detail: str = "") -> None:
        try:
            self._loop.call_soon_threadsafe(
                lambda n=tool_name, d=detail: self.query_one("#activity", ActivityBar).set_tool(n, d)
            )
        except (RuntimeError, AttributeError):
            pass

    def set_activity_thinking(self) -> None:
        try:
            self._loop.call_soon_threadsafe(
                lambda: self.query_one("#activity", ActivityBar).set_thinking()
            )
        except (RuntimeError, AttributeError):
            pass

    # ── Key bindings ───────────────────────────────────────

    def action_quit_app(self) -> None:
        """Ctrl+C / Esc: end the session.

        An in-flight worker thread cannot be interrupted; its tool subprocess
        is bounded by the tool timeout.
        """
        if self._current_worker is not None:
            self._current_worker.cancel()
        self.exit()
