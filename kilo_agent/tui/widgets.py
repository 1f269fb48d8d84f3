"""Custom Textual widgets for the Kilo TUI."""

from __future__ import annotations

from textual.message import Message
from textual.reactive import reactive
from textual.widgets import Input, Static
from rich.text import Text

from ..rendering import CYAN, DIM, HOT_PINK, PURPLE, TEXT


class StatusBar(Static):
    """Single-line bar at the bottom: model and message count."""

    model_name = reactive("")
    message_count = reactive(0)
    busy = reactive(False)

    def render(self) -> Text:
        parts = Text()
        parts.append(" model:", style=DIM)
        parts.append(f"{self.model_name} ", style=f"{CYAN} bold")
        parts.append(" messages:", style=DIM)
        parts.append(f"{self.message_count} ", style=TEXT)
        if self.busy:
            parts.append(" working", style=PURPLE)
        return parts


class ActivityBar(Static):
    """Activity indicator shown above the input while an exchange runs.

    Hidden when idle.  Updated from the worker thread through
    ``app.set_activity_thinking()`` / ``app.set_activity_tool()``.
    """

    TOOL_LABELS = {"bash": "Bash", "nvidia_smi": "GPU", "get_time": "Time"}

    activity_text = reactive("")

    def render(self) -> Text:
        if not self.activity_text:
            return Text("")
        t = Text()
        t.append(" ● ", style=f"bold {HOT_PINK}")
        t.append(self.activity_text, style=PURPLE)
        return t

    def watch_activity_text(self, value: str) -> None:
        self.display = bool(value)

    def set_tool(self, tool_name: str, detail: str = "") -> None:
        label = self.TOOL_LABELS.get(tool_name, tool_name)
        if detail:
            if len(detail) > 60:
                detail = detail[:57] + "..."
            self.activity_text = f"{label}  {detail}"
        else:
            self.activity_text = label

    def set_thinking(self) -> None:
        self.activity_text = "Kilo is thinking..."

    def clear(self) -> None:
        self.activity_text = ""


class ChatInput(Input):
    """Single-line input with history. Enter submits, Up/Down walk history."""

    class Submitted(Message):
        def __init__(self, value: str) -> None:
            super().__init__()
            self.value = value

    def __init__(self, **kwargs):
        super().__init__(placeholder="Ask Kilo something...", **kwargs)
        self._history: list[str] = []
        self._history_idx = -1
        self._draft = ""

    def on_key(self, event) -> None:
        if event.key == "up" and self._history:
            event.prevent_default()
            event.stop()
            if self._history_idx == -1:
                self._draft = self.value
            self._history_idx = min(self._history_idx + 1, len(self._history) - 1)
            self.value = self._history[self._history_idx]
            self.cursor_position = len(self.value)
        elif event.key == "down":
            event.prevent_default()
            event.stop()
            if self._history_idx > 0:
                self._history_idx -= 1
                self.value = self._history[self._history_idx]
            elif self._history_idx == 0:
                self._history_idx = -1
                self.value = self._draft
            self.cursor_position = len(self.value)

    def action_submit(self) -> None:
        value = self.value.strip()
        if value:
            self._history.insert(0, value)
            del self._history[200:]
        self._history_idx = -1
        self._draft = ""
        self.post_message(self.Submitted(value))
        self.value = ""
