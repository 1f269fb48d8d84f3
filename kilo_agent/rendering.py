"""Terminal rendering for exchanges, tool activity and failures."""

import json
from typing import Optional, Tuple

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .errors import (
    AgentError,
    ExchangeTimeoutError,
    GatewayError,
    IterationLimitError,
    ProtocolError,
)
from .transcript import AssistantText, AssistantToolRequest, ToolResult, Transcript, UserText

__all__ = [
    "render_banner", "render_user_message", "render_tool_call", "render_tool_result",
    "render_answer", "render_failure", "render_transcript", "render_config", "describe_failure",
]

# ── Palette ──
HOT_PINK = "#FF10F0"
CYAN = "#00FFFF"
PURPLE = "#B026FF"
ORANGE = "#FF6D00"
TEXT = "#FAFAFA"
DIM = "#666666"
ERROR = "#F85149"
WARN = "#E3B341"
THINKING = PURPLE

LOGO = (
    "█▄▀ █ █   ▄▀▄",
    "█ █ █ █▄▄ ▀▄▀",
)

RESULT_PREVIEW_LINES = 12


def render_banner(console: Console, tagline: str = "AI Support Agent"):
    width = len(LOGO[0])
    console.print(f"[{PURPLE}]{'▬' * width}[/{PURPLE}]")
    console.print(f"[bold {HOT_PINK}]{LOGO[0]}[/bold {HOT_PINK}]")
    console.print(f"[bold {CYAN}]{LOGO[1]}[/bold {CYAN}]")
    console.print(f"[{PURPLE}]{'▬' * width}[/{PURPLE}]")
    console.print(f"[bold italic {ORANGE}]  {tagline}[/bold italic {ORANGE}]")


def render_user_message(console: Console, content: str):
    text = Text()
    text.append("You: ", style=f"bold {CYAN}")
    text.append(content, style=TEXT)
    console.print(text)


def _request_detail(request: AssistantToolRequest) -> str:
    try:
        args = json.loads(request.arguments_json or "{}")
    except json.JSONDecodeError:
        return request.arguments_json
    if isinstance(args, dict) and "command" in args:
        return str(args["command"])
    return "" if args in ({}, None) else request.arguments_json


def render_tool_call(console: Console, request: AssistantToolRequest,
                     index: Optional[int] = None, total: Optional[int] = None):
    detail = _request_detail(request)
    progress = f"[{DIM}]{index}/{total}[/{DIM}] " if total and total > 1 else ""
    icon = "$" if request.tool_name in ("bash", "nvidia_smi") else "·"
    console.print(
        f"\n  {progress}[{HOT_PINK}]{icon}[/{HOT_PINK}] [bold {TEXT}]{request.tool_name}[/bold {TEXT}] "
        f"[{DIM}]{escape(detail)}[/{DIM}]",
        highlight=False,
    )

    # TUI mode: update activity bar with current tool
    if getattr(console, "_is_tui", False):
        console._app.set_activity_tool(request.tool_name, detail)


def render_tool_result(console: Console, name: str, outcome):
    time_str = f" [{DIM}]({outcome.elapsed:.1f}s)[/{DIM}]" if outcome.elapsed >= 0.1 else ""
    lines = outcome.content.splitlines() or [""]
    if len(lines) > RESULT_PREVIEW_LINES:
        lines = lines[:RESULT_PREVIEW_LINES] + [f"... ({len(lines) - RESULT_PREVIEW_LINES} more lines)"]
    color = ERROR if outcome.error is not None else DIM

    body = Text()
    for i, line in enumerate(lines):
        if i:
            body.append("\n")
        body.append(f"     {line}", style=color)
    console.print(body)
    if outcome.truncated:
        console.print(f"     [{WARN}]output truncated before sending to the model[/{WARN}]")
    if time_str:
        console.print(f"    {time_str}")


def render_answer(console: Console, content: str):
    console.print()
    console.print(Panel(
        Markdown(content),
        title=f"[bold {HOT_PINK}]Kilo[/bold {HOT_PINK}]",
        title_align="left",
        border_style=PURPLE,
        padding=(0, 2),
    ))


def describe_failure(error: Optional[AgentError]) -> Tuple[str, str]:
    """Return a (label, message) pair; each failure class gets its own label."""
    if isinstance(error, IterationLimitError):
        return "Too many tool iterations", str(error)
    if isinstance(error, ExchangeTimeoutError):
        return "Timed out", str(error)
    if isinstance(error, ProtocolError):
        return "Protocol error", str(error)
    if isinstance(error, GatewayError):
        return "Connection error", str(error)
    return "Error", str(error) if error is not None else "unknown failure"


def render_failure(console: Console, error: Optional[AgentError]):
    label, message = describe_failure(error)
    console.print()
    console.print(Panel(
        Text(message, style=ERROR),
        title=f"[bold {ERROR}]{label}[/bold {ERROR}]",
        title_align="left",
        border_style=ERROR,
        padding=(0, 2),
    ))


def render_transcript(console: Console, transcript: Transcript):
    """Print a whole transcript, e.g. after a failed exchange."""
    for turn in transcript:
        if isinstance(turn, UserText):
            render_user_message(console, turn.content)
        elif isinstance(turn, AssistantText):
            console.print(Text.assemble(("Kilo: ", f"bold {HOT_PINK}"), (turn.content, TEXT)))
        elif isinstance(turn, AssistantToolRequest):
            render_tool_call(console, turn)
        elif isinstance(turn, ToolResult):
            console.print(Text(f"Tool output:\n{turn.content}", style=f"italic {DIM}"))


def render_config(console: Console, summary: dict, title: str = "Configuration"):
    table = Table(show_header=False, padding=(0, 2), box=None)
    table.add_column("Key", style=f"bold {CYAN}", min_width=14)
    table.add_column("Value", style=TEXT)
    for key, value in summary.items():
        table.add_row(key, str(value))
    console.print(Panel(table, title=f"[bold {HOT_PINK}] {title} [/bold {HOT_PINK}]",
                        title_align="left", border_style=PURPLE, padding=(0, 1)))
