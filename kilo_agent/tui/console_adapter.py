"""TUIConsole — Rich Console compatible adapter that routes output to the Textual RichLog.

Agent output is produced on the worker thread, so every write is posted to the
event loop with ``loop.call_soon_threadsafe`` instead of touching widgets
directly.
"""

from __future__ import annotations

import io
import threading
from typing import TYPE_CHECKING, Any, Optional

from rich.console import Console
from rich.text import Text

if TYPE_CHECKING:
    from .app import KiloApp


def _post_to_app(app: "KiloApp", callback, *args) -> None:
    """Schedule *callback* on the Textual event-loop thread without blocking.

    Calls directly when already on the loop thread or when the loop is not
    running yet.
    """
    try:
        if app._thread_id == threading.get_ident():
            callback(*args)
        else:
            app._loop.call_soon_threadsafe(callback, *args)
    except (RuntimeError, AttributeError):
        callback(*args)


class TUIConsole:
    """Drop-in for the subset of ``rich.Console`` the agent uses.

    * ``print()``                     → blank line
    * ``print(renderable)``           → written as is
    * ``print("[markup]s[/]")``       → Text.from_markup
    * everything else                 → rendered to ANSI, then Text.from_ansi
    """

    _is_tui = True

    def __init__(self, app: "KiloApp"):
        self._app = app
        self._inner: Optional[Console] = None
        self._render_buf: Optional[io.StringIO] = None

    def print(self, *objects: Any, **kwargs: Any) -> None:  # noqa: A003
        if not objects:
            _post_to_app(self._app, self._write_and_scroll, Text(""))
            return

        end = kwargs.get("end", "\n")
        style = kwargs.get("style")

        if len(objects) == 1 and end == "\n" and not style:
            obj = objects[0]
            if not isinstance(obj, str):
                _post_to_app(self._app, self._write_and_scroll, obj)
                return
            if kwargs.get("markup", True):
                if not obj.strip():
                    _post_to_app(self._app, self._write_and_scroll, Text(""))
                    return
                _post_to_app(self._app, self._write_and_scroll, Text.from_markup(obj.strip("\n")))
                return

        self._ensure_inner()
        self._render_buf.truncate(0)
        self._render_buf.seek(0)
        self._inner.print(*objects, **kwargs)
        rendered = self._render_buf.getvalue()
        _post_to_app(self._app, self._write_and_scroll, Text.from_ansi(rendered.rstrip("\n")))

    @property
    def width(self) -> int:
        if self._inner is not None:
            return self._inner.width
        return 120

    def _ensure_inner(self) -> None:
        if self._inner is None:
            self._render_buf = io.StringIO()
            self._inner = Console(
                file=self._render_buf,
                force_terminal=True,
                width=120,
                color_system="truecolor",
            )

    def _write_and_scroll(self, content) -> None:
        """Runs on the Textual main thread."""
        log = self._app.query_one("#messages")
        log.write(content)
        log.scroll_end(animate=False)
