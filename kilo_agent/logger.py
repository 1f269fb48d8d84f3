"""Logging for kilo-agent.

Every record carries the id of the exchange it was emitted from, so a log
file with several interleaved sessions can still be read one exchange at a
time::

    2025-10-18 14:23:45 [INFO] kilo_agent.agent ex=3: Exchange done after 1 tool iteration(s)

Records emitted outside an exchange show ``ex=-``.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, Union

__all__ = ["setup_logger", "get_logger", "exchange_context", "current_exchange"]

ROOT_LOGGER = "kilo_agent"
DEFAULT_LOG_FILE = Path("~/.kilo/logs/kilo.log").expanduser()
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s ex=%(exchange)s: %(message)s"
STDERR_FORMAT = "[%(levelname).1s] %(message)s"

_exchange_id: contextvars.ContextVar[str] = contextvars.ContextVar("kilo_exchange", default="-")


@contextmanager
def exchange_context(exchange_id) -> Iterator[None]:
    """Tag every record logged inside the block with ``exchange_id``."""
    token = _exchange_id.set(str(exchange_id))
    try:
        yield
    finally:
        _exchange_id.reset(token)


def current_exchange() -> str:
    return _exchange_id.get()


class _ExchangeFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.exchange = _exchange_id.get()
        return True


def setup_logger(
    name: str = ROOT_LOGGER,
    verbose: bool = False,
    log_file: Union[str, Path, bool, None] = None,
    console: bool = True,
) -> logging.Logger:
    """Configure the package logger. Safe to call again; old handlers are closed.

    ``log_file`` is ``None``/``True`` for ``~/.kilo/logs/kilo.log``, ``False``
    for no file, or a path. The file always records DEBUG and up so a failed
    exchange can be reconstructed; ``verbose`` only raises what reaches stderr.

    ``console=False`` is for the fullscreen TUI: any stray write to the
    terminal would corrupt the screen, so nothing goes to stderr at all.
    """
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False
    logger.setLevel(logging.DEBUG)

    context = _ExchangeFilter()

    if console:
        stderr_handler = logging.StreamHandler()
        stderr_handler.setLevel(logging.INFO if verbose else logging.WARNING)
        stderr_handler.setFormatter(logging.Formatter(STDERR_FORMAT))
        logger.addHandler(stderr_handler)

    log_path = _resolve_log_path(log_file)
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path, maxBytes=2 * 1024 * 1024, backupCount=3, encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.addFilter(context)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    # litellm logs every request at INFO; only its warnings are interesting.
    for noisy in ("litellm", "LiteLLM", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _resolve_log_path(log_file: Union[str, Path, bool, None]) -> Path | None:
    if log_file is False:
        return None
    if log_file is None or log_file is True:
        return DEFAULT_LOG_FILE
    return Path(log_file).expanduser()
