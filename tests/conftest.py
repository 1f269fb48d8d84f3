"""Shared fixtures for kilo-agent tests."""

import os
from unittest.mock import MagicMock

import pytest

from kilo_agent.errors import CommandFailedError, ShellTimeoutError
from kilo_agent.tools.registry import ToolRegistry, ToolSpec, _S


@pytest.fixture
def tmp_dir(tmp_path):
    """Provide a temporary directory and cd into it."""
    orig = os.getcwd()
    os.chdir(tmp_path)
    yield tmp_path
    os.chdir(orig)


@pytest.fixture
def isolated_config(tmp_dir, monkeypatch):
    """Point the global config location at a temp dir and clear KILO_* env vars."""
    import kilo_agent.config as config_mod

    home = tmp_dir / "home" / ".kilo"
    monkeypatch.setattr(config_mod, "CONFIG_DIR", home)
    monkeypatch.setattr(config_mod, "CONFIG_FILE", home / "config.yml")
    for var in ("KILO_MODEL", "KILO_VERBOSE", "KILO_MAX_ITERATIONS"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def mock_console():
    """A mock Rich Console that silently accepts all print calls."""
    c = MagicMock()
    c.print = MagicMock()
    c._is_tui = False
    return c


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def echo_registry():
    """Registry of in-process tools, so loop tests never spawn processes.

    ``calls`` records every executed (name, arguments) pair in order.
    """
    registry = ToolRegistry()
    registry.calls = []

    def echo(arguments, timeout):
        registry.calls.append(("echo", arguments))
        return f"echo:{arguments['text']}"

    def fail(arguments, timeout):
        registry.calls.append(("fail", arguments))
        raise CommandFailedError("exit status 2", "boom")

    def slow(arguments, timeout):
        registry.calls.append(("slow", arguments))
        raise ShellTimeoutError(timeout)

    def flood(arguments, timeout):
        registry.calls.append(("flood", arguments))
        return "x" * 20000

    registry.register("echo", echo, ToolSpec(
        name="echo", description="Echo text back",
        parameters={"text": _S("Text to echo")}, required=("text",),
    ))
    registry.register("fail", fail, ToolSpec(name="fail", description="Always fails"))
    registry.register("slow", slow, ToolSpec(name="slow", description="Always times out"))
    registry.register("flood", flood, ToolSpec(name="flood", description="Huge output"))
    return registry
