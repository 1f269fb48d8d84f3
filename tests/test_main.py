"""CLI tests via click's CliRunner with the model gateway stubbed out."""

import io

import pytest
import yaml
from click.testing import CliRunner
from rich.console import Console

from kilo_agent import __version__
from kilo_agent import main as main_mod
from kilo_agent.agent import Agent
from kilo_agent.errors import GatewayError
from kilo_agent.llm import GatewayResponse, ToolRequest
from kilo_agent.tools import build_default_registry


class ScriptedGateway:
    script = []
    instances = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self._responses = list(self.script)
        ScriptedGateway.instances.append(self)

    def complete(self, transcript, specs, timeout=None):
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def cli_env(isolated_config, monkeypatch):
    ScriptedGateway.instances = []
    monkeypatch.setattr(main_mod, "ModelGateway", ScriptedGateway)
    monkeypatch.setattr(main_mod, "setup_logger", lambda *args, **kwargs: None)
    return isolated_config


def test_ask_prints_answer(cli_env, monkeypatch):
    monkeypatch.setattr(ScriptedGateway, "script", [GatewayResponse(content="It is noon.")])

    result = CliRunner().invoke(main_mod.cli, ["ask", "what", "time"])

    assert result.exit_code == 0, result.output
    assert "It is noon." in result.output


def test_ask_runs_tools(cli_env, monkeypatch):
    monkeypatch.setattr(ScriptedGateway, "script", [
        GatewayResponse(tool_requests=[ToolRequest("c1", "bash", '{"command": "echo kilo-test"}')]),
        GatewayResponse(content="Printed it."),
    ])

    result = CliRunner().invoke(main_mod.cli, ["ask", "echo"])

    assert result.exit_code == 0, result.output
    assert "kilo-test" in result.output
    assert "Printed it." in result.output


def test_ask_failure_exit_code(cli_env, monkeypatch):
    monkeypatch.setattr(ScriptedGateway, "script", [GatewayError("connection refused")])

    result = CliRunner().invoke(main_mod.cli, ["ask", "hello"])

    assert result.exit_code == 1
    assert "Connection error" in result.output


def test_ask_model_override(cli_env, monkeypatch):
    monkeypatch.setattr(ScriptedGateway, "script", [GatewayResponse(content="ok")])

    CliRunner().invoke(main_mod.cli, ["ask", "--model", "openai/gpt-4o", "hi"])

    assert ScriptedGateway.instances[0].kwargs["model"] == "openai/gpt-4o"


def test_config_shows_summary(cli_env):
    result = CliRunner().invoke(main_mod.cli, ["config"])

    assert result.exit_code == 0
    assert "Configuration" in result.output
    assert "claude-sonnet" in result.output


def test_config_init_writes_file(cli_env):
    result = CliRunner().invoke(main_mod.cli, ["config", "--init"])

    assert result.exit_code == 0
    data = yaml.safe_load((cli_env / "config.yml").read_text())
    assert data["max-iterations"] == 5
    assert "claude-sonnet" in data["models"]


def test_apply_overrides():
    config = main_mod.Config()
    config.models = main_mod.Config.get_default_presets()

    preset = main_mod._apply_overrides(config, model="local", api_base="http://gpu-box:8000/v1",
                                       max_iterations=2, verbose=True)

    assert config.active_model == "local"
    assert preset.api_base == "http://gpu-box:8000/v1"
    assert config.max_iterations == 2
    assert config.verbose is True


def test_version():
    result = CliRunner().invoke(main_mod.cli, ["--version"])

    assert __version__ in result.output


class TestReplCommands:
    @pytest.fixture
    def repl(self, monkeypatch):
        out = Console(file=io.StringIO(), width=100)
        monkeypatch.setattr(main_mod, "console", out)
        monkeypatch.setattr(ScriptedGateway, "script", [
            GatewayResponse(tool_requests=[ToolRequest("t1", "get_time", "{}")]),
            GatewayResponse(content="It is noon."),
        ])
        agent = Agent(ScriptedGateway(), build_default_registry(), quiet=True)
        return agent, out

    def test_history_shows_transcript(self, repl):
        agent, out = repl
        agent.chat("what time is it?")

        assert main_mod._handle_command(agent, "/history") is True

        text = out.file.getvalue()
        assert "You: what time is it?" in text
        assert "get_time" in text
        assert "Kilo: It is noon." in text

    def test_stats_and_reset(self, repl):
        agent, out = repl
        agent.chat("what time is it?")

        main_mod._handle_command(agent, "/stats")
        assert "Session" in out.file.getvalue()

        main_mod._handle_command(agent, "/reset")
        assert len(agent.transcript) == 0
        main_mod._handle_command(agent, "/history")
        assert "No messages yet." in out.file.getvalue()

    def test_quit_and_unknown(self, repl):
        agent, out = repl

        assert main_mod._handle_command(agent, "/quit") is False
        assert main_mod._handle_command(agent, "/frobnicate") is True
        assert "Unknown command: /frobnicate" in out.file.getvalue()
