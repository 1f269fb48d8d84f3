"""
kilo v0.1.0: AI support agent for your terminal.

Commands:
  kilo run       interactive session (fullscreen TUI, or --plain REPL)
  kilo ask MSG   single exchange, exit status 1 on failure
  kilo config    show configuration (--init writes it)
"""

import os
import sys
import traceback

import click
from rich.console import Console
from rich.markup import escape

from . import __version__
from .agent import Agent
from .config import CONFIG_DIR, HISTORY_FILE, Config, ModelPreset
from .errors import AgentError
from .llm import ModelGateway
from .logger import setup_logger
from .rendering import DIM, ERROR, HOT_PINK, WARN, render_banner, render_config, render_transcript
from .tools import ToolInvoker, build_default_registry

console = Console()
BANNER = (
    f"[bold {HOT_PINK}]kilo[/bold {HOT_PINK}] "
    f"[{DIM}]v{__version__} · AI support agent[/{DIM}]"
)


def _apply_overrides(config: Config, model=None, api_key=None, api_base=None,
                     max_iterations=None, verbose=False) -> ModelPreset:
    if model:
        if model in config.models:
            config.active_model = model
        else:
            provider = model.split("/", 1)[0] if "/" in model else "openai"
            config.models["_cli"] = ModelPreset(name="_cli", provider=provider, model=model)
            config.active_model = "_cli"
    if max_iterations is not None:
        config.max_iterations = max_iterations
    if verbose:
        config.verbose = True

    preset = config.get_active_preset()
    if api_key:
        preset.api_key = api_key
    if api_base:
        preset.api_base = api_base
    return preset


def _log_target(config: Config):
    # An explicit empty string turns file logging off.
    return False if config.log_file == "" else config.log_file


def _build_agent(config: Config, preset: ModelPreset, quiet: bool = False) -> Agent:
    gateway = ModelGateway(**preset.get_gateway_kwargs())
    registry = build_default_registry()
    invoker = ToolInvoker(
        registry,
        timeout=config.tool_timeout,
        max_output_chars=config.max_output_chars,
    )
    return Agent(
        gateway=gateway,
        registry=registry,
        invoker=invoker,
        max_iterations=config.max_iterations,
        exchange_timeout=config.exchange_timeout,
        quiet=quiet,
    )


@click.group(invoke_without_command=True)
@click.version_option(__version__, prog_name="kilo")
@click.pass_context
def cli(ctx):
    """kilo — AI support agent for your terminal."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@cli.command()
@click.option("--model", "-m", default=None, help="Model preset name or litellm model string")
@click.option("--api-key", "-k", default=None, help="API key override")
@click.option("--api-base", "-b", default=None, help="API base override")
@click.option("--max-iterations", type=click.IntRange(1, 20), default=None,
              help="Maximum tool round-trips per exchange")
@click.option("--plain", is_flag=True, help="Line-based REPL instead of the fullscreen TUI")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def run(model, api_key, api_base, max_iterations, plain, verbose):
    """Start an interactive session."""
    config = Config.load()
    preset = _apply_overrides(config, model, api_key, api_base, max_iterations, verbose)
    setup_logger(verbose=config.verbose, log_file=_log_target(config),
                 console=plain)

    agent = _build_agent(config, preset)

    if not plain:
        from .tui import KiloApp

        KiloApp(agent=agent, config=config).run()
        return

    _run_repl(agent, config)


def _run_repl(agent: Agent, config: Config):
    from prompt_toolkit import PromptSession
    from prompt_toolkit.history import FileHistory

    os.environ.setdefault("PROMPT_TOOLKIT_NO_CPR", "1")
    render_banner(console)
    console.print(BANNER)
    console.print(f"[{DIM}]  model: {config.active_model} · Ctrl-D twice to exit · /help for commands[/{DIM}]\n")

    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    session = PromptSession(history=FileHistory(str(HISTORY_FILE)), multiline=False)

    pending_ctrl_d_exit = False

    while True:
        try:
            user_input = session.prompt("> ").strip()
            pending_ctrl_d_exit = False
        except EOFError:
            if pending_ctrl_d_exit:
                console.print(f"\n[{DIM}]Goodbye![/{DIM}]")
                break
            pending_ctrl_d_exit = True
            console.print(f"\n[{DIM}]Press Ctrl-D again to exit.[/{DIM}]")
            continue
        except KeyboardInterrupt:
            console.print(f"\n[{DIM}]Goodbye![/{DIM}]")
            break

        if not user_input:
            continue

        if user_input.startswith("/"):
            if not _handle_command(agent, user_input):
                console.print(f"[{DIM}]Goodbye![/{DIM}]")
                break
            continue

        try:
            agent.chat(user_input)
        except KeyboardInterrupt:
            console.print(f"\n[{WARN}]  Interrupted.[/{WARN}]")
        except AgentError as error:
            console.print(f"\n[{ERROR}]  {escape(str(error))}[/{ERROR}]")
        except Exception as error:
            console.print(f"\n[{ERROR}]  Error: {escape(str(error))}[/{ERROR}]")
            if config.verbose:
                console.print(f"[{DIM}]{escape(traceback.format_exc())}[/{DIM}]")


REPL_HELP = (
    ("/history", "Show the conversation so far"),
    ("/stats", "Turn and exchange counts"),
    ("/reset", "Start a new conversation"),
    ("/quit", "Exit"),
)


def _handle_command(agent: Agent, command: str) -> bool:
    """Run a REPL slash command. Returns False when the session should end."""
    cmd = command.split()[0].lower()
    if cmd in ("/quit", "/exit", "/q"):
        return False

    if cmd == "/history":
        if len(agent.transcript) == 0:
            console.print(f"  [{DIM}]No messages yet.[/{DIM}]")
        else:
            render_transcript(console, agent.transcript)
    elif cmd == "/stats":
        render_config(console, agent.get_stats(), title="Session")
    elif cmd == "/reset":
        agent.reset()
        console.print(f"  [{DIM}]Conversation cleared.[/{DIM}]")
    elif cmd in ("/help", "/h", "/?"):
        for name, description in REPL_HELP:
            console.print(f"  [bold {HOT_PINK}]{name:<10}[/bold {HOT_PINK}] [{DIM}]{description}[/{DIM}]")
    else:
        console.print(f"  [{WARN}]Unknown command: {escape(cmd)}. Type /help.[/{WARN}]")
    return True


@cli.command()
@click.argument("message", nargs=-1, required=True)
@click.option("--model", "-m", default=None)
@click.option("--verbose", "-v", is_flag=True)
def ask(message, model, verbose):
    """Run a single exchange and print the answer."""
    config = Config.load()
    preset = _apply_overrides(config, model=model, verbose=verbose)
    setup_logger(verbose=config.verbose, log_file=_log_target(config))

    agent = _build_agent(config, preset)
    result = agent.chat(" ".join(message))
    if not result.ok:
        sys.exit(1)


@cli.command("config")
@click.option("--init", "init", is_flag=True, help="Write the resolved configuration (default: ~/.kilo/config.yml)")
def config_cmd(init):
    """Show configuration."""
    cfg = Config.load()
    if init:
        cfg.save()
        console.print(f"  [{DIM}]Wrote {cfg._config_source}[/{DIM}]")
    render_config(console, cfg.summary())


if __name__ == "__main__":
    cli()
