"""Built-in tools: shell command, GPU diagnostics and clock."""
from typing import Any, Dict, Optional

from .registry import ToolRegistry, ToolSpec, _S
from .shell import ShellExecutor

BASH_SPEC = ToolSpec(
    name="bash",
    description=(
        "Execute a bash command and return the output. Use this to run shell commands, "
        "check system information, or interact with the filesystem. For commands like "
        "'top', use 'top -b -n 1' to get a single snapshot instead of continuous output."
    ),
    parameters={
        "command": _S(
            "The bash command to execute (e.g., 'ls -la', 'date', 'pwd'). Use flags to "
            "limit output for commands that run continuously."
        ),
    },
    required=("command",),
)

NVIDIA_SMI_SPEC = ToolSpec(
    name="nvidia_smi",
    description="Execute the nvidia-smi command on shell and return the output.",
    parameters={
        "command": _S(
            "The nvidia-smi command to execute (e.g., 'nvidia-smi', 'nvidia-smi -q'). "
            "Avoid looping flags such as '-l' since the command must finish."
        ),
    },
    required=("command",),
)

GET_TIME_SPEC = ToolSpec(
    name="get_time",
    description="Get the current date and time",
)


def build_default_registry(shell: Optional[ShellExecutor] = None) -> ToolRegistry:
    """Register every built-in tool, in the order they are advertised."""
    shell = shell or ShellExecutor()
    registry = ToolRegistry()

    def run_command(arguments: Dict[str, Any], timeout: float) -> str:
        return shell.run(arguments["command"], timeout)

    def get_time(arguments: Dict[str, Any], timeout: float) -> str:
        return shell.run("date", timeout)

    registry.register("bash", run_command, BASH_SPEC)
    registry.register("nvidia_smi", run_command, NVIDIA_SMI_SPEC)
    registry.register("get_time", get_time, GET_TIME_SPEC)
    return registry
