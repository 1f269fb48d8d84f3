from .registry import ToolRegistry, ToolSpec, ToolParameter
from .invoker import ToolInvoker, ToolOutcome, TRUNCATION_MARKER, truncate_output
from .shell import ShellExecutor
from .builtin import build_default_registry
__all__ = [
    "ToolRegistry", "ToolSpec", "ToolParameter", "ToolInvoker", "ToolOutcome",
    "TRUNCATION_MARKER", "truncate_output", "ShellExecutor", "build_default_registry",
]
