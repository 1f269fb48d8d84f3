"""Structured error types for the agent system."""


class AgentError(Exception):
    """Base error for all agent operations."""
    pass


# ── Tool errors (always converted to tool result text) ──


class ToolError(AgentError):
    """Error raised during tool execution."""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(f"{tool_name}: {message}")


class ToolNotFoundError(ToolError):
    def __init__(self, tool_name: str):
        super().__init__(tool_name, "unknown tool")


class InvalidArgumentsError(ToolError):
    def __init__(self, tool_name: str, reason: str):
        self.reason = reason
        super().__init__(tool_name, f"invalid arguments: {reason}")


class ToolTimeoutError(ToolError):
    def __init__(self, tool_name: str, timeout: float):
        self.timeout = timeout
        super().__init__(tool_name, f"timed out after {timeout:g}s")


class ExecutionFailedError(ToolError):
    def __init__(self, tool_name: str, exit_info: str, output: str = ""):
        self.exit_info = exit_info
        self.output = output
        message = f"command failed: {exit_info}"
        if output:
            message += f"\nOutput: {output}"
        super().__init__(tool_name, message)


class DuplicateToolError(AgentError):
    """Raised when a tool name is registered twice."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tool already registered: {name}")


# ── Process boundary ──


class ShellTimeoutError(AgentError):
    """Raised when a shell command exceeds its timeout."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout:g}s")


class CommandFailedError(AgentError):
    """Raised when a shell command exits non-zero or cannot be started."""

    def __init__(self, exit_info: str, output: str = ""):
        self.exit_info = exit_info
        self.output = output
        super().__init__(f"Command failed: {exit_info}")


# ── Exchange-terminating errors ──


class GatewayError(AgentError):
    """Transport or provider failure while calling the model."""
    pass


class GatewayAuthError(GatewayError):
    pass


class GatewayTimeoutError(GatewayError):
    pass


class ProtocolError(AgentError):
    """The model gateway broke its contract with the loop."""
    pass


class EmptyResponseError(ProtocolError):
    def __init__(self):
        super().__init__("Empty response from model (no content and no tool calls)")


class UnmatchedToolResultError(ProtocolError):
    def __init__(self, call_id: str):
        self.call_id = call_id
        super().__init__(f"Tool result '{call_id}' has no matching tool request")


class IterationLimitError(AgentError):
    """Raised when the model keeps requesting tools past the iteration bound."""

    def __init__(self, max_iterations: int):
        self.max_iterations = max_iterations
        super().__init__(
            f"Reached maximum iterations ({max_iterations}) - model kept calling tools"
        )


class ExchangeTimeoutError(AgentError):
    """Raised when a whole exchange exceeds its deadline."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Exchange timed out after {timeout:g}s")


class ExchangeInProgressError(AgentError):
    """Raised when a new submission arrives while an exchange is running."""

    def __init__(self):
        super().__init__("An exchange is already in progress")
