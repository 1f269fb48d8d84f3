"""Tool-calling orchestration loop.

One user submission is an *exchange*: the model is consulted, any tool
requests are executed and fed back, and the loop repeats until the model
answers in plain text or the exchange fails::

    AWAITING_MODEL -> {EXECUTING_TOOLS -> AWAITING_MODEL}* -> DONE | FAILED

Tool failures never end an exchange; they become tool result text. Transport
errors, protocol anomalies, iteration exhaustion and the exchange deadline do,
and the transcript built so far is always returned with the error.
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from rich.console import Console
from rich.status import Status

from .errors import (
    AgentError,
    EmptyResponseError,
    ExchangeInProgressError,
    ExchangeTimeoutError,
    GatewayError,
    IterationLimitError,
    ProtocolError,
)
from .llm import ModelGateway
from .logger import exchange_context, get_logger
from .rendering import (
    render_answer,
    render_failure,
    render_tool_call,
    render_tool_result,
    THINKING,
)
from .tools import ToolInvoker, ToolOutcome, ToolRegistry
from .transcript import (
    AssistantText,
    AssistantToolRequest,
    ToolResult,
    Transcript,
    Turn,
    UserText,
)

_log = get_logger(__name__)
console = Console()

__all__ = ["Agent", "Exchange", "ExchangeListener", "ExchangeResult", "ExchangeState"]

DEFAULT_MAX_ITERATIONS = 5
DEFAULT_EXCHANGE_TIMEOUT = 60


class ExchangeState(str, Enum):
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (ExchangeState.DONE, ExchangeState.FAILED)


@dataclass
class ExchangeResult:
    state: ExchangeState
    transcript: Transcript
    new_turns: Tuple[Turn, ...]
    text: Optional[str] = None
    error: Optional[AgentError] = None
    iterations: int = 0

    @property
    def ok(self) -> bool:
        return self.state is ExchangeState.DONE


class ExchangeListener:
    """Progress hooks. All methods are no-ops; override what you need."""

    def on_model_call(self, iteration: int) -> None:
        pass

    def on_tool_request(self, request: AssistantToolRequest, index: int, total: int) -> None:
        pass

    def on_tool_result(self, request: AssistantToolRequest, outcome: ToolOutcome) -> None:
        pass

    def on_finish(self, result: ExchangeResult) -> None:
        pass


class Exchange:
    """State machine for a single exchange. ``step()`` performs one transition."""

    def __init__(self, gateway: ModelGateway, registry: ToolRegistry, invoker: ToolInvoker,
                 transcript: Transcript, user_message: str,
                 max_iterations: int = DEFAULT_MAX_ITERATIONS,
                 timeout: float = DEFAULT_EXCHANGE_TIMEOUT,
                 listener: Optional[ExchangeListener] = None,
                 clock=time.monotonic):
        self.gateway = gateway
        self.registry = registry
        self.invoker = invoker
        self.transcript = transcript
        self.max_iterations = max_iterations
        self.timeout = timeout
        self.listener = listener or ExchangeListener()
        self._clock = clock
        self._deadline = clock() + timeout

        self.state = ExchangeState.AWAITING_MODEL
        self.iterations = 0
        self.text: Optional[str] = None
        self.error: Optional[AgentError] = None
        self._pending: List[AssistantToolRequest] = []
        self._start = len(transcript)

        transcript.append(UserText(user_message))

    # ── Driving ──

    def run(self) -> ExchangeResult:
        while not self.state.terminal:
            self.step()
        result = self.result()
        self.listener.on_finish(result)
        return result

    def step(self) -> ExchangeState:
        if self.state is ExchangeState.AWAITING_MODEL:
            self._await_model()
        elif self.state is ExchangeState.EXECUTING_TOOLS:
            self._execute_tools()
        return self.state

    def result(self) -> ExchangeResult:
        return ExchangeResult(
            state=self.state,
            transcript=self.transcript,
            new_turns=self.transcript.since(self._start),
            text=self.text,
            error=self.error,
            iterations=self.iterations,
        )

    # ── States ──

    def _await_model(self):
        if self._expired():
            return self._fail(ExchangeTimeoutError(self.timeout))

        self.listener.on_model_call(self.iterations)
        try:
            response = self.gateway.complete(
                self.transcript, self.registry.list_specs(), timeout=self._remaining()
            )
        except ProtocolError as e:
            return self._fail(e)
        except GatewayError as e:
            if self._expired():
                timeout_error = ExchangeTimeoutError(self.timeout)
                timeout_error.__cause__ = e
                return self._fail(timeout_error)
            return self._fail(e)

        if response.tool_requests:
            if self.iterations >= self.max_iterations:
                return self._fail(IterationLimitError(self.max_iterations))
            # Content sent alongside tool requests is the model thinking aloud; drop it.
            requests = [
                AssistantToolRequest(req.call_id, req.name, req.arguments_json)
                for req in response.tool_requests
            ]
            try:
                self.transcript.extend(requests)
            except ProtocolError as e:
                return self._fail(e)
            self.iterations += 1
            self._pending = requests
            self.state = ExchangeState.EXECUTING_TOOLS
            return

        if response.content:
            self.transcript.append(AssistantText(response.content))
            self.text = response.content
            self.state = ExchangeState.DONE
            _log.info("Exchange done after %d tool iteration(s)", self.iterations)
            return

        self._fail(EmptyResponseError())

    def _execute_tools(self):
        total = len(self._pending)
        for index, request in enumerate(self._pending, 1):
            self.listener.on_tool_request(request, index, total)
            outcome = self.invoker.invoke(
                request.tool_name, request.arguments_json, deadline=self._deadline
            )
            self.transcript.append(
                ToolResult(request.call_id, outcome.content, outcome.truncated)
            )
            self.listener.on_tool_result(request, outcome)
        self._pending = []
        self.state = ExchangeState.AWAITING_MODEL

    # ── Helpers ──

    def _fail(self, error: AgentError):
        _log.warning("Exchange failed: %s: %s", type(error).__name__, error)
        self.error = error
        self.state = ExchangeState.FAILED

    def _remaining(self) -> float:
        return max(0.0, self._deadline - self._clock())

    def _expired(self) -> bool:
        return self._clock() >= self._deadline


class Agent(ExchangeListener):
    """Owns the transcript across exchanges and renders their progress.

    Exchanges are serialized: a submission that arrives while one is in
    flight raises ``ExchangeInProgressError``.
    """

    def __init__(self, gateway: ModelGateway, registry: ToolRegistry,
                 invoker: Optional[ToolInvoker] = None,
                 max_iterations: int = DEFAULT_MAX_ITERATIONS,
                 exchange_timeout: float = DEFAULT_EXCHANGE_TIMEOUT,
                 console: Optional[Console] = None, quiet: bool = False):
        self.gateway = gateway
        self.registry = registry
        self.invoker = invoker or ToolInvoker(registry)
        self.max_iterations = max_iterations
        self.exchange_timeout = exchange_timeout
        self.console = console
        self.quiet = quiet
        self.transcript = Transcript()
        self.last_result: Optional[ExchangeResult] = None
        self._lock = threading.Lock()
        self._status: Optional[Status] = None
        self._exchanges = 0
        self._failures = 0

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def _console(self):
        # Resolved late so the TUI can swap the module console.
        return self.console if self.console is not None else console

    def chat(self, user_message: str) -> ExchangeResult:
        if not self._lock.acquire(blocking=False):
            raise ExchangeInProgressError()
        try:
            with exchange_context(self._exchanges + 1):
                _log.info("Exchange started (%d turns so far)", len(self.transcript))
                exchange = Exchange(
                    self.gateway, self.registry, self.invoker, self.transcript, user_message,
                    max_iterations=self.max_iterations,
                    timeout=self.exchange_timeout,
                    listener=self,
                )
                result = exchange.run()
        finally:
            self._stop_status()
            self._lock.release()

        self._exchanges += 1
        if not result.ok:
            self._failures += 1
        self.last_result = result
        return result

    def reset(self):
        if self.busy:
            raise ExchangeInProgressError()
        self.transcript = Transcript()
        self.last_result = None

    def get_stats(self) -> Dict[str, Any]:
        counts = {"user": 0, "assistant": 0, "tool_requests": 0, "tool_results": 0}
        for turn in self.transcript:
            if isinstance(turn, UserText):
                counts["user"] += 1
            elif isinstance(turn, AssistantText):
                counts["assistant"] += 1
            elif isinstance(turn, AssistantToolRequest):
                counts["tool_requests"] += 1
            elif isinstance(turn, ToolResult):
                counts["tool_results"] += 1
        counts["turns"] = len(self.transcript)
        counts["exchanges"] = self._exchanges
        counts["failures"] = self._failures
        return counts

    # ── Rendering hooks ──

    def on_model_call(self, iteration: int) -> None:
        if self.quiet:
            return
        out = self._console()
        # TUI mode: the activity bar replaces the spinner
        if getattr(out, "_is_tui", False):
            out._app.set_activity_thinking()
            return
        self._stop_status()
        self._status = Status(f"[{THINKING}]Kilo is thinking...[/{THINKING}]",
                              console=out, spinner="dots")
        self._status.start()

    def on_tool_request(self, request: AssistantToolRequest, index: int, total: int) -> None:
        self._stop_status()
        if not self.quiet:
            render_tool_call(self._console(), request, index=index, total=total)

    def on_tool_result(self, request: AssistantToolRequest, outcome: ToolOutcome) -> None:
        if not self.quiet:
            render_tool_result(self._console(), request.tool_name, outcome)

    def on_finish(self, result: ExchangeResult) -> None:
        self._stop_status()
        if self.quiet:
            return
        if result.ok:
            render_answer(self._console(), result.text or "")
        else:
            render_failure(self._console(), result.error)

    def _stop_status(self):
        if self._status is not None:
            self._status.stop()
            self._status = None
