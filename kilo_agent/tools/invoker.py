"""Tool invocation: argument validation, bounded execution, output capping.

Every failure is turned into result text instead of being raised, so the
model sees what went wrong and can retry with corrected arguments.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..errors import (
    CommandFailedError,
    ExecutionFailedError,
    InvalidArgumentsError,
    ShellTimeoutError,
    ToolError,
    ToolTimeoutError,
)
from ..logger import get_logger
from .registry import ToolRegistry, ToolSpec

_log = get_logger(__name__)

DEFAULT_TOOL_TIMEOUT = 30
DEFAULT_MAX_OUTPUT_CHARS = 5000
TRUNCATION_MARKER = "\n...[output truncated]"

# JSON Schema type -> accepted Python types
_JSON_TYPES = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list,),
}


def truncate_output(text: str, limit: int = DEFAULT_MAX_OUTPUT_CHARS) -> Tuple[str, bool]:
    """Cut ``text`` to ``limit`` chars and append the marker. Lossy."""
    if len(text) <= limit:
        return text, False
    return text[:limit] + TRUNCATION_MARKER, True


@dataclass
class ToolOutcome:
    content: str
    truncated: bool = False
    error: Optional[ToolError] = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


class ToolInvoker:
    def __init__(self, registry: ToolRegistry, timeout: float = DEFAULT_TOOL_TIMEOUT,
                 max_output_chars: int = DEFAULT_MAX_OUTPUT_CHARS, clock=time.monotonic):
        self.registry = registry
        self.timeout = timeout
        self.max_output_chars = max_output_chars
        self._clock = clock

    def invoke(self, name: str, arguments_json: str,
               deadline: Optional[float] = None) -> ToolOutcome:
        """Run tool ``name``; ``deadline`` is an absolute clock value that may
        shorten the per-call timeout."""
        t0 = self._clock()
        error: Optional[ToolError] = None
        try:
            text = self._run(name, arguments_json, deadline)
        except ToolError as e:
            error = e
            text = f"Error: {e}"
        except Exception as e:
            _log.exception("Tool %s raised unexpectedly", name)
            error = ExecutionFailedError(name, f"{type(e).__name__}: {e}")
            text = f"Error: {error}"

        if error is not None:
            _log.info("Tool %s failed: %s", name, error)

        content, truncated = truncate_output(text, self.max_output_chars)
        return ToolOutcome(content=content, truncated=truncated, error=error,
                           elapsed=self._clock() - t0)

    def _run(self, name: str, arguments_json: str, deadline: Optional[float]) -> str:
        handler = self.registry.lookup(name)
        spec = self.registry.get_spec(name)
        arguments = parse_arguments(spec, arguments_json)

        timeout = float(self.timeout)
        if deadline is not None:
            remaining = deadline - self._clock()
            if remaining <= 0:
                raise ToolTimeoutError(name, 0)
            timeout = min(timeout, remaining)

        try:
            return str(handler(arguments, timeout))
        except ShellTimeoutError as e:
            raise ToolTimeoutError(name, e.timeout) from e
        except CommandFailedError as e:
            raise ExecutionFailedError(name, e.exit_info, e.output) from e


def parse_arguments(spec: ToolSpec, arguments_json: str) -> Dict[str, Any]:
    """Decode a JSON payload against ``spec``; unknown keys are dropped."""
    raw = (arguments_json or "").strip()
    if not raw:
        payload: Any = {}
    else:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidArgumentsError(spec.name, f"malformed JSON ({e.msg})")

    if not isinstance(payload, dict):
        raise InvalidArgumentsError(spec.name, "expected a JSON object")

    missing = [key for key in spec.required if key not in payload]
    if missing:
        raise InvalidArgumentsError(
            spec.name, f"missing required parameter(s): {', '.join(missing)}"
        )

    arguments: Dict[str, Any] = {}
    for key, param in spec.parameters.items():
        if key not in payload:
            continue
        value = payload[key]
        accepted = _JSON_TYPES.get(param.type)
        if accepted is not None:
            is_bool = isinstance(value, bool)
            if not isinstance(value, accepted) or (is_bool and param.type != "boolean"):
                raise InvalidArgumentsError(
                    spec.name, f"parameter '{key}' must be of type {param.type}"
                )
        arguments[key] = value
    return arguments
