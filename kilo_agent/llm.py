"""Model gateway via litellm."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import litellm
litellm.suppress_debug_info = True

from .errors import GatewayAuthError, GatewayError, GatewayTimeoutError, ProtocolError
from .logger import get_logger
from .tools.registry import ToolSpec
from .transcript import AssistantText, AssistantToolRequest, ToolResult, Transcript, UserText

_log = get_logger(__name__)

DEFAULT_MODEL = "anthropic/claude-sonnet-4-20250514"


@dataclass
class ToolRequest:
    call_id: str
    name: str
    arguments_json: str


@dataclass
class GatewayResponse:
    content: str = ""
    tool_requests: List[ToolRequest] = field(default_factory=list)


SYSTEM_PROMPT = """\
You are Kilo, a helpful AI support agent. Use the tools available to you to assist the user.

# Tool Usage
- When you need information to answer a question, use tools immediately without announcing your intention
- The user sees the tool output, so you should interpret and explain what the results mean
- Be concise and direct in your responses

# Examples
<example>
user: what time is it?
assistant: [uses get_time tool which returns "Sat Oct 18 14:23:45 PDT 2025"]
The current time is 2:23 PM on Saturday, October 18th, 2025.
</example>

<example>
user: list files in current directory
assistant: [uses bash tool with "ls" which returns file list]
Your directory contains: main.py, README.md, and a src/ folder.
</example>

IMPORTANT: Keep responses under 4 lines unless the user asks for more detail.
"""


def build_messages(transcript: Transcript, system_prompt: str = SYSTEM_PROMPT) -> List[Dict[str, Any]]:
    """Translate turns into provider messages, preserving order.

    Consecutive tool requests are folded into one assistant message, which is
    how the model emitted them.
    """
    messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    for turn in transcript:
        if isinstance(turn, UserText):
            messages.append({"role": "user", "content": turn.content})
        elif isinstance(turn, AssistantText):
            messages.append({"role": "assistant", "content": turn.content})
        elif isinstance(turn, AssistantToolRequest):
            tool_call = {
                "id": turn.call_id,
                "type": "function",
                "function": {"name": turn.tool_name, "arguments": turn.arguments_json or "{}"},
            }
            last = messages[-1]
            if last["role"] == "assistant" and last.get("tool_calls"):
                last["tool_calls"].append(tool_call)
            else:
                messages.append({"role": "assistant", "content": None, "tool_calls": [tool_call]})
        elif isinstance(turn, ToolResult):
            messages.append({"role": "tool", "tool_call_id": turn.call_id, "content": turn.content})
    return messages


class ModelGateway:
    """Stateless model interface. Every call resends the whole transcript.

    Passes api_key/api_base directly to litellm instead of exporting them
    into the environment.
    """

    def __init__(self, model: str = DEFAULT_MODEL, temperature: float = 0.0,
                 max_tokens: int = 1024, api_base: Optional[str] = None,
                 api_key: Optional[str] = None, system_prompt: str = SYSTEM_PROMPT):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.api_base = api_base
        self.api_key = api_key
        self.system_prompt = system_prompt

    def complete(self, transcript: Transcript, specs: Sequence[ToolSpec],
                 timeout: Optional[float] = None) -> GatewayResponse:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": build_messages(transcript, self.system_prompt),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if specs:
            kwargs["tools"] = [spec.to_schema() for spec in specs]
            kwargs["tool_choice"] = "auto"
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if timeout is not None:
            kwargs["timeout"] = timeout

        _log.info("Calling %s with %d turns, %d tools", self.model, len(transcript), len(specs))
        try:
            response = litellm.completion(**kwargs)
        except litellm.exceptions.AuthenticationError as e:
            raise GatewayAuthError(f"Auth failed. Check API key.\n{e}") from e
        except litellm.exceptions.Timeout as e:
            raise GatewayTimeoutError(f"Model request timed out: model={self.model}\n{e}") from e
        except litellm.exceptions.APIConnectionError as e:
            raise GatewayError(
                f"Cannot connect: model={self.model}, base={self.api_base or 'default'}\n{e}"
            ) from e
        except Exception as e:
            raise GatewayError(f"LLM error: {type(e).__name__}: {e}") from e

        try:
            return self._parse_response(response)
        except (AttributeError, IndexError, TypeError) as e:
            raise ProtocolError(f"Malformed model response: {type(e).__name__}: {e}") from e

    @staticmethod
    def _parse_response(response) -> GatewayResponse:
        if not response.choices:
            return GatewayResponse()
        msg = response.choices[0].message

        tool_requests = [
            ToolRequest(
                call_id=tc.id,
                name=tc.function.name,
                arguments_json=tc.function.arguments or "{}",
            )
            for tc in (msg.tool_calls or [])
        ]

        return GatewayResponse(content=msg.content or "", tool_requests=tool_requests)
