"""Tool registry: name-keyed dispatch with one schema per tool."""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Tuple

from ..errors import DuplicateToolError, ToolNotFoundError

# handler(arguments, timeout_seconds) -> combined output text
ToolHandler = Callable[[Dict[str, Any], float], str]


@dataclass(frozen=True)
class ToolParameter:
    type: str
    description: str = ""


@dataclass(frozen=True)
class ToolSpec:
    """Declared shape of a tool. Immutable once built."""
    name: str
    description: str
    parameters: Mapping[str, ToolParameter] = field(default_factory=dict)
    required: Tuple[str, ...] = ()

    def __post_init__(self):
        params = {
            key: value if isinstance(value, ToolParameter) else ToolParameter(**value)
            for key, value in dict(self.parameters).items()
        }
        required = tuple(self.required)
        unknown = [name for name in required if name not in params]
        if unknown:
            raise ValueError(f"{self.name}: required parameters not declared: {', '.join(unknown)}")
        object.__setattr__(self, "parameters", MappingProxyType(params))
        object.__setattr__(self, "required", required)

    def to_schema(self) -> dict:
        """Build an OpenAI-compatible function schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": {
                        key: {"type": param.type, "description": param.description}
                        for key, param in self.parameters.items()
                    },
                    "required": list(self.required),
                },
            },
        }


# Shorthand helper for property definitions
_S = lambda desc: ToolParameter("string", desc)


class _ToolEntry:
    """Single tool registration: handler + spec."""
    __slots__ = ("handler", "spec")

    def __init__(self, handler: ToolHandler, spec: ToolSpec):
        self.handler = handler
        self.spec = spec


class ToolRegistry:
    """Maps tool names to handlers and their declared specs.

    Populated at startup and read-only afterwards. Iteration order is
    registration order, which is also the order tools are advertised to the
    model.
    """

    def __init__(self):
        self._tools: Dict[str, _ToolEntry] = {}

    def register(self, name: str, handler: ToolHandler, spec: ToolSpec) -> None:
        if name in self._tools:
            raise DuplicateToolError(name)
        if spec.name != name:
            raise ValueError(f"Spec name '{spec.name}' does not match registered name '{name}'")
        if not callable(handler):
            raise TypeError(f"Handler for '{name}' is not callable")
        self._tools[name] = _ToolEntry(handler, spec)

    def lookup(self, name: str) -> ToolHandler:
        return self._entry(name).handler

    def get_spec(self, name: str) -> ToolSpec:
        return self._entry(name).spec

    def list_specs(self) -> List[ToolSpec]:
        return [entry.spec for entry in self._tools.values()]

    @property
    def schemas(self) -> List[dict]:
        return [spec.to_schema() for spec in self.list_specs()]

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def _entry(self, name: str) -> _ToolEntry:
        entry = self._tools.get(name)
        if entry is None:
            raise ToolNotFoundError(name)
        return entry

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
