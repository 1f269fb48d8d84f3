"""Conversation transcript: tagged turn variants and an append-only sequence."""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Tuple, Union

from .errors import ProtocolError, UnmatchedToolResultError

__all__ = [
    "UserText", "AssistantText", "AssistantToolRequest", "ToolResult",
    "Turn", "Transcript",
]


@dataclass(frozen=True)
class UserText:
    content: str


@dataclass(frozen=True)
class AssistantText:
    content: str


@dataclass(frozen=True)
class AssistantToolRequest:
    call_id: str          # provider-assigned, unique within a transcript
    tool_name: str
    arguments_json: str


@dataclass(frozen=True)
class ToolResult:
    call_id: str
    content: str
    truncated: bool = False


Turn = Union[UserText, AssistantText, AssistantToolRequest, ToolResult]
_TURN_TYPES = (UserText, AssistantText, AssistantToolRequest, ToolResult)


class Transcript:
    """Ordered, append-only turn history.

    The model is stateless, so the order here is exactly what it sees on the
    next call. Every ``ToolResult`` must answer an earlier, still unanswered
    ``AssistantToolRequest``; anything else is rejected before it lands.
    """

    def __init__(self, turns: Iterable[Turn] = ()):
        self._turns: List[Turn] = []
        # call_id -> answered?
        self._requests: Dict[str, bool] = {}
        self.extend(turns)

    # ── Mutation ──

    def append(self, turn: Turn) -> None:
        self.extend([turn])

    def extend(self, turns: Iterable[Turn]) -> None:
        """Append a batch of turns; nothing is appended if any turn is invalid."""
        batch = list(turns)
        staged = dict(self._requests)
        for turn in batch:
            self._check(turn, staged)
        self._turns.extend(batch)
        self._requests = staged

    @staticmethod
    def _check(turn: Turn, requests: Dict[str, bool]) -> None:
        if not isinstance(turn, _TURN_TYPES):
            raise TypeError(f"Not a transcript turn: {turn!r}")
        if isinstance(turn, AssistantToolRequest):
            if turn.call_id in requests:
                raise ProtocolError(f"Duplicate tool call id: {turn.call_id}")
            requests[turn.call_id] = False
        elif isinstance(turn, ToolResult):
            if requests.get(turn.call_id) is not False:
                raise UnmatchedToolResultError(turn.call_id)
            requests[turn.call_id] = True

    # ── Queries ──

    @property
    def turns(self) -> Tuple[Turn, ...]:
        return tuple(self._turns)

    def since(self, index: int) -> Tuple[Turn, ...]:
        """Turns appended at or after ``index``."""
        return tuple(self._turns[index:])

    def pending_requests(self) -> List[AssistantToolRequest]:
        return [
            turn for turn in self._turns
            if isinstance(turn, AssistantToolRequest) and not self._requests[turn.call_id]
        ]

    def has_call_id(self, call_id: str) -> bool:
        return call_id in self._requests

    def copy(self) -> "Transcript":
        return Transcript(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(tuple(self._turns))

    def __getitem__(self, index):
        return self._turns[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Transcript):
            return NotImplemented
        return self._turns == other._turns

    def __repr__(self) -> str:
        return f"Transcript({len(self._turns)} turns)"
