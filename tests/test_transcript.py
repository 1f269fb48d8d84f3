"""Tests for transcript ordering and request/result pairing."""

import pytest

from kilo_agent.errors import ProtocolError, UnmatchedToolResultError
from kilo_agent.transcript import (
    AssistantText,
    AssistantToolRequest,
    ToolResult,
    Transcript,
    UserText,
)


def _req(call_id, name="bash", args='{"command": "ls"}'):
    return AssistantToolRequest(call_id, name, args)


class TestTranscriptAppend:
    def test_preserves_order(self):
        t = Transcript()
        t.append(UserText("hi"))
        t.append(_req("c1"))
        t.append(ToolResult("c1", "file.txt"))
        t.append(AssistantText("You have file.txt"))

        assert [type(turn) for turn in t] == [UserText, AssistantToolRequest, ToolResult, AssistantText]
        assert len(t) == 4
        assert t[-1].content == "You have file.txt"

    def test_result_without_request_rejected(self):
        t = Transcript([UserText("hi")])

        with pytest.raises(UnmatchedToolResultError) as exc:
            t.append(ToolResult("missing", "x"))

        assert exc.value.call_id == "missing"
        assert len(t) == 1

    def test_second_result_for_same_request_rejected(self):
        t = Transcript([UserText("hi"), _req("c1"), ToolResult("c1", "ok")])

        with pytest.raises(UnmatchedToolResultError):
            t.append(ToolResult("c1", "again"))

    def test_duplicate_request_id_rejected(self):
        t = Transcript([UserText("hi"), _req("c1"), ToolResult("c1", "ok")])

        with pytest.raises(ProtocolError):
            t.append(_req("c1"))

    def test_extend_is_all_or_nothing(self):
        t = Transcript([UserText("hi")])

        with pytest.raises(ProtocolError):
            t.extend([_req("a"), _req("b"), _req("a")])

        assert len(t) == 1
        assert not t.has_call_id("a")

    def test_rejects_non_turns(self):
        with pytest.raises(TypeError):
            Transcript().append({"role": "user", "content": "hi"})


class TestTranscriptQueries:
    def test_pending_requests(self):
        t = Transcript([UserText("hi"), _req("a"), _req("b"), ToolResult("a", "done")])

        assert [r.call_id for r in t.pending_requests()] == ["b"]

    def test_since(self):
        t = Transcript([UserText("one"), AssistantText("two")])
        mark = len(t)
        t.append(UserText("three"))

        assert t.since(mark) == (UserText("three"),)

    def test_copy_is_independent(self):
        t = Transcript([UserText("hi")])
        clone = t.copy()
        clone.append(AssistantText("hello"))

        assert len(t) == 1
        assert clone != t
        assert clone.turns[:1] == t.turns

    def test_turns_are_immutable(self):
        turn = UserText("hi")
        with pytest.raises(AttributeError):
            turn.content = "changed"
