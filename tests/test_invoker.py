"""Tests for ToolInvoker: argument checks, failure-as-data, truncation, deadlines."""

from kilo_agent.errors import (
    ExecutionFailedError,
    InvalidArgumentsError,
    ToolNotFoundError,
    ToolTimeoutError,
)
from kilo_agent.tools import TRUNCATION_MARKER, ToolInvoker, truncate_output


class TestTruncateOutput:
    def test_short_text_untouched(self):
        assert truncate_output("abc", 10) == ("abc", False)

    def test_exact_limit_untouched(self):
        assert truncate_output("a" * 10, 10) == ("a" * 10, False)

    def test_long_text_cut_with_marker(self):
        text, truncated = truncate_output("a" * 11, 10)

        assert truncated
        assert text == "a" * 10 + TRUNCATION_MARKER


class TestInvoke:
    def test_success(self, echo_registry):
        outcome = ToolInvoker(echo_registry).invoke("echo", '{"text": "hi"}')

        assert outcome.ok
        assert outcome.content == "echo:hi"
        assert not outcome.truncated

    def test_unknown_tool_becomes_text(self, echo_registry):
        outcome = ToolInvoker(echo_registry).invoke("nope", "{}")

        assert isinstance(outcome.error, ToolNotFoundError)
        assert outcome.content == "Error: nope: unknown tool"

    def test_malformed_json(self, echo_registry):
        outcome = ToolInvoker(echo_registry).invoke("echo", '{"text": ')

        assert isinstance(outcome.error, InvalidArgumentsError)
        assert "malformed JSON" in outcome.content
        assert echo_registry.calls == []

    def test_missing_required_argument(self, echo_registry):
        outcome = ToolInvoker(echo_registry).invoke("echo", "{}")

        assert isinstance(outcome.error, InvalidArgumentsError)
        assert "missing required parameter(s): text" in outcome.content
        assert echo_registry.calls == []

    def test_wrong_argument_type(self, echo_registry):
        outcome = ToolInvoker(echo_registry).invoke("echo", '{"text": 5}')

        assert isinstance(outcome.error, InvalidArgumentsError)
        assert "must be of type string" in outcome.content

    def test_non_object_payload(self, echo_registry):
        outcome = ToolInvoker(echo_registry).invoke("echo", '["hi"]')

        assert "expected a JSON object" in outcome.content

    def test_empty_arguments_for_parameterless_tool(self, echo_registry):
        outcome = ToolInvoker(echo_registry).invoke("flood", "")

        assert outcome.ok

    def test_unknown_keys_dropped(self, echo_registry):
        ToolInvoker(echo_registry).invoke("echo", '{"text": "hi", "extra": 1}')

        assert echo_registry.calls == [("echo", {"text": "hi"})]

    def test_command_failure_becomes_text(self, echo_registry):
        outcome = ToolInvoker(echo_registry).invoke("fail", "{}")

        assert isinstance(outcome.error, ExecutionFailedError)
        assert outcome.content == "Error: fail: command failed: exit status 2\nOutput: boom"

    def test_timeout_becomes_text(self, echo_registry):
        outcome = ToolInvoker(echo_registry, timeout=7).invoke("slow", "{}")

        assert isinstance(outcome.error, ToolTimeoutError)
        assert outcome.content == "Error: slow: timed out after 7s"

    def test_unexpected_exception_is_contained(self, echo_registry):
        from kilo_agent.tools.registry import ToolSpec

        def broken(arguments, timeout):
            raise KeyError("oops")

        echo_registry.register("broken", broken, ToolSpec(name="broken", description=""))
        outcome = ToolInvoker(echo_registry).invoke("broken", "{}")

        assert isinstance(outcome.error, ExecutionFailedError)
        assert "KeyError" in outcome.content

    def test_output_truncated(self, echo_registry):
        outcome = ToolInvoker(echo_registry, max_output_chars=5000).invoke("flood", "{}")

        assert outcome.truncated
        assert outcome.content == "x" * 5000 + TRUNCATION_MARKER


class TestDeadline:
    def test_deadline_shortens_timeout(self, echo_registry, clock):
        seen = []
        from kilo_agent.tools.registry import ToolSpec

        echo_registry.register(
            "probe", lambda arguments, timeout: seen.append(timeout) or "ok",
            ToolSpec(name="probe", description=""),
        )
        invoker = ToolInvoker(echo_registry, timeout=30, clock=clock)

        invoker.invoke("probe", "{}", deadline=clock.now + 4)
        invoker.invoke("probe", "{}", deadline=clock.now + 100)

        assert seen == [4, 30]

    def test_expired_deadline_skips_execution(self, echo_registry, clock):
        invoker = ToolInvoker(echo_registry, clock=clock)

        outcome = invoker.invoke("echo", '{"text": "hi"}', deadline=clock.now - 1)

        assert isinstance(outcome.error, ToolTimeoutError)
        assert outcome.content == "Error: echo: timed out after 0s"
        assert echo_registry.calls == []
