from __future__ import annotations

from shehab.core.request import build_request
from shehab.core.types import PendingToolResult, ToolCall, Turn


def test_build_request_orders_system_history_and_new_turns() -> None:
    history = (Turn.user("hi"), Turn.assistant("hello"))

    messages = build_request("be brief", history, [Turn.user("what's open?")])

    assert messages == (
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hello"},
        {"role": "user", "content": "what's open?"},
    )


def test_build_request_skips_blank_system_prompt() -> None:
    messages = build_request("  ", (), [Turn.user("hi")])
    assert messages == ({"role": "user", "content": "hi"},)


def test_build_request_renders_tool_turns() -> None:
    call = ToolCall(id="call-1", name="get_issues", arguments="")
    result = PendingToolResult(call_id="call-1", tool_name="get_issues", output="No open Issues.")

    messages = build_request("", (), [Turn.user("q"), Turn.tool_request(call), Turn.tool_result(result)])

    assert messages[1] == {
        "role": "assistant",
        "content": None,
        "tool_calls": [{"id": "call-1", "type": "function", "function": {"name": "get_issues", "arguments": "{}"}}],
    }
    assert messages[2] == {"role": "tool", "content": "No open Issues.", "tool_call_id": "call-1", "name": "get_issues"}


def test_build_request_does_not_mutate_inputs() -> None:
    history = [Turn.user("hi")]
    first = build_request("sys", history, [Turn.user("a")])
    second = build_request("sys", history, [Turn.user("b")])

    assert len(history) == 1
    assert first[-1]["content"] == "a"
    assert second[-1]["content"] == "b"
