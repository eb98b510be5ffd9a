from __future__ import annotations

import time
from types import SimpleNamespace
from typing import Any

import pytest

from shehab.core.model import RepublicModelClient, parse_response
from shehab.core.types import ModelReply, ToolCall
from shehab.errors import ModelUnavailableError


def _response(content: str | None = None, tool_calls: list[Any] | None = None) -> SimpleNamespace:
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _tool_call(call_id: str | None, name: str, arguments: str) -> SimpleNamespace:
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


class _FakeChat:
    def __init__(self, result: Any = None, *, delay: float = 0.0, error: Exception | None = None) -> None:
        self.result = result
        self.delay = delay
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def raw(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


class _FakeLLM:
    provider = "openai"
    model = "gpt-test"

    def __init__(self, chat: _FakeChat) -> None:
        self.chat = chat


def test_parse_text_response() -> None:
    assert parse_response(_response("hello")) == ModelReply(text="hello")
    assert parse_response("plain") == ModelReply(text="plain")


def test_parse_tool_calls() -> None:
    reply = parse_response(_response(None, [_tool_call("c1", "get_prs", "{}"), _tool_call(None, "get_issues", "")]))

    assert reply.text is None
    assert reply.tool_calls == (ToolCall(id="c1", name="get_prs", arguments="{}"), ToolCall(id="1", name="get_issues"))


def test_parse_malformed_response() -> None:
    with pytest.raises(ModelUnavailableError):
        parse_response(SimpleNamespace(choices=[]))


@pytest.mark.asyncio
async def test_complete_passes_messages_tools_and_max_tokens() -> None:
    chat = _FakeChat(_response("ok"))
    client = RepublicModelClient(_FakeLLM(chat), max_tokens=256)  # type: ignore[arg-type]
    schema = {
        "type": "function",
        "function": {"name": "get_prs", "description": "PRs", "parameters": {"type": "object", "properties": {}}},
    }

    reply = await client.complete([{"role": "user", "content": "hi"}], [schema])

    assert reply.text == "ok"
    assert client.model == "openai:gpt-test"
    call = chat.calls[0]
    assert call["messages"] == [{"role": "user", "content": "hi"}]
    assert call["max_tokens"] == 256
    assert [tool.name for tool in call["tools"]] == ["get_prs"]


@pytest.mark.asyncio
async def test_complete_timeout_is_model_unavailable() -> None:
    llm = _FakeLLM(_FakeChat(_response("late"), delay=0.2))
    client = RepublicModelClient(llm, max_tokens=10, timeout_seconds=0.01)  # type: ignore[arg-type]

    with pytest.raises(ModelUnavailableError, match="model_timeout"):
        await client.complete([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_complete_error_is_model_unavailable() -> None:
    llm = _FakeLLM(_FakeChat(error=ConnectionError("refused")))
    client = RepublicModelClient(llm, max_tokens=10)  # type: ignore[arg-type]

    with pytest.raises(ModelUnavailableError, match="model_call_error: refused"):
        await client.complete([{"role": "user", "content": "hi"}])
