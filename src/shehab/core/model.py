"""Language model endpoint adapter."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any, Protocol

from loguru import logger
from republic import LLM, Tool

from shehab.config import Settings
from shehab.core.types import ModelReply, ToolCall
from shehab.errors import ModelUnavailableError

Message = dict[str, Any]
ToolSchema = dict[str, Any]


class ModelClient(Protocol):
    """Chat completion endpoint with optional tool schema.

    When ``tools`` is given the model decides on its own whether to call one.
    """

    async def complete(self, messages: Sequence[Message], tools: Sequence[ToolSchema] | None = None) -> ModelReply: ...


class RepublicModelClient:
    """ModelClient backed by a Republic ``LLM``."""

    def __init__(self, llm: LLM, *, max_tokens: int, timeout_seconds: float | None = None) -> None:
        self._llm = llm
        self._max_tokens = max_tokens
        self._timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> RepublicModelClient:
        llm = LLM(settings.require_model(), api_key=settings.api_key, api_base=settings.api_base)
        return cls(llm, max_tokens=settings.max_tokens, timeout_seconds=settings.model_timeout_seconds)

    @property
    def model(self) -> str:
        return f"{self._llm.provider}:{self._llm.model}"

    async def complete(self, messages: Sequence[Message], tools: Sequence[ToolSchema] | None = None) -> ModelReply:
        republic_tools = [_to_republic_tool(schema) for schema in tools or ()]
        try:
            async with asyncio.timeout(self._timeout_seconds):
                response = await asyncio.to_thread(
                    self._llm.chat.raw,
                    messages=list(messages),
                    tools=republic_tools,
                    max_tokens=self._max_tokens,
                )
        except TimeoutError as exc:
            raise ModelUnavailableError(f"model_timeout: no response within {self._timeout_seconds}s") from exc
        except Exception as exc:
            logger.exception("model.call.error")
            raise ModelUnavailableError(f"model_call_error: {exc!s}") from exc
        return parse_response(response)


def _to_republic_tool(schema: ToolSchema) -> Tool:
    function = schema.get("function", schema)
    return Tool(
        name=function["name"],
        description=function.get("description", ""),
        parameters=function.get("parameters", {"type": "object", "properties": {}}),
        handler=None,
    )


def parse_response(response: Any) -> ModelReply:
    """Convert an OpenAI-shaped chat completion into a ModelReply."""
    if isinstance(response, str):
        return ModelReply(text=response)
    choices = getattr(response, "choices", None)
    if not choices:
        raise ModelUnavailableError("malformed model response: no choices")
    message = getattr(choices[0], "message", None)
    if message is None:
        raise ModelUnavailableError("malformed model response: no message")

    calls: list[ToolCall] = []
    for idx, tool_call in enumerate(getattr(message, "tool_calls", None) or []):
        function = getattr(tool_call, "function", None)
        if function is None:
            continue
        calls.append(
            ToolCall(
                id=getattr(tool_call, "id", None) or str(idx),
                name=getattr(function, "name", "") or "",
                arguments=getattr(function, "arguments", "") or "",
            )
        )
    return ModelReply(text=getattr(message, "content", None), tool_calls=tuple(calls))
