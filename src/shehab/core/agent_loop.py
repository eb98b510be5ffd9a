"""Tool-calling agent loop."""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Iterable
from contextlib import AbstractAsyncContextManager, nullcontext
from typing import Any

from loguru import logger

from shehab.core.failsafe import FailsafeResolver
from shehab.core.model import ModelClient
from shehab.core.request import build_request
from shehab.core.store import ConversationStore
from shehab.core.types import Execute, ModelReply, PendingToolResult, ToolCall, Turn
from shehab.errors import MalformedToolArgumentsError, ModelUnavailableError
from shehab.tools.registry import ToolRegistry

Notify = Callable[[str], Awaitable[None]]

SYSTEM_ERROR_PREFIX = "System Error:"
EMPTY_REPLY_FALLBACK = "Done."
AUTO_FIX_PREFIX = "(Auto-Fix)"


def unknown_tool_reply(name: str) -> str:
    return f"Sorry, I can't use the tool '{name}'."


class AgentLoop:
    """Single entry point that turns one user message into one reply.

    One ``respond`` call makes at most two model calls. A structured tool
    call is executed and its output is summarized by a second, tool-less
    model call. A tool call recovered from plain text is executed and its raw
    output is returned as is. Every call appends exactly one user turn and
    one assistant turn to the store.
    """

    def __init__(
        self,
        *,
        store: ConversationStore,
        registry: ToolRegistry,
        model: ModelClient,
        failsafe: FailsafeResolver | None = None,
        serialize_contexts: bool = True,
    ) -> None:
        self._store = store
        self._registry = registry
        self._model = model
        self._failsafe = failsafe or FailsafeResolver(registry)
        self._serialize_contexts = serialize_contexts

    @property
    def store(self) -> ConversationStore:
        return self._store

    async def respond(
        self,
        context_key: str,
        system_prompt: str,
        user_input: str,
        *,
        tool_names: Iterable[str] | None = None,
        notify: Notify | None = None,
    ) -> str:
        allowed = self._permitted(tool_names)
        with logger.contextualize(context=context_key):
            async with self._guard(context_key):
                logger.info("agent.respond.start tools={}", len(allowed))
                history = self._store.get(context_key)[-self._store.limit :]
                user_turn = Turn.user(user_input)
                try:
                    final_text = await self._run(system_prompt, history, user_turn, allowed, notify)
                except ModelUnavailableError as exc:
                    logger.warning("agent.respond.model_error error={}", exc)
                    final_text = f"{SYSTEM_ERROR_PREFIX} {exc}"

                if not final_text.strip():
                    final_text = EMPTY_REPLY_FALLBACK
                self._store.append(context_key, user_turn)
                self._store.append(context_key, Turn.assistant(final_text))
                logger.info("agent.respond.done chars={}", len(final_text))
                return final_text

    def _guard(self, context_key: str) -> AbstractAsyncContextManager[Any]:
        if self._serialize_contexts:
            return self._store.lock(context_key)
        return nullcontext()

    def _permitted(self, tool_names: Iterable[str] | None) -> list[str]:
        if tool_names is None:
            return self._registry.names()
        wanted = set(tool_names)
        return [name for name in self._registry.names() if name in wanted]

    async def _run(
        self,
        system_prompt: str,
        history: tuple[Turn, ...],
        user_turn: Turn,
        allowed: list[str],
        notify: Notify | None,
    ) -> str:
        request = build_request(system_prompt, history, [user_turn])
        reply = await self._complete(request, self._registry.schema_for(allowed))

        if reply.tool_calls:
            if len(reply.tool_calls) > 1:
                logger.info("agent.tool_calls.extra ignored={}", len(reply.tool_calls) - 1)
            call = reply.tool_calls[0]
            try:
                args = parse_arguments(call.arguments)
            except MalformedToolArgumentsError as exc:
                logger.warning("agent.tool_call.malformed name={} error={}", call.name, exc)
                return await self._resolve_text(reply.text or "", allowed, notify)
            if call.name not in allowed:
                logger.error("agent.tool_call.unknown name={}", call.name)
                return unknown_tool_reply(call.name)
            result = await self._execute(call.name, args, call.id, notify)
            return await self._summarize(system_prompt, history, user_turn, call, result)

        return await self._resolve_text(reply.text or "", allowed, notify)

    async def _summarize(
        self,
        system_prompt: str,
        history: tuple[Turn, ...],
        user_turn: Turn,
        call: ToolCall,
        result: PendingToolResult,
    ) -> str:
        request = build_request(system_prompt, history, [user_turn, Turn.tool_request(call), Turn.tool_result(result)])
        reply = await self._complete(request, None)
        return reply.text or ""

    async def _resolve_text(self, text: str, allowed: list[str], notify: Notify | None) -> str:
        action = self._failsafe.resolve(text, allowed)
        if not isinstance(action, Execute):
            return action.text
        result = await self._execute(action.tool, action.args, None, notify, prefix=AUTO_FIX_PREFIX)
        return result.output

    async def _execute(
        self,
        name: str,
        args: dict[str, Any],
        call_id: str | None,
        notify: Notify | None,
        *,
        prefix: str = "",
    ) -> PendingToolResult:
        definition = self._registry.get(name)
        if notify is not None:
            notice = definition.notice or f"Running {name}..."
            await _send_notice(notify, f"{prefix} {notice}".strip())
        output = await self._registry.execute(name, args)
        return PendingToolResult(call_id=call_id, tool_name=name, output=output)

    async def _complete(self, request: tuple[dict[str, Any], ...], tools: list[dict[str, Any]] | None) -> ModelReply:
        try:
            return await self._model.complete(request, tools or None)
        except ModelUnavailableError:
            raise
        except Exception as exc:
            logger.exception("model.call.error")
            raise ModelUnavailableError(str(exc) or exc.__class__.__name__) from exc


def parse_arguments(raw: str | dict[str, Any] | None) -> dict[str, Any]:
    """Decode structured tool call arguments into a JSON object."""
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return raw
    if not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedToolArgumentsError(f"invalid JSON arguments: {exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise MalformedToolArgumentsError(f"arguments must be an object, got {type(parsed).__name__}")
    return parsed


async def _send_notice(notify: Notify, text: str) -> None:
    try:
        await notify(text)
    except Exception:
        logger.exception("agent.notify.error")
