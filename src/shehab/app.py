"""Application runtime wiring."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
from loguru import logger

from shehab.config import Settings
from shehab.core import AgentLoop, ConversationStore, ModelClient, RepublicModelClient
from shehab.core.agent_loop import Notify
from shehab.tools.builtin import register_builtin_tools
from shehab.tools.memory import KeyValueMemory
from shehab.tools.registry import ToolRegistry

HTTP_TIMEOUT_SECONDS = 20
PROMPT_DEFAULTS = {"project_name": "the project", "speaker": "a teammate"}


class _PromptValues(dict[str, Any]):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


class App:
    """Owns the process-wide store, registry, model client and agent loop."""

    def __init__(
        self,
        settings: Settings,
        *,
        model: ModelClient | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.model = model or RepublicModelClient.from_settings(settings)
        self.http = http_client or httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)
        self.memory = KeyValueMemory(settings.memory_path)
        self.store = ConversationStore(settings.history_limit)
        self.registry = ToolRegistry()
        register_builtin_tools(self.registry, settings=settings, client=self.http, memory=self.memory, model=self.model)
        self.loop = AgentLoop(
            store=self.store,
            registry=self.registry,
            model=self.model,
            serialize_contexts=settings.serialize_contexts,
        )
        logger.info("app.ready tools={} history_limit={}", len(self.registry.names()), self.store.limit)

    async def __aenter__(self) -> App:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    @property
    def tool_names(self) -> list[str] | None:
        return self.settings.allowed_tools

    def render_system_prompt(self, **values: Any) -> str:
        """Fill the configured prompt template from memory facts and per-message values."""
        facts: dict[str, Any] = dict(PROMPT_DEFAULTS)
        facts.update({key: value for key, value in self.memory.read().items() if isinstance(value, str)})
        facts.update({key: value for key, value in values.items() if value is not None})
        return self.settings.system_prompt.format_map(_PromptValues(facts))

    async def respond(
        self,
        context_key: str,
        user_input: str,
        *,
        prompt_values: Mapping[str, Any] | None = None,
        notify: Notify | None = None,
    ) -> str:
        system_prompt = self.render_system_prompt(**(prompt_values or {}))
        return await self.loop.respond(
            context_key,
            system_prompt,
            user_input,
            tool_names=self.tool_names,
            notify=notify,
        )
