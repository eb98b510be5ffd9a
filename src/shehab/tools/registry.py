"""Tool registry."""

from __future__ import annotations

import inspect
import json
import time
from collections.abc import Awaitable, Callable, Iterable
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from shehab.errors import DuplicateToolError, UnknownToolError

Executor = Callable[[dict[str, Any]], Awaitable[str] | str]

M = TypeVar("M", bound=BaseModel)


def _shorten_text(text: str, width: int = 30, placeholder: str = "...") -> str:
    """Shorten text to width characters, cutting in the middle of words if needed."""
    if len(text) <= width:
        return text

    available = width - len(placeholder)
    if available <= 0:
        return placeholder

    return text[:available] + placeholder


@dataclass(frozen=True)
class ToolDefinition:
    """Declared tool capability and its executor."""

    name: str
    description: str
    executor: Executor
    parameters: dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})
    notice: str | None = None

    @classmethod
    def from_model(
        cls,
        model: type[M],
        handler: Callable[[M], Awaitable[str] | str],
        *,
        name: str,
        description: str,
        notice: str | None = None,
    ) -> ToolDefinition:
        """Build a definition whose parameters and validation come from a pydantic model."""
        schema = model.model_json_schema()
        schema.pop("title", None)
        schema.pop("description", None)
        for prop in schema.get("properties", {}).values():
            prop.pop("title", None)
        schema.setdefault("properties", {})

        async def _executor(args: dict[str, Any]) -> str:
            try:
                params = model.model_validate(args)
            except ValidationError as exc:
                return f"error: invalid arguments for {name}: {exc.error_count()} validation error(s)"
            result = handler(params)
            if inspect.isawaitable(result):
                result = await result
            return str(result)

        return cls(name=name, description=description, executor=_executor, parameters=schema, notice=notice)

    def schema(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": deepcopy(self.parameters),
            },
        }


class ToolRegistry:
    """Fixed catalog of tools, dispatched by name.

    Registration order is preserved and doubles as the failsafe priority.
    """

    def __init__(self, definitions: Iterable[ToolDefinition] = ()) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        for definition in definitions:
            self.register(definition)

    def register(self, definition: ToolDefinition) -> None:
        if definition.name in self._tools:
            raise DuplicateToolError(f"tool already registered: {definition.name}")
        self._tools[definition.name] = definition

    def has(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> ToolDefinition:
        definition = self._tools.get(name)
        if definition is None:
            raise UnknownToolError(name)
        return definition

    def names(self) -> list[str]:
        return list(self._tools)

    def parameter_names(self, name: str) -> list[str]:
        return list(self.get(name).parameters.get("properties", {}))

    def required_parameters(self, name: str) -> list[str]:
        return list(self.get(name).parameters.get("required", []))

    def schema_for(self, tool_names: Iterable[str] | None = None) -> list[dict[str, Any]]:
        if tool_names is None:
            return [definition.schema() for definition in self._tools.values()]

        wanted = set(tool_names)
        for name in wanted:
            if name not in self._tools:
                raise UnknownToolError(name)
        return [definition.schema() for definition in self._tools.values() if definition.name in wanted]

    async def execute(self, name: str, args: dict[str, Any]) -> str:
        definition = self.get(name)
        self._log_tool_call(name, args)

        start = time.monotonic()
        try:
            result = definition.executor(args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.exception("tool.call.error name={}", name)
            return f"error: {name} failed: {exc!s}"
        finally:
            duration = time.monotonic() - start
            logger.info("tool.call.end name={} duration={:.3f}ms", name, duration * 1000)
        return "" if result is None else str(result)

    def _log_tool_call(self, name: str, kwargs: dict[str, Any]) -> None:
        params: list[str] = []
        for key, value in kwargs.items():
            try:
                rendered = json.dumps(value, ensure_ascii=False)
            except TypeError:
                rendered = repr(value)
            value = _shorten_text(rendered, width=30, placeholder="...")
            if value.startswith('"') and not value.endswith('"'):
                value = value + '"'
            params.append(f"{key}={value}")
        logger.info("tool.call.start name={} {{ {} }}", name, ", ".join(params))
