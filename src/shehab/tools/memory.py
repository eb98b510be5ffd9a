"""Key-value project memory backed by a JSON file."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field

from shehab.tools.registry import ToolDefinition

USERS_KEY = "users"


class UpdateMemoryInput(BaseModel):
    key: str = Field(..., description="Memory key")
    value: str = Field(..., description="Value to store")


class KeyValueMemory:
    """Small JSON document holding project facts and known Slack users."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def read(self) -> dict[str, Any]:
        with self._lock:
            return self._read_locked()

    def _read_locked(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open(encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("memory.read.error path={} error={}", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_locked(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        return self.read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read_locked()
            data[key] = value
            self._write_locked(data)

    def users(self) -> dict[str, str]:
        users = self.get(USERS_KEY, {})
        return users if isinstance(users, dict) else {}

    def cached_user_name(self, user_id: str) -> str | None:
        return self.users().get(user_id)

    def cache_user_name(self, user_id: str, name: str) -> None:
        with self._lock:
            data = self._read_locked()
            users = data.get(USERS_KEY)
            if not isinstance(users, dict):
                users = {}
            users[user_id] = name
            data[USERS_KEY] = users
            self._write_locked(data)


def create_memory_tool(memory: KeyValueMemory) -> ToolDefinition:
    def _handler(params: UpdateMemoryInput) -> str:
        try:
            memory.set(params.key, params.value)
        except OSError as exc:
            return f"Failed to update memory: {exc!s}"
        return f"💾 Memory Updated! Set '{params.key}' to: \"{params.value}\""

    return ToolDefinition.from_model(
        UpdateMemoryInput,
        _handler,
        name="update_memory",
        description="Update project memory with a key/value fact",
        notice="💾 Saving...",
    )
