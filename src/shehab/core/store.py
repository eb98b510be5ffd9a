"""In-memory conversation store."""

from __future__ import annotations

import asyncio
import threading
from collections import deque

from shehab.core.types import Turn

DEFAULT_HISTORY_LIMIT = 20


class ConversationStore:
    """Bounded per-context turn history.

    Each context keeps at most ``limit`` turns; the oldest are evicted first.
    Contexts are never dropped, so memory grows with the number of distinct
    context keys seen by the process.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("history limit must be positive")
        self._limit = limit
        self._turns: dict[str, deque[Turn]] = {}
        self._mutex = threading.Lock()
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def limit(self) -> int:
        return self._limit

    def get(self, context_key: str) -> tuple[Turn, ...]:
        with self._mutex:
            turns = self._turns.get(context_key)
            return tuple(turns) if turns is not None else ()

    def append(self, context_key: str, turn: Turn) -> None:
        with self._mutex:
            turns = self._turns.get(context_key)
            if turns is None:
                turns = deque(maxlen=self._limit)
                self._turns[context_key] = turns
            turns.append(turn)

    def keys(self) -> list[str]:
        with self._mutex:
            return list(self._turns)

    def lock(self, context_key: str) -> asyncio.Lock:
        """Return the lock that serializes work on one context."""
        with self._mutex:
            lock = self._locks.get(context_key)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[context_key] = lock
            return lock
