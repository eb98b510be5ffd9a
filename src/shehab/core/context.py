"""Conversation context key policy."""

from __future__ import annotations

from shehab.config import ContextScope


def context_key(channel: str, thread_ts: str | None, ts: str | None, scope: ContextScope) -> str:
    """Map one inbound chat message to the key its history is stored under."""
    if scope is ContextScope.CHANNEL:
        return channel
    if thread_ts:
        return thread_ts
    if scope is ContextScope.MESSAGE and ts:
        return ts
    return channel
