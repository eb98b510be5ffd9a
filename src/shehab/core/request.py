"""Model request construction."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from shehab.core.types import Turn

Message = dict[str, Any]


def build_request(system_prompt: str, history: Iterable[Turn], new_turns: Iterable[Turn]) -> tuple[Message, ...]:
    """Build ``[system] + history + new_turns`` as a fresh message tuple.

    The system prompt is rendered on every call and never stored in history.
    """
    messages: list[Message] = []
    if system_prompt.strip():
        messages.append({"role": "system", "content": system_prompt})
    messages.extend(turn.to_message() for turn in history)
    messages.extend(turn.to_message() for turn in new_turns)
    return tuple(messages)
