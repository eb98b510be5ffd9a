"""Core data types for the agent loop."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

Role = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True)
class ToolCall:
    """Structured tool call emitted by the model."""

    id: str
    name: str
    arguments: str = ""

    def to_message(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments or "{}"},
        }


@dataclass(frozen=True)
class Turn:
    """One stored message unit."""

    role: Role
    content: str
    tool_call_id: str | None = None
    tool_name: str | None = None
    tool_call: ToolCall | None = None

    @classmethod
    def user(cls, content: str) -> Turn:
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> Turn:
        return cls(role="assistant", content=content)

    @classmethod
    def tool_request(cls, call: ToolCall) -> Turn:
        return cls(role="assistant", content="", tool_call=call)

    @classmethod
    def tool_result(cls, result: PendingToolResult) -> Turn:
        return cls(role="tool", content=result.output, tool_call_id=result.call_id, tool_name=result.tool_name)

    def to_message(self) -> dict[str, Any]:
        if self.tool_call is not None:
            return {"role": "assistant", "content": self.content or None, "tool_calls": [self.tool_call.to_message()]}
        if self.role == "tool":
            message: dict[str, Any] = {"role": "tool", "content": self.content}
            if self.tool_call_id is not None:
                message["tool_call_id"] = self.tool_call_id
            if self.tool_name is not None:
                message["name"] = self.tool_name
            return message
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ModelReply:
    """Normalized model response."""

    text: str | None = None
    tool_calls: tuple[ToolCall, ...] = ()


@dataclass(frozen=True)
class PendingToolResult:
    """Output of one executed tool, consumed by the follow-up request."""

    call_id: str | None
    tool_name: str
    output: str


@dataclass(frozen=True)
class Execute:
    """Resolved action: run a tool with arguments."""

    tool: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ReturnText:
    """Resolved action: hand the text back unchanged."""

    text: str


ResolvedAction = Execute | ReturnText
