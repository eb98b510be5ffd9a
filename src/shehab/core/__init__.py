"""Core agent loop components."""

from shehab.core.agent_loop import AgentLoop
from shehab.core.failsafe import FailsafeResolver
from shehab.core.model import ModelClient, RepublicModelClient
from shehab.core.request import build_request
from shehab.core.store import ConversationStore
from shehab.core.types import Execute, ModelReply, PendingToolResult, ResolvedAction, ReturnText, ToolCall, Turn

__all__ = [
    "AgentLoop",
    "ConversationStore",
    "Execute",
    "FailsafeResolver",
    "ModelClient",
    "ModelReply",
    "PendingToolResult",
    "RepublicModelClient",
    "ResolvedAction",
    "ReturnText",
    "ToolCall",
    "Turn",
    "build_request",
]
