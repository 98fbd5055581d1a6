"""Pydantic models for normalized conversations and derived analytics."""
from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Platform = Literal["claude", "codex", "cursor"]
SourceKind = Literal["main", "subagent"]
MessageType = Literal["user", "assistant", "system"]
Priority = Literal["high", "medium", "low"]


# ── Conversation models ─────────────────────────────────────────────

class ContentItem(BaseModel):
    """One unit of message content. Only `text` and `tool_use` are analyzed."""

    model_config = ConfigDict(extra="allow", frozen=True)

    type: str = ""
    name: Optional[str] = None
    text: Optional[str] = None


class Message(BaseModel):
    # Extra keys carry raw source fields (uuid, cwd, sessionId, ...) for schema profiling.
    model_config = ConfigDict(extra="allow", frozen=True)

    type: MessageType
    timestamp: str
    content: Union[str, list[ContentItem], dict[str, Any], None] = None


class Conversation(BaseModel):
    model_config = ConfigDict(frozen=True)

    conversationId: str
    project: str = "unknown"
    platform: Platform
    sourceKind: SourceKind = "main"
    parentConversationId: Optional[str] = None
    path: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    messages: list[Message] = Field(min_length=1)


# ── Analytics models ───────────────────────────────────────────────

class Recommendation(BaseModel):
    type: str  # "efficiency" | "workflow" | "prompting"
    title: str
    insight: str
    action: str
    priority: Priority = "medium"


def present_fields(model: BaseModel) -> list[str]:
    """Return declared fields holding a value plus any preserved extra keys."""
    names = [name for name in type(model).model_fields if getattr(model, name) is not None]
    names.extend((model.model_extra or {}).keys())
    return names
