"""Schemas for the chat widget endpoint."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

HISTORY_ROLES = ("user", "assistant")


class ChatMessage(BaseModel):
    """A single turn of caller-supplied history."""

    role: str
    content: str


class ChatRequest(BaseModel):
    """Request body for POST /chat-widget."""

    model_config = ConfigDict(extra="ignore")

    flow: str | None = None
    flowProjectId: str | None = None
    mode: str | None = None
    message: str | None = None
    history: list[dict[str, Any]] | None = None
    sessionId: str | None = None

    @property
    def flow_identifier(self) -> str | None:
        return self.flow or self.flowProjectId

    def history_messages(self) -> list[ChatMessage]:
        """User and assistant turns that carry content."""
        turns: list[ChatMessage] = []
        for item in self.history or []:
            if item.get("role") in HISTORY_ROLES and item.get("content"):
                turns.append(ChatMessage(role=str(item["role"]), content=str(item["content"])))
        return turns


class ChatReply(BaseModel):
    """Successful chat turn."""

    reply: str
    conversation_id: str | None = None


class ChatErrorResponse(BaseModel):
    """Error body returned by the chat endpoint."""

    error: str
    error_code: str | None = None
    details: Any = None
