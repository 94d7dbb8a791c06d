"""Pydantic schemas for API request/response validation."""

from .chat import (
    ChatMessage,
    ChatRequest,
    ChatReply,
    ChatErrorResponse,
)
from .common import HealthResponse

__all__ = [
    # Chat schemas
    "ChatMessage",
    "ChatRequest",
    "ChatReply",
    "ChatErrorResponse",
    # Common schemas
    "HealthResponse",
]
