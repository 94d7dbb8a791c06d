"""FastAPI routes for the chat orchestrator."""

from .chat_widget import router as chat_widget_router

__all__ = [
    "chat_widget_router",
]
