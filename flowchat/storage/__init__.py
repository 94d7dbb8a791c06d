"""File storage for knowledge-base documents."""

from .knowledge_store import KnowledgeStore

__all__ = [
    "KnowledgeStore",
]
