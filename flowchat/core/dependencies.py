"""FastAPI dependency injection for the chat endpoint."""

from __future__ import annotations

from functools import lru_cache

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .config import settings


# --- Database Dependency ---


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the async session factory; repositories open their own sessions."""
    from ..db import async_session_factory

    return async_session_factory


# --- HTTP / Collaborator Dependencies ---


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Shared HTTP client created in the app lifespan."""
    return request.app.state.http_client


def get_proxy_client(http_client: httpx.AsyncClient = Depends(get_http_client)):
    """Get the integration proxy client."""
    from ..integrations import ProxyClient

    return ProxyClient(http_client, settings.proxy_base_url, settings.proxy_service_key)


@lru_cache
def get_knowledge_store():
    """Get knowledge store instance."""
    from ..storage import KnowledgeStore

    return KnowledgeStore(settings.storage_dir)


# --- Repository Dependencies ---


def get_flow_repository(session_factory=Depends(get_session_factory)):
    """Get flow repository instance."""
    from ..repositories import FlowRepository

    return FlowRepository(session_factory)


def get_log_repository(session_factory=Depends(get_session_factory)):
    """Get error-log repository instance."""
    from ..repositories import LogRepository

    return LogRepository(session_factory)


# --- Service Dependencies ---


def get_chat_service(
    session_factory=Depends(get_session_factory),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    proxy=Depends(get_proxy_client),
    knowledge=Depends(get_knowledge_store),
):
    """Get chat service instance."""
    from ..services.chat_service import ChatService

    return ChatService(session_factory, http_client, proxy=proxy, knowledge=knowledge)
