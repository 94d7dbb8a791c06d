"""Error-log sink backed by flow_monitoring_logs."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db.models import FlowMonitoringLogModel

logger = logging.getLogger(__name__)

LOG_SOURCE = "chat-widget"
MESSAGE_PREFIX = "[Chat Widget]"


class LogRepository:
    """Writes chat errors to the monitoring log."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def log_chat_error(
        self,
        flow_id: str,
        node_id: str | None,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """
        Persist an error entry. Best-effort: a failed write is logged and
        swallowed so logging can never turn into a user-visible failure.
        """
        entry = FlowMonitoringLogModel(
            flow_id=flow_id,
            execution_id=None,
            node_id=node_id,
            level="error",
            message=f"{MESSAGE_PREFIX} {message}",
            log_metadata={"source": LOG_SOURCE, **(metadata or {})},
        )
        try:
            async with self._session_factory() as session:
                session.add(entry)
                await session.commit()
        except Exception:
            logger.exception("Failed to persist chat error log for flow %s", flow_id)
