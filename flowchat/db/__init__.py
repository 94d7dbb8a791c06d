"""Database layer - SQLModel tables and async sessions."""

from .models import (
    FlowModel,
    FlowProjectModel,
    FlowDataModel,
    FlowVariableModel,
    FlowMonitoringLogModel,
    TableProjectModel,
)
from .session import async_session_factory, engine, get_session, init_db

__all__ = [
    "FlowModel",
    "FlowProjectModel",
    "FlowDataModel",
    "FlowVariableModel",
    "FlowMonitoringLogModel",
    "TableProjectModel",
    "async_session_factory",
    "engine",
    "get_session",
    "init_db",
]
