"""Repository layer for data persistence."""

from .flow_repository import FlowRepository, is_uuid
from .table_repository import TableRepository
from .log_repository import LogRepository

__all__ = [
    "FlowRepository",
    "TableRepository",
    "LogRepository",
    "is_uuid",
]
