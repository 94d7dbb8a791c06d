"""SQLModel database models.

These mirror the tables the chat endpoint reads and writes. Graph
snapshots, widget config and data-table records are stored as JSON.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


def _uuid() -> str:
    return str(uuid.uuid4())


class FlowModel(SQLModel, table=True):
    """Deployment status and access rules of a flow."""

    __tablename__ = "flows"

    id: str = Field(default_factory=_uuid, primary_key=True)
    flow_project_id: str = Field(index=True)
    status: str = Field(default="active", index=True)  # active, inactive
    allowed_domains: list[str] | None = Field(default=None, sa_column=Column(JSON))


class FlowProjectModel(SQLModel, table=True):
    """Flow project with its public slug and widget display config."""

    __tablename__ = "flow_projects"

    id: str = Field(default_factory=_uuid, primary_key=True)
    name: str = Field(default="")
    is_deployed: bool = Field(default=False, index=True)
    endpoint_slug: str | None = Field(default=None, index=True)
    chat_widget_config: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))


class FlowDataModel(SQLModel, table=True):
    """Versioned snapshot of a flow graph (nodes + edges)."""

    __tablename__ = "flow_data"

    id: str = Field(default_factory=_uuid, primary_key=True)
    flow_project_id: str = Field(index=True)
    version: int = Field(default=1, index=True)
    is_published: bool = Field(default=False)

    # Editor-shaped graph: nodes are {id, data: {type, inputs, ...}}, edges {source, target}
    nodes: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    edges: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))


class FlowVariableModel(SQLModel, table=True):
    """Plain or secret key/value pair scoped to a flow project."""

    __tablename__ = "flow_variables"

    id: str = Field(default_factory=_uuid, primary_key=True)
    flow_project_id: str = Field(index=True)
    name: str = Field(index=True)
    value: str | None = Field(default=None)
    is_secret: bool = Field(default=False)


class FlowMonitoringLogModel(SQLModel, table=True):
    """Error-log sink entry."""

    __tablename__ = "flow_monitoring_logs"

    id: str = Field(default_factory=_uuid, primary_key=True)
    flow_id: str = Field(index=True)
    execution_id: str | None = Field(default=None)
    node_id: str | None = Field(default=None)
    level: str = Field(default="error")
    message: str
    # "metadata" is reserved on declarative models
    log_metadata: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column("metadata", JSON)
    )
    created_at: datetime = Field(default_factory=datetime.now, index=True)


class TableProjectModel(SQLModel, table=True):
    """Records-array table used by data-table nodes."""

    __tablename__ = "table_projects"

    id: str = Field(default_factory=_uuid, primary_key=True)
    name: str = Field(default="")
    records: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    # "schema" shadows a BaseModel attribute
    table_schema: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column("schema", JSON)
    )
