"""Flow repository - flows, projects, graph snapshots and variables."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import col, or_, select

from ..db.models import (
    FlowDataModel,
    FlowModel,
    FlowProjectModel,
    FlowVariableModel,
)

if TYPE_CHECKING:
    from ..engine.types import FlowGraph

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


def is_uuid(identifier: str) -> bool:
    """UUID identifiers address a project directly; anything else is a slug."""
    return bool(UUID_PATTERN.match(identifier or ""))


class FlowRepository:
    """
    Read access to everything the chat endpoint needs about a flow.

    Each method opens its own session so the repository can be used from
    the request path and from detached hook tasks alike.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_active_flow(self, identifier: str) -> FlowModel | None:
        """Active flow whose project matches the id, or the deployed project's slug."""
        async with self._session_factory() as session:
            slug_projects = select(FlowProjectModel.id).where(
                FlowProjectModel.endpoint_slug == identifier,
                col(FlowProjectModel.is_deployed).is_(True),
            )
            query = select(FlowModel).where(
                FlowModel.status == "active",
                or_(
                    FlowModel.flow_project_id == identifier,
                    col(FlowModel.flow_project_id).in_(slug_projects),
                ),
            )
            result = await session.execute(query)
            return result.scalars().first()

    async def get_flow_status(self, identifier: str) -> str | None:
        """Status of the flow owned by a project id, if there is one."""
        async with self._session_factory() as session:
            query = select(FlowModel.status).where(FlowModel.flow_project_id == identifier)
            result = await session.execute(query)
            return result.scalars().first()

    async def find_project(self, identifier: str) -> FlowProjectModel | None:
        """
        Look up a flow project.

        UUIDs match the project id first; slugs (and UUIDs with no such
        project) match the endpoint slug of a deployed project.
        """
        async with self._session_factory() as session:
            if is_uuid(identifier):
                project = await session.get(FlowProjectModel, identifier)
                if project is not None:
                    return project

            query = select(FlowProjectModel).where(
                FlowProjectModel.endpoint_slug == identifier,
                col(FlowProjectModel.is_deployed).is_(True),
            )
            result = await session.execute(query)
            return result.scalars().first()

    async def load_graph(self, flow_project_id: str, prefer_published: bool) -> FlowGraph | None:
        """
        Load the graph snapshot to run.

        Public (slug) access prefers the newest published snapshot; preview
        access, or a project with nothing published, gets the newest one.
        """
        from ..engine.types import FlowGraph

        async with self._session_factory() as session:
            snapshot: FlowDataModel | None = None
            if prefer_published:
                query = (
                    select(FlowDataModel)
                    .where(
                        FlowDataModel.flow_project_id == flow_project_id,
                        col(FlowDataModel.is_published).is_(True),
                    )
                    .order_by(col(FlowDataModel.version).desc())
                    .limit(1)
                )
                snapshot = (await session.execute(query)).scalars().first()

            if snapshot is None:
                query = (
                    select(FlowDataModel)
                    .where(FlowDataModel.flow_project_id == flow_project_id)
                    .order_by(col(FlowDataModel.version).desc())
                    .limit(1)
                )
                snapshot = (await session.execute(query)).scalars().first()

        if snapshot is None:
            return None
        return FlowGraph.from_snapshot(snapshot.nodes, snapshot.edges)

    async def get_variable(self, flow_project_id: str, name: str) -> str | None:
        """Value of a flow variable by name (plain or secret)."""
        async with self._session_factory() as session:
            query = select(FlowVariableModel.value).where(
                FlowVariableModel.flow_project_id == flow_project_id,
                FlowVariableModel.name == name,
            )
            result = await session.execute(query)
            return result.scalars().first()

    async def get_secret_variable(self, flow_project_id: str, name: str) -> str | None:
        """Value of a secret flow variable by name."""
        async with self._session_factory() as session:
            query = select(FlowVariableModel.value).where(
                FlowVariableModel.flow_project_id == flow_project_id,
                FlowVariableModel.name == name,
                col(FlowVariableModel.is_secret).is_(True),
            )
            result = await session.execute(query)
            return result.scalars().first()

    async def list_variables(self, flow_project_id: str) -> list[FlowVariableModel]:
        """All variables of a project."""
        async with self._session_factory() as session:
            query = select(FlowVariableModel).where(
                FlowVariableModel.flow_project_id == flow_project_id
            )
            result = await session.execute(query)
            return list(result.scalars().all())

    async def get_secrets(self, flow_project_id: str) -> dict[str, str]:
        """Secret variables of a project as a name -> value map."""
        async with self._session_factory() as session:
            query = select(FlowVariableModel).where(
                FlowVariableModel.flow_project_id == flow_project_id,
                col(FlowVariableModel.is_secret).is_(True),
            )
            result = await session.execute(query)
            return {v.name: v.value for v in result.scalars().all() if v.value is not None}
