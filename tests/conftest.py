"""Shared fixtures: a throwaway SQLite database, seeded flows, fake providers."""

import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="flowchat-tests-")
os.environ["FLOWCHAT_DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/flowchat.db"
os.environ["FLOWCHAT_STORAGE_DIR"] = _TEST_DIR
os.environ["FLOWCHAT_OPENAI_API_KEY"] = ""
os.environ["FLOWCHAT_ANTHROPIC_API_KEY"] = ""

from typing import Any, Callable  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from flowchat.db import (  # noqa: E402
    FlowDataModel,
    FlowModel,
    FlowProjectModel,
    FlowVariableModel,
    TableProjectModel,
    async_session_factory,
    engine,
)
from flowchat.engine.llm_provider import LLMResponse, ToolCall  # noqa: E402
from flowchat.engine.node_registry import register_all_nodes  # noqa: E402
from flowchat.engine.types import ExecutionContext  # noqa: E402

register_all_nodes()

AGENT_ID = "agent-1"


# ============================================================================
# Database
# ============================================================================


@pytest.fixture
async def db():
    """Fresh tables for every test; yields the session factory."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)
    yield async_session_factory


def editor_node(node_id: str, node_type: str, inputs: dict[str, Any] | None = None, **data: Any) -> dict[str, Any]:
    """A node in the shape the flow editor stores."""
    return {"id": node_id, "data": {"type": node_type, "inputs": inputs or {}, **data}}


async def seed_flow(
    session_factory,
    nodes: list[dict[str, Any]],
    edges: list[dict[str, Any]] | None = None,
    *,
    project_id: str = "11111111-2222-3333-4444-555555555555",
    status: str = "active",
    allowed_domains: list[str] | None = None,
    slug: str | None = None,
    deployed: bool = False,
    published: bool = False,
    variables: dict[str, str] | None = None,
    secrets: dict[str, str] | None = None,
    widget_config: dict[str, Any] | None = None,
) -> str:
    """Insert a project, its flow row, one snapshot and its variables."""
    async with session_factory() as session:
        session.add(FlowProjectModel(
            id=project_id,
            name="Test flow",
            is_deployed=deployed,
            endpoint_slug=slug,
            chat_widget_config=widget_config or {},
        ))
        session.add(FlowModel(
            flow_project_id=project_id,
            status=status,
            allowed_domains=allowed_domains,
        ))
        session.add(FlowDataModel(
            flow_project_id=project_id,
            version=1,
            is_published=published,
            nodes=nodes,
            edges=edges or [],
        ))
        for name, value in (variables or {}).items():
            session.add(FlowVariableModel(flow_project_id=project_id, name=name, value=value))
        for name, value in (secrets or {}).items():
            session.add(FlowVariableModel(
                flow_project_id=project_id, name=name, value=value, is_secret=True
            ))
        await session.commit()
    return project_id


async def seed_table(session_factory, records=None, fields=None, table_id: str = "table-1") -> str:
    async with session_factory() as session:
        session.add(TableProjectModel(
            id=table_id,
            name="Leads",
            records=records or [],
            table_schema={"fields": fields or []},
        ))
        await session.commit()
    return table_id


@pytest.fixture
def seed():
    return seed_flow


# ============================================================================
# HTTP
# ============================================================================


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def recording(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(recording)


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> tuple[httpx.AsyncClient, RecordingTransport]:
    transport = RecordingTransport(handler)
    return httpx.AsyncClient(transport=transport), transport


def make_context(**kwargs: Any) -> ExecutionContext:
    kwargs.setdefault("flow_id", "flow-1")
    kwargs.setdefault("execution_id", "exec-1")
    return ExecutionContext(**kwargs)


# ============================================================================
# LLM
# ============================================================================


class ScriptedLLM:
    """Stands in for call_llm, answering from a fixed script."""

    def __init__(self, *responses: LLMResponse) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    async def __call__(self, target, messages, tools=None, temperature=0.7, http_client=None) -> LLMResponse:
        self.calls.append({
            "target": target,
            "messages": [dict(m) for m in messages],
            "tools": tools,
            "temperature": temperature,
        })
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


def text_reply(text: str | None) -> LLMResponse:
    return LLMResponse(text=text, stop_reason="stop")


def tool_reply(*calls: tuple[str, str, dict[str, Any]], text: str | None = None) -> LLMResponse:
    return LLMResponse(
        text=text,
        tool_calls=[ToolCall(id=call_id, name=name, args=args) for call_id, name, args in calls],
        stop_reason="tool_calls",
    )
