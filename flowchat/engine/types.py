"""Core type definitions for the chat orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

AGENT_NODE_TYPE = "ai-agent"


@dataclass
class WorkflowNode:
    """A configured unit of action in a flow graph."""

    id: str
    type: str
    inputs: dict[str, Any] = field(default_factory=dict)
    label: str | None = None
    description: str | None = None
    disabled: bool = False

    @classmethod
    def from_graph(cls, raw: dict[str, Any]) -> WorkflowNode:
        """Build a node from the editor shape {id, data: {type, inputs, ...}}."""
        data = raw.get("data") or {}
        return cls(
            id=str(raw.get("id") or ""),
            type=data.get("type") or "",
            inputs=dict(data.get("inputs") or {}),
            label=data.get("label"),
            description=data.get("description"),
            disabled=bool(data.get("disabled", False)),
        )

    @property
    def display_name(self) -> str:
        return self.label or self.id

    def with_inputs(self, inputs: dict[str, Any]) -> WorkflowNode:
        """Return a copy of this node carrying different inputs."""
        return WorkflowNode(
            id=self.id,
            type=self.type,
            inputs=inputs,
            label=self.label,
            description=self.description,
            disabled=self.disabled,
        )


@dataclass
class Edge:
    """Directed connection between two nodes."""

    source: str
    target: str


@dataclass
class FlowGraph:
    """Nodes and edges of one flow snapshot."""

    nodes: list[WorkflowNode]
    edges: list[Edge]

    @classmethod
    def from_snapshot(
        cls, nodes: list[dict[str, Any]] | None, edges: list[dict[str, Any]] | None
    ) -> FlowGraph:
        return cls(
            nodes=[WorkflowNode.from_graph(n) for n in nodes or []],
            edges=[
                Edge(source=str(e.get("source")), target=str(e.get("target")))
                for e in edges or []
                if e.get("source") and e.get("target")
            ],
        )

    def find_agent(self) -> WorkflowNode | None:
        """Return the first AI agent node in the graph."""
        return next((n for n in self.nodes if n.type == AGENT_NODE_TYPE), None)

    def downstream_of(self, node_id: str) -> list[WorkflowNode]:
        """Nodes reachable through one direct edge, in graph order."""
        targets = {e.target for e in self.edges if e.source == node_id}
        return [n for n in self.nodes if n.id in targets]


@dataclass
class ToolResult:
    """Normalized outcome of executing a node."""

    success: bool
    output: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, output: Any) -> ToolResult:
        return cls(success=True, output=output)

    @classmethod
    def fail(cls, error: str, output: Any = None) -> ToolResult:
        return cls(success=False, output=output, error=error)

    def as_message_payload(self) -> Any:
        """What the model sees as the tool result."""
        return self.output if self.success else {"error": self.error}


@dataclass
class ToolSet:
    """Tool schemas offered to the model plus the nodes they route to."""

    tools: list[dict[str, Any]] = field(default_factory=list)
    node_map: dict[str, WorkflowNode] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.tools)


@dataclass
class ExecutionContext:
    """Per-execution state handed to node handlers.

    ``values`` is the substitution source for {{path}} placeholders; it is
    created fresh for every tool call or hook and never persisted.
    """

    flow_id: str
    execution_id: str
    values: dict[str, Any] = field(default_factory=dict)

    # Collaborators, injected by the executor's owner
    http_client: Any | None = None  # httpx.AsyncClient
    proxy: Any | None = None  # integrations.ProxyClient
    tables: Any | None = None  # repositories.TableRepository

    def as_mapping(self) -> dict[str, Any]:
        """Substitution mapping including the well-known run identifiers."""
        return {
            "_flowProjectId": self.flow_id,
            "_executionId": self.execution_id,
            **self.values,
        }

