"""Base node class for all tool-capable workflow nodes."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from ..engine.types import ExecutionContext, ToolResult, WorkflowNode


@dataclass
class NodePropertyOption:
    """Option for a node property."""

    name: str
    value: str
    description: str | None = None


@dataclass
class NodeProperty:
    """Input field definition for a node type."""

    display_name: str
    name: str
    type: str  # string, text, number, boolean, options, json
    default: Any = None
    required: bool = False
    description: str | None = None
    placeholder: str | None = None
    options: list[NodePropertyOption] | None = None


@dataclass
class NodeTypeDescription:
    """Description of a node type, used to build tool schemas."""

    name: str
    display_name: str
    description: str
    icon: str | None = None
    group: list[str] = field(default_factory=lambda: ["action"])
    properties: list[NodeProperty] = field(default_factory=list)

    def get_property(self, name: str) -> NodeProperty | None:
        return next((p for p in self.properties if p.name == name), None)


class BaseNode(ABC):
    """
    Abstract base class for node handlers.

    A handler is stateless; the per-call state travels in the
    ExecutionContext. Handlers return a ToolResult for expected failures
    (bad configuration, non-2xx responses); anything they raise is turned
    into a failed result by the NodeExecutor.
    """

    node_description: NodeTypeDescription | None = None

    @property
    @abstractmethod
    def type(self) -> str:
        """Node type identifier."""
        ...

    @property
    def description(self) -> str:
        """Short description of what the node does."""
        if self.node_description:
            return self.node_description.description
        return f"Execute {self.type}"

    @abstractmethod
    async def execute(
        self,
        node: WorkflowNode,
        inputs: dict[str, Any],
        context: ExecutionContext,
    ) -> ToolResult:
        """Execute the node with already-resolved inputs."""
        ...

    def get_parameter(self, inputs: dict[str, Any], key: str, default: Any = None) -> Any:
        """Get an input value, treating empty strings as unset."""
        value = inputs.get(key)
        if value is None or value == "":
            return default
        return value

    @staticmethod
    def parse_json(value: Any, default: Any = None) -> Any:
        """Parse a JSON string; structured values pass through, bad JSON yields the default."""
        if value is None or value == "":
            return default
        if not isinstance(value, str):
            return value
        try:
            return json.loads(value)
        except ValueError:
            return default

    def success(self, output: Any) -> ToolResult:
        """Helper to create a successful result."""
        from ..engine.types import ToolResult

        return ToolResult.ok(output)

    def failure(self, error: str, output: Any = None) -> ToolResult:
        """Helper to create a failed result."""
        from ..engine.types import ToolResult

        return ToolResult.fail(error, output)
