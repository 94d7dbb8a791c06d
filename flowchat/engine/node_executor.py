"""Node executor - resolves a node's inputs and runs its handler."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from .node_registry import NodeRegistryClass, node_registry
from .types import ExecutionContext, ToolResult, WorkflowNode
from .variable_resolver import VariableResolver, variable_resolver

logger = logging.getLogger(__name__)

# (flow_id, node_id, message, metadata) -> None
ErrorSink = Callable[[str, Optional[str], str, dict[str, Any]], Awaitable[None]]


class NodeExecutor:
    """
    Executes one workflow node and always returns a ToolResult.

    Inputs are resolved against the context, data-table field maps are
    folded into ``data``, and the handler registered for the node's type
    runs. Exceptions never escape: they become failed results so one bad
    tool cannot abort the conversation around it.
    """

    def __init__(
        self,
        registry: NodeRegistryClass | None = None,
        resolver: VariableResolver | None = None,
        error_sink: ErrorSink | None = None,
    ) -> None:
        self._registry = registry or node_registry
        self._resolver = resolver or variable_resolver
        self._error_sink = error_sink

    def resolve_inputs(self, node: WorkflowNode, context: ExecutionContext) -> dict[str, Any]:
        """Resolved (and field-map composed) inputs for a node."""
        resolved = self._resolver.resolve_inputs(node.inputs, context.as_mapping())
        return self._resolver.compose_field_map(resolved, node.type)

    async def execute(self, node: WorkflowNode, context: ExecutionContext) -> ToolResult:
        """Execute a node. Never raises."""
        try:
            inputs = self.resolve_inputs(node, context)
            handler = self._registry.get(node.type)
            result = await handler.execute(node, inputs, context)
        except Exception as e:
            logger.exception("Node %s (%s) raised during execution", node.display_name, node.type)
            await self._report(context, node, e)
            return ToolResult.fail(str(e) or e.__class__.__name__)

        logger.info(
            "Executed node %s (%s): success=%s", node.display_name, node.type, result.success
        )
        return result

    async def _report(self, context: ExecutionContext, node: WorkflowNode, error: Exception) -> None:
        if self._error_sink is None:
            return
        await self._error_sink(
            context.flow_id,
            node.id,
            f'Node "{node.display_name}" execution failed: {error}',
            {"nodeType": node.type, "error": str(error), "executionId": context.execution_id},
        )
