"""Node registry mapping node types to their handlers."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..nodes.base import BaseNode, NodeTypeDescription


class NodeRegistryClass:
    """
    Registry for node handlers.

    Built-in categories (http-request, slack, data-table) and the described
    integrations are registered up front. Any other type is an open-ended
    integration and resolves to a ProxyNode for that type.
    """

    def __init__(self) -> None:
        self._instances: dict[str, BaseNode] = {}

    def register(self, instance: BaseNode) -> None:
        """Register a handler instance if its type is not registered yet."""
        if instance.type not in self._instances:
            self._instances[instance.type] = instance

    def has(self, node_type: str) -> bool:
        """Check if node type is registered."""
        return node_type in self._instances

    def list(self) -> list[str]:
        """List all registered node types."""
        return list(self._instances.keys())

    def get(self, node_type: str) -> BaseNode:
        """
        Get the handler for a node type.

        Handlers are stateless, so registered instances are shared.
        Unregistered types get a fresh ProxyNode.
        """
        instance = self._instances.get(node_type)
        if instance is not None:
            return instance

        from ..nodes.proxy import ProxyNode

        return ProxyNode(node_type)

    def description_for(self, node_type: str) -> NodeTypeDescription | None:
        """Declared input schema for a registered type, if any."""
        instance = self._instances.get(node_type)
        if instance is None or instance.node_description is None:
            return None
        return instance.node_description


# Singleton instance
node_registry = NodeRegistryClass()


def register_all_nodes() -> None:
    """Register all built-in node handlers."""
    from ..nodes import (
        HttpRequestNode,
        SlackNode,
        DataTableNode,
        ProxyNode,
        SLACK_DESCRIPTION,
        SLACK_WEBHOOK_DESCRIPTION,
        INTEGRATION_DESCRIPTIONS,
    )

    handlers: list[BaseNode] = [
        HttpRequestNode(),
        SlackNode("slack", SLACK_DESCRIPTION),
        SlackNode("slack-webhook", SLACK_WEBHOOK_DESCRIPTION),
        DataTableNode(),
    ]
    handlers.extend(ProxyNode(d.name, d) for d in INTEGRATION_DESCRIPTIONS)

    for handler in handlers:
        node_registry.register(handler)
