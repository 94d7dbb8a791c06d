"""
Tool builder - turns downstream workflow nodes into model tool schemas.

Two paths produce the parameter schema for a node:

- Registry path: types with a declared description expose their declared
  properties. A property already filled in on the node is hidden unless
  its name is in AI_OVERRIDABLE_FIELDS, in which case it stays visible
  but optional.
- Auto-discovery path: any other type is introspected from the node's
  own inputs. Empty fields become required parameters; overridable fields
  stay visible even when filled in.

Fields in INTERNAL_FIELDS (credentials, connection toggles) never reach
the model on either path.
"""

from __future__ import annotations

import hashlib
import logging
import re
from typing import Any, Iterable

from .node_registry import NodeRegistryClass, node_registry
from .types import AGENT_NODE_TYPE, ToolSet, WorkflowNode

logger = logging.getLogger(__name__)

# Content fields the model may always supply, even when pre-filled
AI_OVERRIDABLE_FIELDS = frozenset({
    "text", "message", "body", "subject", "content", "data", "query",
    "title", "description", "note", "comment", "name", "value",
})

# Configuration the model must never see
INTERNAL_FIELDS = frozenset({
    "accessToken", "apiKey", "apikey", "api_key", "token", "secretKey",
    "secret_key", "connectionMethod", "webhookUrl", "webhook_url",
    "clientId", "clientSecret", "refreshToken", "password",
})

# Control-flow node types that are never tools
SKIP_NODE_TYPES = frozenset({
    "condition", "data-filter", "set-variable", "webhook-trigger",
    "response", "logger", "loop", AGENT_NODE_TYPE,
})

ID_SUFFIX_LENGTH = 12

_UNSAFE_TYPE_CHARS = re.compile(r"[^A-Za-z0-9_]")
_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9]")


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _json_schema_type(property_type: str) -> str:
    if property_type == "number":
        return "number"
    if property_type == "boolean":
        return "boolean"
    return "string"


def _readable(key: str) -> str:
    """'startTime' -> 'start Time', 'thread_ts' -> 'thread ts'."""
    spaced = re.sub(r"([A-Z])", r" \1", key)
    return re.sub(r"[_-]", " ", spaced).strip()


def tool_name_for(node: WorkflowNode) -> str:
    """``<type>_<last 12 chars of id>``, restricted to [A-Za-z0-9_]."""
    id_suffix = _UNSAFE_ID_CHARS.sub("_", node.id)[-ID_SUFFIX_LENGTH:]
    return f"{_UNSAFE_TYPE_CHARS.sub('_', node.type)}_{id_suffix}"


class ToolBuilder:
    """Builds OpenAI-format function tools from workflow nodes."""

    def __init__(self, registry: NodeRegistryClass | None = None) -> None:
        self._registry = registry or node_registry

    def build(
        self,
        nodes: Iterable[WorkflowNode],
        excluded_ids: set[str] | frozenset[str] | None = None,
    ) -> ToolSet:
        """Build tools for every eligible node, skipping ``excluded_ids`` (hooks)."""
        excluded = excluded_ids or set()
        toolset = ToolSet()

        for node in nodes:
            if not node.type or node.type in SKIP_NODE_TYPES or node.disabled:
                continue
            if node.id in excluded:
                continue

            name = self._unique_name(node, toolset)
            toolset.tools.append(self.build_tool(node, name))
            toolset.node_map[name] = node

        logger.info("Built %d tools", len(toolset.tools))
        return toolset

    def build_tool(self, node: WorkflowNode, name: str) -> dict[str, Any]:
        description = self._registry.description_for(node.type)
        node_name = node.label or (description.display_name if description else None) or node.type
        node_desc = (
            node.description
            or (description.description if description else None)
            or f"Execute {node_name}"
        )

        if description and description.properties:
            properties, required = self._from_description(node, description)
        else:
            properties, required = self._from_inputs(node, node_name)

        return {
            "type": "function",
            "function": {
                "name": name,
                "description": f"{node_name}: {node_desc}",
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    "required": required,
                },
            },
        }

    def _unique_name(self, node: WorkflowNode, toolset: ToolSet) -> str:
        name = tool_name_for(node)
        if name not in toolset.node_map:
            return name

        digest = hashlib.sha1(node.id.encode("utf-8")).hexdigest()[:6]
        unique = f"{name}_{digest}"
        logger.warning(
            "Tool name %s already used by node %s, using %s for node %s",
            name, toolset.node_map[name].id, unique, node.id,
        )
        return unique

    def _from_description(self, node: WorkflowNode, description: Any) -> tuple[dict[str, Any], list[str]]:
        properties: dict[str, Any] = {}
        required: list[str] = []

        for prop in description.properties:
            if prop.name in INTERNAL_FIELDS:
                continue
            has_value = not _is_empty(node.inputs.get(prop.name))
            if has_value and prop.name not in AI_OVERRIDABLE_FIELDS:
                continue

            schema: dict[str, Any] = {
                "type": _json_schema_type(prop.type),
                "description": prop.description or prop.display_name,
            }
            if prop.type == "options" and prop.options:
                schema["enum"] = [o.value for o in prop.options]

            properties[prop.name] = schema
            if prop.required and not has_value:
                required.append(prop.name)

        return properties, required

    def _from_inputs(self, node: WorkflowNode, node_name: str) -> tuple[dict[str, Any], list[str]]:
        properties: dict[str, Any] = {}
        required: list[str] = []

        for key, value in node.inputs.items():
            if key in INTERNAL_FIELDS:
                continue
            empty = _is_empty(value)
            if not empty and key not in AI_OVERRIDABLE_FIELDS:
                continue

            properties[key] = {
                "type": "string",
                "description": f"{_readable(key)} for {node_name}",
            }
            if empty:
                required.append(key)

        return properties, required


def build_tools(
    nodes: Iterable[WorkflowNode],
    excluded_ids: set[str] | frozenset[str] | None = None,
) -> ToolSet:
    """Build tools with the default registry."""
    return ToolBuilder().build(nodes, excluded_ids)


def to_anthropic_tools(tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Convert OpenAI-format tools to Anthropic's ``input_schema`` shape."""
    return [
        {
            "name": t["function"]["name"],
            "description": t["function"]["description"],
            "input_schema": t["function"]["parameters"],
        }
        for t in tools
    ]
