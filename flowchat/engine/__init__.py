"""Tool-calling engine components."""

from .types import (
    AGENT_NODE_TYPE,
    WorkflowNode,
    Edge,
    FlowGraph,
    ToolResult,
    ToolSet,
    ExecutionContext,
)
from .variable_resolver import VariableResolver, variable_resolver
from .node_registry import NodeRegistryClass, node_registry, register_all_nodes
from .node_executor import NodeExecutor
from .tool_builder import ToolBuilder, build_tools, to_anthropic_tools
from .credentials import CredentialResolver, RequestSecrets, ResolvedCredentials
from .llm_provider import LLMResponse, ProviderTarget, ToolCall, call_llm, resolve_provider

__all__ = [
    "AGENT_NODE_TYPE",
    "WorkflowNode",
    "Edge",
    "FlowGraph",
    "ToolResult",
    "ToolSet",
    "ExecutionContext",
    "VariableResolver",
    "variable_resolver",
    "NodeRegistryClass",
    "node_registry",
    "register_all_nodes",
    "NodeExecutor",
    "ToolBuilder",
    "build_tools",
    "to_anthropic_tools",
    "CredentialResolver",
    "RequestSecrets",
    "ResolvedCredentials",
    "LLMResponse",
    "ProviderTarget",
    "ToolCall",
    "call_llm",
    "resolve_provider",
]
