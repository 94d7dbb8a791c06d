"""Chat service - the tool-calling conversation orchestrator.

One chat turn moves through these stages:

    validate flow -> build context -> call provider -> tool loop -> reply
                                                                 \\-> hooks (detached)

The service is request-scoped and keeps no state between turns; the
caller sends the full history with every message.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.config import settings
from ..core.exceptions import (
    AgentNodeNotFoundError,
    DomainNotAllowedError,
    FlowDataNotFoundError,
    FlowIdRequiredError,
    FlowNotActiveError,
    FlowNotFoundError,
    InvalidApiKeyError,
    MessageRequiredError,
    OriginRequiredError,
    ProviderError,
)
from ..db.models import FlowModel
from ..engine.credentials import CredentialResolver, RequestSecrets
from ..engine.llm_provider import LLMCallable, ProviderTarget, ToolCall, call_llm, resolve_provider
from ..engine.node_executor import NodeExecutor
from ..engine.node_registry import NodeRegistryClass
from ..engine.tool_builder import ToolBuilder
from ..engine.types import ExecutionContext, FlowGraph, ToolSet, WorkflowNode
from ..integrations.proxy_client import ProxyClient
from ..repositories import FlowRepository, LogRepository, TableRepository, is_uuid
from ..schemas.chat import ChatMessage, ChatReply
from ..storage.knowledge_store import KnowledgeStore
from .hook_runner import HookRunner

logger = logging.getLogger(__name__)

NO_RESPONSE_REPLY = "No response generated."
TOOL_LOOP_EXHAUSTED_REPLY = (
    "I wasn't able to finish that request. Please try again or rephrase it."
)

# ---------------------------------------------------------------------------
# System prompt clauses
# ---------------------------------------------------------------------------

TOOLS_HONESTY_CLAUSE = """

CRITICAL HONESTY RULE: You must NEVER claim you performed an action unless you actually called a tool and received a successful result. If you do not have a tool/action available for what the user is asking, honestly tell them: "I don't have the ability to do that yet." Do NOT fabricate or hallucinate that you sent a message, made a call, or performed any action. Only report success when a tool call actually returned a successful result.

=== AVAILABLE ACTIONS ===
You have the following actions/tools available. Use them proactively when the user's request matches, even if they don't explicitly mention the tool name. The user may not know these capabilities are available — offer to use them when relevant.

{tool_descriptions}

IMPORTANT: When the user asks you to perform an action that matches one of your available tools, ALWAYS use the tool. Do NOT say you cannot do it. Do NOT ask the user to do it manually. Just execute the tool directly.
If the user asks for something that is NOT in the list above, tell them honestly that you don't have that capability yet. Never pretend you did something you didn't do.
"""

NO_TOOLS_HONESTY_CLAUSE = """

CRITICAL: You are a conversational AI assistant ONLY. You have NO tools, NO actions, and NO ability to perform any external operations. You CANNOT send messages, emails, Slack messages, make API calls, write to databases, or perform ANY action outside of this conversation. If a user asks you to do any of these things, you MUST honestly tell them: "I don't have the ability to do that." NEVER claim or imply that you performed an action. NEVER say "I've sent", "I've done", "I've completed", or anything similar. You can ONLY respond with text in this conversation.
"""


def honesty_clause(toolset: ToolSet) -> str:
    """System-prompt suffix describing what the agent can actually do."""
    if not toolset:
        return NO_TOOLS_HONESTY_CLAUSE
    descriptions = "\n".join(f"- {t['function']['description']}" for t in toolset.tools)
    return TOOLS_HONESTY_CLAUSE.format(tool_descriptions=descriptions)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------


def origin_hostname(origin: str | None) -> str:
    """Hostname of an Origin/Referer value, "" when absent or unparseable."""
    if not origin:
        return ""
    try:
        return (urlparse(origin).hostname or "").lower()
    except ValueError:
        return ""


def is_domain_allowed(hostname: str, allowed_domains: list[str]) -> bool:
    """Exact host match or a subdomain of an allowed domain."""
    host = hostname.lower()
    for domain in allowed_domains:
        allowed = str(domain).lower()
        if host == allowed or host.endswith("." + allowed):
            return True
    return False


def check_origin(flow: FlowModel, origin: str | None) -> None:
    """Enforce the flow's domain allowlist, if it has one."""
    allowed = flow.allowed_domains or []
    if not allowed:
        return
    hostname = origin_hostname(origin)
    if not hostname:
        raise OriginRequiredError(flow.id)
    if not is_domain_allowed(hostname, allowed):
        raise DomainNotAllowedError(flow.id, hostname)


# ---------------------------------------------------------------------------
# Agent configuration
# ---------------------------------------------------------------------------


@dataclass
class AgentConfig:
    """Settings read from the AI agent node's inputs."""

    model: str
    instructions: str
    temperature: float
    tool_calling: bool
    api_key: str
    knowledge_files: list[dict[str, Any]] = field(default_factory=list)
    hook_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_node(cls, node: WorkflowNode) -> AgentConfig:
        inputs = node.inputs
        tool_calling = inputs.get("chatToolCalling")
        hooks = inputs.get("postResponseHooks")
        files = inputs.get("knowledgeFiles")
        return cls(
            model=str(inputs.get("model") or settings.default_model),
            instructions=str(inputs.get("instructions") or settings.default_instructions),
            temperature=cls._temperature(inputs.get("temperature")),
            # Enabled unless explicitly switched off
            tool_calling=not (tool_calling is False or tool_calling == "false"),
            api_key=str(inputs.get("apiKey") or ""),
            knowledge_files=list(files) if isinstance(files, list) else [],
            hook_ids=[str(h) for h in hooks] if isinstance(hooks, list) else [],
        )

    @staticmethod
    def _temperature(value: Any) -> float:
        try:
            temperature = float(value)
        except (TypeError, ValueError):
            return settings.default_temperature
        return temperature or settings.default_temperature


# ---------------------------------------------------------------------------
# ChatService
# ---------------------------------------------------------------------------


class ChatService:
    """Runs one chat turn against a flow's AI agent node."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        http_client: httpx.AsyncClient,
        proxy: ProxyClient | None = None,
        knowledge: KnowledgeStore | None = None,
        llm: LLMCallable | None = None,
        registry: NodeRegistryClass | None = None,
    ) -> None:
        self.flows = FlowRepository(session_factory)
        self.tables = TableRepository(session_factory)
        self.error_log = LogRepository(session_factory)
        self.knowledge = knowledge or KnowledgeStore()
        self.http_client = http_client
        self.proxy = proxy or ProxyClient(http_client)
        self.tool_builder = ToolBuilder(registry)
        self.executor = NodeExecutor(registry=registry, error_sink=self.error_log.log_chat_error)
        self.hooks = HookRunner(self.executor, error_sink=self.error_log.log_chat_error)
        self._llm = llm or call_llm

    async def chat(
        self,
        flow_identifier: str | None,
        message: str | None,
        history: list[ChatMessage] | None = None,
        session_id: str | None = None,
        origin: str | None = None,
        api_key: str | None = None,
    ) -> ChatReply:
        """Answer one user message, running tools and scheduling hooks as needed."""
        if not message:
            raise MessageRequiredError()
        if not flow_identifier:
            raise FlowIdRequiredError()

        # Validating
        flow = await self.flows.get_active_flow(flow_identifier)
        if flow is None:
            logger.info("Flow validation failed for %s", flow_identifier)
            raise FlowNotActiveError(flow_identifier)
        check_origin(flow, origin)

        project = await self.flows.find_project(flow_identifier)
        if project is None:
            raise FlowNotFoundError(flow_identifier)

        if api_key:
            expected = await self.flows.get_secret_variable(project.id, "API_KEY")
            if expected is not None and expected != api_key:
                raise InvalidApiKeyError(project.id)

        # Building context
        prefer_published = not is_uuid(flow_identifier) and project.is_deployed
        graph = await self.flows.load_graph(project.id, prefer_published=prefer_published)
        if graph is None:
            raise FlowDataNotFoundError(project.id)

        agent = graph.find_agent()
        if agent is None:
            raise AgentNodeNotFoundError(project.id)

        config = AgentConfig.from_node(agent)
        secrets = RequestSecrets(lambda: self.flows.get_secrets(project.id))
        toolset = self._build_toolset(graph, agent, config)
        knowledge = await self.knowledge.build_context(config.knowledge_files)

        credentials = await CredentialResolver(self.flows, secrets).resolve(
            project.id, config.api_key, config.model
        )
        target = resolve_provider(credentials.api_key, credentials.model)

        history = history or []
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": config.instructions + knowledge + honesty_clause(toolset)},
            *({"role": turn.role, "content": turn.content} for turn in history),
            {"role": "user", "content": message},
        ]

        # Calling provider / tool loop
        try:
            reply = await self._run_tool_loop(
                target, messages, toolset, config.temperature, project.id, secrets
            )
        except ProviderError as e:
            await self.error_log.log_chat_error(
                project.id,
                agent.id,
                f"AI service returned {e.upstream_status}: {e.body[:500]}",
                {
                    "model": target.model,
                    "statusCode": e.upstream_status,
                    "errorBody": e.body[:1000],
                    "userMessage": message[:200],
                },
            )
            raise

        # Finalizing; hooks run after the reply is on its way
        self._schedule_hooks(graph, agent, config, project.id, secrets, message, reply, history, session_id)
        return ChatReply(reply=reply, conversation_id=None)

    def _build_toolset(self, graph: FlowGraph, agent: WorkflowNode, config: AgentConfig) -> ToolSet:
        downstream = graph.downstream_of(agent.id)
        logger.info("Post-response hooks: %d configured", len(config.hook_ids))
        if not config.tool_calling or not downstream:
            return ToolSet()

        toolset = self.tool_builder.build(downstream, excluded_ids=set(config.hook_ids))
        logger.info(
            "Built %d tools from %d downstream nodes (excluded %d hooks)",
            len(toolset.tools), len(downstream), len(config.hook_ids),
        )
        return toolset

    # -- tool loop ------------------------------------------------------------

    async def _run_tool_loop(
        self,
        target: ProviderTarget,
        messages: list[dict[str, Any]],
        toolset: ToolSet,
        temperature: float,
        flow_id: str,
        secrets: RequestSecrets,
    ) -> str:
        """
        Call the provider until it answers with text.

        Each tool-stop response has its calls executed in the order given,
        with one tool message per call appended before the next provider
        call. Stops after settings.max_tool_iterations provider calls.
        """
        tools = toolset.tools or None
        last_text = ""

        for iteration in range(1, settings.max_tool_iterations + 1):
            response = await self._llm(
                target,
                messages,
                tools=tools,
                temperature=temperature,
                http_client=self.http_client,
            )

            if not (response.requests_tools and toolset):
                return response.text or NO_RESPONSE_REPLY
            if not response.tool_calls:
                return response.text or NO_RESPONSE_REPLY

            last_text = response.text or last_text
            messages.append(response.get_assistant_message())
            for call in response.tool_calls:
                messages.append(await self._run_tool_call(call, toolset, flow_id, secrets))
            logger.info("Tool loop iteration %d ran %d tool calls", iteration, len(response.tool_calls))

        logger.warning(
            "Tool loop exhausted after %d iterations for flow %s",
            settings.max_tool_iterations, flow_id,
        )
        return last_text or TOOL_LOOP_EXHAUSTED_REPLY

    async def _run_tool_call(
        self,
        call: ToolCall,
        toolset: ToolSet,
        flow_id: str,
        secrets: RequestSecrets,
    ) -> dict[str, Any]:
        """Execute one requested tool and build its tool-result message."""
        node = toolset.node_map.get(call.name)
        if node is None:
            logger.warning("Model requested unknown tool %s", call.name)
            return self._tool_message(call.id, {"error": f"Unknown tool: {call.name}"})

        logger.info("Executing tool: %s", call.name)
        # Model-supplied arguments win over configured inputs
        merged = {**node.inputs, **call.args}
        context = ExecutionContext(
            flow_id=flow_id,
            execution_id=f"chat-{_now_ms()}",
            values={"env": await secrets.get()},
            http_client=self.http_client,
            proxy=self.proxy,
            tables=self.tables,
        )
        result = await self.executor.execute(node.with_inputs(merged), context)
        return self._tool_message(call.id, result.as_message_payload())

    @staticmethod
    def _tool_message(call_id: str, payload: Any) -> dict[str, Any]:
        return {"role": "tool", "tool_call_id": call_id, "content": json.dumps(payload, default=str)}

    # -- hooks ----------------------------------------------------------------

    def _schedule_hooks(
        self,
        graph: FlowGraph,
        agent: WorkflowNode,
        config: AgentConfig,
        flow_id: str,
        secrets: RequestSecrets,
        message: str,
        reply: str,
        history: list[ChatMessage],
        session_id: str | None,
    ) -> None:
        hook_ids = set(config.hook_ids)
        hooks = [n for n in graph.nodes if n.id in hook_ids and not n.disabled]
        if not hooks:
            return

        chat_context = {
            "userMessage": message,
            "aiResponse": reply,
            "sessionId": session_id or f"session-{_now_ms()}",
            "timestamp": _iso_now(),
            "history": [
                *({"role": turn.role, "content": turn.content} for turn in history),
                {"role": "user", "content": message},
                {"role": "assistant", "content": reply},
            ],
        }
        # Lets {{<agentId>.response}} style bindings resolve in hook inputs
        agent_output = {
            "response": reply,
            "userMessage": message,
            "sessionId": chat_context["sessionId"],
            "conversationHistory": chat_context["history"],
            "metadata": {"model": agent.inputs.get("model"), "timestamp": chat_context["timestamp"]},
        }

        async def hook_context() -> ExecutionContext:
            return ExecutionContext(
                flow_id=flow_id,
                execution_id=f"hook-{_now_ms()}",
                values={
                    "env": await secrets.get(),
                    "chatContext": chat_context,
                    agent.id: agent_output,
                },
                http_client=self.http_client,
                proxy=self.proxy,
                tables=self.tables,
            )

        self.hooks.schedule(flow_id, hooks, hook_context)
