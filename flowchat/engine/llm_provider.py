"""LLM provider layer using the official SDKs (openai, anthropic).

Public API:
    resolve_provider(api_key, model) -> ProviderTarget
    call_llm(target, messages, tools, temperature, http_client) -> LLMResponse

Routing, by resolved key and model:
  - sk-ant-* key or claude-* model -> anthropic SDK (Messages API)
  - minimax* / MiniMax* model       -> openai SDK (MiniMax, OpenAI-compatible)
  - lov_* key                       -> openai SDK (AI gateway, OpenAI-compatible)
  - anything else                   -> openai SDK (OpenAI)

Conversations are kept as OpenAI-format message dicts throughout and
converted per call for Anthropic.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

import anthropic
import httpx
import openai

from ..core.config import settings
from ..core.exceptions import ProviderError
from .credentials import (
    ANTHROPIC_KEY_PREFIX,
    DEFAULT_CLAUDE_MODEL,
    GATEWAY_KEY_PREFIX,
    is_minimax_model,
)
from .tool_builder import to_anthropic_tools

logger = logging.getLogger(__name__)

OPENAI = "openai"
ANTHROPIC = "anthropic"
GATEWAY = "gateway"
MINIMAX = "minimax"

# Stop conditions that mean "run the requested tools"
TOOL_STOP_REASONS = frozenset({"tool_calls", "tool_use"})


# ---------------------------------------------------------------------------
# Data Classes
# ---------------------------------------------------------------------------


@dataclass
class ToolCall:
    """Represents a tool call requested by the LLM."""

    id: str
    name: str
    args: Dict[str, Any]


@dataclass
class LLMResponse:
    """Standardized response from call_llm."""

    text: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)
    stop_reason: Optional[str] = None

    @property
    def requests_tools(self) -> bool:
        """True when the provider stopped to have tools run."""
        return self.stop_reason in TOOL_STOP_REASONS

    def get_assistant_message(self) -> Dict:
        """Return the model's response as an OpenAI-format message dict."""
        if self.tool_calls:
            return {
                "role": "assistant",
                "content": self.text,
                "tool_calls": [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {
                            "name": tc.name,
                            "arguments": json.dumps(tc.args),
                        },
                    }
                    for tc in self.tool_calls
                ],
            }
        return {"role": "assistant", "content": self.text}


@dataclass
class ProviderTarget:
    """Which API to call, with which model and key."""

    family: str
    model: str
    api_key: str
    base_url: str

    @property
    def is_anthropic(self) -> bool:
        return self.family == ANTHROPIC


LLMCallable = Callable[..., Awaitable[LLMResponse]]


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def resolve_provider(api_key: str, model: str) -> ProviderTarget:
    """Choose the provider family from the resolved key and model."""
    if api_key.startswith(ANTHROPIC_KEY_PREFIX) or model.startswith("claude"):
        # An Anthropic key paired with an OpenAI model name
        anthropic_model = DEFAULT_CLAUDE_MODEL if model.startswith("gpt") else model
        return ProviderTarget(ANTHROPIC, anthropic_model, api_key, settings.anthropic_base_url)

    if is_minimax_model(model):
        return ProviderTarget(MINIMAX, model, api_key, settings.minimax_base_url)

    if api_key.startswith(GATEWAY_KEY_PREFIX):
        return ProviderTarget(GATEWAY, model, api_key, settings.gateway_base_url)

    return ProviderTarget(OPENAI, model, api_key, settings.openai_base_url)


# ---------------------------------------------------------------------------
# Message conversion: OpenAI-format dicts -> Anthropic format
# ---------------------------------------------------------------------------


def _convert_messages_to_anthropic(
    messages: list[dict],
) -> tuple[list[dict], str | None]:
    system: str | None = None
    result: list[dict] = []

    for msg in messages:
        role = msg["role"]

        if role == "system":
            # Only the leading system prompt is sent
            if system is None:
                system = msg.get("content")
            continue

        if role == "assistant":
            if msg.get("tool_calls"):
                content: list[dict] = []
                if msg.get("content"):
                    content.append({"type": "text", "text": msg["content"]})
                for tc in msg["tool_calls"]:
                    fn = tc.get("function", {})
                    args_raw = fn.get("arguments", "{}")
                    try:
                        args = (
                            json.loads(args_raw)
                            if isinstance(args_raw, str)
                            else args_raw
                        )
                    except json.JSONDecodeError:
                        args = {}
                    content.append({
                        "type": "tool_use",
                        "id": tc["id"],
                        "name": fn["name"],
                        "input": args if isinstance(args, dict) else {},
                    })
                result.append({"role": "assistant", "content": content})
            else:
                result.append({
                    "role": "assistant",
                    "content": msg.get("content") or "",
                })

        elif role == "tool":
            block = {
                "type": "tool_result",
                "tool_use_id": msg.get("tool_call_id", ""),
                "content": msg.get("content", ""),
            }
            # All results for one assistant turn go back in a single user message
            previous = result[-1] if result else None
            if (
                previous
                and previous["role"] == "user"
                and isinstance(previous["content"], list)
                and all(b.get("type") == "tool_result" for b in previous["content"])
            ):
                previous["content"].append(block)
            else:
                result.append({"role": "user", "content": [block]})

        elif role == "user":
            result.append({"role": "user", "content": msg.get("content") or ""})

    return result, system


# ---------------------------------------------------------------------------
# Backend: OpenAI-compatible (OpenAI, MiniMax, AI gateway)
# ---------------------------------------------------------------------------


async def _call_openai_compat(
    target: ProviderTarget,
    messages: list[dict],
    temperature: float,
    tools: Optional[list] = None,
    http_client: httpx.AsyncClient | None = None,
) -> LLMResponse:
    client = openai.AsyncOpenAI(
        api_key=target.api_key,
        base_url=target.base_url,
        http_client=http_client,
        max_retries=0,
        timeout=settings.llm_timeout,
    )

    completion_kwargs: dict[str, Any] = {
        "model": target.model,
        "messages": messages,
        "temperature": temperature,
    }
    if tools:
        completion_kwargs["tools"] = tools
        completion_kwargs["tool_choice"] = "auto"

    try:
        completion = await client.chat.completions.create(**completion_kwargs)
    except openai.APIStatusError as e:
        raise ProviderError(e.status_code, e.response.text, target.family) from e

    resp = LLMResponse()
    choice = completion.choices[0] if completion.choices else None
    if not choice:
        return resp

    resp.stop_reason = choice.finish_reason
    msg = choice.message
    resp.text = msg.content
    for tc in msg.tool_calls or []:
        try:
            args = json.loads(tc.function.arguments) if tc.function.arguments else {}
        except json.JSONDecodeError:
            logger.warning("Malformed arguments for tool %s, using {}", tc.function.name)
            args = {}
        resp.tool_calls.append(ToolCall(
            id=tc.id,
            name=tc.function.name,
            args=args if isinstance(args, dict) else {},
        ))

    return resp


# ---------------------------------------------------------------------------
# Backend: Anthropic
# ---------------------------------------------------------------------------


async def _call_anthropic(
    target: ProviderTarget,
    messages: list[dict],
    temperature: float,
    tools: Optional[list] = None,
    http_client: httpx.AsyncClient | None = None,
) -> LLMResponse:
    client = anthropic.AsyncAnthropic(
        api_key=target.api_key,
        base_url=target.base_url,
        http_client=http_client,
        max_retries=0,
        timeout=settings.llm_timeout,
    )
    api_messages, system_prompt = _convert_messages_to_anthropic(messages)

    call_kwargs: dict[str, Any] = {
        "model": target.model,
        "messages": api_messages,
        "max_tokens": settings.anthropic_max_tokens,
        "temperature": temperature,
    }
    if system_prompt:
        call_kwargs["system"] = system_prompt
    if tools:
        call_kwargs["tools"] = to_anthropic_tools(tools)

    try:
        response = await client.messages.create(**call_kwargs)
    except anthropic.APIStatusError as e:
        raise ProviderError(e.status_code, e.response.text, target.family) from e

    resp = LLMResponse(stop_reason=response.stop_reason)
    text_parts: list[str] = []
    for block in response.content:
        if block.type == "text":
            text_parts.append(block.text)
        elif block.type == "tool_use":
            resp.tool_calls.append(ToolCall(
                id=block.id,
                name=block.name,
                args=block.input if isinstance(block.input, dict) else {},
            ))
    if text_parts:
        resp.text = "".join(text_parts)

    return resp


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def call_llm(
    target: ProviderTarget,
    messages: list[dict],
    tools: Optional[list] = None,
    temperature: float = 0.7,
    http_client: httpx.AsyncClient | None = None,
) -> LLMResponse:
    """Call the target provider with optional tool calling.

    Args:
        target: Provider family, model, key and base URL.
        messages: Conversation as OpenAI-format dicts (system first).
        tools: OpenAI-format function tools; converted for Anthropic.
        temperature: Sampling temperature.
        http_client: Shared client for connection reuse (and for tests).

    Returns:
        LLMResponse with .text and/or .tool_calls populated.

    Raises:
        ProviderError: the provider answered with a non-2xx status.
    """
    logger.info(
        "Calling %s model %s with %d tools", target.family, target.model, len(tools or [])
    )
    if target.is_anthropic:
        return await _call_anthropic(target, messages, temperature, tools, http_client)
    return await _call_openai_compat(target, messages, temperature, tools, http_client)
