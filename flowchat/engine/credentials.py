"""API key and model resolution for the AI agent node."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, TYPE_CHECKING

from ..core.config import settings
from ..core.exceptions import MissingApiKeyError

if TYPE_CHECKING:
    from ..repositories.flow_repository import FlowRepository

logger = logging.getLogger(__name__)

ENV_REFERENCE = re.compile(r"\{\{env\.(.+?)\}\}")
FLOW_VARIABLE_PREFIX = "FLOW: "
WELL_KNOWN_SECRET_NAMES = ("OPENAI_API_KEY", "openai_api_key", "API_KEY", "ANTHROPIC_API_KEY")

ANTHROPIC_KEY_PREFIX = "sk-ant-"
GATEWAY_KEY_PREFIX = "lov_"

DEFAULT_MODEL = "gpt-4o"
DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-20250514"
DEFAULT_GATEWAY_MODEL = "google/gemini-2.5-flash"
DEFAULT_MINIMAX_MODEL = "minimax-m2.5"


def is_minimax_model(model: str) -> bool:
    return model.startswith("minimax") or "MiniMax" in model


def infer_model(api_key: str, raw_model: str) -> str:
    """Pick a default model for the provider family the key belongs to."""
    if api_key.startswith(ANTHROPIC_KEY_PREFIX):
        return DEFAULT_CLAUDE_MODEL
    if api_key.startswith(GATEWAY_KEY_PREFIX):
        return DEFAULT_GATEWAY_MODEL
    if is_minimax_model(raw_model):
        return DEFAULT_MINIMAX_MODEL
    return DEFAULT_MODEL


def normalize_model(raw_model: str | None, api_key: str) -> str:
    """
    Return the model to call.

    A model field holding an {{env...}} reference is a misconfiguration; the
    model is then inferred from the resolved key instead of failing.
    """
    model = raw_model or DEFAULT_MODEL
    if ENV_REFERENCE.search(model):
        logger.warning("Model field contains an env reference, using a default model")
        return infer_model(api_key, model)
    return model


class RequestSecrets:
    """
    Lazily fetched secrets map, shared by everything in one request.

    The loader runs at most once; later calls (tool invocations, hooks,
    credential lookups) reuse the same mapping.
    """

    def __init__(self, loader: Callable[[], Awaitable[dict[str, str]]]) -> None:
        self._loader = loader
        self._secrets: dict[str, str] | None = None

    @property
    def loaded(self) -> bool:
        return self._secrets is not None

    async def get(self) -> dict[str, str]:
        if self._secrets is None:
            self._secrets = dict(await self._loader() or {})
        return self._secrets


@dataclass
class ResolvedCredentials:
    """Effective API key and model for one request."""

    api_key: str
    model: str


class CredentialResolver:
    """
    Resolves the agent's API key by trying, in order:

    a. an ``{{env.NAME}}`` reference in the key field, looked up in secrets
    b. the key field (minus a ``FLOW: `` prefix) as a flow variable name
    c. the well-known secret names
    d. any flow variable whose value looks like a key
    e. the raw key field when it looks like a key
    f. the process-level fallback keys from settings
    """

    def __init__(self, flows: FlowRepository, secrets: RequestSecrets) -> None:
        self._flows = flows
        self._secrets = secrets

    async def resolve(
        self,
        flow_project_id: str,
        api_key_input: str | None,
        raw_model: str | None,
    ) -> ResolvedCredentials:
        api_key = await self.resolve_api_key(flow_project_id, api_key_input or "")
        if not api_key:
            raise MissingApiKeyError(flow_project_id)

        model = normalize_model(raw_model, api_key)
        logger.info(
            "Resolved model: %s, raw model: %s, key prefix: %s...",
            model, raw_model, api_key[:8],
        )
        return ResolvedCredentials(api_key=api_key, model=model)

    async def resolve_api_key(self, flow_project_id: str, key_input: str) -> str:
        key_input = key_input if isinstance(key_input, str) else str(key_input)

        reference = ENV_REFERENCE.search(key_input)
        if reference:
            secrets = await self._secrets.get()
            if secrets.get(reference.group(1)):
                return secrets[reference.group(1)]

        if key_input:
            name = key_input
            if name.startswith(FLOW_VARIABLE_PREFIX):
                name = name[len(FLOW_VARIABLE_PREFIX):].strip()
            value = await self._flows.get_variable(flow_project_id, name)
            if value:
                return value

        secrets = await self._secrets.get()
        for name in WELL_KNOWN_SECRET_NAMES:
            if secrets.get(name):
                return secrets[name]

        for variable in await self._flows.list_variables(flow_project_id):
            if variable.value and variable.value.startswith("sk-"):
                return variable.value

        if key_input and "{{" not in key_input and (key_input.startswith("sk-") or len(key_input) > 30):
            return key_input

        return settings.openai_api_key or settings.anthropic_api_key or ""
