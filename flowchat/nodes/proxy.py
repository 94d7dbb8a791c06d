"""Generic integration node - forwards resolved inputs to a named endpoint."""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

from .base import BaseNode, NodeTypeDescription

if TYPE_CHECKING:
    from ..engine.types import ExecutionContext, ToolResult, WorkflowNode
    from ..integrations.proxy_client import ProxyResult

logger = logging.getLogger(__name__)

# Endpoint names for integrations that do not follow "<type>-proxy"
ENDPOINT_MAP: dict[str, str] = {
    # Email
    "gmail": "gmail-proxy",
    "gmail-action": "gmail-proxy",
    "resend": "resend-proxy",
    "resend-action": "resend-proxy",
    "brevo": "brevo-proxy",
    "mailchimp": "mailchimp-proxy",
    # Messaging
    "slack-action": "slack-action",
    "slack-webhook": "slack-action",
    # Productivity
    "notion": "notion-action",
    "notion-action": "notion-action",
    "google-sheets": "google-sheets-proxy",
    "google-calendar": "google-calendar-action",
    "google-docs": "google-docs-proxy",
    "trello": "trello-proxy",
    "clickup": "clickup-proxy",
    "asana": "asana-proxy",
    "confluence": "confluence-proxy",
    # CRM & sales
    "hubspot": "hubspot-proxy",
    "salesforce": "salesforce-proxy",
    "attio": "attio-action",
    # E-commerce
    "shopify": "shopify-proxy",
    "stripe": "stripe-proxy",
    "woocommerce": "woocommerce-action",
    # Social & marketing
    "twitter": "twitter-action",
    "wordpress": "wordpress-proxy",
    "webflow": "webflow-proxy",
    "typeform": "typeform-proxy",
    "contentful": "contentful-proxy",
    # Data & analytics
    "airtable": "airtable-proxy",
    "amplitude": "amplitude-action",
    # AI & media
    "elevenlabs": "elevenlabs-proxy",
    "deepgram": "deepgram-proxy",
    "assemblyai": "assemblyai-action",
    # Support & HR
    "zendesk": "zendesk-proxy",
    "assembled": "assembled-action",
    "calendly": "calendly-action",
    # Video
    "zoom": "zoom-proxy",
}


def endpoint_for(node_type: str) -> str:
    """Endpoint name for a node type, defaulting to ``<type>-proxy``."""
    return ENDPOINT_MAP.get(node_type) or f"{node_type}-proxy"


def alternate_endpoint(name: str) -> str | None:
    """Swap the -proxy / -action suffix; None if the name has neither."""
    if name.endswith("-proxy"):
        return name[: -len("-proxy")] + "-action"
    if name.endswith("-action"):
        return name[: -len("-action")] + "-proxy"
    return None


class ProxyNode(BaseNode):
    """
    Third-party integration reached through its endpoint.

    The request body is the resolved inputs plus ``action`` (defaulting to
    ``"execute"``). A transport-level failure for a type missing from
    ENDPOINT_MAP is retried once against the alternate suffix, since
    unmapped integrations may be deployed under either convention.
    """

    def __init__(self, node_type: str, description: NodeTypeDescription | None = None) -> None:
        self._type = node_type
        self.node_description = description

    @property
    def type(self) -> str:
        return self._type

    @property
    def is_mapped(self) -> bool:
        return self._type in ENDPOINT_MAP

    async def execute(
        self,
        node: WorkflowNode,
        inputs: dict[str, Any],
        context: ExecutionContext,
    ) -> ToolResult:
        if context.proxy is None:
            return self.failure(f"{self.type}: integration proxy is not configured")

        endpoint = endpoint_for(self.type)
        body = {**inputs, "action": inputs.get("action") or "execute"}

        result = await context.proxy.invoke(endpoint, body)
        if not result.ok and not self.is_mapped:
            alternate = alternate_endpoint(endpoint)
            if alternate:
                logger.info("Endpoint %s failed, retrying %s", endpoint, alternate)
                retry = await context.proxy.invoke(alternate, body)
                if retry.ok and not retry.app_error:
                    return self._to_output(retry)

        if not result.ok:
            return self.failure(f"{self.type}: {result.error}")
        if result.app_error:
            return self.failure(f"{self.type}: {result.app_error}")
        return self._to_output(result)

    def _to_output(self, result: ProxyResult) -> ToolResult:
        data = result.data if isinstance(result.data, dict) else {"data": result.data}
        return self.success({**data, "success": True})
