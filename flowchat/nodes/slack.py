"""Slack node - posts messages through the slack-action endpoint."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from .base import (
    BaseNode,
    NodeProperty,
    NodePropertyOption,
    NodeTypeDescription,
)

if TYPE_CHECKING:
    from ..engine.types import ExecutionContext, ToolResult, WorkflowNode

SLACK_ENDPOINT = "slack-action"

_CONNECTION_METHOD = NodeProperty(
    display_name="Connection",
    name="connectionMethod",
    type="options",
    default="webhook",
    options=[
        NodePropertyOption(name="Incoming Webhook", value="webhook"),
        NodePropertyOption(name="Slack API", value="api"),
    ],
)

SLACK_DESCRIPTION = NodeTypeDescription(
    name="slack",
    display_name="Send Slack Message",
    description="Send a message to Slack",
    icon="fa:slack",
    properties=[
        NodeProperty(
            display_name="Message",
            name="text",
            type="string",
            required=True,
            description="The message text to send to Slack",
        ),
        _CONNECTION_METHOD,
        NodeProperty(display_name="Webhook URL", name="webhookUrl", type="string"),
        NodeProperty(display_name="Bot Token", name="apiKey", type="string"),
    ],
)

SLACK_WEBHOOK_DESCRIPTION = NodeTypeDescription(
    name="slack-webhook",
    display_name="Send Slack Webhook Message",
    description="Send a message to Slack via Incoming Webhook URL",
    icon="fa:slack",
    properties=[
        NodeProperty(
            display_name="Webhook URL",
            name="webhookUrl",
            type="string",
            required=True,
            description="Slack Incoming Webhook URL",
        ),
        NodeProperty(
            display_name="Message",
            name="text",
            type="string",
            required=True,
            description="Message text to send",
        ),
        NodeProperty(
            display_name="Bot Name",
            name="username",
            type="string",
            description="Override bot display name",
        ),
        NodeProperty(
            display_name="Bot Icon Emoji",
            name="icon_emoji",
            type="string",
            description="Override bot icon emoji",
        ),
    ],
)


class SlackNode(BaseNode):
    """
    Slack messaging in two connection modes.

    ``webhook`` posts to a caller-supplied incoming-webhook URL; ``api``
    sends through the Slack Web API with a bot token and channel.
    """

    def __init__(self, node_type: str = "slack", description: NodeTypeDescription | None = None) -> None:
        self._type = node_type
        self.node_description = description or SLACK_DESCRIPTION

    @property
    def type(self) -> str:
        return self._type

    def build_payload(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """Build the slack-action request body for the configured mode."""
        text = self.get_parameter(inputs, "text") or self.get_parameter(inputs, "message", "")
        connection = self.get_parameter(inputs, "connectionMethod", "webhook")

        if connection == "webhook":
            payload = {
                "action": "sendViaWebhook",
                "webhookUrl": self.get_parameter(inputs, "webhookUrl"),
                "text": text,
                "username": self.get_parameter(inputs, "username"),
                "icon_emoji": self.get_parameter(inputs, "icon_emoji"),
                "blocks": self.get_parameter(inputs, "blocks"),
            }
        else:
            payload = {
                "action": self.get_parameter(inputs, "action", "slackSendMessage"),
                "apiKey": self.get_parameter(inputs, "apiKey"),
                "channel": self.get_parameter(inputs, "channel"),
                "text": text,
                "thread_ts": self.get_parameter(inputs, "thread_ts"),
                "blocks": self.get_parameter(inputs, "blocks"),
            }
        # Unset optional fields are left out of the request
        return {k: v for k, v in payload.items() if v is not None or k == "text"}

    async def execute(
        self,
        node: WorkflowNode,
        inputs: dict[str, Any],
        context: ExecutionContext,
    ) -> ToolResult:
        if context.proxy is None:
            return self.failure("Slack: integration proxy is not configured")

        result = await context.proxy.invoke(SLACK_ENDPOINT, self.build_payload(inputs))
        if not result.ok:
            return self.failure(f"Slack: {result.error}")
        if result.app_error:
            return self.failure(f"Slack: {result.app_error}")

        data = result.data if isinstance(result.data, dict) else {"data": result.data}
        return self.success({**data, "success": True})
