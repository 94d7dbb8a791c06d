"""HTTP Request node - makes HTTP requests to external APIs."""

from __future__ import annotations

import json
from typing import Any, TYPE_CHECKING

import httpx

from ..core.config import settings
from .base import (
    BaseNode,
    NodeProperty,
    NodePropertyOption,
    NodeTypeDescription,
)

if TYPE_CHECKING:
    from ..engine.types import ExecutionContext, ToolResult, WorkflowNode


class HttpRequestNode(BaseNode):
    """HTTP Request node - makes HTTP requests to external APIs."""

    node_description = NodeTypeDescription(
        name="http-request",
        display_name="HTTP Request",
        description="Make an HTTP request to an external API",
        icon="fa:globe",
        properties=[
            NodeProperty(
                display_name="URL",
                name="url",
                type="string",
                default="",
                required=True,
                placeholder="https://api.example.com/endpoint",
                description="The URL to send the request to",
            ),
            NodeProperty(
                display_name="Method",
                name="method",
                type="options",
                default="GET",
                required=True,
                description="HTTP method",
                options=[
                    NodePropertyOption(name="GET", value="GET"),
                    NodePropertyOption(name="POST", value="POST"),
                    NodePropertyOption(name="PUT", value="PUT"),
                    NodePropertyOption(name="DELETE", value="DELETE"),
                ],
            ),
            NodeProperty(
                display_name="Headers",
                name="headers",
                type="json",
                default="",
                description="Request headers as JSON",
            ),
            NodeProperty(
                display_name="Body",
                name="body",
                type="json",
                default="",
                description="Request body",
            ),
            NodeProperty(
                display_name="API Key",
                name="apiKey",
                type="string",
                default="",
                description="Sent as a bearer token",
            ),
        ],
    )

    @property
    def type(self) -> str:
        return "http-request"

    async def execute(
        self,
        node: WorkflowNode,
        inputs: dict[str, Any],
        context: ExecutionContext,
    ) -> ToolResult:
        url = str(self.get_parameter(inputs, "url", "")).strip()
        if not url:
            return self.failure("URL is empty")

        method = str(self.get_parameter(inputs, "method", "GET")).upper()

        # Malformed header JSON is ignored
        headers_param = self.parse_json(inputs.get("headers"), {})
        headers: dict[str, str] = {}
        if isinstance(headers_param, dict):
            headers = {str(k): str(v) for k, v in headers_param.items()}

        api_key = self.get_parameter(inputs, "apiKey")
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        content: str | None = None
        body = self.get_parameter(inputs, "body")
        if method != "GET" and body is not None:
            content = body if isinstance(body, str) else json.dumps(body)

        try:
            if context.http_client is not None:
                response = await context.http_client.request(
                    method, url, headers=headers, content=content
                )
            else:
                async with httpx.AsyncClient(timeout=settings.proxy_timeout) as client:
                    response = await client.request(method, url, headers=headers, content=content)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return self.failure(f"HTTP Request failed: {e}")

        response_data: Any
        try:
            response_data = response.json()
        except ValueError:
            response_data = response.text

        is_success = 200 <= response.status_code < 300
        output = {
            "success": is_success,
            "status": response.status_code,
            "data": response_data,
        }
        if is_success:
            return self.success(output)
        return self.failure(
            f"HTTP {response.status_code} {response.reason_phrase}".strip(), output
        )
