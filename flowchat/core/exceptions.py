"""Custom exceptions for the chat orchestrator.

Every exception carries the HTTP status it maps to and, where callers rely
on it, a stable machine-readable ``error_code``.
"""

from typing import Any


class FlowChatError(Exception):
    """Base exception for all chat orchestrator errors."""

    status_code: int = 500
    error_code: str | None = None

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_body(self) -> dict[str, Any]:
        """Render the JSON error body returned to the caller."""
        body: dict[str, Any] = {"error": self.message}
        if self.error_code:
            body["error_code"] = self.error_code
        return body


class MessageRequiredError(FlowChatError):
    """Raised when a chat turn arrives without a message."""

    status_code = 400

    def __init__(self) -> None:
        super().__init__("Message is required")


class FlowIdRequiredError(FlowChatError):
    """Raised when no flow identifier can be found on the request."""

    status_code = 400

    def __init__(self) -> None:
        super().__init__("Flow ID is required")


class InvalidApiKeyError(FlowChatError):
    """Raised when the x-api-key header does not match the flow's key."""

    status_code = 401
    error_code = "INVALID_API_KEY"

    def __init__(self, flow_project_id: str) -> None:
        super().__init__("Invalid API key", details={"flow_project_id": flow_project_id})


class OriginRequiredError(FlowChatError):
    """Raised when a domain-restricted flow is called without an origin."""

    status_code = 403
    error_code = "ORIGIN_REQUIRED"

    def __init__(self, flow_id: str) -> None:
        super().__init__(
            "Origin required for domain-restricted flow",
            details={"flow_id": flow_id},
        )


class DomainNotAllowedError(FlowChatError):
    """Raised when the caller's origin is not on the flow's allowlist."""

    status_code = 403
    error_code = "DOMAIN_NOT_ALLOWED"

    def __init__(self, flow_id: str, hostname: str) -> None:
        super().__init__(
            "Domain not allowed for this flow",
            details={"flow_id": flow_id, "hostname": hostname},
        )
        self.hostname = hostname


class FlowNotActiveError(FlowChatError):
    """Raised when the flow does not exist or is not active."""

    status_code = 404
    error_code = "FLOW_NOT_ACTIVE"

    def __init__(self, identifier: str) -> None:
        super().__init__("Invalid or inactive flow", details={"flow": identifier})
        self.identifier = identifier


class FlowNotFoundError(FlowChatError):
    """Raised when no flow project matches the identifier."""

    status_code = 404
    error_code = "FLOW_NOT_FOUND"

    def __init__(self, identifier: str) -> None:
        super().__init__("Flow not found", details={"flow": identifier})
        self.identifier = identifier


class FlowDataNotFoundError(FlowChatError):
    """Raised when a flow project has no stored graph snapshot."""

    status_code = 404
    error_code = "FLOW_DATA_NOT_FOUND"

    def __init__(self, flow_project_id: str) -> None:
        super().__init__("No flow data found", details={"flow_project_id": flow_project_id})


class AgentNodeNotFoundError(FlowChatError):
    """Raised when the flow graph contains no AI agent node."""

    status_code = 404
    error_code = "AGENT_NOT_FOUND"

    def __init__(self, flow_project_id: str) -> None:
        super().__init__(
            "No AI Agent node found in this flow",
            details={"flow_project_id": flow_project_id},
        )


class MissingApiKeyError(FlowChatError):
    """Raised when no credential candidate yields a usable key."""

    status_code = 500
    error_code = "NO_API_KEY"

    def __init__(self, flow_project_id: str) -> None:
        super().__init__(
            "No API key configured for the AI Agent node.",
            details={"flow_project_id": flow_project_id},
        )


class ProviderError(FlowChatError):
    """Raised when the AI provider answers with a non-2xx status."""

    status_code = 502
    error_code = "AI_SERVICE_ERROR"

    def __init__(self, upstream_status: int, body: str, provider: str) -> None:
        super().__init__(
            "AI service error",
            details={"status": upstream_status, "provider": provider},
        )
        self.upstream_status = upstream_status
        self.body = body
        self.provider = provider

    def to_body(self) -> dict[str, object]:
        body = super().to_body()
        body["details"] = self.body
        return body
