"""Core module - config, exceptions, logging and dependencies."""

from .config import settings, Settings
from .exceptions import (
    FlowChatError,
    MessageRequiredError,
    FlowIdRequiredError,
    InvalidApiKeyError,
    OriginRequiredError,
    DomainNotAllowedError,
    FlowNotActiveError,
    FlowNotFoundError,
    FlowDataNotFoundError,
    AgentNodeNotFoundError,
    MissingApiKeyError,
    ProviderError,
)
from .logging_config import setup_logging

__all__ = [
    # Config
    "settings",
    "Settings",
    "setup_logging",
    # Exceptions
    "FlowChatError",
    "MessageRequiredError",
    "FlowIdRequiredError",
    "InvalidApiKeyError",
    "OriginRequiredError",
    "DomainNotAllowedError",
    "FlowNotActiveError",
    "FlowNotFoundError",
    "FlowDataNotFoundError",
    "AgentNodeNotFoundError",
    "MissingApiKeyError",
    "ProviderError",
]
