"""Node handlers for every tool-capable node type."""

from .base import BaseNode, NodeProperty, NodePropertyOption, NodeTypeDescription
from .http_request import HttpRequestNode
from .slack import SlackNode, SLACK_DESCRIPTION, SLACK_WEBHOOK_DESCRIPTION
from .data_table import DataTableNode
from .proxy import ProxyNode, ENDPOINT_MAP, endpoint_for, alternate_endpoint
from .integrations import INTEGRATION_DESCRIPTIONS

__all__ = [
    # Base
    "BaseNode",
    "NodeProperty",
    "NodePropertyOption",
    "NodeTypeDescription",
    # Built-in handlers
    "HttpRequestNode",
    "SlackNode",
    "DataTableNode",
    "ProxyNode",
    # Catalogue
    "SLACK_DESCRIPTION",
    "SLACK_WEBHOOK_DESCRIPTION",
    "INTEGRATION_DESCRIPTIONS",
    "ENDPOINT_MAP",
    "endpoint_for",
    "alternate_endpoint",
]
