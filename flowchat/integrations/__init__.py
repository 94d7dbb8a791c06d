"""Clients for external integration endpoints."""

from .proxy_client import ProxyClient, ProxyResult

__all__ = [
    "ProxyClient",
    "ProxyResult",
]
