"""Client for the named integration endpoints (slack-action, gmail-proxy, ...).

Every integration is a black box reached the same way: POST a JSON body to
``{proxy_base_url}/{endpoint}`` and read back JSON. Transport failures and
non-2xx answers come back as ``ProxyResult.error``; nothing here raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class ProxyResult:
    """Outcome of one endpoint invocation."""

    data: Any = None
    error: str | None = None
    status: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def app_error(self) -> str | None:
        """Error reported inside a 2xx body, e.g. {"error": "channel_not_found"}."""
        if isinstance(self.data, dict) and self.data.get("error"):
            return str(self.data["error"])
        return None


class ProxyClient:
    """Invokes integration endpoints over HTTP."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str | None = None,
        service_key: str | None = None,
    ) -> None:
        self._http = http_client
        self._base_url = (base_url or settings.proxy_base_url).rstrip("/")
        self._service_key = service_key if service_key is not None else settings.proxy_service_key

    def endpoint_url(self, name: str) -> str:
        return f"{self._base_url}/{name}"

    async def invoke(self, name: str, body: dict[str, Any]) -> ProxyResult:
        """POST ``body`` to the named endpoint."""
        headers = {"Content-Type": "application/json"}
        if self._service_key:
            headers["Authorization"] = f"Bearer {self._service_key}"

        try:
            response = await self._http.post(
                self.endpoint_url(name),
                json=body,
                headers=headers,
                timeout=settings.proxy_timeout,
            )
        except httpx.HTTPError as e:
            logger.warning("Failed to invoke %s: %s", name, e)
            return ProxyResult(error=f"Failed to invoke {name}: {e}")

        try:
            data: Any = response.json()
        except ValueError:
            data = response.text

        if response.is_success:
            return ProxyResult(data=data, status=response.status_code)

        message = f"{name} returned {response.status_code}"
        if isinstance(data, dict) and data.get("error"):
            message = str(data["error"])
        elif response.status_code == 404:
            message = f'Endpoint "{name}" not found'
        logger.info("Endpoint %s failed with %s: %s", name, response.status_code, message)
        return ProxyResult(data=data, error=message, status=response.status_code)
