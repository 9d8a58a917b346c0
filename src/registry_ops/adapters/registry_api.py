"""HTTP client for the registry API.

Wraps the three endpoints the operator tooling relies on:

- ``/v0/ping``    liveness, returns a short literal token ("pong")
- ``/v0/health``  structured health payload with a ``status`` field
- ``/v0/servers`` listing with ``metadata.count``

Usage:
    from registry_ops.adapters.registry_api import RegistryApiClient

    with RegistryApiClient(config.api_base_url) as api:
        if api.is_responding():
            print(api.health())
"""

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

PING_PATH = "/v0/ping"
HEALTH_PATH = "/v0/health"
SERVERS_PATH = "/v0/servers"


class RegistryApiClient:
    """Synchronous client for the registry's HTTP API.

    Args:
        base_url: Scheme, host and port, e.g. ``http://localhost:8080``.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self) -> "RegistryApiClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        logger.debug("GET %s%s params=%s", self.base_url, path, params)
        return self._client.get(path, params=params)

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def ping(self) -> str:
        """Return the liveness endpoint's body.

        Raises:
            httpx.HTTPError: On transport failure.
        """
        return self.get(PING_PATH).text

    def health(self) -> dict:
        """Return the health payload.

        Raises:
            httpx.HTTPError: On transport failure or a non-2xx status.
            ValueError: If the body is not a JSON object.
        """
        response = self.get(HEALTH_PATH)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected health payload: {payload!r}")
        return payload

    def servers(self, limit: int | None = None) -> dict:
        """Return the server listing payload.

        Raises:
            httpx.HTTPError: On transport failure or a non-2xx status.
            ValueError: If the body is not a JSON object.
        """
        params = {"limit": limit} if limit is not None else None
        response = self.get(SERVERS_PATH, params=params)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected servers payload: {payload!r}")
        return payload

    def server_count(self, limit: int | None = None) -> int | None:
        """Return ``metadata.count`` from the listing, or None when absent."""
        metadata = self.servers(limit=limit).get("metadata") or {}
        count = metadata.get("count")
        if isinstance(count, bool) or not isinstance(count, int):
            return None
        return count

    def is_responding(self) -> bool:
        """True when the liveness endpoint answers without a transport error.

        Any HTTP status counts as responding; only connection-level failures
        (refused, reset, timeout) count as down.
        """
        try:
            self.get(PING_PATH)
        except httpx.TransportError as e:
            logger.debug("Liveness probe failed: %s", e)
            return False
        return True
