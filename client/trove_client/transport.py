import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """A submission did not reach the server or was rejected by it."""


class HttpTransport:
    def __init__(
        self,
        server_url: str,
        health_url: str,
        timeout: float = 10.0,
        ping_timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.server_url = server_url.rstrip("/")
        self.health_url = health_url
        self.timeout = timeout
        self.ping_timeout = ping_timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def submit(self, url: str, device_id: str) -> Dict[str, Any]:
        try:
            response = await self._client.post(
                f"{self.server_url}/queue",
                json={"url": url, "deviceId": device_id},
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise TransportError(f"Submitting {url} failed: {e}") from e
        except ValueError as e:
            raise TransportError(f"Submitting {url} returned a non-JSON reply") from e

    async def ping(self) -> bool:
        try:
            response = await self._client.get(self.health_url, timeout=self.ping_timeout)
        except httpx.HTTPError:
            return False
        return response.is_success

    async def aclose(self) -> None:
        await self._client.aclose()
