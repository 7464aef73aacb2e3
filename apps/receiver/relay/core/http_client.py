"""Minimal HTTP client for position producers and pollers."""
from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

_transport_retry = retry(
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    stop=stop_after_attempt(3),
    retry=retry_if_exception_type(httpx.TransportError),
    reraise=True,
)


def default_base_url() -> str:
    return os.getenv("RELAY_URL", "http://127.0.0.1:3000")


class RelayClient:
    """Helper for talking to a running relay.

    Only connection-level failures are retried. A rejected position comes
    back as :class:`httpx.HTTPStatusError` on the first attempt.
    """

    def __init__(
        self,
        base_url: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=5.0,
            transport=transport,
        )

    @_transport_retry
    async def post_position(self, lat: float, lng: float, **extra: Any) -> dict[str, Any]:
        response = await self._client.post("/collect", json={"lat": lat, "lng": lng, **extra})
        response.raise_for_status()
        return response.json()

    @_transport_retry
    async def latest(self) -> Optional[dict[str, Any]]:
        response = await self._client.get("/latest")
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        response.raise_for_status()
        return response.json()

    @_transport_retry
    async def history(self) -> list[dict[str, Any]]:
        response = await self._client.get("/history")
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        await self._client.aclose()


@asynccontextmanager
async def create_relay_client(
    base_url: Optional[str] = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[RelayClient]:
    client = RelayClient(base_url or default_base_url(), transport=transport)
    try:
        yield client
    finally:
        await client.close()
