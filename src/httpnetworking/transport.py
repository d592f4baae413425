"""Transports perform a single request/response exchange."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import httpx

from .exceptions import TransportError, TransportTimeoutError
from .models import Request, Response
from .security import sanitize_headers


logger = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    async def send(self, request: Request) -> Response:
        """Send ``request`` once, raising :class:`TransportError` on failure."""
        ...


class HTTPXTransport:
    """Transport backed by an :class:`httpx.AsyncClient`.

    Redirects and connection pooling are left to httpx. Pass ``httpx_client``
    to share a client or to plug in ``httpx.MockTransport`` for tests.
    """

    def __init__(
        self,
        *,
        httpx_client: httpx.AsyncClient | None = None,
        timeout: float | None = 30.0,
        follow_redirects: bool = True,
    ) -> None:
        self._owns_client = httpx_client is None
        self._httpx = httpx_client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=follow_redirects,
            trust_env=False,
        )

    async def __aenter__(self) -> "HTTPXTransport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._httpx.aclose()

    async def send(self, request: Request) -> Response:
        outbound = self._httpx.build_request(
            request.method.value,
            request.url,
            headers=request.headers,
            content=request.content,
        )
        logger.debug(
            "dispatching %s %s headers=%s",
            outbound.method,
            outbound.url,
            sanitize_headers(outbound.headers),
        )
        try:
            response = await self._httpx.send(outbound)
            content = response.content
        except httpx.TimeoutException as exc:
            raise TransportTimeoutError("Request timed out", cause=exc) from exc
        except httpx.TransportError as exc:
            raise TransportError("Network error", cause=exc) from exc

        logger.debug("received %s for %s %s", response.status_code, outbound.method, outbound.url)
        return Response(
            status_code=response.status_code,
            headers=httpx.Headers(response.headers),
            content=content,
        )
