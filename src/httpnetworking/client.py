"""The HTTP client that owns shared plugins and builds request executors."""

from __future__ import annotations

import os
from types import MappingProxyType
from typing import Any, Iterable, Mapping

import httpx

from ._version import __version__
from .adaptors import CollisionStrategy, HeadersAdaptor, RequestAdaptor
from .cancellation import CancellationToken
from .decoding import encode_json
from .executor import PluginOrder, Plugins, RequestExecutor
from .models import HTTPMethod, Request
from .request_options import RequestOptions
from .retriers import RequestRetrier, RetrierCombination
from .security import validate_base_url
from .transport import HTTPXTransport, Transport
from .validators import ResponseValidator


def _normalize_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    if not headers:
        return {}
    return {str(key): str(value) for key, value in headers.items()}


def _merge_params(*sources: Mapping[str, Any] | None) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    for source in sources:
        if source is None:
            continue
        merged.update({key: value for key, value in source.items() if value is not None})
    return merged


class HTTPClient:
    """Shared configuration for requests made against one API.

    Headers, adaptors, validators and retriers given here apply to every
    request the client builds. Default headers never replace a header set on
    the request itself. Configuration is fixed at construction; build a new
    client to change it.
    """

    base_url_env_var = "HTTPNETWORKING_BASE_URL"

    def __init__(
        self,
        *,
        base_url: str | None = None,
        headers: Mapping[str, str] | None = None,
        adaptors: Iterable[RequestAdaptor] = (),
        validators: Iterable[ResponseValidator] = (),
        retriers: Iterable[RequestRetrier] = (),
        transport: Transport | None = None,
        plugin_order: PluginOrder = PluginOrder.CLIENT_FIRST,
        retrier_combination: RetrierCombination = RetrierCombination.FIRST_NON_CONCEDE,
        allow_http: bool = False,
    ) -> None:
        base_url = base_url or os.getenv(self.base_url_env_var)
        if base_url:
            base_url = base_url.rstrip("/")
            validate_base_url(base_url, allow_http=allow_http)
        self.base_url = base_url

        default_headers = {"User-Agent": f"httpnetworking-python/{__version__}"}
        default_headers.update(_normalize_headers(headers))
        self.headers: Mapping[str, str] = MappingProxyType(default_headers)

        self._owns_transport = transport is None
        self.transport: Transport = transport or HTTPXTransport()
        self.plugin_order = plugin_order
        self.retrier_combination = retrier_combination
        self.plugins = Plugins(
            adaptors=(HeadersAdaptor(self.headers, CollisionStrategy.USE_OLDER_VALUE), *adaptors),
            validators=tuple(validators),
            retriers=tuple(retriers),
        )

    async def __aenter__(self) -> "HTTPClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_transport and isinstance(self.transport, HTTPXTransport):
            await self.transport.aclose()

    def _url(self, url: str | httpx.URL) -> httpx.URL:
        if isinstance(url, httpx.URL):
            url = str(url)
        if "\x00" in url:
            raise ValueError("Invalid url characters")
        parsed = httpx.URL(url)
        if parsed.is_absolute_url:
            return parsed
        if not self.base_url:
            raise ValueError("Relative url requires the client to have a base_url")
        if not url.startswith("/"):
            raise ValueError("Path must be absolute and start with '/'")
        return httpx.URL(self.base_url + url)

    def request(
        self,
        method: HTTPMethod | str,
        url: str | httpx.URL,
        *,
        json: Any = None,
        content: bytes | None = None,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        expecting: Any = None,
        options: RequestOptions | None = None,
        cancellation: CancellationToken | None = None,
    ) -> RequestExecutor[Any]:
        """Build an executor for one request; await it or call ``run()``."""
        method = HTTPMethod.coerce(method)
        options = options or RequestOptions()
        if json is not None and content is not None:
            raise ValueError("Pass either json or content, not both")

        request_headers = httpx.Headers(_normalize_headers(headers))
        request_headers.update(_normalize_headers(options.headers))
        body = content
        if json is not None:
            body = encode_json(json)
            if "content-type" not in request_headers:
                request_headers["Content-Type"] = "application/json"
        if body is not None and method is HTTPMethod.GET:
            raise ValueError("GET requests should not contain a body")

        target = self._url(url)
        query = _merge_params(params, options.params)
        if query:
            target = target.copy_merge_params(query)

        executor: RequestExecutor[Any] = RequestExecutor(
            Request(method=method, url=target, headers=request_headers, content=body),
            transport=self.transport,
            expecting=expecting,
            defaults=self.plugins,
            plugin_order=self.plugin_order,
            retrier_combination=self.retrier_combination,
            cancellation=cancellation,
        )
        for adaptor in options.adaptors:
            executor.adapt(adaptor)
        for validator in options.validators:
            executor.validate(validator)
        for retrier in options.retriers:
            executor.retry(retrier)
        return executor

    async def send(self, method: HTTPMethod | str, url: str | httpx.URL, **kwargs: Any) -> Any:
        return await self.request(method, url, **kwargs).run()

    async def get(self, url: str | httpx.URL, **kwargs: Any) -> Any:
        return await self.send(HTTPMethod.GET, url, **kwargs)

    async def post(self, url: str | httpx.URL, **kwargs: Any) -> Any:
        return await self.send(HTTPMethod.POST, url, **kwargs)

    async def put(self, url: str | httpx.URL, **kwargs: Any) -> Any:
        return await self.send(HTTPMethod.PUT, url, **kwargs)

    async def patch(self, url: str | httpx.URL, **kwargs: Any) -> Any:
        return await self.send(HTTPMethod.PATCH, url, **kwargs)

    async def delete(self, url: str | httpx.URL, **kwargs: Any) -> Any:
        return await self.send(HTTPMethod.DELETE, url, **kwargs)
