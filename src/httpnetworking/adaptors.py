"""Adaptors transform an outbound request before it is dispatched."""

from __future__ import annotations

import abc
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Mapping, Sequence, Union

import httpx

from ._utils import describe, maybe_await
from .cancellation import CancellationToken
from .exceptions import AdaptationError, CancellationError
from .models import Request


logger = logging.getLogger(__name__)

AdaptationHandler = Callable[[Request], Union[Request, Awaitable[Request]]]
CollisionHandler = Callable[[str, str, str], str]


class RequestAdaptor(abc.ABC):
    @abc.abstractmethod
    async def adapt(self, request: Request, *, cancellation: CancellationToken) -> Request:
        """Return the request to send in place of ``request``."""


class Adaptor(RequestAdaptor):
    """Wrap a plain or coroutine function as an adaptor."""

    def __init__(self, handler: AdaptationHandler) -> None:
        self.handler = handler

    async def adapt(self, request: Request, *, cancellation: CancellationToken) -> Request:
        return await maybe_await(self.handler(request))

    def __repr__(self) -> str:
        return f"Adaptor({describe(self.handler)})"


class CollisionStrategy(Enum):
    """What to do when a header being added is already set on the request."""

    USE_OLDER_VALUE = "use_older_value"
    USE_NEWER_VALUE = "use_newer_value"
    USE_BOTH_VALUES = "use_both_values"


class HeadersAdaptor(RequestAdaptor):
    def __init__(
        self,
        headers: Mapping[str, str],
        strategy: CollisionStrategy | CollisionHandler = CollisionStrategy.USE_NEWER_VALUE,
    ) -> None:
        self.headers = {str(key): str(value) for key, value in headers.items()}
        self.strategy = strategy

    async def adapt(self, request: Request, *, cancellation: CancellationToken) -> Request:
        for key, new_value in self.headers.items():
            old_value = request.headers.get(key)
            if old_value is None:
                request.headers[key] = new_value
            elif self.strategy is CollisionStrategy.USE_OLDER_VALUE:
                continue
            elif self.strategy is CollisionStrategy.USE_NEWER_VALUE:
                request.headers[key] = new_value
            elif self.strategy is CollisionStrategy.USE_BOTH_VALUES:
                request.headers[key] = f"{old_value}, {new_value}"
            else:
                request.headers[key] = self.strategy(key, old_value, new_value)
        return request


class ParametersAdaptor(RequestAdaptor):
    """Append query items to the request URL, keeping the ones already there."""

    def __init__(self, params: Mapping[str, Any] | Sequence[tuple[str, Any]]) -> None:
        self.params = httpx.QueryParams(params)

    async def adapt(self, request: Request, *, cancellation: CancellationToken) -> Request:
        items = list(request.url.params.multi_items()) + list(self.params.multi_items())
        if items:
            request.url = httpx.URL(request.url, params=httpx.QueryParams(items))
        return request


class ZipAdaptor(RequestAdaptor):
    """Run adaptors in order, feeding each the output of the previous one.

    Cancellation is checked before every adaptor. The first failure stops the
    chain and is raised as :class:`AdaptationError`.
    """

    def __init__(self, *adaptors: RequestAdaptor | Iterable[RequestAdaptor]) -> None:
        flattened: list[RequestAdaptor] = []
        for adaptor in adaptors:
            if isinstance(adaptor, RequestAdaptor):
                flattened.append(adaptor)
            else:
                flattened.extend(adaptor)
        self.adaptors = tuple(flattened)

    def __len__(self) -> int:
        return len(self.adaptors)

    async def adapt(self, request: Request, *, cancellation: CancellationToken) -> Request:
        for index, adaptor in enumerate(self.adaptors):
            cancellation.raise_if_cancelled()
            try:
                request = await cancellation.guard(adaptor.adapt(request, cancellation=cancellation))
            except (AdaptationError, CancellationError):
                raise
            except Exception as exc:
                logger.debug("adaptor %d (%r) failed: %s", index, adaptor, exc)
                raise AdaptationError(f"Adaptor {adaptor!r} failed: {exc}", cause=exc) from exc
        return request
