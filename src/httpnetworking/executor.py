"""Execution of one logical request from adaptation to decoded value."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Collection, Generic, Mapping, Sequence, TypeVar

from .adaptors import (
    Adaptor,
    AdaptationHandler,
    CollisionHandler,
    CollisionStrategy,
    HeadersAdaptor,
    ParametersAdaptor,
    RequestAdaptor,
    ZipAdaptor,
)
from .backoff import RetryStrategy
from .cancellation import CancellationToken
from .coordinator import RetryCoordinator
from .decoding import Decoder, decode, resolve_decoder
from .exceptions import AdaptationError
from .models import Request
from .retriers import RequestRetrier, Retrier, RetrierCombination, RetryHandler, ZipRetrier
from .transport import Transport
from .validators import ResponseValidator, StatusCodeValidator, ValidationHandler, Validator, ZipValidator


logger = logging.getLogger(__name__)

T = TypeVar("T")


class PluginOrder(Enum):
    """Whether client-wide plugins run before or after request-specific ones."""

    CLIENT_FIRST = "client_first"
    REQUEST_FIRST = "request_first"


@dataclass(frozen=True)
class Plugins:
    adaptors: tuple[RequestAdaptor, ...] = ()
    validators: tuple[ResponseValidator, ...] = ()
    retriers: tuple[RequestRetrier, ...] = ()

    def merge(self, other: "Plugins", order: PluginOrder) -> "Plugins":
        first, second = (self, other) if order is PluginOrder.CLIENT_FIRST else (other, self)
        return Plugins(
            adaptors=first.adaptors + second.adaptors,
            validators=first.validators + second.validators,
            retriers=first.retriers + second.retriers,
        )


class RequestExecutor(Generic[T]):
    """Drive a single request through adaptors, transport, validators and retriers.

    Request-specific plugins are added with :meth:`adapt`, :meth:`validate` and
    :meth:`retry`, each returning the executor so calls can be chained::

        user = await (
            client.request("GET", "/users/1", expecting=User)
            .validate(status_code=range(200, 300))
            .retry_strategy(attempts=5)
            .run()
        )

    An executor runs once. :meth:`cancel` may be called from another task at
    any time and makes :meth:`run` raise :class:`CancellationError`.
    """

    def __init__(
        self,
        request: Request,
        *,
        transport: Transport,
        expecting: Any = None,
        defaults: Plugins = Plugins(),
        plugin_order: PluginOrder = PluginOrder.CLIENT_FIRST,
        retrier_combination: RetrierCombination = RetrierCombination.FIRST_NON_CONCEDE,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.request = request.copy()
        self.transport = transport
        self.decoder: Decoder = resolve_decoder(expecting)
        self.defaults = defaults
        self.plugin_order = plugin_order
        self.retrier_combination = retrier_combination
        self.cancellation = cancellation or CancellationToken()
        self.coordinator: RetryCoordinator | None = None
        self._adaptors: list[RequestAdaptor] = []
        self._validators: list[ResponseValidator] = []
        self._retriers: list[RequestRetrier] = []

    @property
    def attempts(self) -> int:
        return self.coordinator.attempts if self.coordinator else 0

    @property
    def dispatches(self) -> int:
        return self.coordinator.dispatches if self.coordinator else 0

    def adapt(
        self,
        adaptor: RequestAdaptor | AdaptationHandler | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        strategy: CollisionStrategy | CollisionHandler = CollisionStrategy.USE_NEWER_VALUE,
        params: Mapping[str, Any] | Sequence[tuple[str, Any]] | None = None,
    ) -> "RequestExecutor[T]":
        if adaptor is not None:
            self._adaptors.append(adaptor if isinstance(adaptor, RequestAdaptor) else Adaptor(adaptor))
        if headers is not None:
            self._adaptors.append(HeadersAdaptor(headers, strategy))
        if params is not None:
            self._adaptors.append(ParametersAdaptor(params))
        return self

    def validate(
        self,
        validator: ResponseValidator | ValidationHandler | None = None,
        *,
        status_code: int | Collection[int] | None = None,
    ) -> "RequestExecutor[T]":
        if validator is not None:
            self._validators.append(validator if isinstance(validator, ResponseValidator) else Validator(validator))
        if status_code is not None:
            self._validators.append(StatusCodeValidator(status_code))
        return self

    def retry(self, retrier: RequestRetrier | RetryHandler) -> "RequestExecutor[T]":
        self._retriers.append(retrier if isinstance(retrier, RequestRetrier) else Retrier(retrier))
        return self

    def retry_strategy(self, **kwargs: Any) -> "RequestExecutor[T]":
        return self.retry(RetryStrategy(**kwargs))

    def cancel(self, reason: str | None = None) -> None:
        self.cancellation.cancel(reason)

    def plugins(self) -> Plugins:
        """Client and request plugins in the order they will run."""
        own = Plugins(tuple(self._adaptors), tuple(self._validators), tuple(self._retriers))
        return self.defaults.merge(own, self.plugin_order)

    async def run(self) -> T:
        if self.coordinator is not None:
            raise RuntimeError("RequestExecutor instances run a single request")

        plugins = self.plugins()
        adaptor = ZipAdaptor(plugins.adaptors)
        logger.debug(
            "running %s %s with %d adaptor(s), %d validator(s), %d retrier(s)",
            self.request.method.value,
            self.request.url,
            len(plugins.adaptors),
            len(plugins.validators),
            len(plugins.retriers),
        )

        async def prepare(request: Request) -> Request:
            return await adaptor.adapt(request, cancellation=self.cancellation)

        self.coordinator = RetryCoordinator(
            self.transport,
            validator=ZipValidator(plugins.validators),
            retrier=ZipRetrier(plugins.retriers, combination=self.retrier_combination),
            cancellation=self.cancellation,
            prepare=prepare,
        )
        try:
            response = await self.coordinator.run(self.request)
        except AdaptationError as exc:
            exc.attempts = self.coordinator.attempts
            raise

        self.cancellation.raise_if_cancelled()
        value = decode(self.decoder, response)
        self.cancellation.raise_if_cancelled()
        return value

    def __await__(self):
        return self.run().__await__()
