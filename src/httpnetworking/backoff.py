"""Exponential backoff retry policy."""

from __future__ import annotations

import logging
import random
from enum import Enum
from typing import Collection

import httpx

from .cancellation import CancellationToken
from .exceptions import TransportError
from .models import HTTPMethod, Request, Response, RetryDecision
from .retriers import RequestRetrier
from .security import parse_retry_after


logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 3
DEFAULT_METHODS = frozenset(
    {
        HTTPMethod.PUT,
        HTTPMethod.DELETE,
        HTTPMethod.GET,
        HTTPMethod.HEAD,
        HTTPMethod.OPTIONS,
        HTTPMethod.TRACE,
    }
)
DEFAULT_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})
# Connection resets, DNS failures, protocol errors and timeouts can clear up on
# a later attempt; invalid URLs or unsupported protocols will not.
DEFAULT_RETRYABLE_EXCEPTIONS: tuple[type[BaseException], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)
DEFAULT_BACKOFF_BASE = 2.0
DEFAULT_MAX_RETRY_AFTER = 60.0


class JitterStrategy(Enum):
    NONE = "none"
    EQUAL = "equal"
    FULL = "full"

    def apply(self, delay: float, rng: random.Random | None = None) -> float:
        rng = rng or random
        if self is JitterStrategy.NONE:
            return delay
        if self is JitterStrategy.EQUAL:
            half = delay / 2
            return half + rng.uniform(0, half)
        return rng.uniform(0, delay)


class RetryStrategy(RequestRetrier):
    """Retry idempotent requests that failed in a recoverable way.

    A request is retried while fewer than ``attempts`` attempts have failed,
    its method is in ``methods``, and either the response status is in
    ``status_codes`` or the transport failed with one of
    ``retryable_exceptions``. The n-th retry waits
    ``backoff_base * 2 ** (n - 1)`` seconds after jitter, capped at
    ``max_delay``; a ``Retry-After`` header on the response takes precedence
    when ``respect_retry_after`` is set, clamped to ``max_retry_after``.
    """

    def __init__(
        self,
        *,
        attempts: int = DEFAULT_ATTEMPTS,
        methods: Collection[HTTPMethod | str] = DEFAULT_METHODS,
        status_codes: Collection[int] = DEFAULT_STATUS_CODES,
        retryable_exceptions: tuple[type[BaseException], ...] = DEFAULT_RETRYABLE_EXCEPTIONS,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
        jitter: JitterStrategy = JitterStrategy.FULL,
        max_delay: float | None = None,
        respect_retry_after: bool = True,
        max_retry_after: float | None = DEFAULT_MAX_RETRY_AFTER,
        rng: random.Random | None = None,
    ) -> None:
        if attempts < 0:
            raise ValueError("attempts must be non-negative")
        if backoff_base < 0:
            raise ValueError("backoff_base must be non-negative")
        if max_delay is not None and max_delay < 0:
            raise ValueError("max_delay must be non-negative")
        if max_retry_after is not None and max_retry_after < 0:
            raise ValueError("max_retry_after must be non-negative")
        self.attempts = attempts
        self.methods = frozenset(HTTPMethod.coerce(method) for method in methods)
        self.status_codes = frozenset(status_codes)
        self.retryable_exceptions = retryable_exceptions
        self.backoff_base = backoff_base
        self.jitter = jitter
        self.max_delay = max_delay
        self.respect_retry_after = respect_retry_after
        self.max_retry_after = max_retry_after
        self._rng = rng

    async def decide(
        self,
        request: Request,
        response: Response | None,
        failure: BaseException,
        previous_attempts: int,
        *,
        cancellation: CancellationToken,
    ) -> RetryDecision:
        if not self.should_retry(request, response, failure, previous_attempts):
            return RetryDecision.concede()
        delay = self.delay_for(previous_attempts, response)
        logger.debug(
            "retrying %s %s after %.3fs (attempt %d of %d)",
            request.method.value,
            request.url,
            delay,
            previous_attempts + 1,
            self.attempts,
        )
        return RetryDecision.retry_after_delay(delay)

    def should_retry(
        self,
        request: Request,
        response: Response | None,
        failure: BaseException,
        previous_attempts: int,
    ) -> bool:
        if previous_attempts >= self.attempts:
            return False
        if request.method not in self.methods:
            return False
        if response is not None and response.status_code in self.status_codes:
            return True
        if isinstance(failure, TransportError):
            return isinstance(failure.cause, self.retryable_exceptions)
        return isinstance(failure, self.retryable_exceptions)

    def delay_for(self, previous_attempts: int, response: Response | None = None) -> float:
        if self.respect_retry_after and response is not None:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            if retry_after is not None:
                if self.max_retry_after is not None:
                    retry_after = min(self.max_retry_after, retry_after)
                return self._cap(retry_after)
        delay = self.backoff_base * (2 ** max(0, previous_attempts - 1))
        return self._cap(self.jitter.apply(delay, self._rng))

    def _cap(self, delay: float) -> float:
        if self.max_delay is None:
            return delay
        return min(self.max_delay, delay)
