"""Request, response and decision types shared by the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any

import httpx


class HTTPMethod(str, Enum):
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    CONNECT = "CONNECT"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"

    @classmethod
    def coerce(cls, value: "HTTPMethod | str") -> "HTTPMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(f"Unsupported HTTP method: {value!r}") from None


@dataclass
class Request:
    """An outbound request description.

    Adaptors receive a copy of the request for every attempt, so the instance
    handed to the executor is never modified by the pipeline.
    """

    method: HTTPMethod
    url: httpx.URL
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    content: bytes | None = None

    def __post_init__(self) -> None:
        self.method = HTTPMethod.coerce(self.method)
        self.url = httpx.URL(self.url)
        self.headers = httpx.Headers(self.headers)

    def copy(self) -> "Request":
        return Request(
            method=self.method,
            url=self.url,
            headers=httpx.Headers(self.headers),
            content=self.content,
        )


@dataclass(frozen=True)
class Response:
    """A response received for a single dispatch attempt."""

    status_code: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    content: bytes = b""

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(frozen=True)
class ValidationResult:
    accepted: bool = True
    reason: Any = None

    @property
    def rejected(self) -> bool:
        return not self.accepted

    @classmethod
    def accept(cls) -> "ValidationResult":
        return ACCEPTED

    @classmethod
    def reject(cls, reason: Any) -> "ValidationResult":
        return cls(accepted=False, reason=reason)


ACCEPTED = ValidationResult(accepted=True)


class RetryAction(str, Enum):
    CONCEDE = "concede"
    RETRY = "retry"
    RETRY_AFTER_DELAY = "retry_after_delay"


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of consulting a retrier after a failed attempt."""

    action: RetryAction
    delay: float = 0.0

    def __post_init__(self) -> None:
        if self.delay < 0:
            raise ValueError("retry delay must be non-negative")
        if self.action is not RetryAction.RETRY_AFTER_DELAY and self.delay:
            raise ValueError(f"{self.action.value} decisions do not carry a delay")

    @property
    def concedes(self) -> bool:
        return self.action is RetryAction.CONCEDE

    @classmethod
    def concede(cls) -> "RetryDecision":
        return cls(RetryAction.CONCEDE)

    @classmethod
    def retry(cls) -> "RetryDecision":
        return cls(RetryAction.RETRY)

    @classmethod
    def retry_after_delay(cls, delay: float | timedelta) -> "RetryDecision":
        if isinstance(delay, timedelta):
            delay = delay.total_seconds()
        return cls(RetryAction.RETRY_AFTER_DELAY, float(delay))
