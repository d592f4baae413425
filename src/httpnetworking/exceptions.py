"""Exceptions raised by the request pipeline."""

from __future__ import annotations

from typing import Mapping


class HTTPNetworkingError(Exception):
    """Base exception for all request pipeline failures."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: object = None,
        headers: Mapping[str, str] | None = None,
        attempts: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.headers = dict(headers) if headers is not None else {}
        self.attempts = attempts
        self.cause = cause

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        if self.status_code is None:
            return str(self.args[0])
        return f"{self.status_code}: {self.args[0]}"


class CancellationError(HTTPNetworkingError):
    """Raised when a request is aborted through its cancellation token."""


class TransportError(HTTPNetworkingError):
    """Raised for transport-level failures like DNS and TCP errors."""


class TransportTimeoutError(TransportError):
    """Raised when the transport gives up waiting on the network."""


class ValidationError(HTTPNetworkingError):
    """Raised when a validator rejects a response."""


class StatusCodeError(ValidationError):
    """Raised when a response status code is outside the accepted codes."""

    def __init__(self, code: int, *, body: object = None, headers: Mapping[str, str] | None = None) -> None:
        super().__init__("unacceptable status code", status_code=code, body=body, headers=headers)

    @property
    def code(self) -> int:
        return self.status_code  # type: ignore[return-value]


class AdaptationError(HTTPNetworkingError):
    """Raised when an adaptor fails to prepare the outbound request."""


class DecodingError(HTTPNetworkingError):
    """Raised when a response body cannot be decoded into the expected shape."""
