"""Retry coordination around the dispatch and validation of one request."""

from __future__ import annotations

import copy
import logging
from enum import Enum
from typing import Awaitable, Callable

from .cancellation import CancellationToken
from .exceptions import CancellationError, HTTPNetworkingError, TransportError, ValidationError
from .models import Request, Response, RetryAction, RetryDecision, ValidationResult
from .retriers import RequestRetrier, ZipRetrier
from .transport import Transport
from .validators import ResponseValidator, ZipValidator


logger = logging.getLogger(__name__)

PrepareRequest = Callable[[Request], Awaitable[Request]]


class CoordinatorState(Enum):
    ATTEMPTING = "attempting"
    AWAITING_DELAY = "awaiting_delay"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (CoordinatorState.SUCCEEDED, CoordinatorState.FAILED)


async def _unchanged(request: Request) -> Request:
    return request


class RetryCoordinator:
    """Dispatch a request until it is accepted or the retriers give up.

    ``attempts`` counts failed attempts and is what the retriers receive as
    ``previous_attempts``; it is incremented before they are consulted, so the
    first failure is reported as 1. ``prepare`` runs at the start of every
    attempt with a fresh copy of the request; failures it raises are terminal
    and never offered to the retriers.

    A coordinator drives a single logical request and cannot be reused.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        validator: ResponseValidator | None = None,
        retrier: RequestRetrier | None = None,
        cancellation: CancellationToken | None = None,
        prepare: PrepareRequest = _unchanged,
    ) -> None:
        self.transport = transport
        self.validator = validator or ZipValidator()
        self.retrier = retrier or ZipRetrier()
        self.cancellation = cancellation or CancellationToken()
        self.prepare = prepare
        self.state = CoordinatorState.ATTEMPTING
        self.attempts = 0
        self.dispatches = 0
        self.last_failure: HTTPNetworkingError | None = None
        self._started = False

    async def run(self, request: Request) -> Response:
        if self._started:
            raise RuntimeError("RetryCoordinator instances drive a single request")
        self._started = True
        try:
            return await self._run(request)
        except BaseException:
            if not self.state.terminal:
                self.state = CoordinatorState.FAILED
            raise

    async def _run(self, request: Request) -> Response:
        while True:
            self.cancellation.raise_if_cancelled()
            outbound = await self.prepare(request.copy())

            self.cancellation.raise_if_cancelled()
            response: Response | None = None
            try:
                response = await self._dispatch(outbound)
                result = await self._validate(response, outbound)
            except CancellationError:
                raise
            except HTTPNetworkingError as exc:
                failure = exc
            else:
                if result.accepted:
                    self.cancellation.raise_if_cancelled()
                    self.state = CoordinatorState.SUCCEEDED
                    return response
                failure = _rejection_error(result, response)

            self.attempts += 1
            failure.attempts = self.attempts
            self.last_failure = failure

            self.cancellation.raise_if_cancelled()
            decision = await self._decide(outbound, response, failure)
            self.cancellation.raise_if_cancelled()

            if decision.action is RetryAction.CONCEDE:
                self.state = CoordinatorState.FAILED
                logger.warning(
                    "%s %s failed after %d attempt(s): %s",
                    outbound.method.value,
                    outbound.url,
                    self.attempts,
                    failure,
                )
                raise failure

            if decision.action is RetryAction.RETRY_AFTER_DELAY:
                self.state = CoordinatorState.AWAITING_DELAY
                logger.info(
                    "retrying %s %s in %.3fs after %d failed attempt(s)",
                    outbound.method.value,
                    outbound.url,
                    decision.delay,
                    self.attempts,
                )
                await self.cancellation.sleep(decision.delay)
            else:
                logger.info(
                    "retrying %s %s after %d failed attempt(s)",
                    outbound.method.value,
                    outbound.url,
                    self.attempts,
                )
            self.state = CoordinatorState.ATTEMPTING

    async def _decide(
        self,
        request: Request,
        response: Response | None,
        failure: HTTPNetworkingError,
    ) -> RetryDecision:
        # A broken retrier ends the request with the failure it was judging.
        try:
            decision = await self.retrier.decide(
                request,
                response,
                failure,
                self.attempts,
                cancellation=self.cancellation,
            )
            if not isinstance(decision, RetryDecision):
                raise TypeError(f"retrier returned {decision!r} instead of a RetryDecision")
        except HTTPNetworkingError:
            self.state = CoordinatorState.FAILED
            raise
        except Exception as exc:
            self.state = CoordinatorState.FAILED
            logger.warning(
                "retrier failed for %s %s after %d attempt(s): %r",
                request.method.value,
                request.url,
                self.attempts,
                exc,
            )
            raise failure
        return decision

    async def _dispatch(self, request: Request) -> Response:
        self.dispatches += 1
        try:
            return await self.cancellation.guard(self.transport.send(request.copy()))
        except HTTPNetworkingError:
            raise
        except Exception as exc:
            raise TransportError(f"Transport failed: {exc}", cause=exc) from exc

    async def _validate(self, response: Response, request: Request) -> ValidationResult:
        try:
            return await self.validator.validate(response, request, cancellation=self.cancellation)
        except HTTPNetworkingError:
            raise
        except Exception as exc:
            raise ValidationError(
                f"Validator failed: {exc}",
                status_code=response.status_code,
                body=response.content,
                headers=response.headers,
                cause=exc,
            ) from exc


def _rejection_error(result: ValidationResult, response: Response) -> HTTPNetworkingError:
    reason = result.reason
    if isinstance(reason, HTTPNetworkingError):
        # Validators may hand back a shared instance; attempts are recorded per request.
        error = copy.copy(reason)
        error.__cause__ = reason.__cause__
        return error
    error = ValidationError(
        str(reason) if reason is not None else "response rejected",
        status_code=response.status_code,
        body=response.content,
        headers=response.headers,
        cause=reason if isinstance(reason, BaseException) else None,
    )
    if isinstance(reason, BaseException):
        error.__cause__ = reason
    return error
