from __future__ import annotations

import asyncio

import pytest

from httpnetworking.cancellation import CancellationToken
from httpnetworking.coordinator import CoordinatorState, RetryCoordinator
from httpnetworking.exceptions import (
    AdaptationError,
    CancellationError,
    StatusCodeError,
    TransportError,
    ValidationError,
)
from httpnetworking.models import Request, Response, RetryDecision, ValidationResult
from httpnetworking.retriers import Retrier
from httpnetworking.validators import StatusCodeValidator, Validator


REQUEST = Request(method="GET", url="https://api.example.com/items")


class ScriptedTransport:
    """Replays responses or raises failures in order; the last entry repeats."""

    def __init__(self, *outcomes: Response | BaseException, delay: float = 0.0) -> None:
        self.outcomes = list(outcomes)
        self.delay = delay
        self.requests: list[Request] = []
        self.sent_at: list[float] = []

    async def send(self, request: Request) -> Response:
        self.requests.append(request)
        self.sent_at.append(asyncio.get_running_loop().time())
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def _scripted_retrier(*decisions: RetryDecision, seen: list[int] | None = None) -> Retrier:
    remaining = list(decisions)

    def handler(request, response, failure, previous_attempts) -> RetryDecision:
        if seen is not None:
            seen.append(previous_attempts)
        return remaining.pop(0) if remaining else RetryDecision.concede()

    return Retrier(handler)


def test_always_conceding_retrier_dispatches_once_and_raises_first_failure() -> None:
    failure = TransportError("connection reset")
    transport = ScriptedTransport(failure)
    coordinator = RetryCoordinator(transport, retrier=_scripted_retrier())

    with pytest.raises(TransportError) as exc_info:
        asyncio.run(coordinator.run(REQUEST))

    assert exc_info.value is failure
    assert exc_info.value.attempts == 1
    assert len(transport.requests) == 1
    assert coordinator.state is CoordinatorState.FAILED


def test_no_retriers_surfaces_status_code_rejection() -> None:
    transport = ScriptedTransport(Response(404, content=b"missing"))
    coordinator = RetryCoordinator(transport, validator=StatusCodeValidator())

    with pytest.raises(StatusCodeError) as exc_info:
        asyncio.run(coordinator.run(REQUEST))

    assert exc_info.value.code == 404
    assert exc_info.value.body == b"missing"
    assert coordinator.dispatches == 1


def test_retry_once_then_concede_dispatches_twice() -> None:
    seen: list[int] = []
    transport = ScriptedTransport(Response(500))
    coordinator = RetryCoordinator(
        transport,
        validator=StatusCodeValidator(),
        retrier=_scripted_retrier(RetryDecision.retry(), seen=seen),
    )

    with pytest.raises(StatusCodeError) as exc_info:
        asyncio.run(coordinator.run(REQUEST))

    assert len(transport.requests) == 2
    assert seen == [1, 2]
    assert exc_info.value.attempts == 2


def test_success_after_retries_returns_response() -> None:
    transport = ScriptedTransport(Response(500), Response(500), Response(200, content=b"ok"))
    coordinator = RetryCoordinator(
        transport,
        validator=StatusCodeValidator(),
        retrier=_scripted_retrier(RetryDecision.retry(), RetryDecision.retry()),
    )

    response = asyncio.run(coordinator.run(REQUEST))

    assert response.content == b"ok"
    assert coordinator.state is CoordinatorState.SUCCEEDED
    assert coordinator.attempts == 2
    assert coordinator.dispatches == 3


def test_retry_after_delay_waits_before_next_attempt() -> None:
    transport = ScriptedTransport(Response(503), Response(200))
    coordinator = RetryCoordinator(
        transport,
        validator=StatusCodeValidator(),
        retrier=_scripted_retrier(RetryDecision.retry_after_delay(0.05)),
    )

    asyncio.run(coordinator.run(REQUEST))

    first, second = transport.sent_at
    assert second - first >= 0.05 - 0.001


def test_cancellation_during_delay_prevents_next_attempt() -> None:
    transport = ScriptedTransport(Response(503))
    token = CancellationToken()
    coordinator = RetryCoordinator(
        transport,
        validator=StatusCodeValidator(),
        retrier=_scripted_retrier(RetryDecision.retry_after_delay(30), RetryDecision.retry()),
        cancellation=token,
    )

    async def go() -> None:
        task = asyncio.create_task(coordinator.run(REQUEST))
        while coordinator.state is not CoordinatorState.AWAITING_DELAY:
            await asyncio.sleep(0.001)
        token.cancel()
        await asyncio.wait_for(task, timeout=1)

    with pytest.raises(CancellationError):
        asyncio.run(go())

    assert len(transport.requests) == 1
    assert coordinator.state is CoordinatorState.FAILED


def test_cancellation_interrupts_network_wait() -> None:
    transport = ScriptedTransport(Response(200), delay=30)
    token = CancellationToken()
    coordinator = RetryCoordinator(transport, cancellation=token)

    async def go() -> None:
        task = asyncio.create_task(coordinator.run(REQUEST))
        while not transport.requests:
            await asyncio.sleep(0.001)
        token.cancel("shutting down")
        await asyncio.wait_for(task, timeout=1)

    with pytest.raises(CancellationError, match="shutting down"):
        asyncio.run(go())


def test_cancelled_token_prevents_any_dispatch() -> None:
    transport = ScriptedTransport(Response(200))
    token = CancellationToken()
    token.cancel()

    with pytest.raises(CancellationError):
        asyncio.run(RetryCoordinator(transport, cancellation=token).run(REQUEST))

    assert transport.requests == []


def test_unexpected_transport_exceptions_become_transport_errors() -> None:
    transport = ScriptedTransport(OSError("socket closed"))

    with pytest.raises(TransportError) as exc_info:
        asyncio.run(RetryCoordinator(transport).run(REQUEST))

    assert isinstance(exc_info.value.cause, OSError)


def test_validator_exceptions_are_offered_to_retriers() -> None:
    failures: list[BaseException] = []

    def explode(response: Response, request: Request) -> ValidationResult:
        raise KeyError("missing field")

    def record(request, response, failure, previous_attempts) -> RetryDecision:
        failures.append(failure)
        return RetryDecision.concede()

    coordinator = RetryCoordinator(
        ScriptedTransport(Response(200)),
        validator=Validator(explode),
        retrier=Retrier(record),
    )

    with pytest.raises(ValidationError):
        asyncio.run(coordinator.run(REQUEST))

    assert len(failures) == 1
    assert isinstance(failures[0].cause, KeyError)


def test_failing_retrier_surfaces_the_failure_it_was_judging() -> None:
    def explode(request, response, failure, previous_attempts) -> RetryDecision:
        raise KeyError("boom")

    transport = ScriptedTransport(Response(500))
    coordinator = RetryCoordinator(transport, validator=StatusCodeValidator(), retrier=Retrier(explode))

    with pytest.raises(StatusCodeError) as exc_info:
        asyncio.run(coordinator.run(REQUEST))

    assert exc_info.value.code == 500
    assert exc_info.value.attempts == 1
    assert isinstance(exc_info.value.__context__, KeyError)
    assert coordinator.state is CoordinatorState.FAILED
    assert len(transport.requests) == 1


def test_retrier_returning_something_else_ends_the_request() -> None:
    transport = ScriptedTransport(Response(503))
    coordinator = RetryCoordinator(
        transport,
        validator=StatusCodeValidator(),
        retrier=Retrier(lambda request, response, failure, previous_attempts: "retry"),
    )

    with pytest.raises(StatusCodeError) as exc_info:
        asyncio.run(coordinator.run(REQUEST))

    assert isinstance(exc_info.value.__context__, TypeError)
    assert len(transport.requests) == 1


def test_shared_rejection_errors_are_not_mutated_across_requests() -> None:
    shared = ValidationError("maintenance window", status_code=503)

    def reject(response: Response, request: Request) -> ValidationResult:
        return ValidationResult.reject(shared)

    raised: list[ValidationError] = []
    for attempts in (1, 2):
        coordinator = RetryCoordinator(
            ScriptedTransport(Response(503)),
            validator=Validator(reject),
            retrier=_scripted_retrier(*[RetryDecision.retry()] * (attempts - 1)),
        )
        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(coordinator.run(REQUEST))
        raised.append(exc_info.value)

    assert [error.attempts for error in raised] == [1, 2]
    assert all(error is not shared for error in raised)
    assert str(raised[0]) == "503: maintenance window"
    assert shared.attempts is None


def test_string_rejection_reasons_become_validation_errors() -> None:
    coordinator = RetryCoordinator(
        ScriptedTransport(Response(200, content=b"{}")),
        validator=Validator(lambda response, request: ValidationResult.reject("empty payload")),
    )

    with pytest.raises(ValidationError, match="empty payload") as exc_info:
        asyncio.run(coordinator.run(REQUEST))

    assert exc_info.value.status_code == 200


def test_prepare_runs_every_attempt_and_its_failures_are_not_retried() -> None:
    prepared: list[int] = []
    retried: list[int] = []

    async def prepare(request: Request) -> Request:
        prepared.append(len(prepared) + 1)
        if len(prepared) == 2:
            raise AdaptationError("credentials expired")
        return request

    def retry_always(request, response, failure, previous_attempts) -> RetryDecision:
        retried.append(previous_attempts)
        return RetryDecision.retry()

    transport = ScriptedTransport(Response(500))
    coordinator = RetryCoordinator(
        transport,
        validator=StatusCodeValidator(),
        retrier=Retrier(retry_always),
        prepare=prepare,
    )

    with pytest.raises(AdaptationError):
        asyncio.run(coordinator.run(REQUEST))

    assert prepared == [1, 2]
    assert retried == [1]
    assert len(transport.requests) == 1


def test_transport_receives_a_copy_of_the_request() -> None:
    transport = ScriptedTransport(Response(200))

    asyncio.run(RetryCoordinator(transport).run(REQUEST))

    assert transport.requests[0] == REQUEST
    assert transport.requests[0] is not REQUEST


def test_coordinator_cannot_be_reused() -> None:
    coordinator = RetryCoordinator(ScriptedTransport(Response(200)))

    async def go() -> None:
        await coordinator.run(REQUEST)
        await coordinator.run(REQUEST)

    with pytest.raises(RuntimeError):
        asyncio.run(go())
