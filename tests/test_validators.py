from __future__ import annotations

import asyncio

import pytest

from httpnetworking.cancellation import CancellationToken
from httpnetworking.exceptions import CancellationError, StatusCodeError
from httpnetworking.models import Request, Response, ValidationResult
from httpnetworking.validators import StatusCodeValidator, Validator, ZipValidator


REQUEST = Request(method="GET", url="https://api.example.com/items")


def _validate(validator, response: Response, token: CancellationToken | None = None) -> ValidationResult:
    async def go() -> ValidationResult:
        return await validator.validate(response, REQUEST, cancellation=token or CancellationToken())

    return asyncio.run(go())


def test_zip_validator_returns_first_rejection_and_stops() -> None:
    def fail_if_called(response: Response, request: Request) -> ValidationResult:
        pytest.fail("validator after a rejection must not run")

    validator = ZipValidator(
        Validator(lambda response, request: ValidationResult.accept()),
        Validator(lambda response, request: ValidationResult.reject("bad-status")),
        Validator(fail_if_called),
    )

    result = _validate(validator, Response(200))

    assert result.rejected
    assert result.reason == "bad-status"


def test_zip_validator_accepts_when_every_validator_accepts() -> None:
    async def accept(response: Response, request: Request) -> ValidationResult:
        return ValidationResult.accept()

    result = _validate(ZipValidator([Validator(accept), StatusCodeValidator()]), Response(204))

    assert result.accepted


def test_empty_zip_validator_accepts() -> None:
    assert _validate(ZipValidator(), Response(500)).accepted


def test_zip_validator_checks_cancellation_before_each_validator() -> None:
    token = CancellationToken()
    calls: list[str] = []

    def cancel(response: Response, request: Request) -> ValidationResult:
        calls.append("cancel")
        token.cancel()
        return ValidationResult.accept()

    def never(response: Response, request: Request) -> ValidationResult:
        calls.append("never")
        return ValidationResult.accept()

    with pytest.raises(CancellationError):
        _validate(ZipValidator(Validator(cancel), Validator(never)), Response(200), token)

    assert calls == ["cancel"]


@pytest.mark.parametrize("code", [200, 250, 299])
def test_status_code_range_accepts_codes_inside(code: int) -> None:
    assert _validate(StatusCodeValidator.between(200, 299), Response(code)).accepted


@pytest.mark.parametrize("code", [199, 300])
def test_status_code_range_rejects_codes_outside(code: int) -> None:
    result = _validate(StatusCodeValidator.between(200, 299), Response(code, content=b"nope"))

    assert result.rejected
    assert isinstance(result.reason, StatusCodeError)
    assert result.reason.code == code
    assert result.reason.body == b"nope"


def test_status_code_validator_defaults_to_2xx() -> None:
    validator = StatusCodeValidator()
    assert _validate(validator, Response(299)).accepted
    assert _validate(validator, Response(300)).rejected


def test_single_status_code_validator() -> None:
    validator = StatusCodeValidator(201)

    assert _validate(validator, Response(201)).accepted
    assert _validate(validator, Response(200)).reason.code == 200


def test_status_code_validator_accepts_arbitrary_collections() -> None:
    validator = StatusCodeValidator({200, 304})

    assert _validate(validator, Response(304)).accepted
    assert _validate(validator, Response(301)).rejected


def test_status_code_between_rejects_inverted_bounds() -> None:
    with pytest.raises(ValueError):
        StatusCodeValidator.between(300, 200)
