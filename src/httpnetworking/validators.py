"""Validators decide whether a response counts as a success."""

from __future__ import annotations

import abc
import logging
from typing import Awaitable, Callable, Collection, Iterable, Union

from ._utils import describe, maybe_await
from .cancellation import CancellationToken
from .exceptions import StatusCodeError
from .models import ACCEPTED, Request, Response, ValidationResult


logger = logging.getLogger(__name__)

ValidationHandler = Callable[[Response, Request], Union[ValidationResult, Awaitable[ValidationResult]]]


class ResponseValidator(abc.ABC):
    @abc.abstractmethod
    async def validate(
        self,
        response: Response,
        request: Request,
        *,
        cancellation: CancellationToken,
    ) -> ValidationResult:
        """Judge ``response``, received for ``request``."""


class Validator(ResponseValidator):
    """Wrap a plain or coroutine function as a validator."""

    def __init__(self, handler: ValidationHandler) -> None:
        self.handler = handler

    async def validate(
        self,
        response: Response,
        request: Request,
        *,
        cancellation: CancellationToken,
    ) -> ValidationResult:
        return await maybe_await(self.handler(response, request))

    def __repr__(self) -> str:
        return f"Validator({describe(self.handler)})"


class StatusCodeValidator(ResponseValidator):
    """Accept responses whose status code is among ``acceptable``.

    ``acceptable`` is a single code or any collection supporting ``in``; a
    ``range`` gives an inclusive-exclusive span, so ``range(200, 300)`` covers
    200 through 299.
    """

    def __init__(self, acceptable: int | Collection[int] = range(200, 300)) -> None:
        if isinstance(acceptable, int):
            acceptable = range(acceptable, acceptable + 1)
        self.acceptable = acceptable

    @classmethod
    def between(cls, lower: int, upper: int) -> "StatusCodeValidator":
        """Accept codes from ``lower`` to ``upper``, both inclusive."""
        if lower > upper:
            raise ValueError("lower bound must not exceed upper bound")
        return cls(range(lower, upper + 1))

    async def validate(
        self,
        response: Response,
        request: Request,
        *,
        cancellation: CancellationToken,
    ) -> ValidationResult:
        if response.status_code in self.acceptable:
            return ACCEPTED
        return ValidationResult.reject(
            StatusCodeError(response.status_code, body=response.content, headers=response.headers)
        )

    def __repr__(self) -> str:
        return f"StatusCodeValidator({self.acceptable!r})"


class ZipValidator(ResponseValidator):
    """Evaluate validators in order; the first rejection wins."""

    def __init__(self, *validators: ResponseValidator | Iterable[ResponseValidator]) -> None:
        flattened: list[ResponseValidator] = []
        for validator in validators:
            if isinstance(validator, ResponseValidator):
                flattened.append(validator)
            else:
                flattened.extend(validator)
        self.validators = tuple(flattened)

    def __len__(self) -> int:
        return len(self.validators)

    async def validate(
        self,
        response: Response,
        request: Request,
        *,
        cancellation: CancellationToken,
    ) -> ValidationResult:
        for validator in self.validators:
            cancellation.raise_if_cancelled()
            result = await cancellation.guard(
                validator.validate(response, request, cancellation=cancellation)
            )
            if result.rejected:
                logger.debug("validator %r rejected %s: %r", validator, response.status_code, result.reason)
                return result
        return ACCEPTED
