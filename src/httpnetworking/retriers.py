"""Retriers decide whether a failed attempt should be tried again."""

from __future__ import annotations

import abc
import logging
from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional, Union

from ._utils import describe, maybe_await
from .cancellation import CancellationToken
from .models import Request, Response, RetryDecision


logger = logging.getLogger(__name__)

RetryHandler = Callable[
    [Request, Optional[Response], BaseException, int],
    Union[RetryDecision, Awaitable[RetryDecision]],
]


class RequestRetrier(abc.ABC):
    @abc.abstractmethod
    async def decide(
        self,
        request: Request,
        response: Response | None,
        failure: BaseException,
        previous_attempts: int,
        *,
        cancellation: CancellationToken,
    ) -> RetryDecision:
        """Decide how to proceed after ``previous_attempts`` failed attempts."""


class Retrier(RequestRetrier):
    """Wrap a plain or coroutine function as a retrier."""

    def __init__(self, handler: RetryHandler) -> None:
        self.handler = handler

    async def decide(
        self,
        request: Request,
        response: Response | None,
        failure: BaseException,
        previous_attempts: int,
        *,
        cancellation: CancellationToken,
    ) -> RetryDecision:
        return await maybe_await(self.handler(request, response, failure, previous_attempts))

    def __repr__(self) -> str:
        return f"Retrier({describe(self.handler)})"


class RetrierCombination(Enum):
    FIRST_NON_CONCEDE = "first_non_concede"
    UNANIMOUS = "unanimous"


class ZipRetrier(RequestRetrier):
    """Combine retriers into one.

    With ``FIRST_NON_CONCEDE`` the retriers are asked in order and the first
    one that does not concede decides. With ``UNANIMOUS`` every retrier must
    want a retry, and the longest requested delay is used. An empty chain
    always concedes.
    """

    def __init__(
        self,
        *retriers: RequestRetrier | Iterable[RequestRetrier],
        combination: RetrierCombination = RetrierCombination.FIRST_NON_CONCEDE,
    ) -> None:
        flattened: list[RequestRetrier] = []
        for retrier in retriers:
            if isinstance(retrier, RequestRetrier):
                flattened.append(retrier)
            else:
                flattened.extend(retrier)
        self.retriers = tuple(flattened)
        self.combination = combination

    def __len__(self) -> int:
        return len(self.retriers)

    async def decide(
        self,
        request: Request,
        response: Response | None,
        failure: BaseException,
        previous_attempts: int,
        *,
        cancellation: CancellationToken,
    ) -> RetryDecision:
        if not self.retriers:
            return RetryDecision.concede()

        decisions: list[RetryDecision] = []
        for retrier in self.retriers:
            cancellation.raise_if_cancelled()
            decision = await cancellation.guard(
                retrier.decide(request, response, failure, previous_attempts, cancellation=cancellation)
            )
            if self.combination is RetrierCombination.FIRST_NON_CONCEDE:
                if not decision.concedes:
                    logger.debug("retrier %r decided %s", retrier, decision.action.value)
                    return decision
            elif decision.concedes:
                logger.debug("retrier %r vetoed the retry", retrier)
                return decision
            decisions.append(decision)

        if self.combination is RetrierCombination.FIRST_NON_CONCEDE:
            return RetryDecision.concede()
        return max(decisions, key=lambda decision: decision.delay)
