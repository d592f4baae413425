"""Cooperative cancellation shared by the steps of one logical request."""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from .exceptions import CancellationError


T = TypeVar("T")


def _discard_result(task: "asyncio.Future[object]") -> None:
    if not task.cancelled():
        task.exception()


class CancellationToken:
    """Advisory cancellation signal.

    Chains call :meth:`raise_if_cancelled` before every step; suspension points
    go through :meth:`guard` or :meth:`sleep` so that a pending network call or
    backoff delay is interrupted as soon as :meth:`cancel` is called.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancellationError(self.reason or "request was cancelled")

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        A cancellation observed after the awaitable finished still wins, the
        result is discarded.
        """
        if self._event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.raise_if_cancelled()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if self._event.is_set():
            task.cancel()
            task.add_done_callback(_discard_result)
            self.raise_if_cancelled()
        return task.result()

    async def sleep(self, delay: float) -> None:
        """Sleep for ``delay`` seconds, raising if cancelled before it elapses."""
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        self.raise_if_cancelled()
