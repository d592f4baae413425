"""Small helpers shared by the plugin wrappers."""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, TypeVar, Union


T = TypeVar("T")


async def maybe_await(value: Union[T, Awaitable[T]]) -> T:
    """Resolve plain values and awaitables returned by user callables alike."""
    if inspect.isawaitable(value):
        return await value
    return value


def describe(plugin: Any) -> str:
    return getattr(plugin, "__qualname__", None) or type(plugin).__name__
