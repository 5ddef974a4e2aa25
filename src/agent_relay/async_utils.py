"""Helpers for calling user callbacks that may be sync or async."""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, TypeVar, Union

T = TypeVar("T")

MaybeAwaitable = Union[T, Awaitable[T]]


async def call_maybe_async(func: Callable[..., MaybeAwaitable[T]], *args: Any, **kwargs: Any) -> T:
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        return await result
    return result
