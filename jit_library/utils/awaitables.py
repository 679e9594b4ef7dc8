"""Helpers for calling user hooks that may be sync or async."""

import inspect
from typing import Any


async def maybe_await(value: Any) -> Any:
    """Await value if it is awaitable, otherwise return it unchanged.

    Args:
        value: Result of calling a sync or async callable

    Returns:
        The resolved value

    Example:
        >>> await maybe_await(resolver(request))
    """
    if inspect.isawaitable(value):
        return await value
    return value
