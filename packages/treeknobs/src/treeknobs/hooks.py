"""Invocation of lifecycle hooks and item factories.

Hooks may be plain callables or return an awaitable. A before-hook vetoes an
edit only when it explicitly resolves to ``False``; ``None``, ``True`` and any
other value let the edit proceed, as does the absence of a hook.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any


async def call_hook(hook: Callable[..., Any] | None, *args: Any) -> Any:
    """Call a sync or async hook and return its resolved value.

    Args:
        hook: The callable to invoke, or None
        *args: Positional arguments passed to the hook

    Returns:
        The hook's (awaited) return value, or None when no hook is set.
    """
    if hook is None:
        return None
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


async def should_proceed(hook: Callable[..., Any] | None, *args: Any) -> bool:
    """Run a before-hook and report whether the edit may go ahead.

    Returns:
        False only if the hook resolved to exactly ``False``.
    """
    return await call_hook(hook, *args) is not False
