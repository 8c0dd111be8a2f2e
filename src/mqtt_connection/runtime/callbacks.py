"""Isolated invocation of user-supplied callbacks."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


async def invoke_isolated(callback: Callable[[Any], Any], argument: Any, *, context: str) -> bool:
    """Call ``callback(argument)``, awaiting the result if it is awaitable.

    Exceptions are logged and swallowed so one failing callback cannot stop
    its siblings.

    Returns:
        True if the callback completed without raising
    """
    try:
        result = callback(argument)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.error(
            "Error in %s callback %r: %s",
            context,
            callback,
            e,
            exc_info=True,
            extra={"callback_context": context},
        )
        return False
    return True


__all__ = ["invoke_isolated"]
