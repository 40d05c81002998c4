"""Bounded waits: polling for a condition and settling after a mutation."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

Predicate = Callable[[], Awaitable[bool]]
Sleeper = Callable[[int], Awaitable[None]]


async def await_condition(predicate: Predicate, timeout_ms: int, poll_ms: int, sleep: Sleeper) -> bool:
    """Poll ``predicate`` every ``poll_ms`` until it holds or ``timeout_ms`` elapses.

    The predicate is always evaluated at least once. Returns whether it held.
    """
    poll_ms = max(1, poll_ms)
    elapsed = 0
    while True:
        if await predicate():
            return True
        if elapsed >= timeout_ms:
            logger.debug("Condition not met after %d ms", elapsed)
            return False
        await sleep(poll_ms)
        elapsed += poll_ms


async def settle(sleep: Sleeper, ms: int) -> None:
    """Give asynchronous re-rendering ``ms`` milliseconds before state is re-read."""
    if ms > 0:
        await sleep(ms)
