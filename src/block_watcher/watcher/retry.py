"""Generic retry helper for coroutine functions."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .exceptions import RetriesExhaustedError, WatcherStoppedError
from .shutdown import SleepFn

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry(
    fn: Callable[[], Awaitable[T]],
    retries: int = 3,
    delay: float = 1.0,
    endless: bool = False,
    sleep: SleepFn = asyncio.sleep,
) -> T:
    """
    Call `fn` until it returns without raising.

    Args:
        fn: Coroutine function to call.
        retries: Maximum attempts when not in endless mode.
        delay: Seconds to wait between attempts.
        endless: Never give up. `retries` is ignored.
        sleep: Wait function between attempts.

    Returns:
        The first successful result.

    Raises:
        RetriesExhaustedError: After `retries` failed attempts.
        WatcherStoppedError: Propagated unchanged, never retried.
    """
    attempt = 0

    while True:
        try:
            return await fn()
        except WatcherStoppedError:
            raise
        except Exception as e:
            attempt += 1
            logger.warning("Attempt %d failed: %s", attempt, e)

            if not endless and attempt >= retries:
                raise RetriesExhaustedError(attempt) from e

        await sleep(delay)
