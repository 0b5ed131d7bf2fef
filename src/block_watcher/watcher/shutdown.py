"""
Cooperative shutdown for the poll loop and its retry loops.

Every wait in the watcher goes through `ShutdownSignal.sleep`. That gives one
place to check whether a stop was requested, so a stop is observed at the next
sleep or cycle boundary even while a fetch or a callback is being retried
indefinitely.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from .exceptions import WatcherStoppedError

SleepFn = Callable[[float], Awaitable[None]]
"""Coroutine function that waits the given number of seconds."""


@dataclass(slots=True)
class ShutdownSignal:
    """
    Stop flag shared by every component of one watcher.

    With no custom sleep function, waits are interrupted as soon as the signal
    is set. A custom sleep function (tests inject one to run without real
    delays) is always awaited to completion and the flag checked afterwards.
    """

    sleep_fn: SleepFn | None = None
    """Replacement for the interruptible default wait."""

    _event: asyncio.Event = field(default_factory=asyncio.Event)
    """Set once shutdown has been requested."""

    def set(self) -> None:
        """Request shutdown."""
        self._event.set()

    @property
    def is_set(self) -> bool:
        """Check if shutdown has been requested."""
        return self._event.is_set()

    def raise_if_set(self) -> None:
        """
        Abort the current operation if shutdown has been requested.

        Raises:
            WatcherStoppedError: If the signal is set.
        """
        if self._event.is_set():
            raise WatcherStoppedError()

    async def sleep(self, delay: float) -> None:
        """
        Wait `delay` seconds unless shutdown is requested first.

        Raises:
            WatcherStoppedError: If the signal is set before or after the wait.
        """
        self.raise_if_set()

        if self.sleep_fn is not None:
            await self.sleep_fn(delay)
        else:
            try:
                await asyncio.wait_for(self._event.wait(), timeout=delay)
            except TimeoutError:
                pass

        self.raise_if_set()
