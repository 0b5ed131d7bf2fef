"""
Ordered delivery of watcher events to subscribers.

Delivery Order
--------------
Subscribers of one event run strictly one after another, in registration
order. The next callback starts only once the previous one has finished,
including all of its retries.

Failure Policy
--------------
A failing callback is handled according to `TaskErrorHandling`:

- **RETRY**: wait the retry delay and call the same callback again, with no
  attempt limit. Later subscribers and the next poll cycle wait for it, so a
  permanently failing subscriber stalls the watcher.
- **SKIP**: log the failure and continue with the next subscriber. The failed
  callback never sees this event again.

One subscriber's failure never prevents another subscriber from eventually
receiving the event.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic

from block_watcher import metrics
from block_watcher.types import BlockT

from .config import DEFAULT_RETRY_DELAY, TaskErrorHandling
from .shutdown import ShutdownSignal, SleepFn

logger = logging.getLogger(__name__)

NewBlockCallback = Callable[[BlockT], Awaitable[None]]
"""Called with each newly appended block."""

ReorgedBlockCallback = Callable[[BlockT, BlockT], Awaitable[None]]
"""Called with (updated_block, pre_reorg_block) for each replaced block."""


async def process_task(
    task: Callable[[], Awaitable[None]],
    handling: TaskErrorHandling,
    retry_delay: float,
    sleep: SleepFn,
    event: str = "task",
) -> bool:
    """
    Run one task under the given failure policy.

    Args:
        task: Zero-argument coroutine function to run.
        handling: What to do when the task raises.
        retry_delay: Seconds between attempts in retry mode.
        sleep: Wait function between attempts.
        event: Event kind, used for logging and metrics.

    Returns:
        True if the task eventually succeeded, False if it was skipped.
    """
    while True:
        try:
            await task()
            return True
        except Exception:
            logger.exception("Error processing %s callback", event)
            metrics.callback_failures.labels(event=event).inc()

        if handling is TaskErrorHandling.SKIP:
            logger.warning("Skipping %s callback", event)
            return False

        logger.info("Retrying %s callback in %.2fs", event, retry_delay)
        await sleep(retry_delay)


@dataclass(slots=True)
class CallbackDispatcher(Generic[BlockT]):
    """Runs subscriber lists for one event at a time."""

    handling: TaskErrorHandling = TaskErrorHandling.RETRY
    """Policy for failing callbacks."""

    retry_delay: float = DEFAULT_RETRY_DELAY
    """Seconds between attempts in retry mode."""

    shutdown: ShutdownSignal = field(default_factory=ShutdownSignal)
    """Stop signal that interrupts retry waits."""

    async def dispatch_new_block(
        self,
        callbacks: Sequence[NewBlockCallback[BlockT]],
        block: BlockT,
    ) -> int:
        """
        Deliver a new block to every subscriber.

        Args:
            callbacks: Subscribers in registration order.
            block: The appended block.

        Returns:
            Number of callbacks that completed successfully.
        """
        delivered = 0
        for callback in callbacks:

            async def task(callback: NewBlockCallback[BlockT] = callback) -> None:
                await callback(block)

            delivered += await self._run(task, "new_block")
        return delivered

    async def dispatch_reorged_block(
        self,
        callbacks: Sequence[ReorgedBlockCallback[BlockT]],
        block: BlockT,
        pre_reorg_block: BlockT,
    ) -> int:
        """
        Deliver one replaced block to every subscriber.

        Args:
            callbacks: Subscribers in registration order.
            block: The block now at that height.
            pre_reorg_block: The block previously observed at that height.

        Returns:
            Number of callbacks that completed successfully.
        """
        delivered = 0
        for callback in callbacks:

            async def task(callback: ReorgedBlockCallback[BlockT] = callback) -> None:
                await callback(block, pre_reorg_block)

            delivered += await self._run(task, "reorged_block")
        return delivered

    async def _run(self, task: Callable[[], Awaitable[None]], event: str) -> int:
        ok = await process_task(
            task,
            handling=self.handling,
            retry_delay=self.retry_delay,
            sleep=self.shutdown.sleep,
            event=event,
        )
        return int(ok)
