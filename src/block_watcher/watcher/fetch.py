"""
Fetch primitives wrapping the caller-supplied block source.

The watcher depends on its data source through two narrow functions:

- `get_block(height)`: the block at that height, or None
- `get_chain_head()`: the current chain tip height, or None

Both may raise. This module turns those raw calls into the two shapes the
watcher needs:

**Single shot**
    One call, failure becomes a value the caller interprets. A missing block
    simply means "no new block yet" while polling for the next height.

**Poll until found**
    Unbounded retry with a fixed delay. Used where the caller already knows
    the value must exist: re-fetching a height that was observed before, or
    reading the chain head at startup. An unreachable source stalls these
    loops rather than failing them. Only shutdown ends them early.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Generic

from block_watcher import metrics
from block_watcher.types import BlockT

from .config import DEFAULT_RETRY_DELAY
from .exceptions import ChainHeadUnavailableError
from .retry import retry
from .shutdown import ShutdownSignal

logger = logging.getLogger(__name__)

GetBlockFn = Callable[[int], Awaitable[BlockT | None]]
"""Fetch the block at a height. None if the source has no such block."""

GetChainHeadFn = Callable[[], Awaitable[int | None]]
"""Fetch the current chain tip height. None if the source cannot tell."""


@dataclass(slots=True)
class BlockFetcher(Generic[BlockT]):
    """Error-absorbing, retrying access to the block source."""

    get_block: GetBlockFn[BlockT]
    """Raw block getter supplied by the caller."""

    get_chain_head: GetChainHeadFn
    """Raw chain head getter supplied by the caller."""

    retry_delay: float = DEFAULT_RETRY_DELAY
    """Seconds between attempts of the polling helpers."""

    shutdown: ShutdownSignal = field(default_factory=ShutdownSignal)
    """Stop signal that interrupts the polling helpers."""

    async def fetch_block(self, height: int) -> BlockT | None:
        """
        Fetch one block, converting every failure into None.

        A block whose height differs from the requested one is also treated
        as missing. Appending it would break window contiguity.

        Args:
            height: Height to fetch.

        Returns:
            The block, or None if the source failed or has no block there.
        """
        try:
            block = await self.get_block(height)
        except Exception as e:
            logger.warning("Error fetching block %d: %s", height, e)
            metrics.fetch_failures.labels(operation="get_block").inc()
            return None

        if block is not None and block.height != height:
            logger.warning(
                "Source returned block %d when asked for block %d, ignoring",
                block.height,
                height,
            )
            metrics.fetch_failures.labels(operation="get_block").inc()
            return None

        return block

    async def fetch_chain_head(self) -> int:
        """
        Fetch the chain head once.

        Returns:
            The current chain tip height.

        Raises:
            ChainHeadUnavailableError: If the source raised or returned None.
        """
        try:
            chain_head = await self.get_chain_head()
        except Exception as e:
            metrics.fetch_failures.labels(operation="get_chain_head").inc()
            raise ChainHeadUnavailableError(f"Error fetching chain head: {e}") from e

        # Zero is a valid head on a fresh chain. Only None means missing.
        if chain_head is None:
            metrics.fetch_failures.labels(operation="get_chain_head").inc()
            raise ChainHeadUnavailableError("Chain head not found in response")

        return chain_head

    async def poll_block(self, height: int) -> BlockT:
        """
        Fetch a block, retrying until the source returns it.

        During a reorg some backends briefly report a height as missing while
        the replacement block propagates. So "not found" is never a final
        answer here.

        Args:
            height: Height to fetch.

        Returns:
            The block currently at that height.

        Raises:
            WatcherStoppedError: If shutdown is requested while waiting.
        """
        while True:
            block = await self.fetch_block(height)
            if block is not None:
                return block

            logger.info("Block %d not found, retrying in %.2fs", height, self.retry_delay)
            await self.shutdown.sleep(self.retry_delay)

    async def poll_chain_head(self) -> int:
        """
        Fetch the chain head, retrying until the source reports one.

        Returns:
            The current chain tip height.

        Raises:
            WatcherStoppedError: If shutdown is requested while waiting.
        """
        return await retry(
            self.fetch_chain_head,
            delay=self.retry_delay,
            endless=True,
            sleep=self.shutdown.sleep,
        )
