"""
Reorg detection and window repair.

What Is a Reorg?
----------------
A reorg replaces a block the watcher already confirmed with a different
block at the same height. The watcher notices by re-fetching a height it
holds and comparing hashes.

Backend-Consistency Assumption
------------------------------
Only the newest window entry is checked before each poll. This relies on the
block source guaranteeing that if the highest known block is unchanged, no
ancestor changed either. A source that can silently replace an ancestor
while keeping the tip breaks this, and such reorgs go unreported.

Repair
------
Once the tip is known to be replaced, the window is walked from newest to
oldest. Every replaced entry is swapped for the current block at its height.
The walk stops at the first unchanged entry, since by the same assumption
everything below it is unchanged too.

Subscribers are notified only after the walk, oldest replaced height first,
so they observe repairs in the order the chain is built.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Generic

from block_watcher import metrics
from block_watcher.types import BlockT

from .exceptions import BlockNotInWindowError
from .fetch import BlockFetcher
from .window import ObservedWindow

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReorgCheckResult(Generic[BlockT]):
    """Outcome of comparing one window entry against the source."""

    reorged: bool
    """True if the source now holds a different block at that height."""

    updated_block: BlockT
    """The block the source holds now. Same as the saved one if not reorged."""


@dataclass(frozen=True, slots=True)
class ReorgedBlock(Generic[BlockT]):
    """One replaced window entry."""

    block: BlockT
    """The block now at this height."""

    pre_reorg_block: BlockT
    """The block previously observed at this height."""

    @property
    def height(self) -> int:
        """Height of the replaced entry."""
        return self.block.height


@dataclass(slots=True)
class ReorgDetector(Generic[BlockT]):
    """Detects replaced window entries and repairs the window in place."""

    window: ObservedWindow[BlockT]
    """Window owned by the watcher. Mutated during repair."""

    fetcher: BlockFetcher[BlockT]
    """Source access with poll-until-found semantics."""

    on_reorged_block: Callable[[BlockT, BlockT], Awaitable[None]]
    """
    Notification hook, called once per replaced block after the walk.

    Signature: (updated_block, pre_reorg_block) -> None
    """

    reorgs_handled: int = field(default=0)
    """Repair passes that replaced at least one block."""

    async def is_block_reorged(self, block: BlockT) -> ReorgCheckResult[BlockT]:
        """
        Check whether the source still holds the saved block at this height.

        A reorg can make a height briefly missing on some backends while the
        replacement propagates. So the height is polled until the source
        returns a block, and only a hash comparison ends the check.

        Args:
            block: A block at a height the window holds.

        Returns:
            Whether the entry was replaced, and the block the source holds now.

        Raises:
            BlockNotInWindowError: If the window does not hold that height.
        """
        saved_block = self.window.get(block.height)
        if saved_block is None:
            raise BlockNotInWindowError(block.height)

        onchain_block = await self.fetcher.poll_block(block.height)

        if saved_block.hash != onchain_block.hash:
            logger.info(
                "Block %d reorged: %s -> %s",
                block.height,
                saved_block.hash,
                onchain_block.hash,
            )
            return ReorgCheckResult(reorged=True, updated_block=onchain_block)

        return ReorgCheckResult(reorged=False, updated_block=saved_block)

    async def is_tip_reorged(self) -> bool:
        """Check the newest window entry. False for an empty window."""
        tip = self.window.highest
        if tip is None:
            return False
        return (await self.is_block_reorged(tip)).reorged

    async def handle_detected_reorg(self) -> list[ReorgedBlock[BlockT]]:
        """
        Walk the window from newest to oldest and replace changed entries.

        Subscribers are notified after the walk completes, oldest height first.

        Returns:
            The replaced entries, oldest height first.
        """
        replaced: list[ReorgedBlock[BlockT]] = []

        # Snapshot the walk order. Replacing entries does not move them.
        for block in list(reversed(self.window)):
            result = await self.is_block_reorged(block)
            if not result.reorged:
                break
            pre_reorg_block = self.window.replace(result.updated_block)
            replaced.append(
                ReorgedBlock(block=result.updated_block, pre_reorg_block=pre_reorg_block)
            )
        else:
            if replaced:
                logger.warning(
                    "Reorg reaches below the window (depth > %d), older blocks not checked",
                    len(replaced),
                )

        if not replaced:
            return replaced

        self.reorgs_handled += 1
        metrics.reorgs_detected.inc()
        metrics.blocks_reorged.inc(len(replaced))
        metrics.reorg_depth.observe(len(replaced))

        replaced.reverse()
        logger.info(
            "Repaired reorg of %d block(s), heights %d..%d",
            len(replaced),
            replaced[0].height,
            replaced[-1].height,
        )

        for entry in replaced:
            await self.on_reorged_block(entry.block, entry.pre_reorg_block)

        return replaced
