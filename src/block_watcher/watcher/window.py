"""
Observed window of recent blocks.

What Is the Window?
-------------------
The watcher keeps the most recent blocks it has confirmed so that it can
notice when one of them is replaced. Older blocks are forgotten: a reorg
deeper than the window goes undetected.

Invariants
----------
- Heights are contiguous: entry i+1 has height of entry i plus one
- Length never exceeds the capacity (`max_reorg_depth`)
- The last entry is the highest block currently believed canonical

Layout
------
Because heights are contiguous and the length is bounded by the capacity,
`height % capacity` is a unique slot for every block in the window. The
window is a fixed array addressed that way plus the range of heights it
currently holds. Lookup, replacement, append and eviction are all O(1) and
never copy the other entries.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Generic

from block_watcher.types import BlockT

from .exceptions import BlockNotInWindowError, InvalidWindowError


@dataclass(slots=True)
class ObservedWindow(Generic[BlockT]):
    """Bounded, contiguous, height-addressed ring buffer of blocks."""

    capacity: int
    """Maximum number of retained blocks."""

    _slots: list[BlockT | None] = field(default_factory=list)
    """Ring storage, indexed by `height % capacity`."""

    _lowest: int = 0
    """Height of the oldest retained block. Meaningless while empty."""

    _length: int = 0
    """Number of retained blocks."""

    def __post_init__(self) -> None:
        """Allocate ring storage."""
        if self.capacity < 1:
            raise ValueError(f"Window capacity must be at least 1, got {self.capacity}")
        self._slots = [None] * self.capacity

    @classmethod
    def from_blocks(
        cls,
        blocks: Sequence[BlockT],
        capacity: int,
        start_block: int | None = None,
    ) -> ObservedWindow[BlockT]:
        """
        Build a window from previously observed blocks.

        Args:
            blocks: Blocks in ascending height order.
            capacity: Window capacity. Extra leading blocks are dropped.
            start_block: First height the watcher will fetch. When given, the
                highest seeded block must sit directly below it.

        Returns:
            A window holding the last `capacity` blocks.

        Raises:
            InvalidWindowError: If the blocks are unsorted, have gaps, or do
                not line up with `start_block`.
        """
        heights = [block.height for block in blocks]

        # Strictly ascending. Duplicates count as unsorted.
        for previous, current in zip(heights, heights[1:]):
            if current <= previous:
                raise InvalidWindowError(
                    f"Pre-start blocks are not sorted by ascending height: "
                    f"{current} follows {previous}"
                )

        # Contiguous. Report every missing height, not just the first gap.
        if heights:
            present = set(heights)
            missing = [h for h in range(heights[0], heights[-1] + 1) if h not in present]
            if missing:
                raise InvalidWindowError(
                    f"Pre-start blocks are not contiguous, missing heights: {missing}",
                    missing_heights=missing,
                )

        if heights and start_block is not None and heights[-1] != start_block - 1:
            raise InvalidWindowError(
                f"Highest pre-start block is {heights[-1]} but start block is "
                f"{start_block}, expected {start_block - 1}"
            )

        window: ObservedWindow[BlockT] = cls(capacity=capacity)
        for block in blocks[-capacity:]:
            window.append(block)
        return window

    def __len__(self) -> int:
        return self._length

    def __bool__(self) -> bool:
        return self._length > 0

    def __contains__(self, height: object) -> bool:
        return isinstance(height, int) and self._holds(height)

    def __iter__(self) -> Iterator[BlockT]:
        """Iterate from oldest to newest."""
        for height in range(self._lowest, self._lowest + self._length):
            yield self._at(height)

    def __reversed__(self) -> Iterator[BlockT]:
        """Iterate from newest to oldest."""
        for height in range(self._lowest + self._length - 1, self._lowest - 1, -1):
            yield self._at(height)

    @property
    def lowest_height(self) -> int | None:
        """Height of the oldest retained block."""
        return self._lowest if self._length else None

    @property
    def highest_height(self) -> int | None:
        """Height of the newest retained block."""
        return self._lowest + self._length - 1 if self._length else None

    @property
    def highest(self) -> BlockT | None:
        """Newest retained block."""
        height = self.highest_height
        return None if height is None else self._at(height)

    def get(self, height: int) -> BlockT | None:
        """Get the block at a height, or None if it is not retained."""
        return self._at(height) if self._holds(height) else None

    def heights(self) -> list[int]:
        """Retained heights, ascending."""
        return list(range(self._lowest, self._lowest + self._length))

    def append(self, block: BlockT) -> BlockT | None:
        """
        Add a block directly above the current highest one.

        The first block of an empty window may have any height.

        Args:
            block: The new highest block.

        Returns:
            The evicted oldest block if the window was full, else None.

        Raises:
            InvalidWindowError: If the block does not extend the window by one.
        """
        if not self._length:
            self._lowest = block.height
            self._length = 1
            self._slots[self._index(block.height)] = block
            return None

        expected = self._lowest + self._length
        if block.height != expected:
            raise InvalidWindowError(
                f"Block {block.height} does not extend window ending at {expected - 1}"
            )

        evicted: BlockT | None = None
        if self._length == self.capacity:
            # The new block lands in the oldest block's slot.
            evicted = self._at(self._lowest)
            self._lowest += 1
        else:
            self._length += 1

        self._slots[self._index(block.height)] = block
        return evicted

    def replace(self, block: BlockT) -> BlockT:
        """
        Swap in a new block at an already retained height.

        Args:
            block: Replacement block.

        Returns:
            The block previously stored at that height.

        Raises:
            BlockNotInWindowError: If the height is not retained.
        """
        if not self._holds(block.height):
            raise BlockNotInWindowError(block.height)
        previous = self._at(block.height)
        self._slots[self._index(block.height)] = block
        return previous

    def _holds(self, height: int) -> bool:
        return self._length > 0 and self._lowest <= height < self._lowest + self._length

    def _index(self, height: int) -> int:
        return height % self.capacity

    def _at(self, height: int) -> BlockT:
        block = self._slots[self._index(height)]
        assert block is not None, f"Empty slot for retained height {height}"
        return block
