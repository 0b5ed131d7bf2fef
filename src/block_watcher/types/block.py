"""
Block shape understood by the watcher.

The watcher never looks inside a block beyond two fields:

- **height**: position in the chain, strictly increasing
- **hash**: opaque content identifier, compared for equality only

Anything else a block carries is payload for the subscribers. Any object with
these two attributes works. No base class is required.
"""

from __future__ import annotations

from typing import Protocol, TypeVar

from pydantic import Field

from .base import StrictBaseModel


class Block(Protocol):
    """Structural type for anything the watcher can track."""

    @property
    def height(self) -> int:
        """Height of the block in the chain."""
        ...

    @property
    def hash(self) -> str:
        """Content identifier of the block."""
        ...


BlockT = TypeVar("BlockT", bound=Block)
"""Concrete block type flowing through a watcher instance."""


class BlockHeader(StrictBaseModel):
    """
    Minimal concrete block.

    Subclass to attach payload fields::

        class EvmBlock(BlockHeader):
            parent_hash: str
            timestamp: int
    """

    height: int = Field(ge=0)
    """Height of the block in the chain."""

    hash: str
    """Content identifier of the block."""
