"""Reusable type definitions for the watcher."""

from .base import CamelModel, StrictBaseModel
from .block import Block, BlockHeader, BlockT

__all__ = [
    "Block",
    "BlockHeader",
    "BlockT",
    "CamelModel",
    "StrictBaseModel",
]
