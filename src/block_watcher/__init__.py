"""Chain-tip watcher with reorg detection and ordered subscriber callbacks."""

from .types import Block, BlockHeader
from .watcher import (
    BlockWatcher,
    TaskErrorHandling,
    WatcherConfig,
    WatcherProgress,
    WatcherState,
)

__all__ = [
    "Block",
    "BlockHeader",
    "BlockWatcher",
    "TaskErrorHandling",
    "WatcherConfig",
    "WatcherProgress",
    "WatcherState",
]
