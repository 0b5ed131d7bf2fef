"""
Block watcher for polled chain sources.

What Does It Do?
----------------
Follows the tip of a chain by polling a source for the next block, and
notices when blocks it already reported are replaced (reorgs). Subscribers
get every new block and every replacement exactly once, in order.

How It Works
------------
- A bounded window keeps the most recent confirmed blocks
- Before each poll, the newest window entry is re-fetched and compared
- A changed entry triggers a backward walk that repairs the window
- New blocks are appended and handed to subscribers in registration order
"""

from __future__ import annotations

__all__ = [
    # Main service
    "BlockWatcher",
    "WatcherProgress",
    # States
    "WatcherState",
    # Components
    "BlockFetcher",
    "CallbackDispatcher",
    "ObservedWindow",
    "ReorgDetector",
    "ReorgCheckResult",
    "ReorgedBlock",
    "ShutdownSignal",
    # Helpers
    "process_task",
    "retry",
    # Callback and source signatures
    "GetBlockFn",
    "GetChainHeadFn",
    "NewBlockCallback",
    "ReorgedBlockCallback",
    "SleepFn",
    # Configuration
    "WatcherConfig",
    "TaskErrorHandling",
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_MAX_REORG_DEPTH",
    "DEFAULT_RETRY_DELAY",
    # Exceptions
    "WatcherError",
    "AlreadyStartedError",
    "BlockNotInWindowError",
    "ChainHeadUnavailableError",
    "InvalidWindowError",
    "RetriesExhaustedError",
    "WatcherStoppedError",
]

from .config import (
    DEFAULT_MAX_REORG_DEPTH,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RETRY_DELAY,
    TaskErrorHandling,
    WatcherConfig,
)
from .dispatch import CallbackDispatcher, NewBlockCallback, ReorgedBlockCallback, process_task
from .exceptions import (
    AlreadyStartedError,
    BlockNotInWindowError,
    ChainHeadUnavailableError,
    InvalidWindowError,
    RetriesExhaustedError,
    WatcherError,
    WatcherStoppedError,
)
from .fetch import BlockFetcher, GetBlockFn, GetChainHeadFn
from .reorg import ReorgCheckResult, ReorgDetector, ReorgedBlock
from .retry import retry
from .service import BlockWatcher, WatcherProgress
from .shutdown import ShutdownSignal, SleepFn
from .states import WatcherState
from .window import ObservedWindow
