"""
Watcher configuration.

Operational parameters for polling: intervals, retention depth, and the
policy applied when a subscriber callback fails.
"""

from __future__ import annotations

from enum import Enum
from typing import Final

from pydantic import Field

from block_watcher.types import StrictBaseModel

DEFAULT_POLL_INTERVAL: Final[float] = 1.0
"""Seconds to wait after a poll that found no new block."""

DEFAULT_MAX_REORG_DEPTH: Final[int] = 10
"""Number of recent blocks retained for reorg comparison."""

DEFAULT_RETRY_DELAY: Final[float] = 1.0
"""Seconds between attempts of a retried fetch or callback."""


class TaskErrorHandling(Enum):
    """What the dispatcher does when a subscriber callback raises."""

    RETRY = "retry"
    """
    Retry the same callback after the retry delay until it succeeds.

    Later subscribers and the next poll cycle wait for it. A callback that
    never succeeds stalls the watcher.
    """

    SKIP = "skip"
    """Log the failure and move on to the next subscriber."""


class WatcherConfig(StrictBaseModel):
    """
    Immutable watcher settings.

    Every field has a default, so `WatcherConfig()` is a working configuration
    that starts from the current chain head.
    """

    start_block: int | None = Field(default=None, ge=0)
    """
    Inclusive first height to fetch when the window is empty.

    None means start from the chain head reported at startup.
    """

    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, ge=0)
    """Seconds between polls that found no new block."""

    max_reorg_depth: int = Field(default=DEFAULT_MAX_REORG_DEPTH, ge=1)
    """Window capacity. Reorgs deeper than this go undetected."""

    retry_delay: float = Field(default=DEFAULT_RETRY_DELAY, ge=0)
    """Seconds between attempts of a retried fetch or callback."""

    task_error_handling: TaskErrorHandling = Field(default=TaskErrorHandling.RETRY, strict=False)
    """
    Policy for failing subscriber callbacks.

    Lax on this field only, so the plain values "retry" and "skip" are
    accepted from dicts loaded out of env or config files.
    """
