"""Watcher lifecycle state machine."""

from __future__ import annotations

from enum import Enum, auto


class WatcherState(Enum):
    """
    Lifecycle states of a block watcher.

    State Machine Diagram
    ---------------------
    ::

        IDLE --> RUNNING --> STOPPED
          |                     ^
          +---------------------+

    A watcher is single-use. Once stopped it cannot be started again.

    Transitions
    -----------
    IDLE -> RUNNING
        - Triggered when: `start()` is called
        - Action: Resolve start height, repair any seeded window, spawn poll loop

    RUNNING -> STOPPED
        - Triggered when: Shutdown requested or the poll loop hit a fatal error
        - Action: Poll loop exits at the next cycle boundary or sleep

    IDLE -> STOPPED
        - Triggered when: `stop()` is called before `start()`
        - Action: None, the watcher simply becomes unusable
    """

    IDLE = auto()
    """Constructed, not yet started. Subscriptions may be registered."""

    RUNNING = auto()
    """
    Poll loop active.

    Each cycle checks the window tail for reorgs, fetches the next height,
    and dispatches callbacks. Subscriptions registered now take effect from
    the next dispatched event.
    """

    STOPPED = auto()
    """Poll loop finished. Status queries still work on the last window."""

    def can_transition_to(self, target: "WatcherState") -> bool:
        """
        Check if transition to target state is valid.

        Args:
            target: The proposed target state.

        Returns:
            True if the transition is allowed by the state machine rules.
        """
        return target in _VALID_TRANSITIONS.get(self, set())

    @property
    def is_running(self) -> bool:
        """Check if the poll loop is active."""
        return self == WatcherState.RUNNING


_VALID_TRANSITIONS: dict[WatcherState, set[WatcherState]] = {
    WatcherState.IDLE: {WatcherState.RUNNING, WatcherState.STOPPED},
    WatcherState.RUNNING: {WatcherState.STOPPED},
    WatcherState.STOPPED: set(),
}
"""Valid state transitions for the watcher lifecycle."""
