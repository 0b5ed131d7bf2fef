"""Exception hierarchy for the block watcher."""

from __future__ import annotations


class WatcherError(Exception):
    """
    Base exception for all watcher errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class ChainHeadUnavailableError(WatcherError):
    """
    Raised when a single chain head request fails or returns nothing.

    The chain head poller catches this and retries.
    """


class InvalidWindowError(WatcherError, ValueError):
    """
    Raised when a pre-start window violates the window invariants.

    Attributes:
        missing_heights: Heights absent between the first and last entry.
    """

    def __init__(self, message: str, missing_heights: list[int] | None = None) -> None:
        self.missing_heights = missing_heights or []
        super().__init__(message)


class AlreadyStartedError(WatcherError):
    """Raised when `start()` is called on a watcher that is not idle."""


class BlockNotInWindowError(WatcherError, LookupError):
    """
    Raised when a reorg check references a height the window does not hold.

    This is always a bug in the caller, never a condition of the chain.

    Attributes:
        height: The requested height.
    """

    def __init__(self, height: int) -> None:
        self.height = height
        super().__init__(f"Block {height} not found in observed window")


class WatcherStoppedError(WatcherError):
    """Raised inside retry loops once shutdown has been requested."""

    def __init__(self) -> None:
        super().__init__("Watcher stopped")


class RetriesExhaustedError(WatcherError):
    """
    Raised when a bounded retry gives up.

    Attributes:
        attempts: Number of attempts made.
    """

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Failed after {attempts} retries")
