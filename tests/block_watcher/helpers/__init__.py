"""Test helpers for block watcher unit tests."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import TypeVar

from .builders import (
    TEST_POLL_INTERVAL,
    TEST_RETRY_DELAY,
    make_block,
    make_blocks,
    make_config,
    make_watcher,
)
from .mocks import FakeChain, RecordingSleep

_T = TypeVar("_T")


def run_async(coro: Coroutine[object, object, _T]) -> _T:
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


__all__ = [
    # Builders
    "make_block",
    "make_blocks",
    "make_config",
    "make_watcher",
    # Mocks
    "FakeChain",
    "RecordingSleep",
    # Constants
    "TEST_POLL_INTERVAL",
    "TEST_RETRY_DELAY",
    # Async utilities
    "run_async",
]
