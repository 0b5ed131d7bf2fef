"""Shared fixtures for watcher tests."""

from __future__ import annotations

import pytest

from tests.block_watcher.helpers import FakeChain, RecordingSleep


@pytest.fixture
def chain() -> FakeChain:
    """Provide an empty in-memory chain source."""
    return FakeChain()


@pytest.fixture
def sleep() -> RecordingSleep:
    """Provide a sleep that returns at once and records delays."""
    return RecordingSleep()
