"""Tests for the observed block window."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from block_watcher.watcher.exceptions import BlockNotInWindowError, InvalidWindowError
from block_watcher.watcher.window import ObservedWindow
from tests.block_watcher.helpers import make_block, make_blocks


class TestWindowAppend:
    """Tests for appending and evicting blocks."""

    def test_empty_window(self) -> None:
        """A new window holds nothing."""
        window = ObservedWindow(capacity=3)

        assert len(window) == 0
        assert not window
        assert window.highest is None
        assert window.highest_height is None
        assert window.lowest_height is None
        assert list(window) == []

    def test_first_block_may_have_any_height(self) -> None:
        """The first appended block sets the window's base height."""
        window = ObservedWindow(capacity=3)

        assert window.append(make_block(1000)) is None
        assert window.heights() == [1000]
        assert window.highest == make_block(1000)

    def test_append_keeps_ascending_order(self) -> None:
        """Blocks iterate oldest first and reversed iterates newest first."""
        window = ObservedWindow(capacity=5)
        for block in make_blocks(7, 8, 9):
            window.append(block)

        assert [b.height for b in window] == [7, 8, 9]
        assert [b.height for b in reversed(window)] == [9, 8, 7]

    def test_full_window_evicts_oldest(self) -> None:
        """Appending to a full window evicts and returns the oldest block."""
        window = ObservedWindow(capacity=2)
        window.append(make_block(10))
        window.append(make_block(11))

        evicted = window.append(make_block(12))

        assert evicted == make_block(10)
        assert window.heights() == [11, 12]
        assert 10 not in window

    def test_gap_is_rejected(self) -> None:
        """A block that does not extend the window by one is rejected."""
        window = ObservedWindow(capacity=3)
        window.append(make_block(5))

        with pytest.raises(InvalidWindowError, match="does not extend"):
            window.append(make_block(7))

        assert window.heights() == [5]

    def test_capacity_must_be_positive(self) -> None:
        """A window needs room for at least one block."""
        with pytest.raises(ValueError, match="at least 1"):
            ObservedWindow(capacity=0)


class TestWindowLookup:
    """Tests for height-addressed access."""

    def test_get_retained_and_missing(self) -> None:
        """get() finds retained heights and returns None otherwise."""
        window = ObservedWindow(capacity=3)
        for block in make_blocks(1, 2, 3, 4):
            window.append(block)

        assert window.get(2) == make_block(2)
        assert window.get(4) == make_block(4)
        assert window.get(1) is None
        assert window.get(5) is None

    def test_contains_only_accepts_heights(self) -> None:
        """Membership is by height."""
        window = ObservedWindow(capacity=3)
        window.append(make_block(3))

        assert 3 in window
        assert 4 not in window
        assert "3" not in window

    def test_replace_swaps_in_place(self) -> None:
        """replace() returns the old block and keeps the order."""
        window = ObservedWindow(capacity=3)
        for block in make_blocks(1, 2, 3):
            window.append(block)

        previous = window.replace(make_block(2, "0xnew"))

        assert previous == make_block(2)
        assert [b.hash for b in window] == ["0x0001", "0xnew", "0x0003"]

    def test_replace_unknown_height_fails(self) -> None:
        """Replacing a height outside the window is an invariant violation."""
        window = ObservedWindow(capacity=3)
        window.append(make_block(1))

        with pytest.raises(BlockNotInWindowError) as exc_info:
            window.replace(make_block(9))

        assert exc_info.value.height == 9


class TestWindowFromBlocks:
    """Tests for seeding a window with previously observed blocks."""

    def test_empty_seed(self) -> None:
        """No blocks gives an empty window regardless of start block."""
        window = ObservedWindow.from_blocks([], capacity=3, start_block=100)

        assert len(window) == 0

    def test_valid_seed(self) -> None:
        """Sorted, contiguous, aligned blocks are accepted."""
        window = ObservedWindow.from_blocks(make_blocks(98, 99), capacity=3, start_block=100)

        assert window.heights() == [98, 99]

    def test_gap_names_missing_height(self) -> None:
        """A gapped seed fails and reports the missing height."""
        blocks = [make_block(100, "a"), make_block(102, "c")]

        with pytest.raises(InvalidWindowError, match=r"missing heights: \[101\]") as exc_info:
            ObservedWindow.from_blocks(blocks, capacity=10, start_block=103)

        assert exc_info.value.missing_heights == [101]

    def test_gap_names_every_missing_height(self) -> None:
        """All missing heights are reported, across several gaps."""
        with pytest.raises(InvalidWindowError) as exc_info:
            ObservedWindow.from_blocks(make_blocks(1, 4, 6), capacity=10)

        assert exc_info.value.missing_heights == [2, 3, 5]

    def test_unsorted_seed_fails(self) -> None:
        """Descending heights are rejected."""
        with pytest.raises(InvalidWindowError, match="not sorted"):
            ObservedWindow.from_blocks(make_blocks(5, 4), capacity=10, start_block=6)

    def test_duplicate_heights_fail(self) -> None:
        """Repeated heights are rejected as unsorted."""
        with pytest.raises(InvalidWindowError, match="not sorted"):
            ObservedWindow.from_blocks(make_blocks(4, 4, 5), capacity=10)

    def test_misaligned_seed_fails(self) -> None:
        """The highest seeded block must sit directly below the start block."""
        with pytest.raises(InvalidWindowError, match="expected 104"):
            ObservedWindow.from_blocks(make_blocks(100, 101), capacity=10, start_block=105)

    def test_no_start_block_skips_alignment(self) -> None:
        """Without a start block only order and contiguity are checked."""
        window = ObservedWindow.from_blocks(make_blocks(100, 101), capacity=10)

        assert window.heights() == [100, 101]

    def test_oversized_seed_keeps_newest(self) -> None:
        """A seed longer than the capacity keeps only the newest blocks."""
        window = ObservedWindow.from_blocks(make_blocks(1, 2, 3, 4, 5), capacity=2, start_block=6)

        assert window.heights() == [4, 5]


class TestWindowInvariants:
    """Property tests for the window invariants."""

    @given(
        capacity=st.integers(min_value=1, max_value=16),
        start=st.integers(min_value=0, max_value=10_000),
        count=st.integers(min_value=0, max_value=64),
    )
    def test_appends_stay_contiguous_and_bounded(
        self,
        capacity: int,
        start: int,
        count: int,
    ) -> None:
        """Any run of appends leaves the newest `capacity` heights, contiguous."""
        window = ObservedWindow(capacity=capacity)
        for height in range(start, start + count):
            window.append(make_block(height))

        heights = [b.height for b in window]

        assert len(window) <= capacity
        assert heights == list(range(max(start, start + count - capacity), start + count))
        assert window.heights() == heights
        if count:
            assert window.highest == make_block(start + count - 1)

    @given(
        capacity=st.integers(min_value=1, max_value=8),
        count=st.integers(min_value=1, max_value=32),
        data=st.data(),
    )
    def test_replacements_keep_heights(
        self,
        capacity: int,
        count: int,
        data: st.DataObject,
    ) -> None:
        """Replacing retained entries never changes which heights are held."""
        window = ObservedWindow(capacity=capacity)
        for height in range(count):
            window.append(make_block(height))
        before = window.heights()

        targets = data.draw(st.lists(st.sampled_from(before), max_size=capacity))
        for height in targets:
            window.replace(make_block(height, f"0xreorged{height}"))

        assert window.heights() == before
        for height in targets:
            assert window.get(height) == make_block(height, f"0xreorged{height}")
