"""
Tests for MMR position arithmetic and peak enumeration.
"""

import pytest
from hypothesis import given, settings, strategies as st

from mountain.mmr import MerkleMountainRange
from mountain.mmr.iterator import (
    PeakIterator,
    is_valid_size,
    leaf_num_to_pos,
    leaf_pos_to_num,
    leftmost_pos,
    pos_height,
)

# Leaf positions of the first 11 leaves.
LEAF_POSITIONS = [0, 1, 3, 4, 7, 8, 10, 11, 15, 16, 18]


class TestPeakIterator:
    """Peak enumeration from a node count."""

    def test_empty(self):
        assert list(PeakIterator(0)) == []

    def test_single_leaf(self):
        assert list(PeakIterator(1)) == [(0, 0)]

    def test_eleven_leaves(self):
        """19 nodes decompose into peaks of 8, 2 and 1 leaves."""
        assert list(PeakIterator(19)) == [(14, 3), (17, 1), (18, 0)]

    def test_perfect_tree(self):
        assert list(PeakIterator(15)) == [(14, 3)]

    @pytest.mark.parametrize(
        "size,expected",
        [
            (3, [(2, 1)]),
            (4, [(2, 1), (3, 0)]),
            (7, [(6, 2)]),
            (8, [(6, 2), (7, 0)]),
            (10, [(6, 2), (9, 1)]),
            (11, [(6, 2), (9, 1), (10, 0)]),
        ],
    )
    def test_known_sizes(self, size, expected):
        assert list(PeakIterator(size)) == expected

    def test_invalid_size_still_terminates(self):
        """Sizes no append produces enumerate something, without raising."""
        peaks = list(PeakIterator(5))
        assert peaks == [(2, 1), (3, 0), (4, 0)]

    def test_huge_size(self):
        """Enumeration is logarithmic even for 64-bit sizes."""
        size = (1 << 64) - 1
        peaks = list(PeakIterator(size))
        assert peaks == [(size - 1, 63)]

    @given(leaves=st.integers(min_value=1, max_value=300))
    @settings(max_examples=60)
    def test_peaks_cover_all_nodes(self, leaves):
        """Peak subtrees are disjoint, ordered, and cover [0, size)."""
        size = 2 * leaves - bin(leaves).count("1")
        next_pos = 0
        for peak_pos, height in PeakIterator(size):
            assert leftmost_pos(peak_pos, height) == next_pos
            next_pos = peak_pos + 1
        assert next_pos == size

    @given(leaves=st.integers(min_value=0, max_value=200))
    @settings(max_examples=40)
    def test_matches_accumulator_peaks(self, leaves):
        mmr = MerkleMountainRange()
        for i in range(leaves):
            mmr.add(i.to_bytes(32, "big"))
        assert list(PeakIterator(mmr.size)) == mmr.peaks()


class TestValidSize:
    """Recognizing node counts reachable by appends."""

    def test_sizes_from_appends_are_valid(self):
        mmr = MerkleMountainRange()
        assert is_valid_size(0)
        for i in range(64):
            mmr.add(i.to_bytes(32, "big"))
            assert is_valid_size(mmr.size)

    @pytest.mark.parametrize("size", [2, 5, 6, 9, 12, 13, 14, -1])
    def test_unreachable_sizes(self, size):
        assert not is_valid_size(size)


class TestPositions:
    """Heights and leaf/position conversions."""

    def test_leftmost_pos(self):
        assert leftmost_pos(14, 3) == 0
        assert leftmost_pos(17, 1) == 15
        assert leftmost_pos(18, 0) == 18
        assert leftmost_pos(13, 2) == 7

    @pytest.mark.parametrize(
        "pos,height",
        [(0, 0), (1, 0), (2, 1), (5, 1), (6, 2), (13, 2), (14, 3), (17, 1), (18, 0), (30, 4)],
    )
    def test_pos_height(self, pos, height):
        assert pos_height(pos) == height

    def test_pos_height_negative(self):
        with pytest.raises(ValueError):
            pos_height(-1)

    def test_leaf_num_to_pos(self):
        assert [leaf_num_to_pos(n) for n in range(11)] == LEAF_POSITIONS

    def test_leaf_pos_to_num(self):
        assert [leaf_pos_to_num(p) for p in LEAF_POSITIONS] == list(range(11))

    def test_leaf_pos_to_num_rejects_internal(self):
        with pytest.raises(ValueError, match="not a leaf"):
            leaf_pos_to_num(2)

    def test_leaf_num_to_pos_negative(self):
        with pytest.raises(ValueError):
            leaf_num_to_pos(-1)

    @given(n=st.integers(min_value=0, max_value=10**6))
    @settings(max_examples=100)
    def test_leaf_conversion_roundtrip(self, n):
        pos = leaf_num_to_pos(n)
        assert pos_height(pos) == 0
        assert leaf_pos_to_num(pos) == n
