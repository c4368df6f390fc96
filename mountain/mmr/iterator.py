"""
Position arithmetic for the MMR node numbering.

Nodes are numbered in creation order: each leaf takes the next position,
followed by any parents its arrival completes. After 11 leaves::

                 14
               /    \\
             6        13
            / \\      /  \\
           2   5    9    12     17
          / \\ / \\  / \\  / \\   / \\
         0  1 3  4 7  8 10 11 15 16 18

    size = 19, peaks = [(14, 3), (17, 1), (18, 0)]

Everything here is derived from positions and the node count alone; no
tree is consulted.
"""

from __future__ import annotations

from typing import Iterator, Tuple


def leftmost_pos(peak_pos: int, height: int) -> int:
    """Position of the leftmost leaf under the node at ``peak_pos``."""
    return peak_pos + 2 - (1 << (height + 1))


class PeakIterator:
    """
    Iterate ``(peak_pos, height)`` pairs of an MMR with ``size`` nodes,
    leftmost (tallest) peak first.

    The search starts at the root of the smallest perfect tree that could
    hold ``size`` nodes and descends to the left child until it lands on
    an existing position. That node is a peak; its right sibling (out of
    range by construction) is where the search for the next peak resumes.

    Sizes that no sequence of appends produces are not rejected here; the
    resulting peaks simply fail to match anything downstream.
    """

    def __init__(self, size: int) -> None:
        self._size = size
        if size <= 0:
            self._node_pos = 0
            self._two_h = 0
            return
        start = (1 << size.bit_length()) - 1
        self._two_h = 1 << start.bit_length()
        self._node_pos = start - 1

    def __iter__(self) -> Iterator[Tuple[int, int]]:
        return self

    def __next__(self) -> Tuple[int, int]:
        while self._two_h > 1:
            if self._node_pos < self._size:
                peak = (self._node_pos, self._two_h.bit_length() - 2)
                self._node_pos += self._two_h - 1
                return peak
            self._two_h >>= 1
            self._node_pos -= self._two_h
        raise StopIteration


def is_valid_size(size: int) -> bool:
    """True if ``size`` is a node count reachable by appending leaves."""
    if size < 0:
        return False
    covered = 0
    last_height = None
    for _, height in PeakIterator(size):
        if last_height is not None and height >= last_height:
            return False
        covered += (1 << (height + 1)) - 1
        last_height = height
    return covered == size


def pos_height(pos: int) -> int:
    """
    Height of the node at ``pos`` (0 for leaves).

    Works on the 1-based position: strip the largest perfect left subtree
    until the remainder is all ones, whose bit length gives the height.
    """
    if pos < 0:
        raise ValueError(f"Position must be non-negative, got {pos}")
    n = pos + 1
    while n & (n + 1):
        n -= (1 << (n.bit_length() - 1)) - 1
    return n.bit_length() - 1


def leaf_num_to_pos(leaf_num: int) -> int:
    """Position of the ``leaf_num``-th leaf (0-indexed)."""
    if leaf_num < 0:
        raise ValueError(f"Leaf number must be non-negative, got {leaf_num}")
    return 2 * leaf_num - bin(leaf_num).count('1')


def leaf_pos_to_num(pos: int) -> int:
    """Leaf index of the leaf at ``pos``; inverse of leaf_num_to_pos."""
    if pos_height(pos) != 0:
        raise ValueError(f"Position {pos} is not a leaf")
    # The nodes before a leaf always form a valid MMR.
    return sum(1 << height for _, height in PeakIterator(pos))
