"""
In-memory Merkle Mountain Range.

MMR is an append-only authenticated data structure that allows:
- O(log N) append without rebalancing
- O(log N) single-element inclusion proofs
- O(k + log N) proofs for a contiguous range of k elements
- Proofs against any earlier size of the same MMR

Every node hash (leaves and internal) is kept in a flat list indexed by
position, so any node is retrievable by position at proof time.

Complexity:
- Append: O(log N) hash operations (amortized O(1))
- Root: O(log N) peaks bagged in one hash
- Proof: O(log N) hashes
- Storage: O(N) node hashes
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from .hasher import Hasher
from .iterator import PeakIterator, is_valid_size, leftmost_pos, pos_height
from .verification import Proof

logger = logging.getLogger(__name__)


class MerkleMountainRange:
    """
    Merkle Mountain Range: append-only authenticated log.

    The MMR is a list of perfect binary trees ("peaks") of strictly
    decreasing height. Adding a leaf appends it as a height-0 peak, then
    merges the two rightmost peaks while they share a height, the way a
    binary counter carries.

    Example state after 7 leaves::

             6
            / \\
           2   5       9
          / \\ / \\    / \\
         0  1 3  4  7   8   10

        size = 11, peaks = [(6, 2), (9, 1), (10, 0)]

    Invariants:
    - Positions are assigned in creation order and never reused
    - Node hashes never change once written
    - self.peaks() == list(PeakIterator(self.size))

    Not thread-safe: callers serialize concurrent add() calls.
    """

    def __init__(self, hasher: Optional[Hasher] = None) -> None:
        self._hasher = hasher or Hasher()
        self._nodes: List[bytes] = []
        self._peaks: List[Tuple[int, int]] = []

    @property
    def hasher(self) -> Hasher:
        return self._hasher

    @property
    def size(self) -> int:
        """Total number of nodes (leaves + internal)."""
        return len(self._nodes)

    @property
    def leaf_count(self) -> int:
        """Number of elements added."""
        return sum(1 << height for _, height in self._peaks)

    def peaks(self) -> List[Tuple[int, int]]:
        """Current ``(position, height)`` peaks, leftmost first."""
        return list(self._peaks)

    def get_node(self, pos: int) -> bytes:
        """Hash of the node at ``pos``."""
        if not 0 <= pos < len(self._nodes):
            raise IndexError(f"Position {pos} out of bounds [0, {len(self._nodes)})")
        return self._nodes[pos]

    def add(self, element: bytes) -> int:
        """
        Append an element as a new leaf.

        Args:
            element: Digest-sized value to add

        Returns:
            Position of the new leaf (not its leaf index)

        Raises:
            ValueError: If element is not digest_size bytes
        """
        if len(element) != self._hasher.digest_size:
            raise ValueError(
                f"Element must be {self._hasher.digest_size} bytes, got {len(element)}"
            )

        leaf_pos = len(self._nodes)
        current = self._hasher.leaf_hash(leaf_pos, element)
        self._nodes.append(current)

        height = 0
        while self._peaks and self._peaks[-1][1] == height:
            sibling_pos, _ = self._peaks.pop()
            parent_pos = len(self._nodes)
            current = self._hasher.node_hash(parent_pos, self._nodes[sibling_pos], current)
            self._nodes.append(current)
            height += 1

        self._peaks.append((len(self._nodes) - 1, height))
        if height:
            logger.debug("leaf %d merged into peak %d (height %d)", leaf_pos, self._peaks[-1][0], height)
        return leaf_pos

    def root_hash(self, size: Optional[int] = None) -> bytes:
        """
        Root committing to the whole MMR, or to its state at an earlier
        ``size``.
        """
        size = self._resolve_size(size)
        if size == len(self._nodes):
            peaks = self._peaks
        else:
            peaks = list(PeakIterator(size))
        return self._hasher.root_hash(size, (self._nodes[pos] for pos, _ in peaks))

    def proof(self, pos: int, size: Optional[int] = None) -> Proof:
        """Inclusion proof for the leaf at ``pos``."""
        return self.range_proof(pos, pos, size)

    def range_proof(self, start_pos: int, end_pos: int, size: Optional[int] = None) -> Proof:
        """
        Inclusion proof for the leaves at positions ``start_pos..end_pos``.

        Peaks with no leaf in the range contribute their hash to the front
        of the proof. Peaks that overlap the range are descended with the
        same recursion the verifier uses; every child subtree outside the
        range contributes its hash as a sibling, and the siblings go on the
        back of the proof in reverse so the verifier reads them in order.

        Raises:
            ValueError: If either position is not a leaf, start_pos >
                end_pos, or size is not a valid earlier size
            IndexError: If end_pos is not below size

        Complexity: O((end_pos - start_pos) + log size)
        """
        size = self._resolve_size(size)
        if start_pos > end_pos:
            raise ValueError(f"start_pos {start_pos} is after end_pos {end_pos}")
        if start_pos < 0 or end_pos >= size:
            raise IndexError(f"Range [{start_pos}, {end_pos}] out of bounds [0, {size})")
        for pos in (start_pos, end_pos):
            if pos_height(pos) != 0:
                raise ValueError(f"Position {pos} is not a leaf")

        hashes: List[bytes] = []
        siblings: List[bytes] = []
        for peak_pos, height in PeakIterator(size):
            if peak_pos < start_pos or leftmost_pos(peak_pos, height) > end_pos:
                hashes.append(self._nodes[peak_pos])
            else:
                self._collect_siblings(peak_pos, 1 << height, start_pos, end_pos, siblings)
        hashes.extend(reversed(siblings))

        logger.debug(
            "range proof [%d, %d] at size %d: %d hashes",
            start_pos, end_pos, size, len(hashes),
        )
        return Proof(size=size, hashes=tuple(hashes))

    def _collect_siblings(
        self,
        node_pos: int,
        two_h: int,
        leftmost: int,
        rightmost: int,
        siblings: List[bytes],
    ) -> None:
        """Append, in verification order, the hashes of subtrees outside the range."""
        if two_h == 1:
            return
        left_pos = node_pos - two_h
        right_pos = left_pos + two_h - 1
        descend_left = left_pos >= leftmost
        descend_right = left_pos < rightmost

        if descend_left:
            self._collect_siblings(left_pos, two_h >> 1, leftmost, rightmost, siblings)
        if descend_right:
            self._collect_siblings(right_pos, two_h >> 1, leftmost, rightmost, siblings)
        if not descend_left:
            siblings.append(self._nodes[left_pos])
        if not descend_right:
            siblings.append(self._nodes[right_pos])

    def _resolve_size(self, size: Optional[int]) -> int:
        if size is None:
            return len(self._nodes)
        if size > len(self._nodes) or not is_valid_size(size):
            raise ValueError(f"{size} is not a valid size for an MMR of {len(self._nodes)} nodes")
        return size

    def __repr__(self) -> str:
        return (
            f"MerkleMountainRange(leaves={self.leaf_count}, nodes={len(self._nodes)}, "
            f"root={self.root_hash().hex()[:16]}...)"
        )
