"""
MMR inclusion proofs and their verification.

A Proof is ``{size, hashes}``. The hashes are one flat sequence read from
both ends:

- from the front, the hash of every peak that holds none of the proven
  elements, leftmost first;
- from the back, the sibling hashes needed to rebuild the peaks that do,
  in the order the reconstruction asks for them.

Verification reads the front with one cursor and the back with another,
and requires the two to meet exactly. A proof carrying any hash that is
never used is rejected, so one claim has exactly one valid proof
encoding.

Security Properties:
- Position binding: leaves and nodes are hashed with their positions
- Size binding: the root commits to the node count
- Non-malleability: unused proof data fails verification
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from .hasher import Hasher
from .iterator import PeakIterator, leftmost_pos

logger = logging.getLogger(__name__)

MAX_SIZE = 1 << 64

_HEADER = struct.Struct(">QI")

_MISSING = object()


class ProofFormatError(ValueError):
    """Raised when a proof cannot be constructed or decoded."""


class _Rejected(Exception):
    """Reconstruction cannot continue with the data supplied."""


class _HashCursors:
    """Forward and backward cursors over one proof hash sequence."""

    def __init__(self, hashes: Sequence[bytes]) -> None:
        self._hashes = hashes
        self.forward_used = 0
        self.backward_used = 0

    def next_peak(self) -> bytes:
        if self.forward_used >= len(self._hashes):
            raise _Rejected("ran out of peak hashes")
        h = self._hashes[self.forward_used]
        self.forward_used += 1
        return h

    def next_sibling(self) -> bytes:
        if self.backward_used >= len(self._hashes):
            raise _Rejected("ran out of sibling hashes")
        self.backward_used += 1
        return self._hashes[-self.backward_used]

    def met_exactly(self) -> bool:
        """True if every hash was read once, by exactly one cursor."""
        return self.forward_used + self.backward_used == len(self._hashes)


@dataclass(frozen=True)
class Proof:
    """
    Inclusion proof for one element or a contiguous range of elements.

    ``size`` is the node count of the MMR the proof was taken from and
    fixes the peak layout used during verification. Elements themselves
    are never part of the proof.
    """
    size: int
    hashes: Tuple[bytes, ...] = ()

    def __post_init__(self) -> None:
        if isinstance(self.size, bool) or not isinstance(self.size, int):
            raise ProofFormatError("size must be an integer")
        if not 0 <= self.size < MAX_SIZE:
            raise ProofFormatError(f"size must be in [0, 2^64), got {self.size}")
        hashes = tuple(self.hashes)
        for i, h in enumerate(hashes):
            if not isinstance(h, bytes):
                raise ProofFormatError(f"hash {i} must be bytes")
        object.__setattr__(self, "hashes", hashes)

    def verify_element_inclusion(
        self,
        element: bytes,
        pos: int,
        root: bytes,
        hasher: Optional[Hasher] = None,
    ) -> bool:
        """Return True if this proof shows ``element`` at ``pos`` under ``root``."""
        return self.verify_range_inclusion([element], pos, pos, root, hasher)

    def verify_range_inclusion(
        self,
        elements: Sequence[bytes],
        start_pos: int,
        end_pos: int,
        root: bytes,
        hasher: Optional[Hasher] = None,
    ) -> bool:
        """
        Verify ``elements`` occupy leaf positions ``start_pos..end_pos``
        (inclusive) in the MMR whose root is ``root``.

        Args:
            elements: Claimed elements, in position order
            start_pos: Position of the first element
            end_pos: Position of the last element
            root: Trusted root hash
            hasher: Domain hasher (SHA-256 if omitted)

        Returns:
            True if the proof is well formed, uses all of its data, and
            reproduces ``root``. Malformed arguments give False rather
            than an exception.

        Complexity: O((end_pos - start_pos) + log size) hashes
        """
        hasher = hasher or Hasher()

        if not (_is_position(start_pos) and _is_position(end_pos)):
            logger.debug("proof rejected: positions must be non-negative integers")
            return False

        if any(len(h) != hasher.digest_size for h in self.hashes):
            logger.debug("proof rejected: hash of wrong length")
            return False

        try:
            element_iter = iter(elements)
        except TypeError:
            logger.debug("proof rejected: elements are not iterable")
            return False

        cursors = _HashCursors(self.hashes)
        peak_hashes: List[bytes] = []

        try:
            for peak_pos, height in PeakIterator(self.size):
                leftmost = leftmost_pos(peak_pos, height)
                if peak_pos < start_pos or leftmost > end_pos:
                    peak_hashes.append(cursors.next_peak())
                else:
                    peak_hashes.append(
                        _peak_hash_from_range(
                            peak_pos,
                            1 << height,
                            start_pos,
                            end_pos,
                            element_iter,
                            cursors,
                            hasher,
                        )
                    )
        except _Rejected as exc:
            logger.debug("proof rejected: %s", exc)
            return False

        if next(element_iter, _MISSING) is not _MISSING:
            logger.debug("proof rejected: unused elements")
            return False

        if not cursors.met_exactly():
            logger.debug(
                "proof rejected: %d peak + %d sibling hashes used of %d",
                cursors.forward_used,
                cursors.backward_used,
                len(self.hashes),
            )
            return False

        return hasher.root_hash(self.size, peak_hashes) == root

    def to_dict(self) -> Dict[str, Any]:
        return {
            "size": self.size,
            "hashes": [h.hex() for h in self.hashes],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Proof":
        try:
            size = data["size"]
            hashes = tuple(bytes.fromhex(h) for h in data["hashes"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ProofFormatError(f"Malformed proof: {exc}") from exc
        return cls(size=size, hashes=hashes)

    def to_bytes(self) -> bytes:
        """Encode as u64 size, u32 hash count, then the hashes back to back."""
        return _HEADER.pack(self.size, len(self.hashes)) + b"".join(self.hashes)

    @classmethod
    def from_bytes(cls, data: bytes, digest_size: int = 32) -> "Proof":
        if digest_size <= 0:
            raise ValueError("digest_size must be positive")
        data = bytes(data)
        if len(data) < _HEADER.size:
            raise ProofFormatError("Proof shorter than header")
        size, count = _HEADER.unpack_from(data)
        body = data[_HEADER.size:]
        if len(body) != count * digest_size:
            raise ProofFormatError(
                f"Expected {count} hashes of {digest_size} bytes, got {len(body)} bytes"
            )
        hashes = tuple(
            body[i:i + digest_size] for i in range(0, len(body), digest_size)
        )
        return cls(size=size, hashes=hashes)

    def __repr__(self) -> str:
        return f"Proof(size={self.size}, hashes={len(self.hashes)})"


def _is_position(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _peak_hash_from_range(
    node_pos: int,
    two_h: int,
    leftmost: int,
    rightmost: int,
    elements: Iterator[bytes],
    cursors: _HashCursors,
    hasher: Hasher,
) -> bytes:
    """
    Rebuild the hash of the node at ``node_pos`` (a subtree of ``two_h``
    leaves) from the claimed elements in ``[leftmost, rightmost]`` and
    sibling hashes taken from the back of the proof.

    Children overlapping the range are rebuilt first, left then right;
    any child left unbuilt is then taken from the siblings, left first.
    """
    if two_h == 1:
        element = next(elements, _MISSING)
        if element is _MISSING:
            raise _Rejected("ran out of elements")
        if not isinstance(element, (bytes, bytearray)):
            raise _Rejected("element is not bytes")
        return hasher.leaf_hash(node_pos, element)

    left_pos = node_pos - two_h
    right_pos = left_pos + two_h - 1
    left_hash = right_hash = None

    if left_pos >= leftmost:
        left_hash = _peak_hash_from_range(
            left_pos, two_h >> 1, leftmost, rightmost, elements, cursors, hasher
        )
    if left_pos < rightmost:
        right_hash = _peak_hash_from_range(
            right_pos, two_h >> 1, leftmost, rightmost, elements, cursors, hasher
        )

    if left_hash is None:
        left_hash = cursors.next_sibling()
    if right_hash is None:
        right_hash = cursors.next_sibling()

    return hasher.node_hash(node_pos, left_hash, right_hash)
