"""
Tests for the in-memory MMR accumulator.

Covers:
- Position assignment and peak maintenance on add
- Root hashing, current and historical
- Proof extraction shape and input validation
"""

import hashlib

import pytest

from mountain.mmr import Hasher, MerkleMountainRange, Proof
from mountain.mmr.iterator import leaf_num_to_pos

ELEMENT = b"01234567012345670123456701234567"


class TestAdd:
    """Appending elements."""

    def test_empty_mmr(self):
        mmr = MerkleMountainRange()
        assert mmr.size == 0
        assert mmr.leaf_count == 0
        assert mmr.peaks() == []

    def test_eleven_equal_elements(self):
        """11 leaves give 19 nodes in 3 peaks."""
        mmr = MerkleMountainRange()
        positions = [mmr.add(ELEMENT) for _ in range(11)]

        assert positions == [0, 1, 3, 4, 7, 8, 10, 11, 15, 16, 18]
        assert mmr.size == 19
        assert mmr.leaf_count == 11
        assert mmr.peaks() == [(14, 3), (17, 1), (18, 0)]

    def test_positions_follow_leaf_numbering(self, build_mmr):
        _, _, positions = build_mmr(100)
        assert positions == [leaf_num_to_pos(i) for i in range(100)]

    def test_node_hashes_follow_structure(self, hasher):
        """Parents are hashed at their own position over both children."""
        mmr = MerkleMountainRange(hasher)
        a, b = b"\x01" * 32, b"\x02" * 32
        mmr.add(a)
        mmr.add(b)

        leaf0 = hasher.leaf_hash(0, a)
        leaf1 = hasher.leaf_hash(1, b)
        assert mmr.get_node(0) == leaf0
        assert mmr.get_node(1) == leaf1
        assert mmr.get_node(2) == hasher.node_hash(2, leaf0, leaf1)

    def test_add_rejects_wrong_length(self):
        mmr = MerkleMountainRange()
        with pytest.raises(ValueError, match="32 bytes"):
            mmr.add(b"short")
        assert mmr.size == 0

    def test_add_with_other_digest_size(self):
        mmr = MerkleMountainRange(Hasher(hashlib.sha512))
        assert mmr.add(b"\x00" * 64) == 0
        with pytest.raises(ValueError):
            mmr.add(b"\x00" * 32)

    def test_get_node_bounds(self):
        mmr = MerkleMountainRange()
        mmr.add(ELEMENT)
        with pytest.raises(IndexError):
            mmr.get_node(1)
        with pytest.raises(IndexError):
            mmr.get_node(-1)


class TestRootHash:
    """Root hashing over the peaks."""

    def test_root_bags_peaks_with_size(self, hasher):
        mmr = MerkleMountainRange(hasher)
        for _ in range(11):
            mmr.add(ELEMENT)
        peaks = [mmr.get_node(p) for p in (14, 17, 18)]
        assert mmr.root_hash() == hasher.root_hash(19, peaks)

    def test_root_changes_on_add(self):
        mmr = MerkleMountainRange()
        roots = set()
        for _ in range(10):
            mmr.add(ELEMENT)
            roots.add(mmr.root_hash())
        assert len(roots) == 10

    def test_historical_root(self):
        """root_hash(size) reproduces the root the MMR had at that size."""
        mmr = MerkleMountainRange()
        history = {}
        for i in range(30):
            mmr.add(i.to_bytes(32, "big"))
            history[mmr.size] = mmr.root_hash()

        for size, root in history.items():
            assert mmr.root_hash(size) == root

    def test_historical_root_rejects_invalid_size(self, build_mmr):
        mmr, _, _ = build_mmr(11)
        with pytest.raises(ValueError, match="not a valid size"):
            mmr.root_hash(5)
        with pytest.raises(ValueError, match="not a valid size"):
            mmr.root_hash(22)

    def test_repr(self):
        mmr = MerkleMountainRange()
        mmr.add(ELEMENT)
        assert "leaves=1" in repr(mmr)
        assert "nodes=1" in repr(mmr)


class TestProofExtraction:
    """Shape of extracted proofs."""

    def test_proof_is_range_proof_of_one(self, build_mmr):
        mmr, _, positions = build_mmr(20)
        for pos in positions:
            assert mmr.proof(pos) == mmr.range_proof(pos, pos)

    def test_last_leaf_proof_holds_other_peaks(self):
        """Leaf 18 is its own peak; the proof is just the other two peaks."""
        mmr = MerkleMountainRange()
        for _ in range(11):
            mmr.add(ELEMENT)
        proof = mmr.proof(18)
        assert proof == Proof(size=19, hashes=(mmr.get_node(14), mmr.get_node(17)))

    def test_proof_siblings_are_reversed_at_back(self):
        """Peak hashes lead; siblings follow, nearest-to-root first."""
        mmr = MerkleMountainRange()
        for _ in range(11):
            mmr.add(ELEMENT)
        proof = mmr.proof(7)
        expected = tuple(mmr.get_node(p) for p in (17, 18, 6, 12, 8))
        assert proof.hashes == expected

    def test_full_range_needs_no_hashes(self, build_mmr):
        mmr, _, positions = build_mmr(11)
        proof = mmr.range_proof(positions[0], positions[-1])
        assert proof.hashes == ()

    def test_proof_size_matches_mmr(self, build_mmr):
        mmr, _, positions = build_mmr(13)
        assert mmr.proof(positions[3]).size == mmr.size

    def test_range_must_be_ordered(self, build_mmr):
        mmr, _, positions = build_mmr(8)
        with pytest.raises(ValueError, match="after"):
            mmr.range_proof(positions[4], positions[2])

    def test_range_must_be_in_bounds(self, build_mmr):
        mmr, _, _ = build_mmr(8)
        with pytest.raises(IndexError):
            mmr.proof(mmr.size)
        with pytest.raises(IndexError):
            mmr.range_proof(-1, 0)

    def test_positions_must_be_leaves(self, build_mmr):
        mmr, _, _ = build_mmr(8)
        with pytest.raises(ValueError, match="not a leaf"):
            mmr.proof(2)
        with pytest.raises(ValueError, match="not a leaf"):
            mmr.range_proof(0, 6)

    def test_empty_mmr_has_no_proofs(self):
        with pytest.raises(IndexError):
            MerkleMountainRange().proof(0)

    def test_historical_proof_bounds(self, build_mmr):
        """Proofs at an earlier size cannot reach leaves added later."""
        mmr, _, positions = build_mmr(20)
        with pytest.raises(IndexError):
            mmr.proof(positions[11], size=19)
