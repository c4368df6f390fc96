"""
Merkle Mountain Range: append-only accumulator with range inclusion proofs.

Components:
- Hasher: domain-separated leaf / node / root hashing
- PeakIterator: peak layout of an MMR from its node count
- MerkleMountainRange: in-memory accumulator and proof builder
- Proof: transmissible proof and its verification
"""

from .hasher import (
    Hasher,
    LEAF_PREFIX,
    NODE_PREFIX,
    ROOT_PREFIX,
    cryptography_factory,
    hashlib_factory,
    make_hasher,
)
from .iterator import (
    PeakIterator,
    is_valid_size,
    leaf_num_to_pos,
    leaf_pos_to_num,
    leftmost_pos,
    pos_height,
)
from .mem import MerkleMountainRange
from .verification import Proof, ProofFormatError

__all__ = [
    "Hasher",
    "LEAF_PREFIX",
    "NODE_PREFIX",
    "ROOT_PREFIX",
    "cryptography_factory",
    "hashlib_factory",
    "make_hasher",
    "PeakIterator",
    "is_valid_size",
    "leaf_num_to_pos",
    "leaf_pos_to_num",
    "leftmost_pos",
    "pos_height",
    "MerkleMountainRange",
    "Proof",
    "ProofFormatError",
]
