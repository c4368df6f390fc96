"""
mountain - Merkle Mountain Range accumulator and inclusion proofs.

Elements are appended to an MMR over time; the MMR root authenticates
the full history, and compact proofs show that one element, or a
contiguous run of elements, sits at given positions under a known root.
"""

from .config import HashConfig, LoggingConfig, MountainConfig
from .mmr import (
    Hasher,
    MerkleMountainRange,
    PeakIterator,
    Proof,
    ProofFormatError,
    make_hasher,
)

__version__ = "0.1.0"

__all__ = [
    "HashConfig",
    "LoggingConfig",
    "MountainConfig",
    "Hasher",
    "MerkleMountainRange",
    "PeakIterator",
    "Proof",
    "ProofFormatError",
    "make_hasher",
]
