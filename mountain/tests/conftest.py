import hashlib
import logging
from typing import Callable, List, Tuple

import pytest

from mountain.mmr import Hasher, MerkleMountainRange


@pytest.fixture
def hasher() -> Hasher:
    return Hasher()


@pytest.fixture
def element_of() -> Callable[[int], bytes]:
    """Distinct 32-byte element for each index."""
    def make(i: int) -> bytes:
        return hashlib.sha256(i.to_bytes(8, "big")).digest()
    return make


@pytest.fixture
def build_mmr(element_of) -> Callable[[int], Tuple[MerkleMountainRange, List[bytes], List[int]]]:
    """Build an MMR of n distinct elements; returns (mmr, elements, positions)."""
    def build(n: int):
        mmr = MerkleMountainRange()
        elements = [element_of(i) for i in range(n)]
        positions = [mmr.add(e) for e in elements]
        return mmr, elements, positions
    return build


@pytest.fixture(autouse=True)
def _reset_mountain_logger():
    yield
    logger = logging.getLogger("mountain")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
