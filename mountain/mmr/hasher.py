"""
Domain-separated hashing for MMR nodes.

Three kinds of values are hashed, each under its own one-byte prefix so a
leaf hash can never be passed off as a node hash (or a root) in a forged
proof:

    leaf:  H(0x00 || u64(pos)  || element)
    node:  H(0x01 || u64(pos)  || left || right)
    root:  H(0x02 || u64(size) || peak_0 || peak_1 || ...)

Positions and sizes are unsigned 64-bit big-endian integers.
"""

from __future__ import annotations

import hashlib
import struct
from contextlib import contextmanager
from typing import Any, Callable, Iterable, Iterator

from cryptography.hazmat.primitives import hashes

LEAF_PREFIX = b'\x00'
NODE_PREFIX = b'\x01'
ROOT_PREFIX = b'\x02'

_U64 = struct.Struct(">Q")

HashFactory = Callable[[], Any]


def hashlib_factory(algorithm: str = "sha256") -> HashFactory:
    """Return a factory producing fresh hashlib states for ``algorithm``."""
    try:
        hashlib.new(algorithm)
    except ValueError as exc:
        raise ValueError(f"Unsupported hashlib algorithm: {algorithm}") from exc
    if algorithm.startswith("shake_"):
        raise ValueError("Variable-length hashes are not supported")

    def factory() -> Any:
        return hashlib.new(algorithm)

    return factory


class _CryptographyState:
    """Adapts a cryptography ``hashes.Hash`` context to update/digest."""

    def __init__(self, algorithm: Any) -> None:
        self._ctx = hashes.Hash(algorithm)
        self.digest_size = algorithm.digest_size

    def update(self, data: bytes) -> None:
        self._ctx.update(data)

    def digest(self) -> bytes:
        return self._ctx.finalize()


def cryptography_factory(algorithm: str = "sha256") -> HashFactory:
    """Return a factory backed by ``cryptography.hazmat.primitives.hashes``."""
    names = {
        "sha256": hashes.SHA256,
        "sha384": hashes.SHA384,
        "sha512": hashes.SHA512,
        "sha3_256": hashes.SHA3_256,
        "sha3_512": hashes.SHA3_512,
        "blake2b": lambda: hashes.BLAKE2b(64),
        "blake2s": lambda: hashes.BLAKE2s(32),
    }
    if algorithm not in names:
        raise ValueError(f"Unsupported cryptography algorithm: {algorithm}")
    make_algorithm = names[algorithm]

    def factory() -> _CryptographyState:
        return _CryptographyState(make_algorithm())

    return factory


class Hasher:
    """
    MMR hasher over any fixed-output hash function.

    The hash function is supplied as a zero-argument factory returning a
    fresh state with ``update()`` and ``digest()``. Each call below
    acquires its own state, so no absorbed bytes leak between calls.
    """

    def __init__(self, factory: HashFactory | None = None) -> None:
        self._factory = factory or hashlib.sha256
        with self._state() as state:
            self._digest_size = len(state.digest())

    @property
    def digest_size(self) -> int:
        """Length in bytes of every digest this hasher produces."""
        return self._digest_size

    @contextmanager
    def _state(self) -> Iterator[Any]:
        yield self._factory()

    def leaf_hash(self, pos: int, element: bytes) -> bytes:
        """Hash ``element`` bound to its leaf position."""
        with self._state() as state:
            state.update(LEAF_PREFIX)
            state.update(_U64.pack(pos))
            state.update(element)
            return state.digest()

    def node_hash(self, pos: int, left: bytes, right: bytes) -> bytes:
        """Hash an internal node at ``pos`` from its ordered children."""
        with self._state() as state:
            state.update(NODE_PREFIX)
            state.update(_U64.pack(pos))
            state.update(left)
            state.update(right)
            return state.digest()

    def root_hash(self, size: int, peaks: Iterable[bytes]) -> bytes:
        """Bag ``peaks`` (leftmost first) together with the MMR size."""
        with self._state() as state:
            state.update(ROOT_PREFIX)
            state.update(_U64.pack(size))
            for peak in peaks:
                state.update(peak)
            return state.digest()

    def __repr__(self) -> str:
        return f"Hasher(digest_size={self._digest_size})"


def make_hasher(config: Any = None) -> Hasher:
    """
    Build a Hasher from a ``HashConfig`` (or anything with ``backend`` and
    ``algorithm`` attributes). ``None`` gives the SHA-256 default.
    """
    if config is None:
        return Hasher()
    if config.backend == "hashlib":
        return Hasher(hashlib_factory(config.algorithm))
    if config.backend == "cryptography":
        return Hasher(cryptography_factory(config.algorithm))
    raise ValueError(f"Unknown hash backend: {config.backend}")
