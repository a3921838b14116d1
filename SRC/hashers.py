
"""Hash strategies for the consistent ring.

Every strategy maps a string into a 32-bit space. Results only need to be
orderable among themselves: ints for the checksum-style hashers, fixed-width
lowercase hex for md5 (lexicographic order == numeric order).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Union
import hashlib
import zlib

try:
    import xxhash
except ImportError as e:
    raise RuntimeError("xxhash is required. Install with: pip install xxhash") from e

HashValue = Union[int, str]

MASK_32 = 0xFFFFFFFF


class Hasher(ABC):
    """Maps a string to a deterministic value in a 32-bit address space."""

    name = "abstract"

    @abstractmethod
    def hash(self, value: str) -> HashValue:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Crc32Hasher(Hasher):
    """CRC32 checksum, coerced to its unsigned interpretation."""

    name = "crc32"

    def hash(self, value: str) -> int:
        return zlib.crc32(value.encode("utf-8")) & MASK_32


class Md5Hasher(Hasher):
    """Leading 8 hex chars (32 bits) of the MD5 digest."""

    name = "md5"

    def hash(self, value: str) -> str:
        return hashlib.md5(value.encode("utf-8")).hexdigest()[:8]


class Xxh32Hasher(Hasher):
    name = "xxh32"

    def __init__(self, seed: int = 0):
        self.seed = seed

    def hash(self, value: str) -> int:
        return xxhash.xxh32_intdigest(value.encode("utf-8"), seed=self.seed)

    def __repr__(self) -> str:
        return f"Xxh32Hasher(seed={self.seed})"


_REGISTRY: Dict[str, Callable[[], Hasher]] = {
    Crc32Hasher.name: Crc32Hasher,
    Md5Hasher.name: Md5Hasher,
    Xxh32Hasher.name: Xxh32Hasher,
}


def available_hashers() -> List[str]:
    return sorted(_REGISTRY)


def get_hasher(name: str) -> Hasher:
    """Build a hasher by its short name (``crc32``, ``md5``, ``xxh32``)."""
    try:
        factory = _REGISTRY[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown hasher {name!r}; expected one of {', '.join(available_hashers())}"
        ) from None
    return factory()
