
"""Consistent hashing ring with pluggable hashers.
- Each target is hashed to round(replicas * weight) positions ("target#i")
- Positions are sorted lazily: mutations mark the ring dirty, lookups re-sort
- Lookups walk clockwise from the resource position and wrap around
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple
import bisect
import logging
import math
import threading

from hashers import Crc32Hasher, Hasher, HashValue

log = logging.getLogger(__name__)

DEFAULT_REPLICAS = 64
SEPARATOR = "#"


class RingError(Exception):
    """Base class for ring misuse errors."""


class DuplicateTargetError(RingError, ValueError):
    def __init__(self, target: str):
        super().__init__(f"Target {target!r} already exists")
        self.target = target


class MissingTargetError(RingError, LookupError):
    def __init__(self, target: str):
        super().__init__(f"Target {target!r} does not exist")
        self.target = target


class NoTargetsError(RingError, LookupError):
    def __init__(self):
        super().__init__("No targets exist")


class InvalidCountError(RingError, ValueError):
    def __init__(self, count: int):
        super().__init__(f"Invalid count requested: {count}")
        self.count = count


class ConsistentHashRing:
    """Maps resources to an ordered list of targets on a 32-bit ring.

    Mutations and lookups hold an internal lock, so one ring may be shared
    between threads. Lookups also take the lock because they may re-sort.
    """

    def __init__(self, hasher: Optional[Hasher] = None, replicas: Optional[int] = None):
        if replicas is not None and replicas < 0:
            raise ValueError(f"replicas must be positive, got {replicas}")
        self._hasher = hasher if hasher is not None else Crc32Hasher()
        self._replicas = replicas or DEFAULT_REPLICAS
        self._lock = threading.RLock()
        self._position_to_target: Dict[HashValue, str] = {}
        self._target_to_positions: Dict[str, List[HashValue]] = {}
        self._target_count = 0
        self._sorted_positions: List[HashValue] = []
        self._sorted = False

    @property
    def hasher(self) -> Hasher:
        return self._hasher

    @property
    def replicas(self) -> int:
        return self._replicas

    @property
    def target_count(self) -> int:
        return self._target_count

    @property
    def is_sorted(self) -> bool:
        return self._sorted

    def _replica_count(self, weight: float) -> int:
        # half away from zero, not banker's rounding
        return int(math.floor(self._replicas * weight + 0.5))

    def add_target(self, target: str, weight: float = 1) -> "ConsistentHashRing":
        if not math.isfinite(weight) or weight < 0:
            raise ValueError(f"weight must be finite and non-negative, got {weight}")
        count = self._replica_count(weight)
        with self._lock:
            if target in self._target_to_positions:
                raise DuplicateTargetError(target)
            positions = [self._hasher.hash(f"{target}{SEPARATOR}{i}") for i in range(count)]
            self._target_to_positions[target] = positions
            for position in positions:
                # a colliding position silently goes to the latest target
                self._position_to_target[position] = target
            self._sorted = False
            self._target_count += 1
        log.debug("added target=%s weight=%s positions=%d", target, weight, count)
        return self

    def add_targets(self, targets: Iterable[str], weight: float = 1) -> "ConsistentHashRing":
        for target in targets:
            self.add_target(target, weight)
        return self

    def remove_target(self, target: str) -> "ConsistentHashRing":
        with self._lock:
            positions = self._target_to_positions.pop(target, None)
            if positions is None:
                raise MissingTargetError(target)
            for position in positions:
                self._position_to_target.pop(position, None)
            if self._sorted:
                # dropping entries keeps the remaining order intact
                self._sorted_positions = [
                    p for p in self._sorted_positions if p in self._position_to_target
                ]
            self._target_count -= 1
        log.debug("removed target=%s positions=%d", target, len(positions))
        return self

    def get_all_targets(self) -> List[str]:
        with self._lock:
            return list(self._target_to_positions)

    def positions_for(self, target: str) -> List[HashValue]:
        with self._lock:
            try:
                return list(self._target_to_positions[target])
            except KeyError:
                raise MissingTargetError(target) from None

    def lookup(self, resource: str) -> str:
        """Return the highest-precedence target for ``resource``."""
        targets = self.lookup_list(resource, 1)
        if not targets:
            raise NoTargetsError()
        return targets[0]

    def lookup_list(self, resource: str, requested_count: int) -> List[str]:
        """Return up to ``requested_count`` distinct targets in precedence order.

        Targets are collected clockwise starting strictly after the resource
        position, wrapping to the start of the ring. A position equal to the
        resource position is only reached after the wrap.
        """
        if requested_count <= 0:
            raise InvalidCountError(requested_count)
        with self._lock:
            if not self._position_to_target:
                return []
            if self._target_count == 1:
                return [next(iter(self._position_to_target.values()))]

            resource_position = self._hasher.hash(resource)
            positions = self._ensure_sorted()
            limit = min(requested_count, self._target_count)
            start = bisect.bisect_right(positions, resource_position)
            total = len(positions)

            results: List[str] = []
            seen = set()
            for offset in range(total):
                target = self._position_to_target[positions[(start + offset) % total]]
                if target in seen:
                    continue
                seen.add(target)
                results.append(target)
                if len(results) == limit:
                    break
            return results

    def _ensure_sorted(self) -> List[HashValue]:
        if not self._sorted:
            self._sorted_positions = sorted(self._position_to_target)
            self._sorted = True
            log.debug("sorted ring positions=%d", len(self._sorted_positions))
        return self._sorted_positions

    def dump_positions(self) -> List[Tuple[HashValue, str]]:
        with self._lock:
            return [(p, self._position_to_target[p]) for p in self._ensure_sorted()]

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "targets": self._target_count,
                "positions": len(self._position_to_target),
                "replicas": self._replicas,
            }

    def clone(self) -> "ConsistentHashRing":
        """Independent copy of the ring for before/after comparison."""
        with self._lock:
            other = ConsistentHashRing(self._hasher, self._replicas)
            other._position_to_target = dict(self._position_to_target)
            other._target_to_positions = {
                t: list(ps) for t, ps in self._target_to_positions.items()
            }
            other._target_count = self._target_count
            other._sorted_positions = list(self._sorted_positions)
            other._sorted = self._sorted
            return other

    def __len__(self) -> int:
        return self._target_count

    def __contains__(self, target: object) -> bool:
        return target in self._target_to_positions

    def __str__(self) -> str:
        return f"{type(self).__name__}{{targets:[{','.join(self.get_all_targets())}]}}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(hasher={self._hasher!r}, "
            f"replicas={self._replicas}, targets={self._target_count})"
        )
