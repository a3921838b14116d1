from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional

from consistent_hash_ring import DEFAULT_REPLICAS, ConsistentHashRing, DuplicateTargetError
from hashers import get_hasher


@dataclass
class RingConfig:
    """
    Configuration for building a consistent hashing ring.

    Attributes:
        replicas: Number of positions per unit of weight.
        hasher: Short name of the hash strategy (crc32, md5, xxh32).
        default_weight: Weight used for targets listed without one.
        targets: Target id -> weight (None means default_weight), registered
            in insertion order.
    """

    replicas: int = DEFAULT_REPLICAS
    hasher: str = "crc32"
    default_weight: float = 1.0
    targets: Dict[str, Optional[float]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RingConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown ring config keys: {', '.join(sorted(unknown))}")
        data = dict(data)
        if isinstance(data.get("targets"), (list, tuple)):
            targets: Dict[str, Optional[float]] = {}
            for t in data["targets"]:
                if t in targets:
                    raise DuplicateTargetError(t)
                targets[t] = None
            data["targets"] = targets
        return cls(**data)

    def build_ring(self) -> ConsistentHashRing:
        ring = ConsistentHashRing(get_hasher(self.hasher), self.replicas)
        for target, weight in self.targets.items():
            ring.add_target(target, self.default_weight if weight is None else weight)
        return ring
