
"""Rebalancing utilities.

Plan owner changes for resource keys between two rings and summarize how
keys are spread across targets.
"""
from __future__ import annotations

from typing import Iterable, Dict, Tuple, Optional, Sequence
from collections import Counter
import hashlib

from consistent_hash_ring import ConsistentHashRing

Plan = Dict[str, Tuple[Optional[str], Optional[str]]]


def primary_owner(ring: ConsistentHashRing, key: str) -> Optional[str]:
    owners = ring.lookup_list(key, 1)
    return owners[0] if owners else None


def distribution(keys: Iterable[str], ring: ConsistentHashRing) -> Counter:
    """Count primary owners of ``keys`` on ``ring``."""
    return Counter(primary_owner(ring, k) for k in keys)


def modulo_distribution(keys: Iterable[str], targets: Sequence[str]) -> Counter:
    """Plain ``md5(key) % len(targets)`` placement, for contrast with the ring."""
    if not targets:
        raise ValueError("targets must not be empty")
    n = len(targets)
    return Counter(
        targets[int(hashlib.md5(k.encode("utf-8")).hexdigest(), 16) % n] for k in keys
    )


class RebalancePlanner:
    def plan_moved(self, keys: Iterable[str], ring_before: ConsistentHashRing, ring_after: ConsistentHashRing) -> Plan:
        """Return dict key -> (from_owner, to_owner) for keys whose primary owner changed."""
        moved = {}
        for k in keys:
            b = primary_owner(ring_before, k)
            a = primary_owner(ring_after, k)
            if b != a:
                moved[k] = (b, a)
        return moved

    def stats(self, plan: Plan, total: Optional[int] = None) -> Dict[str, object]:
        by_to = Counter([to for (_, to) in plan.values() if to is not None])
        by_from = Counter([frm for (frm, _) in plan.values() if frm is not None])
        out = {
            "moved_count": len(plan),
            "by_to": dict(by_to),
            "by_from": dict(by_from),
        }
        if total:
            out["moved_fraction"] = len(plan) / total
        return out
