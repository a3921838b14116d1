import hashlib

import pytest

from consistent_hash_ring import ConsistentHashRing, DuplicateTargetError
from rebalance import RebalancePlanner, distribution, modulo_distribution, primary_owner
from ring_config import RingConfig

SERVERS = ['serv-1', 'serv-2', 'serv-3', 'serv-4', 'serv-5', 'serv-6']
KEYS = [hashlib.md5(str(i).encode()).hexdigest() for i in range(3000)]


def test_plan_moved_on_join():
    ring = ConsistentHashRing().add_targets(SERVERS)
    before = ring.clone()
    ring.add_target('serv-7')

    planner = RebalancePlanner()
    plan = planner.plan_moved(KEYS, before, ring)
    stats = planner.stats(plan, total=len(KEYS))

    assert plan
    assert set(stats['by_to']) == {'serv-7'}
    assert stats['moved_count'] == len(plan)
    assert isinstance(stats['moved_count'], int)
    assert stats['moved_fraction'] < 0.3
    assert sum(stats['by_from'].values()) == len(plan)


def test_plan_moved_from_empty_ring():
    empty = ConsistentHashRing()
    ring = ConsistentHashRing().add_target('serv-1')
    plan = RebalancePlanner().plan_moved(['a', 'b'], empty, ring)
    assert plan == {'a': (None, 'serv-1'), 'b': (None, 'serv-1')}
    assert primary_owner(empty, 'a') is None


def test_distribution_covers_all_keys():
    ring = ConsistentHashRing().add_targets(SERVERS)
    counts = distribution(KEYS, ring)
    assert sum(counts.values()) == len(KEYS)
    assert set(counts) == set(SERVERS)

    mod = modulo_distribution(KEYS, SERVERS)
    assert sum(mod.values()) == len(KEYS)
    with pytest.raises(ValueError):
        modulo_distribution(KEYS, [])


def test_modulo_moves_most_keys_ring_does_not():
    ring = ConsistentHashRing().add_targets(SERVERS)
    before = ring.clone()
    ring.add_target('serv-7')
    ring_moved = len(RebalancePlanner().plan_moved(KEYS, before, ring))

    def mod_owner(key, targets):
        return targets[int(hashlib.md5(key.encode()).hexdigest(), 16) % len(targets)]

    mod_moved = sum(1 for k in KEYS if mod_owner(k, SERVERS) != mod_owner(k, SERVERS + ['serv-7']))
    assert ring_moved < mod_moved


def test_config_builds_ring():
    cfg = RingConfig(replicas=16, hasher='md5', targets={'a': 1, 'b': 2, 'c': None})
    ring = cfg.build_ring()
    assert ring.replicas == 16
    assert ring.get_all_targets() == ['a', 'b', 'c']
    assert len(ring.positions_for('b')) == 32
    assert len(ring.positions_for('c')) == 16
    assert isinstance(ring.positions_for('a')[0], str)


def test_config_from_mapping():
    cfg = RingConfig.from_mapping({'hasher': 'xxh32', 'targets': ['x', 'y'], 'default_weight': 0.5})
    ring = cfg.build_ring()
    assert ring.target_count == 2
    assert len(ring.positions_for('x')) == 32
    with pytest.raises(DuplicateTargetError):
        RingConfig.from_mapping({'targets': ['a', 'b', 'a']})
    with pytest.raises(ValueError):
        RingConfig.from_mapping({'replica': 3})
    with pytest.raises(ValueError):
        RingConfig(hasher='sha1').build_ring()
