import hashlib
import logging

from consistent_hash_ring import ConsistentHashRing
from hashers import Crc32Hasher
from rebalance import RebalancePlanner, distribution, modulo_distribution

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

servers = ['serv-1', 'serv-2', 'serv-3', 'serv-4', 'serv-5', 'serv-6']
keys = [hashlib.md5(str(i).encode()).hexdigest() for i in range(10000)]


def report(title, counter):
    print(title)
    total = sum(counter.values())
    for name in sorted(counter):
        print(f'{name}\t{counter[name]}\t{counter[name] / total:.2%}')


# 1) Plain modulo placement
report('Modulo placement:', modulo_distribution(keys, servers))

# 2) Ring placement
ring = ConsistentHashRing(Crc32Hasher(), replicas=64).add_targets(servers)
print(ring)
report('Ring placement:', distribution(keys, ring))

# 3) Movement on join and leave
planner = RebalancePlanner()

ring_before = ring.clone()
ring.add_target('serv-7')
plan = planner.plan_moved(keys, ring_before, ring)
print('Moved after adding serv-7:', planner.stats(plan, total=len(keys)))

ring_before = ring.clone()
ring.remove_target('serv-3')
plan = planner.plan_moved(keys, ring_before, ring)
print('Moved after removing serv-3:', planner.stats(plan, total=len(keys)))
