"""
Prefetch Pooling

Per-key bounded queues of pre-fetched items, refilled proactively from an
unreliable provider.

Key Components:
- PrefetchManager: Main integration point, start/stop lifecycle
- PoolRegistry: Owns one KeyPool per configured key and routes operations
- KeyPool: Bounded FIFO queue plus fetch/retry/cooldown state for one key
- RefillScheduler: Runs fetch tasks, cooldown timers and the expiry sweep
"""

from prefetch_pool.pooling.key_pool import KeyPool
from prefetch_pool.pooling.scheduler import RefillScheduler
from prefetch_pool.pooling.registry import PoolRegistry
from prefetch_pool.pooling.manager import PrefetchManager

__all__ = [
    'PrefetchManager',
    'PoolRegistry',
    'KeyPool',
    'RefillScheduler',
]
