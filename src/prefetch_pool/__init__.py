"""Prefetch Pool - per-key prefetch queues with refill, expiry and cooldown backoff"""

__version__ = "0.1.0"

from prefetch_pool.core import (
    PoolKind,
    PoolPolicy,
    EventType,
    PoolEvent,
    EventNotifier,
    ManualClock,
    AsyncioClock,
    ConfigurationError,
    FetchError,
)
from prefetch_pool.config import ManagerConfig, load_policies_from_file, load_policies_from_dict
from prefetch_pool.pooling import PrefetchManager, PoolRegistry, KeyPool, RefillScheduler
from prefetch_pool.providers import FetchProvider, CallableFetchProvider, HttpFetchProvider

__all__ = [
    "PrefetchManager",
    "PoolRegistry",
    "KeyPool",
    "RefillScheduler",
    "PoolKind",
    "PoolPolicy",
    "EventType",
    "PoolEvent",
    "EventNotifier",
    "ManualClock",
    "AsyncioClock",
    "ConfigurationError",
    "FetchError",
    "ManagerConfig",
    "load_policies_from_file",
    "load_policies_from_dict",
    "FetchProvider",
    "CallableFetchProvider",
    "HttpFetchProvider",
]
