"""
Core types shared by pools: models, events, errors and clocks
"""

from prefetch_pool.core.models import PoolKind, PoolPolicy, PoolEntry, PoolState
from prefetch_pool.core.events import EventType, PoolEvent, EventNotifier
from prefetch_pool.core.clock import Clock, AsyncioClock, ManualClock
from prefetch_pool.core.errors import (
    ErrorCode,
    PrefetchError,
    ConfigurationError,
    PoolNotConfiguredError,
    PoolAlreadyConfiguredError,
    PolicyValidationError,
    FetchError,
    EmptyFetchError,
    FetchTimeoutError,
)

__all__ = [
    "PoolKind",
    "PoolPolicy",
    "PoolEntry",
    "PoolState",
    "EventType",
    "PoolEvent",
    "EventNotifier",
    "Clock",
    "AsyncioClock",
    "ManualClock",
    "ErrorCode",
    "PrefetchError",
    "ConfigurationError",
    "PoolNotConfiguredError",
    "PoolAlreadyConfiguredError",
    "PolicyValidationError",
    "FetchError",
    "EmptyFetchError",
    "FetchTimeoutError",
]
