"""
Pool Registry - owns one KeyPool per configured key
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from prefetch_pool.core.clock import Clock
from prefetch_pool.core.errors import (
    ConfigurationError, ErrorCode, PoolAlreadyConfiguredError, PoolNotConfiguredError
)
from prefetch_pool.core.events import EventNotifier
from prefetch_pool.core.models import PoolPolicy
from prefetch_pool.pooling.key_pool import KeyPool
from prefetch_pool.pooling.scheduler import RefillScheduler

logger = logging.getLogger(__name__)


class PoolRegistry:
    """
    Routes consume / refill / expiry operations to per-key pools

    configure() must be called exactly once before anything else. Unknown
    keys are not an error for consume(); they simply yield nothing.
    """

    def __init__(
        self,
        scheduler: RefillScheduler,
        clock: Clock,
        notifier: Optional[EventNotifier] = None
    ):
        self.scheduler = scheduler
        self.clock = clock
        self.notifier = notifier or EventNotifier()

        self.pools: Dict[str, KeyPool] = {}
        self._configured = False
        self._shut_down = False

    @property
    def configured(self) -> bool:
        return self._configured

    def configure(self, policies: Iterable[PoolPolicy]) -> None:
        """Create one pool per policy; only allowed once"""
        if self._configured:
            raise PoolAlreadyConfiguredError(self.pools.keys())

        policies = list(policies)
        pools: Dict[str, KeyPool] = {}
        for policy in policies:
            if not isinstance(policy, PoolPolicy):
                raise ConfigurationError(
                    f"Expected PoolPolicy, got {type(policy).__name__}",
                    data={"value": repr(policy)}
                )
            if policy.key in pools:
                raise ConfigurationError(
                    f"Duplicate pool key {policy.key}",
                    code=ErrorCode.DUPLICATE_POOL_KEY,
                    data={"key": policy.key}
                )
            pools[policy.key] = KeyPool(policy, self.scheduler, self.clock, self.notifier)

        self.pools = pools
        self._configured = True
        logger.info(f"Configured {len(pools)} pool(s): {', '.join(pools) or '-'}")

    def _require_configured(self, operation: str) -> None:
        if not self._configured:
            raise PoolNotConfiguredError(operation)

    def consume(self, key: str) -> Optional[Any]:
        """Oldest item for key, or None if the key is unknown or its pool is empty"""
        self._require_configured("consume")
        pool = self.pools.get(key)
        if pool is None:
            logger.debug(f"consume for unknown key {key}")
            return None
        return pool.try_consume()

    def start_all(self) -> int:
        """Kick off the initial burst fill; returns the number of fetches launched"""
        self._require_configured("start_all")
        launched = 0
        for pool in self.pools.values():
            if pool.refill_check():
                launched += 1
        logger.info(f"Started {launched} initial fetch(es)")
        return launched

    def sweep_all(self, now: Optional[float] = None) -> int:
        """Expire stale items in every pool whose kind needs it; returns items removed"""
        self._require_configured("sweep_all")
        if now is None:
            now = self.clock.now()

        removed = 0
        for pool in self.pools.values():
            if pool.policy.kind.needs_expiry:
                removed += pool.sweep_expired(now)

        if removed:
            logger.debug(f"Sweep removed {removed} stale item(s)")
        return removed

    def get_pool(self, key: str) -> Optional[KeyPool]:
        self._require_configured("get_pool")
        return self.pools.get(key)

    def keys(self) -> List[str]:
        self._require_configured("keys")
        return list(self.pools.keys())

    def get_stats(self, key: str) -> Optional[Dict[str, Any]]:
        self._require_configured("get_stats")
        pool = self.pools.get(key)
        if pool is None:
            return None
        return pool.get_stats()

    def get_all_stats(self) -> Dict[str, Dict[str, Any]]:
        self._require_configured("get_all_stats")
        return {key: pool.get_stats() for key, pool in self.pools.items()}

    def shutdown(self) -> None:
        """Close every pool; pending timers and fetch results become no-ops"""
        if self._shut_down:
            return
        self._shut_down = True
        for pool in self.pools.values():
            pool.close()
        logger.info(f"Closed {len(self.pools)} pool(s)")
