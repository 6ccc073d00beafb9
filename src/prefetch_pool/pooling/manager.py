"""
Prefetch Manager - wires provider, clock, notifier, scheduler and registry
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, Optional

from prefetch_pool.config import ManagerConfig
from prefetch_pool.core.clock import AsyncioClock, Clock
from prefetch_pool.core.errors import ConfigurationError
from prefetch_pool.core.events import EventNotifier
from prefetch_pool.core.models import PoolPolicy
from prefetch_pool.pooling.registry import PoolRegistry
from prefetch_pool.pooling.scheduler import RefillScheduler
from prefetch_pool.providers.base import FetchProvider

logger = logging.getLogger(__name__)


class PrefetchManager:
    """
    Top-level entry point for integrators

    Typical use:

        manager = PrefetchManager(provider)
        manager.configure(policies)
        await manager.start()
        item = manager.consume("home_feed")
        ...
        await manager.stop()

    There is no process-wide instance; construct one and pass it to
    whatever needs it.
    """

    def __init__(
        self,
        provider: FetchProvider,
        config: Optional[ManagerConfig] = None,
        clock: Optional[Clock] = None,
        notifier: Optional[EventNotifier] = None
    ):
        self.provider = provider
        self.config = config or ManagerConfig()
        self.config.validate()

        self.clock = clock or AsyncioClock()
        self.notifier = notifier or EventNotifier()
        self.scheduler = RefillScheduler(
            provider,
            self.clock,
            fetch_timeout=self.config.fetch_timeout
        )
        self.registry = PoolRegistry(self.scheduler, self.clock, self.notifier)

        # State
        self.running = False
        self._stopped = False

    def configure(self, policies: Iterable[PoolPolicy]) -> None:
        self.registry.configure(policies)

    async def start(self) -> None:
        """Initialize the provider, burst-fill every pool and start the expiry sweep"""
        if self.running:
            return
        if self._stopped:
            raise ConfigurationError("PrefetchManager cannot be restarted after stop()")
        if not self.registry.configured:
            raise ConfigurationError("configure() must be called before start()")

        self.scheduler.bind_loop(asyncio.get_running_loop())
        await self.provider.initialize()

        self.running = True
        self.registry.start_all()
        self.scheduler.start_sweep(self.config.sweep_interval, self.registry.sweep_all)

        logger.info(f"PrefetchManager started with {len(self.registry.pools)} pool(s)")

    async def stop(self) -> None:
        """Close pools, cancel timers and fetches, shut the provider down"""
        if not self.running:
            return

        self.running = False
        self._stopped = True

        self.registry.shutdown()
        await self.scheduler.shutdown()

        try:
            await self.provider.shutdown()
        except Exception as e:
            # Don't raise errors during shutdown to avoid cascading failures
            logger.error(f"Error stopping provider {self.provider.provider_id}: {e}")

        logger.info("PrefetchManager stopped")

    async def __aenter__(self) -> "PrefetchManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def consume(self, key: str) -> Optional[Any]:
        """Take the oldest prefetched item for key; never waits for a fetch"""
        return self.registry.consume(key)

    def on_pool_updated(self, callback: Callable[[str], None]) -> str:
        return self.notifier.on_pool_updated(callback)

    async def wait_idle(self) -> None:
        """Wait until no fetch is in flight"""
        await self.scheduler.join()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "config": self.config.to_dict(),
            "pools": self.registry.get_all_stats() if self.registry.configured else {},
            "scheduler": self.scheduler.get_stats(),
            "provider": self.provider.get_stats(),
            "events_emitted": self.notifier.events_emitted
        }
