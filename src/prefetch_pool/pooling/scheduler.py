"""
Refill Scheduler - runs fetches and timers on behalf of key pools

Each fetch runs in its own asyncio task and reports back to its pool from
inside that task, so completions land on the same event loop that issued
them. Cooldown and sweep timers go through the injected Clock and are
cancelled when their pool (or the scheduler) shuts down.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Set

from prefetch_pool.core.clock import Clock, TimerHandle
from prefetch_pool.core.errors import (
    ConfigurationError, EmptyFetchError, FetchError, FetchTimeoutError
)
from prefetch_pool.providers.base import FetchProvider

if TYPE_CHECKING:
    from prefetch_pool.pooling.key_pool import KeyPool

logger = logging.getLogger(__name__)


class RefillScheduler:
    """
    Drives the fetch / cooldown / sweep side effects of key pools

    The scheduler holds the only references to in-flight fetch tasks and
    pending timers; pools never own them directly, and closing a pool
    cancels both.
    """

    def __init__(
        self,
        provider: FetchProvider,
        clock: Clock,
        fetch_timeout: Optional[float] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None
    ):
        self.provider = provider
        self.clock = clock
        self.fetch_timeout = fetch_timeout
        self._loop = loop

        self._fetch_tasks: Dict["KeyPool", asyncio.Task] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._cooldowns: Dict["KeyPool", TimerHandle] = {}
        self._sweep_timer: Optional[TimerHandle] = None
        self._closed = False

        self.metrics = {
            "fetches_launched": 0,
            "fetches_succeeded": 0,
            "fetches_failed": 0,
            "fetches_cancelled": 0,
            "cooldowns_scheduled": 0,
            "sweeps_run": 0
        }

    # Event loop binding

    def bind_loop(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Pin the scheduler to an event loop (defaults to the running one)"""
        self._loop = loop or asyncio.get_running_loop()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise ConfigurationError(
                    "RefillScheduler has no event loop; call bind_loop() or start from a coroutine",
                    cause=e
                )
        return self._loop

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self.loop
        except RuntimeError:
            return False

    def _call_on_loop(self, fn: Callable[..., Any], *args: Any) -> None:
        if self._on_loop_thread():
            fn(*args)
        else:
            self.loop.call_soon_threadsafe(fn, *args)

    # Fetches

    def launch_fetch(self, pool: "KeyPool", token: int) -> bool:
        """
        Start exactly one fetch for the pool; the result is delivered with the token

        Returns False when the scheduler is closed. Raises ConfigurationError
        when no event loop is available.
        """
        if self._closed:
            logger.debug(f"Scheduler closed, not fetching for {pool.key}")
            return False
        self._call_on_loop(self._spawn_fetch, pool, token)
        return True

    def _spawn_fetch(self, pool: "KeyPool", token: int) -> None:
        if self._closed or not pool.active:
            # Closed between launch and spawn
            pool.abandon_fetch(token)
            return

        task = self.loop.create_task(self._run_fetch(pool, token), name=f"prefetch-{pool.key}")
        self._fetch_tasks[pool] = task
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._on_task_done(pool, t))
        self.metrics["fetches_launched"] += 1

    def _on_task_done(self, pool: "KeyPool", task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if self._fetch_tasks.get(pool) is task:
            del self._fetch_tasks[pool]
        if task.cancelled():
            self.metrics["fetches_cancelled"] += 1

    async def _run_fetch(self, pool: "KeyPool", token: int) -> None:
        key = pool.key
        error: Optional[BaseException] = None
        value: Any = None

        try:
            if self.fetch_timeout:
                value = await asyncio.wait_for(self.provider.fetch(key), timeout=self.fetch_timeout)
            else:
                value = await self.provider.fetch(key)
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError as e:
            if self.fetch_timeout:
                error = FetchTimeoutError(key, self.fetch_timeout)
            else:
                error = FetchError(str(e) or "timeout", key=key, cause=e)
        except FetchError as e:
            error = e
        except Exception as e:
            error = FetchError(str(e) or type(e).__name__, key=key, cause=e)
        else:
            if value is None:
                error = EmptyFetchError(key)

        if error is not None:
            self.metrics["fetches_failed"] += 1
        else:
            self.metrics["fetches_succeeded"] += 1

        pool.complete_fetch(token, value=value, error=error)

    # Cooldown timers

    def schedule_cooldown(self, pool: "KeyPool", delay: float) -> None:
        """One-shot timer calling pool.on_cooldown_expired after delay seconds"""
        self.cancel_cooldown(pool)
        if self._closed:
            return

        timer: Optional[TimerHandle] = None

        def fire() -> None:
            if self._cooldowns.get(pool) is timer:
                del self._cooldowns[pool]
            pool.on_cooldown_expired()

        timer = self.clock.call_later(delay, fire)
        self._cooldowns[pool] = timer
        self.metrics["cooldowns_scheduled"] += 1

    def cancel_cooldown(self, pool: "KeyPool") -> None:
        """Cancel the pool's cooldown timer; calls from other threads are applied on the loop"""
        timer = self._cooldowns.get(pool)
        if timer is None:
            return
        if self._loop is None or self._on_loop_thread():
            self._drop_cooldown(pool, timer)
        else:
            self._loop.call_soon_threadsafe(self._drop_cooldown, pool, timer)

    def _drop_cooldown(self, pool: "KeyPool", timer: TimerHandle) -> None:
        if self._cooldowns.get(pool) is timer:
            del self._cooldowns[pool]
        timer.cancel()

    def has_cooldown(self, pool: "KeyPool") -> bool:
        return pool in self._cooldowns

    # Sweep timer

    def start_sweep(self, interval: float, callback: Callable[[], Any]) -> None:
        """Run callback every interval seconds until stop_sweep()/shutdown()"""
        self.stop_sweep()

        def fire() -> None:
            self.metrics["sweeps_run"] += 1
            callback()

        self._sweep_timer = self.clock.call_every(interval, fire)
        logger.info(f"Expiry sweep scheduled every {interval}s")

    def stop_sweep(self) -> None:
        if self._sweep_timer is not None:
            self._sweep_timer.cancel()
            self._sweep_timer = None

    # Teardown

    def cancel_pool(self, pool: "KeyPool") -> None:
        """Cancel the pool's cooldown timer and in-flight fetch"""
        self.cancel_cooldown(pool)
        task = self._fetch_tasks.pop(pool, None)
        if task is not None and not task.done():
            self._call_on_loop(task.cancel)

    async def join(self) -> None:
        """Wait until no fetch is in flight, including fetches started while waiting"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel every timer and fetch; idempotent"""
        if self._closed:
            return
        self._closed = True

        self.stop_sweep()
        for pool in list(self._cooldowns):
            self.cancel_cooldown(pool)

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._fetch_tasks.clear()

        logger.info("RefillScheduler stopped")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "in_flight": self.in_flight,
            "pending_cooldowns": len(self._cooldowns),
            "sweep_active": self._sweep_timer is not None,
            "closed": self._closed,
            **self.metrics
        }
