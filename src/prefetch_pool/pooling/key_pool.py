"""
Key Pool - bounded prefetch queue with refill/backoff state for one key

State machine:

    Idle -> Fetching -> Idle      (success, refill again until full)
                     -> Idle      (failure below threshold, retry immediately)
                     -> Cooldown  (failure at threshold)
    Cooldown -> Idle              (cooldown timer fires; failures are kept)

All transitions for a pool hold the pool's own lock. Fetches and timers are
owned by the RefillScheduler; the pool only asks for them.
"""

import itertools
import logging
import threading
from collections import deque
from typing import TYPE_CHECKING, Any, Deque, Dict, List, Optional

from prefetch_pool.core.clock import Clock
from prefetch_pool.core.errors import ErrorCode
from prefetch_pool.core.events import EventNotifier, EventType
from prefetch_pool.core.models import PoolEntry, PoolPolicy, PoolState

if TYPE_CHECKING:
    from prefetch_pool.pooling.scheduler import RefillScheduler

logger = logging.getLogger(__name__)

_fetch_tokens = itertools.count(1)


class KeyPool:
    """
    Prefetch queue for a single key

    Items are consumed oldest first. Every successful consume, fetch and
    sweep that leaves room triggers refill_check(), so the pool keeps itself
    topped up without an external polling loop.
    """

    def __init__(
        self,
        policy: PoolPolicy,
        scheduler: "RefillScheduler",
        clock: Clock,
        notifier: Optional[EventNotifier] = None
    ):
        self.policy = policy
        self.scheduler = scheduler
        self.clock = clock
        self.notifier = notifier

        # Pool state
        self.queue: Deque[PoolEntry] = deque()
        self.is_fetching = False
        self.consecutive_failures = 0
        self.cooldown_until: Optional[float] = None
        self.active = True

        self._fetch_token: Optional[int] = None
        self._lock = threading.RLock()

        # Metrics
        self.metrics = {
            "fetches_started": 0,
            "fetches_succeeded": 0,
            "fetches_failed": 0,
            "items_consumed": 0,
            "items_expired": 0,
            "overflow_drops": 0,
            "cooldowns_entered": 0,
            "stale_completions": 0
        }

    @property
    def key(self) -> str:
        return self.policy.key

    def __len__(self) -> int:
        return len(self.queue)

    # Consumer side

    def try_consume(self) -> Optional[Any]:
        """Pop the oldest item, or None when empty; a successful pop triggers a refill check"""
        with self._lock:
            if not self.queue:
                return None

            entry = self.queue.popleft()
            self.metrics["items_consumed"] += 1
            self.refill_check()
            return entry.value

    # Producer side

    def enqueue(self, value: Any) -> bool:
        """Append a fetched item; a full queue drops it and logs"""
        with self._lock:
            if len(self.queue) >= self.policy.capacity:
                self.metrics["overflow_drops"] += 1
                logger.warning(
                    f"{self.policy.debug_info} [{ErrorCode.CAPACITY_OVERRUN.value}] "
                    f"queue is full, dropping fetched item"
                )
                return False

            self.consecutive_failures = 0
            self.queue.append(PoolEntry(value=value, arrived_at=self.clock.now()))
            self._publish(EventType.POOL_UPDATED, queue_length=len(self.queue))
            return True

    def refill_check(self) -> bool:
        """Launch one fetch if the pool has room, nothing in flight and no active cooldown"""
        with self._lock:
            if not self.active:
                return False

            if len(self.queue) >= self.policy.capacity:
                logger.debug(f"{self.policy.debug_info} queue is full")
                return False

            if self.is_fetching:
                logger.debug(f"{self.policy.debug_info} is fetching, ignore")
                return False

            if self.cooldown_until is not None:
                if self.clock.now() < self.cooldown_until:
                    logger.debug(f"{self.policy.debug_info} is cooling down, ignore")
                    return False
                # Deadline passed before the timer fired
                self.cooldown_until = None
                self.scheduler.cancel_cooldown(self)

            token = next(_fetch_tokens)
            self._fetch_token = token
            self.is_fetching = True
            self.metrics["fetches_started"] += 1

            try:
                launched = self.scheduler.launch_fetch(self, token)
            except Exception:
                self.abandon_fetch(token)
                raise

            if not launched:
                self.abandon_fetch(token)
                return False

            logger.debug(f"{self.policy.debug_info} did start fetch")
            return True

    def abandon_fetch(self, token: int) -> bool:
        """Return to idle when the fetch for token was never started"""
        with self._lock:
            if token != self._fetch_token:
                return False
            self._fetch_token = None
            self.is_fetching = False
            self.metrics["fetches_started"] -= 1
            logger.debug(f"{self.policy.debug_info} fetch was not started")
            return True

    # Fetch completion

    def complete_fetch(self, token: int, value: Any = None, error: Optional[BaseException] = None) -> bool:
        """
        Deliver a fetch result from the scheduler

        Results for a closed pool or for a fetch that is no longer the one in
        flight are dropped. Returns whether the result was applied.
        """
        with self._lock:
            if not self.active or token != self._fetch_token:
                self.metrics["stale_completions"] += 1
                logger.debug(f"{self.policy.debug_info} ignoring stale fetch result")
                return False

            if error is not None:
                self.on_fetch_failure(error)
            else:
                self.on_fetch_success(value)
            return True

    def on_fetch_success(self, value: Any) -> None:
        with self._lock:
            self.is_fetching = False
            self._fetch_token = None
            self.metrics["fetches_succeeded"] += 1
            self.enqueue(value)
            self.refill_check()

    def on_fetch_failure(self, error: Optional[BaseException]) -> None:
        with self._lock:
            self.is_fetching = False
            self._fetch_token = None
            self.consecutive_failures += 1
            self.metrics["fetches_failed"] += 1

            logger.warning(f"{self.policy.debug_info} fetch failed: {error}")
            self._publish(
                EventType.FETCH_FAILED,
                error=str(error) if error is not None else None,
                consecutive_failures=self.consecutive_failures
            )

            if self.consecutive_failures < self.policy.failure_threshold:
                logger.info(f"{self.policy.debug_info} retry immediately")
                self.refill_check()
                return

            self._enter_cooldown()

    def _enter_cooldown(self) -> None:
        delay = self.policy.cooldown_duration
        self.cooldown_until = self.clock.now() + delay
        self.metrics["cooldowns_entered"] += 1

        logger.warning(
            f"{self.policy.debug_info} stop retry after {self.consecutive_failures} failures, "
            f"waiting {delay}s for restart"
        )
        self._publish(
            EventType.COOLDOWN_STARTED,
            cooldown_duration=delay,
            consecutive_failures=self.consecutive_failures
        )
        self.scheduler.schedule_cooldown(self, delay)

    def on_cooldown_expired(self) -> None:
        """Cooldown timer callback; keeps the failure count"""
        with self._lock:
            if not self.active:
                return
            if self.cooldown_until is None:
                return

            self.cooldown_until = None
            logger.info(f"{self.policy.debug_info} cooldown expired, restarting")
            self._publish(EventType.COOLDOWN_EXPIRED, consecutive_failures=self.consecutive_failures)
            self.refill_check()

    # Expiry

    def sweep_expired(self, now: Optional[float] = None) -> int:
        """Drop entries at or past stale_age; returns the number removed"""
        if not self.policy.kind.needs_expiry:
            return 0

        stale_age = self.policy.effective_stale_age
        if stale_age is None:
            return 0

        with self._lock:
            if not self.active:
                return 0

            if now is None:
                now = self.clock.now()

            survivors = [entry for entry in self.queue if entry.age(now) < stale_age]
            removed = len(self.queue) - len(survivors)

            if removed:
                self.queue = deque(survivors)
                self.metrics["items_expired"] += removed
                logger.info(f"{self.policy.debug_info} expired {removed} stale item(s)")
                self._publish(EventType.ENTRIES_EXPIRED, removed=removed, queue_length=len(self.queue))
                self.refill_check()

            return removed

    # Teardown

    def close(self) -> None:
        """Stop the pool; later timer callbacks and fetch results become no-ops"""
        with self._lock:
            if not self.active:
                return
            self.active = False
            self.is_fetching = False
            self._fetch_token = None
            self.cooldown_until = None
        self.scheduler.cancel_pool(self)
        logger.debug(f"{self.policy.debug_info} closed")

    # Introspection

    def snapshot(self) -> PoolState:
        with self._lock:
            return PoolState(
                key=self.key,
                queue_length=len(self.queue),
                capacity=self.policy.capacity,
                is_fetching=self.is_fetching,
                consecutive_failures=self.consecutive_failures,
                cooldown_until=self.cooldown_until,
                active=self.active
            )

    def peek_values(self) -> List[Any]:
        with self._lock:
            return [entry.value for entry in self.queue]

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            cooldown_remaining = None
            if self.cooldown_until is not None:
                cooldown_remaining = max(0.0, self.cooldown_until - self.clock.now())

            oldest_age = None
            if self.queue:
                oldest_age = self.queue[0].age(self.clock.now())

            return {
                "key": self.key,
                "kind": self.policy.kind.value,
                "capacity": self.policy.capacity,
                "queue_length": len(self.queue),
                "utilization": len(self.queue) / self.policy.capacity,
                "is_fetching": self.is_fetching,
                "consecutive_failures": self.consecutive_failures,
                "cooldown_remaining": cooldown_remaining,
                "oldest_item_age": oldest_age,
                "active": self.active,
                **self.metrics
            }

    def _publish(self, event_type: EventType, **data: Any) -> None:
        if self.notifier:
            self.notifier.publish(event_type, self.key, **data)
