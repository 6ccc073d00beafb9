"""
Tests for the pool event notifier
"""

import pytest

from prefetch_pool.core.events import EventNotifier, EventType, PoolEvent
from prefetch_pool.core.models import PoolKind, PoolPolicy
from prefetch_pool.pooling.key_pool import KeyPool


def test_event_creation():
    event = PoolEvent(event_type=EventType.POOL_UPDATED, key="feed", data={"queue_length": 1})

    assert event.event_type == EventType.POOL_UPDATED
    assert event.event_type.value == "pool:updated"
    assert event.key == "feed"
    assert event.data["queue_length"] == 1
    assert event.event_id
    assert event.timestamp is not None


class TestEventNotifier:

    def test_fan_out_in_subscription_order(self, notifier):
        received = []
        notifier.subscribe(lambda e: received.append(("first", e.key)))
        notifier.subscribe(lambda e: received.append(("second", e.key)))

        notifier.publish(EventType.POOL_UPDATED, "a")
        notifier.publish(EventType.POOL_UPDATED, "b")

        assert received == [("first", "a"), ("second", "a"), ("first", "b"), ("second", "b")]
        assert notifier.events_emitted == 2

    def test_type_filter(self, notifier):
        failures = []
        notifier.subscribe(failures.append, EventType.FETCH_FAILED)
        notifier.subscribe(failures.append, [EventType.COOLDOWN_STARTED])

        notifier.publish(EventType.POOL_UPDATED, "a")
        notifier.publish(EventType.FETCH_FAILED, "a", error="boom")

        assert [e.event_type for e in failures] == [EventType.FETCH_FAILED]
        assert failures[0].data == {"error": "boom"}

    def test_raising_handler_does_not_stop_others(self, notifier):
        received = []

        def broken(event):
            raise RuntimeError("observer bug")

        notifier.subscribe(received.append)
        notifier.subscribe(broken)
        notifier.subscribe(received.append)

        notifier.publish(EventType.POOL_UPDATED, "a")

        assert len(received) == 2
        assert notifier.handler_errors == 1

    def test_unsubscribe_by_id_and_handler(self, notifier):
        received = []
        handler = received.append
        subscription_id = notifier.subscribe(lambda e: received.append("by-id"))
        notifier.subscribe(handler)
        assert notifier.subscriber_count == 2

        assert notifier.unsubscribe(subscription_id) is True
        assert notifier.unsubscribe(handler) is True
        assert notifier.unsubscribe("sub-missing") is False

        notifier.publish(EventType.POOL_UPDATED, "a")
        assert received == []
        assert notifier.subscriber_count == 0

    def test_handler_may_unsubscribe_during_delivery(self, notifier):
        received = []

        def once(event):
            received.append(event.key)
            notifier.unsubscribe(once)

        notifier.subscribe(once)
        notifier.publish(EventType.POOL_UPDATED, "a")
        notifier.publish(EventType.POOL_UPDATED, "b")

        assert received == ["a"]

    def test_on_pool_updated_passes_key(self, notifier):
        keys = []
        notifier.on_pool_updated(keys.append)

        notifier.publish(EventType.FETCH_FAILED, "ignored")
        notifier.publish(EventType.POOL_UPDATED, "feed")

        assert keys == ["feed"]


@pytest.mark.asyncio
async def test_updates_follow_arrival_order(scheduler, clock):
    notifier = EventNotifier()
    keys = []
    notifier.on_pool_updated(keys.append)

    pools = [
        KeyPool(PoolPolicy(key=key, kind=PoolKind.VIDEO, capacity=2), scheduler, clock, notifier)
        for key in ("a", "b")
    ]
    for pool in pools:
        pool.refill_check()
    await scheduler.join()

    assert sorted(keys) == ["a", "a", "b", "b"]
    # Each pool's updates arrive one per enqueued item
    assert keys.count("a") == len(pools[0]) == 2


def test_observer_error_does_not_break_enqueue(fake_scheduler, clock, notifier):
    def broken(event):
        raise ValueError("nope")

    notifier.on_pool_updated(broken)
    pool = KeyPool(PoolPolicy(key="a", kind=PoolKind.VIDEO), fake_scheduler, clock, notifier)

    assert pool.enqueue("item") is True
    assert pool.peek_values() == ["item"]
    assert notifier.handler_errors == 1
