"""
Pool events and the synchronous fan-out notifier

Every KeyPool publishes through one EventNotifier. POOL_UPDATED fires from
inside enqueue, so observers see updates in the order items arrived.
"""

import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Union

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Events published by key pools"""
    POOL_UPDATED = "pool:updated"
    FETCH_FAILED = "pool:fetch_failed"
    COOLDOWN_STARTED = "pool:cooldown_started"
    COOLDOWN_EXPIRED = "pool:cooldown_expired"
    ENTRIES_EXPIRED = "pool:entries_expired"


class PoolEvent(BaseModel):
    """Envelope for a pool event"""

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: EventType
    key: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    data: Dict[str, Any] = Field(default_factory=dict)


EventHandler = Callable[[PoolEvent], None]


class _Subscription:
    __slots__ = ("subscription_id", "handler", "event_types")

    def __init__(self, subscription_id: str, handler: EventHandler, event_types: Optional[Set[EventType]]):
        self.subscription_id = subscription_id
        self.handler = handler
        self.event_types = event_types

    def wants(self, event_type: EventType) -> bool:
        return self.event_types is None or event_type in self.event_types


class EventNotifier:
    """
    Broadcast signal for pool events

    Handlers are plain callables invoked synchronously in subscription
    order. A handler that raises is logged and skipped; it never breaks
    delivery to the remaining handlers or the pool operation that emitted.
    """

    def __init__(self):
        self._subscriptions: List[_Subscription] = []
        self.events_emitted = 0
        self.handler_errors = 0

    def subscribe(
        self,
        handler: EventHandler,
        event_types: Optional[Union[EventType, List[EventType], Set[EventType]]] = None
    ) -> str:
        """Subscribe a handler, optionally filtered to some event types"""
        if isinstance(event_types, EventType):
            event_types = {event_types}
        elif event_types is not None:
            event_types = set(event_types)

        subscription_id = f"sub-{uuid.uuid4().hex[:8]}"
        self._subscriptions.append(_Subscription(subscription_id, handler, event_types))
        return subscription_id

    def unsubscribe(self, handler_or_id: Union[str, EventHandler]) -> bool:
        """Remove a subscription by id or by handler; returns whether one was removed"""
        before = len(self._subscriptions)
        if isinstance(handler_or_id, str):
            self._subscriptions = [
                s for s in self._subscriptions if s.subscription_id != handler_or_id
            ]
        else:
            self._subscriptions = [
                s for s in self._subscriptions if s.handler != handler_or_id
            ]
        return len(self._subscriptions) < before

    def on_pool_updated(self, callback: Callable[[str], None]) -> str:
        """Subscribe to POOL_UPDATED with a callback that receives just the key"""
        return self.subscribe(lambda event: callback(event.key), EventType.POOL_UPDATED)

    def emit(self, event: PoolEvent) -> None:
        self.events_emitted += 1
        # Copy so handlers may (un)subscribe while being notified
        for subscription in list(self._subscriptions):
            if not subscription.wants(event.event_type):
                continue
            try:
                subscription.handler(event)
            except Exception as e:
                self.handler_errors += 1
                logger.error(
                    f"Event handler {subscription.subscription_id} failed on "
                    f"{event.event_type.value} for {event.key}: {e}"
                )

    def publish(self, event_type: EventType, key: str, **data: Any) -> PoolEvent:
        """Build and emit an event in one step"""
        event = PoolEvent(event_type=event_type, key=key, data=data)
        self.emit(event)
        return event

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)
