"""
Data model for prefetch pools

PoolPolicy is the immutable per-key configuration, PoolEntry is a single
buffered item and PoolState is a read-only snapshot of a pool's
refill/backoff state.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PoolKind(str, Enum):
    """Fetch behavior of a pool; only NATIVE items go stale"""
    NATIVE = "native"
    INTERSTITIAL = "interstitial"
    VIDEO = "video"

    @property
    def needs_expiry(self) -> bool:
        return self is PoolKind.NATIVE

    @property
    def default_stale_age(self) -> Optional[float]:
        if self is PoolKind.NATIVE:
            return 60 * 60.0
        return None


class PoolPolicy(BaseModel):
    """Per-key prefetch policy"""

    model_config = ConfigDict(frozen=True, extra="forbid")

    key: str = Field(min_length=1)
    kind: PoolKind = PoolKind.NATIVE

    # Max buffered items
    capacity: int = Field(default=2, ge=1)

    # Consecutive failures tolerated before the pool enters cooldown
    failure_threshold: int = Field(default=3, ge=1)

    # Seconds to wait before retrying once cooldown is entered
    cooldown_duration: float = Field(default=30.0, ge=0)

    # Max item age in seconds; only used when kind.needs_expiry
    stale_age: Optional[float] = Field(default=None, gt=0)

    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("key")
    @classmethod
    def _key_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("key must not be blank")
        return value

    @property
    def effective_stale_age(self) -> Optional[float]:
        if self.stale_age is not None:
            return self.stale_age
        return self.kind.default_stale_age

    @property
    def debug_info(self) -> str:
        return f"[key: {self.key}, kind: {self.kind.value}, capacity: {self.capacity}]"

    def __hash__(self) -> int:
        return hash(self.key)


@dataclass
class PoolEntry:
    """A fetched item and the clock time it was enqueued"""
    value: Any
    arrived_at: float

    def age(self, now: float) -> float:
        return now - self.arrived_at


@dataclass(frozen=True)
class PoolState:
    """Snapshot of a KeyPool at one instant"""
    key: str
    queue_length: int
    capacity: int
    is_fetching: bool
    consecutive_failures: int
    cooldown_until: Optional[float]
    active: bool

    @property
    def is_full(self) -> bool:
        return self.queue_length >= self.capacity

    @property
    def in_cooldown(self) -> bool:
        return self.cooldown_until is not None
