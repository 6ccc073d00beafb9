"""
Base Fetch Provider

A fetch provider is the remote source of prefetched items. Pools only ever
call fetch(key); the provider is free to talk to any SDK or service.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional
import logging
from datetime import datetime

logger = logging.getLogger(__name__)


class FetchProvider(ABC):
    """
    Abstract base class for fetch providers

    fetch() may be called concurrently for different keys but never twice at
    once for the same key. Raising (or returning None) counts as a failed
    fetch for that key.
    """

    def __init__(self, provider_id: Optional[str] = None):
        self.provider_id = provider_id or self.__class__.__name__
        self.created_at = datetime.utcnow()

        # Statistics
        self.request_count = 0
        self.error_count = 0

    @abstractmethod
    async def fetch(self, key: str) -> Any:
        """
        Fetch one item for a pool key

        Args:
            key: The pool key the item is for

        Returns:
            The fetched item (opaque to the pool)

        Raises:
            Exception: any exception is recorded as a fetch failure
        """
        pass

    async def initialize(self) -> None:
        """One-time setup (SDK start, sessions); must finish before pools start"""
        pass

    async def shutdown(self) -> None:
        """Release resources held by the provider"""
        pass

    def get_stats(self) -> Dict[str, Any]:
        return {
            "provider_id": self.provider_id,
            "request_count": self.request_count,
            "error_count": self.error_count,
            "created_at": self.created_at.isoformat()
        }


class CallableFetchProvider(FetchProvider):
    """Adapts an async function `fn(key) -> item` to the provider interface"""

    def __init__(self, fn: Callable[[str], Awaitable[Any]], provider_id: Optional[str] = None):
        super().__init__(provider_id or getattr(fn, "__name__", None))
        self._fn = fn

    async def fetch(self, key: str) -> Any:
        self.request_count += 1
        try:
            return await self._fn(key)
        except Exception:
            self.error_count += 1
            raise
