"""
Fetch providers
"""

from prefetch_pool.providers.base import FetchProvider, CallableFetchProvider
from prefetch_pool.providers.http_provider import HttpFetchProvider

__all__ = ["FetchProvider", "CallableFetchProvider", "HttpFetchProvider"]
