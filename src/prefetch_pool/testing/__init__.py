"""
Testing utilities for prefetch pools
"""

from prefetch_pool.testing.providers import ScriptedProvider, FAIL

__all__ = [
    "ScriptedProvider",
    "FAIL",
]
