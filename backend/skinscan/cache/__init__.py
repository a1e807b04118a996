"""
SkinScan Cache
==============

Ingredient record persistence.
"""

from .store import CacheStore, InMemoryCacheStore, UpstashCacheStore, get_cache_store

__all__ = ["CacheStore", "InMemoryCacheStore", "UpstashCacheStore", "get_cache_store"]
