"""
Cache module for URL shortener.
Implements Strategy Pattern for flexible cache backends, plus the
cache-aside policy that owns key names and TTLs.
"""

from .strategies import CacheStrategy, RedisCache, InMemoryCache, NullCache
from .factory import CacheFactory, CacheBackend
from .policy import URLCachePolicy

__all__ = [
    "CacheStrategy",
    "RedisCache",
    "InMemoryCache",
    "NullCache",
    "CacheFactory",
    "CacheBackend",
    "URLCachePolicy",
]
