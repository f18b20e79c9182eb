"""HTTP fetch capability and optional private HTTP cache."""

from .cache import CachedResponse, CacheStore, CachingFetcher, FileCacheStore, MemoryCacheStore, parse_cache_control
from .client import Fetcher, HttpClient

__all__ = [
    "Fetcher",
    "HttpClient",
    "CachingFetcher",
    "CachedResponse",
    "CacheStore",
    "MemoryCacheStore",
    "FileCacheStore",
    "parse_cache_control",
]
