"""Build cache client for HTTP caches served through a CDN."""

from .client import BuildCacheError, BuildCacheService, CacheKey, create_cache_service

__all__ = ["BuildCacheError", "BuildCacheService", "CacheKey", "create_cache_service"]
