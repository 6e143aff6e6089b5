"""Protocol client for CDN-fronted HTTP build caches."""

from .cdn import CdnCacheStatus
from .entries import BytesEntryReader, BytesEntryWriter, EntryReader, EntryWriter, FileEntryReader, FileEntryWriter
from .errors import BuildCacheError, describe_root_cause
from .factory import create_cache_service, create_http_client
from .keys import BuildCacheKey, CacheKey, locator_for
from .outcomes import (
    CacheAction,
    LoadAction,
    LoadFailure,
    LoadHit,
    LoadMiss,
    StoreAction,
    StoreFailure,
    StoreSuccess,
    StoreTooLarge,
)
from .service import BuildCacheService
from .streams import CountingStream, ResponseStream
from .tracker import CacheMetrics, MetricsTracker, summarize_actions

__all__ = [
    "BuildCacheError",
    "BuildCacheKey",
    "BuildCacheService",
    "BytesEntryReader",
    "BytesEntryWriter",
    "CacheAction",
    "CacheKey",
    "CacheMetrics",
    "CdnCacheStatus",
    "CountingStream",
    "EntryReader",
    "EntryWriter",
    "FileEntryReader",
    "FileEntryWriter",
    "LoadAction",
    "LoadFailure",
    "LoadHit",
    "LoadMiss",
    "MetricsTracker",
    "ResponseStream",
    "StoreAction",
    "StoreFailure",
    "StoreSuccess",
    "StoreTooLarge",
    "create_cache_service",
    "create_http_client",
    "describe_root_cause",
    "locator_for",
    "summarize_actions",
]
