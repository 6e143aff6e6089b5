"""Session metrics for cache loads and stores.

Actions are appended to a lock-guarded log. Summaries are never maintained
incrementally: :func:`summarize_actions` folds an immutable snapshot of the log,
so a summary can be taken at any time while other threads keep recording.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Iterable

from .cdn import CdnCacheStatus
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


def _percentage(numerator: int, denominator: int) -> float:
    if denominator <= 0:
        return 0.0
    return numerator / denominator * 100


@dataclass(frozen=True, slots=True)
class CacheHitMetrics:
    bytes: int = 0
    duration: float = 0.0
    cdn_hits: int = 0
    cdn_misses: int = 0
    cdn_unknown: int = 0

    @property
    def hits(self) -> int:
        return self.cdn_hits + self.cdn_misses + self.cdn_unknown


@dataclass(frozen=True, slots=True)
class CacheLoadMetrics:
    cache_misses: int = 0
    hit_metrics: CacheHitMetrics = CacheHitMetrics()
    load_failures: int = 0

    @property
    def cache_hits(self) -> int:
        return self.hit_metrics.hits

    @property
    def load_requests(self) -> int:
        return self.cache_hits + self.cache_misses

    @property
    def hit_percentage(self) -> float:
        return _percentage(self.cache_hits, self.load_requests)

    @property
    def cdn_hit_percentage(self) -> float:
        return _percentage(self.hit_metrics.cdn_hits, self.cache_hits)


@dataclass(frozen=True, slots=True)
class CacheStoreMetrics:
    store_requests: int = 0
    stored_bytes: int = 0
    store_duration: float = 0.0
    skipped_too_large: int = 0
    skipped_too_large_bytes: int = 0
    store_failures: int = 0


@dataclass(frozen=True, slots=True)
class CacheMetrics:
    load: CacheLoadMetrics = CacheLoadMetrics()
    store: CacheStoreMetrics = CacheStoreMetrics()


def summarize_actions(actions: Iterable[CacheAction]) -> CacheMetrics:
    misses = load_failures = 0
    hit_bytes = 0
    hit_duration = 0.0
    cdn_counts = {status: 0 for status in CdnCacheStatus}

    store_requests = stored_bytes = 0
    store_duration = 0.0
    skipped = skipped_bytes = store_failures = 0

    for action in actions:
        match action:
            case LoadAction(outcome=LoadHit() as hit):
                hit_bytes += hit.bytes_transferred
                hit_duration += hit.duration
                cdn_counts[hit.cdn_status] += 1
            case LoadAction(outcome=LoadMiss()):
                misses += 1
            case LoadAction(outcome=LoadFailure()):
                load_failures += 1
            case StoreAction(outcome=StoreSuccess() as success):
                store_requests += 1
                stored_bytes += success.bytes_stored
                store_duration += success.duration
            case StoreAction(outcome=StoreTooLarge() as too_large):
                skipped += 1
                skipped_bytes += too_large.declared_size
            case StoreAction(outcome=StoreFailure()):
                store_failures += 1
            case _:
                raise TypeError(f"Unsupported cache action: {action!r}")

    hit_metrics = CacheHitMetrics(
        bytes=hit_bytes,
        duration=hit_duration,
        cdn_hits=cdn_counts[CdnCacheStatus.HIT],
        cdn_misses=cdn_counts[CdnCacheStatus.MISS],
        cdn_unknown=cdn_counts[CdnCacheStatus.UNKNOWN],
    )
    return CacheMetrics(
        load=CacheLoadMetrics(cache_misses=misses, hit_metrics=hit_metrics, load_failures=load_failures),
        store=CacheStoreMetrics(
            store_requests=store_requests,
            stored_bytes=stored_bytes,
            store_duration=store_duration,
            skipped_too_large=skipped,
            skipped_too_large_bytes=skipped_bytes,
            store_failures=store_failures,
        ),
    )


class MetricsTracker:
    """Thread-safe append-only log of cache actions."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._actions: list[CacheAction] = []

    def record(self, action: CacheAction) -> None:
        if not isinstance(action, (LoadAction, StoreAction)):
            raise TypeError(f"Unsupported cache action: {action!r}")
        with self._lock:
            self._actions.append(action)

    def actions(self) -> tuple[CacheAction, ...]:
        with self._lock:
            return tuple(self._actions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._actions)

    def summarize(self) -> CacheMetrics:
        return summarize_actions(self.actions())
