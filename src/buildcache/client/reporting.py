"""Rendering of session metrics for humans and metric collectors."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import structlog

from ..common.metrics import MetricsRegistry, write_textfile
from .tracker import CacheLoadMetrics, CacheMetrics, CacheStoreMetrics


_SI_PREFIXES = "kMGTPE"


def format_byte_count(count: int) -> str:
    """Render a byte count with SI units, e.g. ``1.5 kB`` or ``20 MB``."""

    if count < 1000:
        return f"{count} B"
    value = float(count)
    exponent = 0
    while value >= 1000 and exponent < len(_SI_PREFIXES):
        value /= 1000
        exponent += 1
    rendered = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{rendered} {_SI_PREFIXES[exponent - 1]}B"


def format_load_summary(load: CacheLoadMetrics) -> str:
    hits = load.hit_metrics
    return (
        f"CDN build cache load metrics: {load.hit_percentage:.1f}% "
        f"{load.cache_misses} misses, {load.cache_hits} hits "
        f"({format_byte_count(hits.bytes)}, {int(hits.duration)}s; "
        f"CDN: {load.cdn_hit_percentage:.1f}% {hits.cdn_hits} hits, "
        f"{hits.cdn_misses} misses, {hits.cdn_unknown} unknown)"
    )


def format_store_summary(store: CacheStoreMetrics) -> str:
    return (
        f"CDN build cache store metrics: {store.store_requests} requests, "
        f"{format_byte_count(store.stored_bytes)}, {int(store.store_duration)}s; "
        f"skipped too large: {store.skipped_too_large} ({store.skipped_too_large_bytes} bytes)"
    )


def render_prometheus(metrics: CacheMetrics) -> str:
    load = metrics.load
    store = metrics.store
    registry = MetricsRegistry()
    registry.gauge("buildcache_load_requests", "Cache load requests answered with a hit or a miss", load.load_requests)
    registry.gauge("buildcache_load_hits", "Cache loads that returned an entry", load.cache_hits)
    registry.gauge("buildcache_load_misses", "Cache loads answered with 404", load.cache_misses)
    registry.gauge("buildcache_load_failures", "Cache loads that raised an error", load.load_failures)
    registry.gauge("buildcache_load_hit_bytes", "Bytes downloaded on cache hits", load.hit_metrics.bytes)
    registry.gauge("buildcache_load_hit_seconds", "Seconds spent downloading cache hits", load.hit_metrics.duration)
    registry.gauge("buildcache_cdn_hits", "Cache hits served from the CDN edge", load.hit_metrics.cdn_hits)
    registry.gauge("buildcache_cdn_misses", "Cache hits the CDN fetched from origin", load.hit_metrics.cdn_misses)
    registry.gauge("buildcache_cdn_unknown", "Cache hits without a recognised CDN status", load.hit_metrics.cdn_unknown)
    registry.gauge("buildcache_store_requests", "Successful cache stores", store.store_requests)
    registry.gauge("buildcache_store_bytes", "Bytes uploaded to the cache", store.stored_bytes)
    registry.gauge("buildcache_store_seconds", "Seconds spent uploading cache entries", store.store_duration)
    registry.gauge("buildcache_store_failures", "Cache stores that raised an error", store.store_failures)
    registry.gauge("buildcache_store_skipped_too_large", "Stores skipped for exceeding the size limit", store.skipped_too_large)
    registry.gauge(
        "buildcache_store_skipped_too_large_bytes",
        "Declared bytes of stores skipped for exceeding the size limit",
        store.skipped_too_large_bytes,
    )
    return registry.render()


class MetricsReporter(Protocol):
    def report(self, metrics: CacheMetrics) -> None: ...


class LogMetricsReporter:
    """Emit the load and store summary lines through structlog."""

    def __init__(self, logger=None) -> None:
        self._logger = logger or structlog.get_logger("buildcache.metrics")

    def report(self, metrics: CacheMetrics) -> None:
        load = metrics.load
        store = metrics.store
        self._logger.info(
            format_load_summary(load),
            load_requests=load.load_requests,
            cache_hits=load.cache_hits,
            cache_misses=load.cache_misses,
            load_failures=load.load_failures,
        )
        self._logger.info(
            format_store_summary(store),
            store_requests=store.store_requests,
            stored_bytes=store.stored_bytes,
            store_failures=store.store_failures,
            skipped_too_large=store.skipped_too_large,
        )


class PrometheusTextfileReporter:
    """Write the summary where a node-exporter textfile collector can scrape it."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    def report(self, metrics: CacheMetrics) -> None:
        write_textfile(self._path, render_prometheus(metrics))
