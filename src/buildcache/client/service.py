"""HTTP build cache service addressing entries by key below a CDN-fronted base URL."""

from __future__ import annotations

import tempfile
import threading
import time
from typing import BinaryIO, Callable, Iterator, Mapping, Optional, Sequence

import httpx
import structlog
from opentelemetry import trace

from ..common.settings import DEFAULT_CDN_CACHE_HEADER, DEFAULT_MAX_ENTRY_SIZE
from .cdn import CdnCacheStatus
from .entries import EntryReader, EntryWriter
from .errors import BuildCacheError, describe_root_cause, status_line
from .keys import KeyLike, locator_for
from .outcomes import (
    LoadAction,
    LoadFailure,
    LoadHit,
    LoadMiss,
    LoadOutcome,
    StoreAction,
    StoreFailure,
    StoreOutcome,
    StoreSuccess,
    StoreTooLarge,
    describe_action,
)
from .reporting import LogMetricsReporter, MetricsReporter
from .streams import CountingStream, ResponseStream
from .tracker import CacheMetrics, MetricsTracker


BUILD_CACHE_CONTENT_TYPE = "application/vnd.gradle.build-cache-artifact.v2"
ACCEPT_HEADER_VALUE = f"{BUILD_CACHE_CONTENT_TYPE},*/*"
SPOOL_MEMORY_BYTES = 4 * 1024 * 1024
TRANSFER_CHUNK_SIZE = 64 * 1024

LOGGER = structlog.get_logger("buildcache.client")
TRACER = trace.get_tracer("buildcache.client")


def _iter_chunks(handle: BinaryIO) -> Iterator[bytes]:
    while True:
        chunk = handle.read(TRANSFER_CHUNK_SIZE)
        if not chunk:
            return
        yield chunk


class BuildCacheService:
    """Load and store build cache entries with one synchronous HTTP exchange per call.

    Every call appends exactly one action to the session's :class:`MetricsTracker`.
    Misses and oversized entries are not errors; unexpected statuses raise
    :class:`BuildCacheError`, and every failure is recorded before it is re-raised.
    ``close`` hands the session summary to the configured reporters.
    """

    def __init__(
        self,
        http_client: httpx.Client,
        base_url: httpx.URL | str,
        *,
        basic_auth: Optional[httpx.BasicAuth] = None,
        bearer_token: Optional[str] = None,
        cdn_cache_header: str = DEFAULT_CDN_CACHE_HEADER,
        max_entry_size: int = DEFAULT_MAX_ENTRY_SIZE,
        store_headers: Optional[Mapping[str, str]] = None,
        tracker: Optional[MetricsTracker] = None,
        reporters: Optional[Sequence[MetricsReporter]] = None,
        owns_client: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._http = http_client
        self._base_url = httpx.URL(str(base_url))
        self._basic_auth = basic_auth
        self._bearer_token = bearer_token
        self._cdn_cache_header = cdn_cache_header
        self._max_entry_size = max_entry_size
        self._store_headers = dict(store_headers or {})
        self._tracker = tracker or MetricsTracker()
        self._reporters = list(reporters) if reporters is not None else [LogMetricsReporter()]
        self._owns_client = owns_client
        self._clock = clock
        self._close_lock = threading.Lock()
        self._closed = False

    @property
    def tracker(self) -> MetricsTracker:
        return self._tracker

    def locator(self, key: KeyLike) -> httpx.URL:
        return locator_for(self._base_url, key)

    def metrics(self) -> CacheMetrics:
        return self._tracker.summarize()

    def describe(self) -> dict[str, str]:
        return {
            "type": "Content Delivery Network (CDN)",
            "url": str(self._base_url),
            "cdn_cache_header": self._cdn_cache_header,
            "max_entry_size": str(self._max_entry_size),
            "store_headers": str(self._store_headers),
        }

    def load(self, key: KeyLike, reader: EntryReader) -> bool:
        """Fetch ``key`` into ``reader``; ``False`` means the cache has no such entry."""

        url = self._base_url
        with TRACER.start_as_current_span("buildcache.load") as span:
            start = self._clock()
            try:
                url = self.locator(key)
                span.set_attribute("buildcache.url", str(url))
                outcome = self._load(url, reader, start)
            except Exception as exc:
                error = describe_root_cause(exc)
                self._tracker.record(LoadAction(url, LoadFailure(error)))
                LOGGER.warning("cache_load_failed", url=str(url), error=error)
                raise
            action = LoadAction(url, outcome)
            self._tracker.record(action)
            fields = describe_action(action)
            span.set_attribute("buildcache.result", str(fields["result"]))
            LOGGER.debug("cache_load", **fields)
        return isinstance(outcome, LoadHit)

    def _load(self, url: httpx.URL, reader: EntryReader, start: float) -> LoadOutcome:
        headers = self._with_bearer(httpx.Headers({"Accept": ACCEPT_HEADER_VALUE}))
        with self._http.stream("GET", url, headers=headers, auth=self._basic_auth) as response:
            if response.is_success:
                stream = CountingStream(ResponseStream(response.iter_bytes()))
                reader.read_from(stream)  # type: ignore[arg-type]
                return LoadHit(
                    bytes_transferred=stream.count,
                    duration=self._clock() - start,
                    cdn_status=CdnCacheStatus.from_header(response.headers.get(self._cdn_cache_header)),
                )
            response.read()
            if response.status_code == httpx.codes.NOT_FOUND:
                return LoadMiss(status_line(response))
            raise BuildCacheError.from_response(response)

    def store(self, key: KeyLike, writer: EntryWriter) -> None:
        """Upload ``writer`` under ``key``; entries above the size limit are skipped."""

        url = self._base_url
        with TRACER.start_as_current_span("buildcache.store") as span:
            start = self._clock()
            try:
                url = self.locator(key)
                span.set_attribute("buildcache.url", str(url))
                size = writer.size
                span.set_attribute("buildcache.bytes", size)
                if size > self._max_entry_size:
                    outcome: StoreOutcome = StoreTooLarge(size)
                else:
                    outcome = self._store(url, writer, size, start)
            except Exception as exc:
                error = describe_root_cause(exc)
                self._tracker.record(StoreAction(url, StoreFailure(error)))
                LOGGER.warning("cache_store_failed", url=str(url), error=error)
                raise
            action = StoreAction(url, outcome)
            self._tracker.record(action)
            fields = describe_action(action)
            span.set_attribute("buildcache.result", str(fields["result"]))
            LOGGER.debug("cache_store", max_entry_size=self._max_entry_size, **fields)

    def _store(self, url: httpx.URL, writer: EntryWriter, size: int, start: float) -> StoreSuccess:
        headers = httpx.Headers(self._store_headers)
        headers["Content-Type"] = BUILD_CACHE_CONTENT_TYPE
        headers["Content-Length"] = str(size)
        headers = self._with_bearer(headers)
        with tempfile.SpooledTemporaryFile(max_size=SPOOL_MEMORY_BYTES) as spool:
            writer.write_to(spool)  # type: ignore[arg-type]
            produced = spool.tell()
            if produced != size:
                raise BuildCacheError(f"Cache entry declared {size} bytes but produced {produced}")
            spool.seek(0)
            response = self._http.put(
                url,
                content=_iter_chunks(spool),  # type: ignore[arg-type]
                headers=headers,
                auth=self._basic_auth,
            )
        if not response.is_success:
            raise BuildCacheError.from_response(response)
        return StoreSuccess(bytes_stored=size, duration=self._clock() - start)

    def close(self) -> None:
        """Report the session summary. Never raises; later calls are no-ops."""

        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        metrics: Optional[CacheMetrics] = None
        try:
            for action in self._tracker.actions():
                LOGGER.debug("cache_action", **describe_action(action))
            metrics = self._tracker.summarize()
        except Exception:  # noqa: BLE001 - close must not fail the build
            LOGGER.exception("cache_metrics_summary_failed")

        if metrics is not None:
            for reporter in self._reporters:
                try:
                    reporter.report(metrics)
                except Exception:  # noqa: BLE001 - one broken reporter must not stop the others
                    LOGGER.exception("cache_metrics_report_failed", reporter=type(reporter).__name__)

        if self._owns_client:
            try:
                self._http.close()
            except Exception:  # noqa: BLE001
                LOGGER.exception("cache_http_client_close_failed")

    def __enter__(self) -> "BuildCacheService":
        return self

    def __exit__(self, *_exc_info) -> None:
        self.close()

    def _with_bearer(self, headers: httpx.Headers) -> httpx.Headers:
        # Basic auth, when configured, is applied by httpx and wins over the token.
        if self._basic_auth is None and self._bearer_token:
            headers["Authorization"] = f"Bearer {self._bearer_token}"
        return headers
