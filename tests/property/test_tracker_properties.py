"""Property-based tests for the session metrics tracker."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest
from hypothesis import given, strategies as st

from buildcache.client.cdn import CdnCacheStatus
from buildcache.client.entries import BytesEntryWriter
from buildcache.client.outcomes import (
    LoadAction,
    LoadFailure,
    LoadHit,
    LoadMiss,
    StoreAction,
    StoreFailure,
    StoreSuccess,
    StoreTooLarge,
)
from buildcache.client.service import BuildCacheService
from buildcache.client.tracker import MetricsTracker, summarize_actions


URL = httpx.URL("https://cdn.example.com/cache/abc")

sizes = st.integers(min_value=0, max_value=10**9)
durations = st.floats(min_value=0.0, max_value=600.0, allow_nan=False)
load_outcomes = st.one_of(
    st.builds(LoadHit, sizes, durations, st.sampled_from(list(CdnCacheStatus))),
    st.builds(LoadMiss, st.text(max_size=20)),
    st.builds(LoadFailure, st.text(max_size=20)),
)
store_outcomes = st.one_of(
    st.builds(StoreSuccess, sizes, durations),
    st.builds(StoreTooLarge, sizes),
    st.builds(StoreFailure, st.text(max_size=20)),
)
actions = st.lists(
    st.one_of(
        load_outcomes.map(lambda outcome: LoadAction(URL, outcome)),
        store_outcomes.map(lambda outcome: StoreAction(URL, outcome)),
    ),
    max_size=60,
)


@given(actions)
def test_summary_invariants(recorded) -> None:
    metrics = summarize_actions(recorded)
    load = metrics.load
    hits = load.hit_metrics

    assert load.load_requests == load.cache_hits + load.cache_misses
    assert load.cache_hits == hits.cdn_hits + hits.cdn_misses + hits.cdn_unknown
    assert 0.0 <= load.hit_percentage <= 100.0
    if load.load_requests == 0:
        assert load.hit_percentage == 0.0
    if load.cache_hits == 0:
        assert load.cdn_hit_percentage == 0.0

    load_total = sum(isinstance(action, LoadAction) for action in recorded)
    store_total = len(recorded) - load_total
    assert load.load_requests + load.load_failures == load_total
    store = metrics.store
    assert store.store_requests + store.skipped_too_large + store.store_failures == store_total


@given(actions)
def test_summary_is_order_independent_for_counts(recorded) -> None:
    forward = summarize_actions(recorded)
    backward = summarize_actions(list(reversed(recorded)))
    assert forward.load.cache_hits == backward.load.cache_hits
    assert forward.load.cache_misses == backward.load.cache_misses
    assert forward.store.stored_bytes == backward.store.stored_bytes
    assert forward.store.skipped_too_large_bytes == backward.store.skipped_too_large_bytes


@pytest.mark.parametrize("count", [1, 10, 100])
def test_concurrent_records_are_not_lost(count: int) -> None:
    tracker = MetricsTracker()
    barrier = threading.Barrier(min(count, 16))

    def _record(index: int) -> None:
        if index < barrier.parties:
            barrier.wait()
        tracker.record(StoreAction(URL, StoreSuccess(index, 0.0)))

    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(_record, range(count)))

    metrics = tracker.summarize()
    assert metrics.store.store_requests == count
    assert metrics.store.stored_bytes == sum(range(count))


def test_summaries_taken_during_appends_are_consistent() -> None:
    tracker = MetricsTracker()
    stop = threading.Event()
    observed: list[int] = []

    def _append() -> None:
        for _ in range(2000):
            tracker.record(LoadAction(URL, LoadHit(1, 0.0, CdnCacheStatus.HIT)))
        stop.set()

    writer = threading.Thread(target=_append)
    writer.start()
    while not stop.is_set():
        metrics = tracker.summarize()
        assert metrics.load.cache_hits == metrics.load.hit_metrics.bytes
        observed.append(metrics.load.cache_hits)
    writer.join()

    assert observed == sorted(observed)
    assert tracker.summarize().load.cache_hits == 2000


@pytest.mark.parametrize("count", [1, 10, 100])
def test_concurrent_service_stores_are_all_recorded(count: int) -> None:
    received: list[bytes] = []
    received_lock = threading.Lock()

    def handler(request: httpx.Request) -> httpx.Response:
        body = request.read()
        with received_lock:
            received.append(body)
        return httpx.Response(201)

    barrier = threading.Barrier(min(count, 16))
    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        service = BuildCacheService(client, "https://cdn.example.com/cache/", reporters=[])

        def _store(index: int) -> None:
            if index < barrier.parties:
                barrier.wait()
            service.store(f"key-{index}", BytesEntryWriter(b"x" * index))

        with ThreadPoolExecutor(max_workers=16) as pool:
            list(pool.map(_store, range(count)))

        actions = service.tracker.actions()
        metrics = service.metrics()

    assert len(actions) == count
    assert len(received) == count
    assert {str(action.locator) for action in actions} == {
        f"https://cdn.example.com/cache/key-{index}" for index in range(count)
    }
    assert metrics.store.store_requests == count
    assert metrics.store.stored_bytes == sum(range(count))
    assert metrics.store.store_failures == 0
