from __future__ import annotations

from typing import Callable

import httpx
import pytest
import structlog

from buildcache.client.service import BuildCacheService
from buildcache.client.tracker import CacheMetrics


BASE_URL = "https://cdn.example.com/cache/"


class RecordingReporter:
    def __init__(self) -> None:
        self.reports: list[CacheMetrics] = []

    def report(self, metrics: CacheMetrics) -> None:
        self.reports.append(metrics)


class FakeClock:
    def __init__(self, step: float = 0.5) -> None:
        self.now = 100.0
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


@pytest.fixture
def requests_seen() -> list[httpx.Request]:
    return []


@pytest.fixture
def make_service(requests_seen) -> Callable[..., BuildCacheService]:
    """Build a service whose transport is a handler function; every request is recorded."""

    clients: list[httpx.Client] = []

    def _factory(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> BuildCacheService:
        def _recording_handler(request: httpx.Request) -> httpx.Response:
            requests_seen.append(request)
            return handler(request)

        client = httpx.Client(transport=httpx.MockTransport(_recording_handler))
        clients.append(client)
        kwargs.setdefault("reporters", [])
        return BuildCacheService(client, kwargs.pop("base_url", BASE_URL), **kwargs)

    yield _factory
    for client in clients:
        client.close()


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()
