"""Construction of HTTP clients and cache services from settings."""

from __future__ import annotations

import ssl
from typing import Optional, Sequence

import httpx
import structlog

from ..common.settings import BuildCacheSettings
from .reporting import LogMetricsReporter, MetricsReporter, PrometheusTextfileReporter
from .service import BuildCacheService
from .store_headers import merge_store_headers, s3_store_headers


LOGGER = structlog.get_logger("buildcache.http")

REDACTED_HEADERS = frozenset({"authorization", "proxy-authorization", "cookie", "set-cookie"})


def redact_headers(headers: httpx.Headers) -> dict[str, str]:
    return {
        name: ("[redacted]" if name.lower() in REDACTED_HEADERS else value)
        for name, value in headers.multi_items()
    }


def _on_request(request: httpx.Request) -> None:
    LOGGER.debug("http_request", method=request.method, url=str(request.url), headers=redact_headers(request.headers))


def _on_response(response: httpx.Response) -> None:
    LOGGER.debug(
        "http_response",
        method=response.request.method,
        url=str(response.request.url),
        status=response.status_code,
        headers=redact_headers(response.headers),
    )


def create_http_client(
    settings: BuildCacheSettings,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Provide an httpx.Client that logs request and response headers with credentials redacted."""

    limits = httpx.Limits(
        max_connections=settings.max_connections,
        max_keepalive_connections=max(1, settings.max_connections // 2),
    )

    verify: bool | ssl.SSLContext = True
    if settings.ca_bundle_path:
        verify = ssl.create_default_context(cafile=str(settings.ca_bundle_path))

    return httpx.Client(
        timeout=settings.timeout_seconds,
        limits=limits,
        verify=verify,
        transport=transport,
        event_hooks={"request": [_on_request], "response": [_on_response]},
    )


def resolve_store_headers(settings: BuildCacheSettings) -> dict[str, str]:
    return merge_store_headers(settings.store_headers, s3_store_headers(settings.s3_storage_class))


def create_cache_service(
    settings: BuildCacheSettings,
    *,
    http_client: Optional[httpx.Client] = None,
    reporters: Optional[Sequence[MetricsReporter]] = None,
) -> BuildCacheService:
    basic_auth = None
    if settings.username is not None and settings.password is not None:
        basic_auth = httpx.BasicAuth(settings.username, settings.password.get_secret_value())
    bearer_token = settings.bearer_token.get_secret_value() if settings.bearer_token else None

    if reporters is None:
        reporters = [LogMetricsReporter()]
        if settings.metrics_textfile:
            reporters.append(PrometheusTextfileReporter(settings.metrics_textfile))

    service = BuildCacheService(
        http_client or create_http_client(settings),
        str(settings.url),
        basic_auth=basic_auth,
        bearer_token=bearer_token,
        cdn_cache_header=settings.cdn_cache_header,
        max_entry_size=settings.max_entry_size,
        store_headers=resolve_store_headers(settings),
        reporters=reporters,
        owns_client=http_client is None,
    )
    LOGGER.info("cache_service_created", **service.describe())
    return service
