"""Logging and tracing setup for processes driving the build cache client."""

from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from structlog.contextvars import bind_contextvars

from .settings import BuildCacheSettings


PACKAGE_LOGGER = "buildcache"

_log_handler: Optional[logging.Handler] = None
_tracer_configured = False
_httpx_instrumented = False


def _log_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        numeric = logging.getLevelName(level.strip().upper())
        if isinstance(numeric, int):
            return numeric
    return logging.INFO


def configure_logging(settings: BuildCacheSettings, service_name: str = "buildcache") -> None:
    """Emit structlog JSON lines on stderr at ``settings.log_level``.

    stdout is left to command output, so ``--json`` payloads stay parseable.
    """

    global _log_handler
    level = _log_level(settings.log_level)
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if _log_handler is None:
        _log_handler = logging.StreamHandler(sys.stderr)
        _log_handler.setFormatter(logging.Formatter("%(message)s"))
        package_logger.addHandler(_log_handler)
    package_logger.setLevel(level)

    # httpx logs every request at INFO; the client's own hooks cover that at DEBUG.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.dict_tracebacks,
            structlog.processors.EventRenamer("message"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    bind_contextvars(service=service_name)


def configure_tracing(settings: BuildCacheSettings, service_name: str = "buildcache") -> None:
    """Install a tracer provider once and instrument outgoing httpx requests.

    Spans go to the OTLP endpoint when one is configured and are otherwise kept
    in memory. Sampling respects the parent span's decision.
    """

    global _tracer_configured, _httpx_instrumented
    if _tracer_configured:
        return

    if not isinstance(trace.get_tracer_provider(), TracerProvider):
        ratio = max(0.0, min(1.0, settings.otel_sampler_ratio))
        provider = TracerProvider(
            resource=Resource.create({"service.name": service_name}),
            sampler=ParentBased(TraceIdRatioBased(ratio)),
        )
        if settings.otel_exporter_endpoint:
            exporter = OTLPSpanExporter(
                endpoint=settings.otel_exporter_endpoint,
                headers=dict(settings.otel_exporter_headers),
            )
            provider.add_span_processor(BatchSpanProcessor(exporter))
        else:
            provider.add_span_processor(SimpleSpanProcessor(InMemorySpanExporter()))
        trace.set_tracer_provider(provider)
    _tracer_configured = True

    if not _httpx_instrumented:
        HTTPXClientInstrumentor().instrument()
        _httpx_instrumented = True
