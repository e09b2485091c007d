"""OpenTelemetry + Prometheus fallback wiring for the Agentboard backend."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI

from backend import config

logger = logging.getLogger("agentboard.observability")


_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_meter_provider: Any | None = None
_fastapi_instrumentor: Any | None = None

_listing_counter: Any | None = None
_listing_latency_hist: Any | None = None
_decode_failure_counter: Any | None = None
_cache_lookup_counter: Any | None = None

_prom_enabled = False
_prom_listing_counter: Any | None = None
_prom_listing_latency_hist: Any | None = None
_prom_decode_failure_counter: Any | None = None
_prom_cache_lookup_counter: Any | None = None


def _normalize_otlp_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip()
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    if endpoint.endswith("/v1"):
        return f"{endpoint}{signal_path[3:]}"
    return f"{endpoint}{signal_path}"


def _labels(**values: str) -> dict[str, str]:
    return {key: (value or "").strip() or "unknown" for key, value in values.items()}


def initialize(app: FastAPI | None = None) -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _meter_provider, _fastapi_instrumentor
    global _listing_counter, _listing_latency_hist, _decode_failure_counter, _cache_lookup_counter
    global _prom_enabled
    global _prom_listing_counter, _prom_listing_latency_hist, _prom_decode_failure_counter, _prom_cache_lookup_counter

    if _initialized:
        if _enabled and app and _fastapi_instrumentor:
            _fastapi_instrumentor.instrument_app(app)
        return

    _initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (AGENTBOARD_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    traces_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/traces")
    metrics_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/metrics")
    service_name = config.OTEL_SERVICE_NAME or "agentboard-backend"

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.namespace": "agentboard",
        }
    )

    trace_provider = TracerProvider(resource=resource)
    trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=traces_endpoint or None)))
    trace.set_tracer_provider(trace_provider)
    tracer = trace.get_tracer("agentboard.backend")

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=metrics_endpoint or None)
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("agentboard.backend")

    _listing_counter = meter.create_counter(
        "agentboard_session_listings_total",
        unit="1",
        description="Session listing calls by strategy and outcome",
    )
    _listing_latency_hist = meter.create_histogram(
        "agentboard_session_listing_latency_ms",
        unit="ms",
        description="Latency of paginated session listing",
    )
    _decode_failure_counter = meter.create_counter(
        "agentboard_log_decode_failures_total",
        unit="1",
        description="Session log lines that could not be decoded",
    )
    _cache_lookup_counter = meter.create_counter(
        "agentboard_cache_lookups_total",
        unit="1",
        description="Cache lookups by cache name and hit/miss",
    )

    _trace_provider = trace_provider
    _meter_provider = meter_provider
    _tracer = tracer
    _fastapi_instrumentor = FastAPIInstrumentor()
    _enabled = True

    if app:
        _fastapi_instrumentor.instrument_app(app)

    if config.PROM_PORT > 0:
        try:
            from prometheus_client import Counter, Histogram, start_http_server

            start_http_server(config.PROM_PORT)
            _prom_enabled = True
            _prom_listing_counter = Counter(
                "agentboard_session_listings_total",
                "Session listing calls by strategy and outcome",
                ["strategy", "result"],
            )
            _prom_listing_latency_hist = Histogram(
                "agentboard_session_listing_latency_ms",
                "Latency of paginated session listing",
                ["strategy", "result"],
            )
            _prom_decode_failure_counter = Counter(
                "agentboard_log_decode_failures_total",
                "Session log lines that could not be decoded",
                ["source"],
            )
            _prom_cache_lookup_counter = Counter(
                "agentboard_cache_lookups_total",
                "Cache lookups by cache name and hit/miss",
                ["cache", "outcome"],
            )
            logger.info("Prometheus fallback metrics server listening on port %s", config.PROM_PORT)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Prometheus fallback not started: %s", exc)
            _prom_enabled = False

    logger.info(
        "OpenTelemetry initialized (service=%s endpoint=%s)",
        service_name,
        config.OTEL_ENDPOINT,
    )


def shutdown(app: FastAPI | None = None) -> None:
    global _enabled
    if not _initialized:
        return
    try:
        if app and _fastapi_instrumentor:
            _fastapi_instrumentor.uninstrument_app(app)
    except Exception as exc:  # noqa: BLE001
        logger.debug("FastAPI uninstrument failed: %s", exc)
    for provider in (_meter_provider, _trace_provider):
        if provider is None:
            continue
        try:
            provider.shutdown()
        except Exception as exc:  # noqa: BLE001
            logger.debug("Telemetry provider shutdown failed: %s", exc)
    _enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _enabled or _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        yield span


def record_listing(strategy: str, result: str, duration_ms: float) -> None:
    labels = _labels(strategy=strategy, result=result)
    latency = max(0.0, float(duration_ms))
    if _enabled and _listing_counter is not None:
        _listing_counter.add(1, labels)
    if _enabled and _listing_latency_hist is not None:
        _listing_latency_hist.record(latency, labels)
    if _prom_enabled and _prom_listing_counter is not None:
        _prom_listing_counter.labels(**labels).inc()
    if _prom_enabled and _prom_listing_latency_hist is not None:
        _prom_listing_latency_hist.labels(**labels).observe(latency)


def record_decode_failure(source: str, count: int = 1) -> None:
    safe_count = max(0, int(count))
    if safe_count == 0:
        return
    labels = _labels(source=source)
    if _enabled and _decode_failure_counter is not None:
        _decode_failure_counter.add(safe_count, labels)
    if _prom_enabled and _prom_decode_failure_counter is not None:
        _prom_decode_failure_counter.labels(**labels).inc(safe_count)


def record_cache_lookup(cache: str, hit: bool) -> None:
    labels = _labels(cache=cache, outcome="hit" if hit else "miss")
    if _enabled and _cache_lookup_counter is not None:
        _cache_lookup_counter.add(1, labels)
    if _prom_enabled and _prom_cache_lookup_counter is not None:
        _prom_cache_lookup_counter.labels(**labels).inc()
