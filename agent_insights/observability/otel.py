"""OpenTelemetry + Prometheus fallback wiring for the insights backend."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

from agent_insights import config

logger = logging.getLogger("insights.observability")


_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_meter_provider: Any | None = None
_fastapi_instrumentor: Any | None = None

_load_counter: Any | None = None
_load_latency_hist: Any | None = None
_parser_failure_counter: Any | None = None
_conversations_counter: Any | None = None

_prom_enabled = False
_prom_load_counter: Any | None = None
_prom_load_latency_hist: Any | None = None
_prom_parser_failure_counter: Any | None = None
_prom_conversations_counter: Any | None = None


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


def _start_prometheus_fallback() -> None:
    global _prom_enabled
    global _prom_load_counter, _prom_load_latency_hist, _prom_parser_failure_counter, _prom_conversations_counter

    try:
        from prometheus_client import Counter, Histogram, start_http_server

        start_http_server(config.PROM_PORT)
        _prom_load_counter = Counter(
            "insights_loads_total",
            "Count of full conversation loads",
            ["trigger", "result"],
        )
        _prom_load_latency_hist = Histogram(
            "insights_load_latency_ms",
            "Latency of full conversation loads",
            ["trigger", "result"],
        )
        _prom_parser_failure_counter = Counter(
            "insights_parser_failures_total",
            "Count of skipped files and malformed records",
            ["parser"],
        )
        _prom_conversations_counter = Counter(
            "insights_conversations_loaded_total",
            "Conversations normalized per source",
            ["source"],
        )
        _prom_enabled = True
        logger.info("Prometheus fallback metrics server listening on port %s", config.PROM_PORT)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Prometheus fallback not started: %s", exc)
        _prom_enabled = False


def initialize(app: Any | None = None) -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _meter_provider, _fastapi_instrumentor
    global _load_counter, _load_latency_hist, _parser_failure_counter, _conversations_counter

    if _initialized:
        if _enabled and app and _fastapi_instrumentor:
            _fastapi_instrumentor.instrument_app(app)
        return

    _initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (INSIGHTS_OTEL_ENABLED=false)")
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
    service_name = config.OTEL_SERVICE_NAME or "agent-insights"

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.namespace": "agent-insights",
        }
    )

    trace_provider = TracerProvider(resource=resource)
    trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=traces_endpoint or None)))
    trace.set_tracer_provider(trace_provider)

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=metrics_endpoint or None)
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("insights.backend")

    _load_counter = meter.create_counter(
        "insights_loads_total",
        unit="1",
        description="Count of full conversation loads",
    )
    _load_latency_hist = meter.create_histogram(
        "insights_load_latency_ms",
        unit="ms",
        description="Latency of full conversation loads",
    )
    _parser_failure_counter = meter.create_counter(
        "insights_parser_failures_total",
        unit="1",
        description="Count of skipped files and malformed records",
    )
    _conversations_counter = meter.create_counter(
        "insights_conversations_loaded_total",
        unit="1",
        description="Conversations normalized per source",
    )

    _trace_provider = trace_provider
    _meter_provider = meter_provider
    _tracer = trace.get_tracer("insights.backend")
    _fastapi_instrumentor = FastAPIInstrumentor()
    _enabled = True

    if app:
        _fastapi_instrumentor.instrument_app(app)

    if config.PROM_PORT > 0:
        _start_prometheus_fallback()

    logger.info(
        "OpenTelemetry initialized (service=%s endpoint=%s)",
        service_name,
        config.OTEL_ENDPOINT,
    )


def shutdown(app: Any | None = None) -> None:
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


def record_load(trigger: str, result: str, duration_ms: float) -> None:
    labels = {
        "trigger": trigger or "unknown",
        "result": result or "unknown",
    }
    if _enabled and _load_counter is not None:
        _load_counter.add(1, labels)
    if _enabled and _load_latency_hist is not None:
        _load_latency_hist.record(max(0.0, float(duration_ms)), labels)
    if _prom_enabled and _prom_load_counter is not None:
        _prom_load_counter.labels(**labels).inc()
    if _prom_enabled and _prom_load_latency_hist is not None:
        _prom_load_latency_hist.labels(**labels).observe(max(0.0, float(duration_ms)))


def record_parser_failure(parser: str) -> None:
    labels = {"parser": parser or "unknown"}
    if _enabled and _parser_failure_counter is not None:
        _parser_failure_counter.add(1, labels)
    if _prom_enabled and _prom_parser_failure_counter is not None:
        _prom_parser_failure_counter.labels(**labels).inc()


def record_conversations_loaded(source: str, count: int) -> None:
    safe_count = max(0, int(count))
    if safe_count == 0:
        return
    labels = {"source": source or "unknown"}
    if _enabled and _conversations_counter is not None:
        _conversations_counter.add(safe_count, labels)
    if _prom_enabled and _prom_conversations_counter is not None:
        _prom_conversations_counter.labels(**labels).inc(safe_count)
