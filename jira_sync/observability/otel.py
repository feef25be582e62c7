"""OpenTelemetry + Prometheus fallback wiring for jira-sync."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

from jira_sync.config import SyncSettings

logger = logging.getLogger("jira_sync.observability")


_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_meter_provider: Any | None = None

_sync_counter: Any | None = None
_sync_latency_hist: Any | None = None
_parser_failure_counter: Any | None = None
_tracker_request_counter: Any | None = None

_prom_enabled = False
_prom_sync_counter: Any | None = None
_prom_sync_latency_hist: Any | None = None
_prom_parser_failure_counter: Any | None = None
_prom_tracker_request_counter: Any | None = None


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


def _prom_labels(*, project_key: str, **extra: str) -> dict[str, str]:
    labels = {"project": project_key or "unknown"}
    for key, value in extra.items():
        labels[key] = (value or "").strip() or "unknown"
    return labels


def initialize(settings: SyncSettings) -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _meter_provider
    global _sync_counter, _sync_latency_hist, _parser_failure_counter, _tracker_request_counter
    global _prom_enabled
    global _prom_sync_counter, _prom_sync_latency_hist, _prom_parser_failure_counter
    global _prom_tracker_request_counter

    if _initialized:
        return
    _initialized = True

    if not settings.otel_enabled:
        logger.info("OpenTelemetry disabled (JIRA_SYNC_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    traces_endpoint = _normalize_otlp_endpoint(settings.otel_endpoint, "/v1/traces")
    metrics_endpoint = _normalize_otlp_endpoint(settings.otel_endpoint, "/v1/metrics")
    service_name = settings.otel_service_name or "jira-sync"

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.namespace": "jira-sync",
        }
    )

    trace_provider = TracerProvider(resource=resource)
    trace_exporter = OTLPSpanExporter(endpoint=traces_endpoint or None)
    trace_provider.add_span_processor(BatchSpanProcessor(trace_exporter))
    trace.set_tracer_provider(trace_provider)
    tracer = trace.get_tracer("jira_sync")

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=metrics_endpoint or None)
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("jira_sync")

    _sync_counter = meter.create_counter(
        "jira_sync_files_total",
        unit="1",
        description="Count of processed files by outcome",
    )
    _sync_latency_hist = meter.create_histogram(
        "jira_sync_file_latency_ms",
        unit="ms",
        description="Time spent reconciling one file",
    )
    _parser_failure_counter = meter.create_counter(
        "jira_sync_parser_failures_total",
        unit="1",
        description="Count of files that could not be read",
    )
    _tracker_request_counter = meter.create_counter(
        "jira_sync_tracker_requests_total",
        unit="1",
        description="Jira REST calls by operation and status",
    )

    _trace_provider = trace_provider
    _meter_provider = meter_provider
    _tracer = tracer
    _enabled = True

    if settings.prom_port > 0:
        try:
            from prometheus_client import Counter, Histogram, start_http_server

            start_http_server(settings.prom_port)
            _prom_enabled = True
            _prom_sync_counter = Counter(
                "jira_sync_files_total",
                "Count of processed files by outcome",
                ["outcome", "project"],
            )
            _prom_sync_latency_hist = Histogram(
                "jira_sync_file_latency_ms",
                "Time spent reconciling one file",
                ["outcome", "project"],
            )
            _prom_parser_failure_counter = Counter(
                "jira_sync_parser_failures_total",
                "Count of files that could not be read",
                ["project"],
            )
            _prom_tracker_request_counter = Counter(
                "jira_sync_tracker_requests_total",
                "Jira REST calls by operation and status",
                ["operation", "status", "project"],
            )
            logger.info("Prometheus fallback metrics server listening on port %s", settings.prom_port)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Prometheus fallback not started: %s", exc)
            _prom_enabled = False

    logger.info(
        "OpenTelemetry initialized (service=%s endpoint=%s)",
        service_name,
        settings.otel_endpoint,
    )


def shutdown() -> None:
    global _enabled
    if not _initialized:
        return
    try:
        if _meter_provider is not None:
            _meter_provider.shutdown()
    except Exception as exc:  # noqa: BLE001
        logger.debug("Meter provider shutdown failed: %s", exc)
    try:
        if _trace_provider is not None:
            _trace_provider.shutdown()
    except Exception as exc:  # noqa: BLE001
        logger.debug("Trace provider shutdown failed: %s", exc)
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


def record_sync_outcome(outcome: str, duration_ms: float, *, project_key: str) -> None:
    labels = {
        "outcome": outcome or "unknown",
        "project_key": project_key or "unknown",
    }
    if _enabled and _sync_counter is not None:
        _sync_counter.add(1, labels)
    if _enabled and _sync_latency_hist is not None:
        _sync_latency_hist.record(max(0.0, float(duration_ms)), labels)
    if _prom_enabled and _prom_sync_counter is not None:
        prom = _prom_labels(project_key=project_key, outcome=outcome)
        _prom_sync_counter.labels(**prom).inc()
    if _prom_enabled and _prom_sync_latency_hist is not None:
        prom = _prom_labels(project_key=project_key, outcome=outcome)
        _prom_sync_latency_hist.labels(**prom).observe(max(0.0, float(duration_ms)))


def record_parser_failure(*, project_key: str) -> None:
    labels = {"project_key": project_key or "unknown"}
    if _enabled and _parser_failure_counter is not None:
        _parser_failure_counter.add(1, labels)
    if _prom_enabled and _prom_parser_failure_counter is not None:
        _prom_parser_failure_counter.labels(**_prom_labels(project_key=project_key)).inc()


def record_tracker_request(operation: str, status: int | None, *, project_key: str = "") -> None:
    status_label = str(status) if status is not None else "error"
    labels = {
        "operation": operation or "unknown",
        "status": status_label,
        "project_key": project_key or "unknown",
    }
    if _enabled and _tracker_request_counter is not None:
        _tracker_request_counter.add(1, labels)
    if _prom_enabled and _prom_tracker_request_counter is not None:
        prom = _prom_labels(project_key=project_key, operation=operation, status=status_label)
        _prom_tracker_request_counter.labels(**prom).inc()
