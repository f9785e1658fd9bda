"""
Prometheus metrics for silver-gate

Counters and histograms for entity loads, quarantine volume and batch runs.
All metrics live in a dedicated registry so tests and embedding
applications do not collide with the process-global default registry.
"""
import os

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# ENTITY LOAD METRICS
# =======================

records_processed_total = Counter(
    name="silver_records_processed_total",
    documentation="Total number of staging rows processed",
    labelnames=["entity", "status"],  # status: accepted, rejected
    registry=REGISTRY,
)

quarantined_records_total = Counter(
    name="silver_quarantined_records_total",
    documentation="Total number of rows routed to quarantine",
    labelnames=["entity", "reason"],
    registry=REGISTRY,
)

entity_load_duration_seconds = Histogram(
    name="silver_entity_load_duration_seconds",
    documentation="Time spent loading one entity in seconds",
    labelnames=["entity"],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
    registry=REGISTRY,
)

entity_loads_total = Counter(
    name="silver_entity_loads_total",
    documentation="Total number of entity loads",
    labelnames=["entity", "status"],  # status: OK, REJECTIONS, FAILED
    registry=REGISTRY,
)

quarantine_size = Gauge(
    name="silver_quarantine_size",
    documentation="Rows in quarantine after the latest load, per entity",
    labelnames=["entity"],
    registry=REGISTRY,
)

# =======================
# BATCH RUN METRICS
# =======================

batch_runs_total = Counter(
    name="silver_batch_runs_total",
    documentation="Total number of batch runs",
    labelnames=["state"],  # state: completed, failed
    registry=REGISTRY,
)

batch_run_duration_seconds = Histogram(
    name="silver_batch_run_duration_seconds",
    documentation="Wall time of a full batch run in seconds",
    buckets=[1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0],
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics in text format

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(REGISTRY)


def start_metrics_server(port: int | None = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    """
    Increment a counter metric

    Args:
        counter: Prometheus Counter metric
        value: Amount to increment (default: 1.0)
        **labels: Label values for the metric
    """
    counter.labels(**labels).inc(value)


def set_gauge(gauge: Gauge, value: float, **labels) -> None:
    gauge.labels(**labels).set(value)


def observe_histogram(histogram: Histogram, value: float, **labels) -> None:
    if labels:
        histogram.labels(**labels).observe(value)
    else:
        histogram.observe(value)


# =======================
# BATCH-SPECIFIC HELPERS
# =======================

def record_entity_load(
    entity: str,
    status: str,
    accepted: int,
    rejected_by_reason: dict[str, int],
    duration_seconds: float,
) -> None:
    """
    Record metrics for one entity load.

    Args:
        entity: Entity table name
        status: OK, REJECTIONS or FAILED
        accepted: Rows published to the cleansed store
        rejected_by_reason: Quarantined row counts per reason
        duration_seconds: Load duration in seconds
    """
    increment_counter(entity_loads_total, 1, entity=entity, status=status)
    observe_histogram(entity_load_duration_seconds, duration_seconds, entity=entity)

    if status == "FAILED":
        return

    rejected = sum(rejected_by_reason.values())
    increment_counter(records_processed_total, accepted, entity=entity, status="accepted")
    increment_counter(records_processed_total, rejected, entity=entity, status="rejected")
    for reason, count in rejected_by_reason.items():
        increment_counter(quarantined_records_total, count, entity=entity, reason=reason)
    set_gauge(quarantine_size, rejected, entity=entity)


def record_batch_run(state: str, duration_seconds: float) -> None:
    """
    Record the outcome of a batch run.

    Args:
        state: completed or failed
        duration_seconds: Run duration in seconds
    """
    increment_counter(batch_runs_total, 1, state=state)
    observe_histogram(batch_run_duration_seconds, duration_seconds)
