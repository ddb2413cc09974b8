"""
Prometheus metrics collection for the appointment ETL pipeline

Counters and histograms live on a private registry so tests and embedding
processes never collide with the default prometheus_client registry.
"""
import os
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, start_http_server


# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# FILE METRICS
# =======================

# Files processed, one increment per file outcome
files_processed_total = Counter(
    name="appointment_etl_files_processed_total",
    documentation="Total number of source files processed",
    labelnames=["client_id", "outcome"],  # outcome: committed, rejected, failed
    registry=REGISTRY,
)

# Records seen by the pipeline
records_processed_total = Counter(
    name="appointment_etl_records_processed_total",
    documentation="Total number of appointment records handled",
    labelnames=["client_id", "status"],  # status: parsed, removed, skipped_row
    registry=REGISTRY,
)

# File processing duration
file_processing_duration_seconds = Histogram(
    name="appointment_etl_file_processing_duration_seconds",
    documentation="Time spent processing a single file in seconds",
    labelnames=["client_id"],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
    registry=REGISTRY,
)

# Poll cycle duration
poll_cycle_duration_seconds = Histogram(
    name="appointment_etl_poll_cycle_duration_seconds",
    documentation="Time spent on one poll cycle in seconds",
    labelnames=["client_id"],
    buckets=[1.0, 5.0, 10.0, 30.0, 60.0, 300.0, 900.0],
    registry=REGISTRY,
)

# Poll cycles aborted on a source connection failure
poll_cycles_aborted_total = Counter(
    name="appointment_etl_poll_cycles_aborted_total",
    documentation="Total number of poll cycles aborted before any file was touched",
    labelnames=["client_id"],
    registry=REGISTRY,
)

# =======================
# DATA QUALITY METRICS
# =======================

validation_failures_total = Counter(
    name="appointment_etl_validation_failures_total",
    documentation="Total number of records flagged by a validation rule",
    labelnames=["client_id", "rule_name"],
    registry=REGISTRY,
)

# =======================
# SIDE EFFECT METRICS
# =======================

archive_results_total = Counter(
    name="appointment_etl_archive_results_total",
    documentation="Total number of archive attempts by resulting state",
    labelnames=["client_id", "state"],  # state: archived, partial, failed, skipped
    registry=REGISTRY,
)

notify_failures_total = Counter(
    name="appointment_etl_notify_failures_total",
    documentation="Total number of scheduler notifications that could not be delivered",
    registry=REGISTRY,
)

retries_total = Counter(
    name="appointment_etl_retries_total",
    documentation="Total number of retry attempts on downstream calls",
    labelnames=["operation"],
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def start_metrics_server(port: Optional[int] = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    """
    Increment a counter metric, with or without labels
    """
    if labels:
        counter.labels(**labels).inc(value)
    else:
        counter.inc(value)


def observe_histogram(histogram: Histogram, value: float, **labels) -> None:
    histogram.labels(**labels).observe(value)


# =======================
# PIPELINE HELPERS
# =======================

def record_file_outcome(
    client_id: str,
    outcome: str,
    parsed_records: int,
    removed_records: int,
    duration_seconds: float,
) -> None:
    """
    Record the metrics for one processed file.

    Args:
        client_id: Client the file belongs to
        outcome: committed, rejected or failed
        parsed_records: Records produced by the parser
        removed_records: Records filtered out by validation
        duration_seconds: Wall time spent on the file
    """
    increment_counter(files_processed_total, 1, client_id=client_id, outcome=outcome)
    if parsed_records:
        increment_counter(records_processed_total, parsed_records, client_id=client_id, status="parsed")
    if removed_records:
        increment_counter(records_processed_total, removed_records, client_id=client_id, status="removed")
    observe_histogram(file_processing_duration_seconds, duration_seconds, client_id=client_id)


def record_rule_hits(client_id: str, rule_counts: dict[str, int]) -> None:
    """
    Record per-rule validation hits for one file.
    """
    for rule_name, count in rule_counts.items():
        if count:
            increment_counter(validation_failures_total, count, client_id=client_id, rule_name=rule_name)
