"""
Prometheus metrics collection for logpush

Counters and histograms for file uploads, bulk flushes and value
conversion, labelled by sink ("postgres" or "elasticsearch").
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
# FILE METRICS
# =======================

files_processed_total = Counter(
    name="logpush_files_processed_total",
    documentation="Total number of input files processed",
    labelnames=["sink", "status"],  # status: success, partial, failed
    registry=REGISTRY,
)

upload_duration_seconds = Histogram(
    name="logpush_upload_duration_seconds",
    documentation="Time spent uploading one file in seconds",
    labelnames=["sink"],
    buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0, 900.0],
    registry=REGISTRY,
)

throughput_lines_per_second = Gauge(
    name="logpush_throughput_lines_per_second",
    documentation="Throughput of the last completed file in lines per second",
    labelnames=["sink"],
    registry=REGISTRY,
)

# =======================
# FLUSH METRICS
# =======================

rows_flushed_total = Counter(
    name="logpush_rows_flushed_total",
    documentation="Total number of rows handed to a sink",
    labelnames=["sink"],
    registry=REGISTRY,
)

flush_duration_seconds = Histogram(
    name="logpush_flush_duration_seconds",
    documentation="Time spent in one bulk flush in seconds",
    labelnames=["sink"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0],
    registry=REGISTRY,
)

batch_size_rows = Histogram(
    name="logpush_batch_size_rows",
    documentation="Number of rows in each flushed batch",
    labelnames=["sink"],
    buckets=[1, 10, 100, 500, 1000, 5000, 10000, 50000],
    registry=REGISTRY,
)

# =======================
# CONVERSION METRICS
# =======================

conversion_errors_total = Counter(
    name="logpush_conversion_errors_total",
    documentation="Total number of values that could not be converted",
    labelnames=["kind"],
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
    # Lazy import: only needed when the endpoint is enabled
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


class track_duration:
    """
    Context manager for tracking operation duration

    Usage:
        with track_duration(flush_duration_seconds, sink="postgres"):
            ...
    """

    def __init__(self, histogram: Histogram, **labels):
        self.histogram = histogram
        self.labels = labels
        self.timer = None

    def __enter__(self):
        self.timer = self.histogram.labels(**self.labels).time()
        self.timer.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.timer.__exit__(exc_type, exc_val, exc_tb)
        return False


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
    histogram.labels(**labels).observe(value)


def record_flush(sink: str, rows: int) -> None:
    """
    Record one successful bulk flush.

    Args:
        sink: Sink label
        rows: Rows handed over by the flush
    """
    increment_counter(rows_flushed_total, rows, sink=sink)
    observe_histogram(batch_size_rows, rows, sink=sink)


def record_upload(sink: str, status: str, duration_seconds: float, lines: int) -> None:
    """
    Record the outcome of one file upload.

    Args:
        sink: Sink label
        status: success, partial or failed
        duration_seconds: Wall time spent on the file
        lines: Lines read from the file
    """
    increment_counter(files_processed_total, 1, sink=sink, status=status)
    observe_histogram(upload_duration_seconds, duration_seconds, sink=sink)
    if status == "success" and duration_seconds > 0:
        set_gauge(throughput_lines_per_second, lines / duration_seconds, sink=sink)


def record_conversion_error(kind: str) -> None:
    increment_counter(conversion_errors_total, 1, kind=kind)
