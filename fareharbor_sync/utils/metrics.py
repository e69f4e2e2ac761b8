"""
Prometheus Metrics

Provides application metrics in Prometheus text format:
- Webhook deliveries by event type and outcome
- Signature verification failures
- Booking writes by action
- Webhook processing duration
"""

from typing import Dict
import time
from collections import defaultdict
from threading import Lock


class Counter:
    """Simple counter metric."""

    def __init__(self, name: str, description: str, labels: tuple = ()):
        self.name = name
        self.description = description
        self.labels = labels
        self._values: Dict[tuple, float] = defaultdict(float)
        self._lock = Lock()

    def inc(self, value: float = 1, **label_values):
        """Increment counter."""
        key = tuple(label_values.get(l, '') for l in self.labels)
        with self._lock:
            self._values[key] += value

    def get_all(self) -> Dict[tuple, float]:
        """Get all values."""
        with self._lock:
            return dict(self._values)

    def reset(self):
        with self._lock:
            self._values.clear()


class Histogram:
    """Simple histogram metric."""

    DEFAULT_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float('inf'))

    def __init__(self, name: str, description: str, labels: tuple = (), buckets: tuple = None):
        self.name = name
        self.description = description
        self.labels = labels
        self.buckets = buckets or self.DEFAULT_BUCKETS
        self._counts: Dict[tuple, Dict[float, int]] = defaultdict(lambda: defaultdict(int))
        self._sums: Dict[tuple, float] = defaultdict(float)
        self._totals: Dict[tuple, int] = defaultdict(int)
        self._lock = Lock()

    def observe(self, value: float, **label_values):
        """Record an observation."""
        key = tuple(label_values.get(l, '') for l in self.labels)
        with self._lock:
            self._sums[key] += value
            self._totals[key] += 1
            for bucket in self.buckets:
                if value <= bucket:
                    self._counts[key][bucket] += 1

    def time(self, **label_values):
        """Context manager to time a block of code."""
        return _HistogramTimer(self, label_values)

    def get_all(self) -> Dict:
        """Get all values."""
        with self._lock:
            return {
                'counts': {k: dict(v) for k, v in self._counts.items()},
                'sums': dict(self._sums),
                'totals': dict(self._totals)
            }

    def reset(self):
        with self._lock:
            self._counts.clear()
            self._sums.clear()
            self._totals.clear()


class _HistogramTimer:
    """Context manager for timing code blocks."""

    def __init__(self, histogram: Histogram, label_values: dict):
        self.histogram = histogram
        self.label_values = label_values
        self.start_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.perf_counter() - self.start_time
        self.histogram.observe(duration, **self.label_values)


# ================================
# APPLICATION METRICS
# ================================

webhook_events_total = Counter(
    "webhook_events_total",
    "Webhook events received",
    labels=("event_type", "status")
)

webhook_signature_failures_total = Counter(
    "webhook_signature_failures_total",
    "Webhook requests rejected by signature verification"
)

bookings_upserted_total = Counter(
    "bookings_upserted_total",
    "Booking writes applied from webhooks",
    labels=("action",)
)

webhook_processing_seconds = Histogram(
    "webhook_processing_seconds",
    "Webhook processing duration in seconds",
    labels=("event_type",)
)


def _label_str(labels: tuple, key: tuple) -> str:
    return ",".join(f'{k}="{v}"' for k, v in zip(labels, key))


def _format_counter(lines: list, counter: Counter):
    lines.append(f"# HELP {counter.name} {counter.description}")
    lines.append(f"# TYPE {counter.name} counter")
    for key, value in counter.get_all().items():
        if counter.labels:
            lines.append(f"{counter.name}{{{_label_str(counter.labels, key)}}} {value}")
        else:
            lines.append(f"{counter.name} {value}")


def _format_histogram(lines: list, histogram: Histogram):
    data = histogram.get_all()
    lines.append(f"# HELP {histogram.name} {histogram.description}")
    lines.append(f"# TYPE {histogram.name} histogram")
    for key, total in data['totals'].items():
        label_str = _label_str(histogram.labels, key)
        counts = data['counts'].get(key, {})
        for bucket in histogram.buckets:
            le = "+Inf" if bucket == float('inf') else str(bucket)
            bucket_labels = f'{label_str},le="{le}"' if label_str else f'le="{le}"'
            lines.append(f"{histogram.name}_bucket{{{bucket_labels}}} {counts.get(bucket, 0)}")
        lines.append(f"{histogram.name}_sum{{{label_str}}} {data['sums'][key]}")
        lines.append(f"{histogram.name}_count{{{label_str}}} {total}")


def format_prometheus_metrics() -> str:
    """Format all metrics in Prometheus text format."""
    lines = []
    _format_counter(lines, webhook_events_total)
    _format_counter(lines, webhook_signature_failures_total)
    _format_counter(lines, bookings_upserted_total)
    _format_histogram(lines, webhook_processing_seconds)
    return "\n".join(lines) + "\n"


# ================================
# CONVENIENCE FUNCTIONS
# ================================

def record_webhook_event(event_type: str, success: bool):
    """Record a webhook event."""
    status = "success" if success else "error"
    webhook_events_total.inc(event_type=event_type, status=status)


def record_signature_failure():
    webhook_signature_failures_total.inc()


def record_booking_upsert(action: str):
    bookings_upserted_total.inc(action=action)
