"""Metrics collector for tracking pipeline throughput and failures."""
import threading
import time
from typing import Dict
from collections import defaultdict
import structlog

log = structlog.get_logger()


class HistogramSummary:
    """Running count/sum/min/max of observed values; keeps no individual samples."""

    __slots__ = ("count", "sum", "min", "max")

    def __init__(self):
        self.count = 0
        self.sum = 0.0
        self.min = float("inf")
        self.max = float("-inf")

    def observe(self, value: float):
        self.count += 1
        self.sum += value
        self.min = min(self.min, value)
        self.max = max(self.max, value)

    def as_dict(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "sum": self.sum,
            "avg": self.sum / self.count,
            "min": self.min,
            "max": self.max,
        }


class MetricsCollector:
    """
    Collects and aggregates metrics for the journal bridge.

    Tracks:
    - Journal events received, translated, skipped and failed
    - Flushed batches and their failures
    - Events dropped by compaction and the retention window
    - Submit latency

    Safe to use from the producer thread and flush workers at once.
    """

    def __init__(self):
        """Initialize metrics collector."""
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = defaultdict(int)
        self._gauges: Dict[str, float] = defaultdict(float)
        self._histograms: Dict[str, HistogramSummary] = defaultdict(HistogramSummary)
        self._start_time = time.time()

    def increment(self, metric: str, value: int = 1, labels: Dict[str, str] | None = None):
        """
        Increment a counter metric.

        Args:
            metric: Metric name
            value: Amount to increment by
            labels: Optional labels for the metric
        """
        key = self._make_key(metric, labels)
        with self._lock:
            self._counters[key] += value
        log.debug("metric.increment", metric=metric, value=value, labels=labels)

    def gauge(self, metric: str, value: float, labels: Dict[str, str] | None = None):
        """
        Set a gauge metric.

        Args:
            metric: Metric name
            value: Gauge value
            labels: Optional labels for the metric
        """
        key = self._make_key(metric, labels)
        with self._lock:
            self._gauges[key] = value
        log.debug("metric.gauge", metric=metric, value=value, labels=labels)

    def histogram(self, metric: str, value: float, labels: Dict[str, str] | None = None):
        """
        Record a histogram value.

        Args:
            metric: Metric name
            value: Value to record
            labels: Optional labels for the metric
        """
        key = self._make_key(metric, labels)
        with self._lock:
            self._histograms[key].observe(value)
        log.debug("metric.histogram", metric=metric, value=value, labels=labels)

    def record_latency(self, metric: str, start_time: float, labels: Dict[str, str] | None = None):
        """
        Record latency in milliseconds.

        Args:
            metric: Metric name
            start_time: Start timestamp
            labels: Optional labels for the metric
        """
        latency_ms = (time.time() - start_time) * 1000
        self.histogram(metric, latency_ms, labels)

    def counter_value(self, metric: str, labels: Dict[str, str] | None = None) -> int:
        """Current value of a counter (0 if never incremented)."""
        with self._lock:
            return self._counters.get(self._make_key(metric, labels), 0)

    def get_metrics(self) -> Dict:
        """
        Get all collected metrics.

        Returns:
            Dictionary of all metrics
        """
        with self._lock:
            uptime = time.time() - self._start_time
            counters = dict(self._counters)
            gauges = dict(self._gauges)
            histogram_stats = {
                key: summary.as_dict() for key, summary in self._histograms.items() if summary.count
            }

        return {
            "uptime_seconds": uptime,
            "counters": counters,
            "gauges": gauges,
            "histograms": histogram_stats,
        }

    def reset(self):
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()
            self._start_time = time.time()
        log.info("metrics.reset")

    @staticmethod
    def _make_key(metric: str, labels: Dict[str, str] | None) -> str:
        """
        Create a metric key with labels.

        Args:
            metric: Metric name
            labels: Optional labels

        Returns:
            Formatted metric key
        """
        if not labels:
            return metric

        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{metric}{{{label_str}}}"


# Global metrics collector instance
collector = MetricsCollector()


# Common metric names
EVENTS_RECEIVED_TOTAL = "events_received_total"
EVENTS_IGNORED_TOTAL = "events_ignored_total"
EVENTS_TRANSLATED_TOTAL = "events_translated_total"
EVENTS_SKIPPED_TOTAL = "events_skipped_total"
TRANSLATION_ERRORS_TOTAL = "translation_errors_total"
EVENTS_COMPACTED_TOTAL = "events_compacted_total"
EVENTS_EXPIRED_TOTAL = "events_expired_total"
BATCHES_SUBMITTED_TOTAL = "batches_submitted_total"
BATCHES_FAILED_TOTAL = "batches_failed_total"
QUEUE_SIZE = "queue_size"
SUBMIT_LATENCY_MS = "submit_latency_ms"
