"""
Monitoring and metrics collection for crawls.
"""

import time
import logging
from typing import Dict, Optional, Any
from dataclasses import dataclass, field
from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry, generate_latest
from prometheus_client import start_http_server


@dataclass
class Metric:
    """Current value of one metric series."""
    name: str
    metric_type: str  # counter, gauge, histogram
    labels: Dict[str, str] = field(default_factory=dict)
    current_value: float = 0.0
    updated_at: float = 0.0


class MetricsCollector:
    """
    Collects crawler metrics.

    Every metric is mirrored in memory for summaries and in a private
    Prometheus registry, so several collectors can live in one process.
    """

    def __init__(self, prometheus_port: Optional[int] = None):
        self.logger = logging.getLogger(__name__)
        self.prometheus_port = prometheus_port
        self.metrics: Dict[str, Metric] = {}

        self.prometheus_registry = CollectorRegistry()
        self.prometheus_metrics = {
            'pages_crawled_total': Counter(
                'crawler_pages_crawled_total',
                'Total number of pages dispatched to a processor',
                registry=self.prometheus_registry
            ),
            'links_queued_total': Counter(
                'crawler_links_queued_total',
                'Total number of links pushed onto worker frontiers',
                registry=self.prometheus_registry
            ),
            'errors_total': Counter(
                'crawler_errors_total',
                'Total number of fatal worker errors',
                ['error_type'],
                registry=self.prometheus_registry
            ),
            'worker_outcomes_total': Counter(
                'crawler_worker_outcomes_total',
                'Workers finished, by final state',
                ['state'],
                registry=self.prometheus_registry
            ),
            'fetch_seconds': Histogram(
                'crawler_fetch_seconds',
                'Response time for HTTP requests',
                registry=self.prometheus_registry
            ),
            'active_workers': Gauge(
                'crawler_active_workers',
                'Number of running crawler workers',
                registry=self.prometheus_registry
            ),
        }

    def start_prometheus_server(self):
        """Start the Prometheus metrics HTTP server, if a port is configured."""
        if self.prometheus_port is None:
            return
        start_http_server(self.prometheus_port, registry=self.prometheus_registry)
        self.logger.info(f"Prometheus metrics server started on port {self.prometheus_port}")

    def _series(self, name: str, metric_type: str, labels: Optional[Dict[str, str]]) -> Metric:
        labels = labels or {}
        key = name + ''.join(f",{k}={v}" for k, v in sorted(labels.items()))
        if key not in self.metrics:
            self.metrics[key] = Metric(name=name, metric_type=metric_type, labels=labels)
        return self.metrics[key]

    def increment_counter(self, name: str, amount: float = 1.0,
                          labels: Optional[Dict[str, str]] = None):
        """Increment a counter metric."""
        series = self._series(name, 'counter', labels)
        series.current_value += amount
        series.updated_at = time.time()

        prom_metric = self.prometheus_metrics[name]
        if labels:
            prom_metric.labels(**labels).inc(amount)
        else:
            prom_metric.inc(amount)

    def set_gauge(self, name: str, value: float):
        """Set a gauge metric value."""
        series = self._series(name, 'gauge', None)
        series.current_value = value
        series.updated_at = time.time()
        self.prometheus_metrics[name].set(value)

    def observe_histogram(self, name: str, value: float):
        """Record a histogram observation. The in-memory value is the last observation."""
        series = self._series(name, 'histogram', None)
        series.current_value = value
        series.updated_at = time.time()
        self.prometheus_metrics[name].observe(value)

    def get_current_values(self) -> Dict[str, float]:
        """Get current values of all metric series."""
        return {key: metric.current_value for key, metric in self.metrics.items()}

    def export_text(self) -> bytes:
        """Render the registry in the Prometheus text format."""
        return generate_latest(self.prometheus_registry)


class CrawlerMonitor:
    """High-level monitoring interface used by workers and the orchestrator."""

    def __init__(self, metrics_collector: Optional[MetricsCollector] = None):
        self.metrics = metrics_collector or MetricsCollector()
        self.logger = logging.getLogger(__name__)
        self.start_time = time.time()
        self._active_workers = 0

    def record_page_crawled(self, url: str, fetch_time: float):
        """Record a dispatched page."""
        self.metrics.increment_counter('pages_crawled_total')
        self.metrics.observe_histogram('fetch_seconds', fetch_time)

    def record_links_queued(self, count: int):
        """Record links pushed onto a frontier."""
        if count:
            self.metrics.increment_counter('links_queued_total', count)

    def record_error(self, error_type: str):
        """Record a fatal worker error."""
        self.metrics.increment_counter('errors_total', labels={'error_type': error_type})

    def worker_started(self):
        self._active_workers += 1
        self.metrics.set_gauge('active_workers', self._active_workers)

    def worker_finished(self, state: str):
        self._active_workers -= 1
        self.metrics.set_gauge('active_workers', self._active_workers)
        self.metrics.increment_counter('worker_outcomes_total', labels={'state': state})

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        current_values = self.metrics.get_current_values()
        runtime = time.time() - self.start_time
        pages = current_values.get('pages_crawled_total', 0)

        return {
            'runtime_seconds': runtime,
            'metrics': current_values,
            'rates': {
                'pages_per_minute': pages / (runtime / 60) if runtime > 0 else 0,
            }
        }
