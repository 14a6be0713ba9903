"""Metrics collection for the LM platform.

Provides a thin convenience wrapper around ``prometheus_client`` so the
service and the lifecycle manager record HTTP, lifecycle, embedding and
completion metrics consistently.

Design notes
- Metrics and labels are predeclared to avoid cardinality explosions
- A single registry is kept per collector (can be injected for testing)
"""

from typing import Iterable, Optional
from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry, generate_latest
import structlog

logger = structlog.get_logger("metrics")


class MetricsCollector:
    """Centralized metrics collection.

    Parameters
    - service_name: Logical name used for scoping/labels if desired
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self.request_count = Counter(
            'http_requests_total',
            'Total HTTP requests',
            ['method', 'endpoint', 'status'],
            registry=self.registry
        )

        self.request_duration = Histogram(
            'http_request_duration_seconds',
            'HTTP request duration',
            ['method', 'endpoint'],
            registry=self.registry
        )

        self.lifecycle_operations = Counter(
            'lm_lifecycle_operations_total',
            'Model lifecycle operations partitioned by outcome',
            ['model_name', 'operation', 'outcome'],
            registry=self.registry
        )

        self.lifecycle_duration = Histogram(
            'lm_lifecycle_operation_duration_seconds',
            'Model lifecycle operation duration',
            ['model_name', 'operation'],
            registry=self.registry
        )

        self.embedding_requests = Counter(
            'lm_embedding_requests_total',
            'Total embedding generation requests',
            ['model_name', 'outcome'],
            registry=self.registry
        )

        self.embedding_duration = Histogram(
            'lm_embedding_duration_seconds',
            'Embedding generation duration',
            ['model_name'],
            registry=self.registry
        )

        self.completion_requests = Counter(
            'lm_completion_requests_total',
            'Total completion requests',
            ['model_name', 'outcome'],
            registry=self.registry
        )

        self.completion_duration = Histogram(
            'lm_completion_duration_seconds',
            'Completion generation duration',
            ['model_name'],
            registry=self.registry
        )

        self.model_state = Gauge(
            'lm_model_state',
            'Current lifecycle state of the model (1 for the active state)',
            ['model_name', 'state'],
            registry=self.registry
        )

    def record_http_request(
        self,
        method: str,
        endpoint: str,
        status: int,
        duration: float
    ) -> None:
        """Record HTTP request metrics.

        duration is expected in seconds to match Prometheus histogram units.
        """
        self.request_count.labels(method=method, endpoint=endpoint, status=status).inc()
        self.request_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def record_lifecycle_operation(
        self,
        model_name: str,
        operation: str,
        outcome: str,
        duration: float
    ) -> None:
        """Record a download/initialize/unload attempt."""
        self.lifecycle_operations.labels(
            model_name=model_name, operation=operation, outcome=outcome
        ).inc()
        self.lifecycle_duration.labels(model_name=model_name, operation=operation).observe(duration)

    def record_embedding(self, model_name: str, outcome: str, duration: float) -> None:
        """Record embedding generation metrics."""
        self.embedding_requests.labels(model_name=model_name, outcome=outcome).inc()
        self.embedding_duration.labels(model_name=model_name).observe(duration)

    def record_completion(self, model_name: str, outcome: str, duration: float) -> None:
        """Record completion generation metrics."""
        self.completion_requests.labels(model_name=model_name, outcome=outcome).inc()
        self.completion_duration.labels(model_name=model_name).observe(duration)

    def set_model_state(self, model_name: str, state: str, all_states: Iterable[str]) -> None:
        """Flag ``state`` as active and zero out the others."""
        for name in all_states:
            self.model_state.labels(model_name=model_name, state=name).set(1 if name == state else 0)

    def get_metrics(self) -> str:
        """Get metrics in Prometheus exposition format for scraping."""
        return generate_latest(self.registry).decode('utf-8')


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector(service_name: str) -> MetricsCollector:
    """Get or create metrics collector for a service.

    Returns a process‑wide singleton to avoid duplicate collectors/labels.
    """
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector(service_name)
        logger.debug("Metrics collector created", service=service_name)
    return _metrics_collector
