"""Metrics collection facade for the LM service.

Re-exports shared metrics utilities so the rest of the service can import
from a stable local path (``app.runtime.metrics``).
"""

from libs.common.metrics import MetricsCollector, get_metrics_collector  # noqa: F401
