"""
Shared metrics configuration for entity permission evaluation.
"""

from typing import Dict, Any, Optional
import threading

from prometheus_client import Counter, Histogram, CollectorRegistry


class MetricsCollector:
    """Prometheus collector for check invocations and expression evaluations."""

    def __init__(self, registry: Optional[CollectorRegistry] = None, enabled: bool = True):
        self.registry = registry
        self.enabled = enabled
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up permission metrics."""
        kwargs = {} if self.registry is None else {"registry": self.registry}

        self._metrics["check_invocations_total"] = Counter(
            "permission_check_invocations_total",
            "Total check predicate invocations",
            ["check", "outcome"],
            **kwargs
        )

        self._metrics["check_cache_hits_total"] = Counter(
            "permission_check_cache_hits_total",
            "Total check results served from the expression result cache",
            ["check"],
            **kwargs
        )

        self._metrics["expression_evaluations_total"] = Counter(
            "permission_expression_evaluations_total",
            "Total permission expression evaluations",
            ["permission", "result"],
            **kwargs
        )

        self._metrics["expression_evaluation_duration_seconds"] = Histogram(
            "permission_expression_evaluation_duration_seconds",
            "Permission expression evaluation duration in seconds",
            ["permission"],
            **kwargs
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_check_invocation(self, check: str, outcome: str):
        """Record one call into a check predicate."""
        if self.enabled:
            self._metrics["check_invocations_total"].labels(check=check, outcome=outcome).inc()

    def record_cache_hit(self, check: str):
        """Record a check result served from the cache."""
        if self.enabled:
            self._metrics["check_cache_hits_total"].labels(check=check).inc()

    def record_evaluation(self, permission: str, result: str, duration: float):
        """Record a completed expression evaluation."""
        if self.enabled:
            self._metrics["expression_evaluations_total"].labels(permission=permission, result=result).inc()
            self._metrics["expression_evaluation_duration_seconds"].labels(permission=permission).observe(duration)


_collector: Optional[MetricsCollector] = None
_collector_lock = threading.Lock()


def get_metrics_collector() -> MetricsCollector:
    """Get the process-wide collector registered on the default registry."""
    global _collector
    with _collector_lock:
        if _collector is None:
            from .config import get_config
            _collector = MetricsCollector(enabled=get_config().enable_metrics)
        return _collector
