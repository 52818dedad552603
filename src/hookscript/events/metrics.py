"""Prometheus metrics for webhook dispatch.

Metrics are exposed at the ``/metrics`` endpoint in Prometheus text format.

Metrics Defined:
- hookscript_requests_total: Counter of deliveries by dispatch result
- hookscript_events_total: Counter of classified deliveries by event label
- hookscript_evaluations_total: Counter of script evaluations by outcome
- hookscript_evaluation_duration_seconds: Histogram of evaluation time
- hookscript_exec_total: Counter of ``exec`` control function calls
"""

from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Evaluation time buckets, from 5ms up to 5 minutes. Scripts that shell out
# to slow commands land in the upper buckets.
DEFAULT_DURATION_BUCKETS = (
    0.005,
    0.01,
    0.05,
    0.1,
    0.5,
    1.0,
    5.0,
    10.0,
    30.0,
    60.0,
    300.0,
)

REQUEST_RESULTS = ("accepted", "unauthorized", "malformed")


class HookMetrics:
    """Container for all hookscript Prometheus metrics.

    Supports custom registries so tests do not collide with the default
    registry.

    Attributes:
        registry: The Prometheus registry for these metrics.
        requests_total: Counter for deliveries, labelled by result.
        events_total: Counter for classified deliveries, labelled by event.
        evaluations_total: Counter for evaluations, labelled by result.
        evaluation_duration_seconds: Histogram for evaluation duration.
        exec_total: Counter for exec calls, labelled by result.

    Example:
        >>> metrics = HookMetrics(registry=CollectorRegistry())
        >>> metrics.record_request("accepted")
        >>> metrics.record_evaluation(success=True, duration_seconds=0.2)
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY

        self.requests_total = Counter(
            "hookscript_requests_total",
            "Total number of webhook deliveries by dispatch result",
            labelnames=["result"],
            registry=self.registry,
        )

        self.events_total = Counter(
            "hookscript_events_total",
            "Total number of classified deliveries by event label",
            labelnames=["event"],
            registry=self.registry,
        )

        self.evaluations_total = Counter(
            "hookscript_evaluations_total",
            "Total number of script evaluations by outcome",
            labelnames=["result"],
            registry=self.registry,
        )

        self.evaluation_duration_seconds = Histogram(
            "hookscript_evaluation_duration_seconds",
            "Time spent evaluating the script for one event in seconds",
            buckets=DEFAULT_DURATION_BUCKETS,
            registry=self.registry,
        )

        self.exec_total = Counter(
            "hookscript_exec_total",
            "Total number of exec control function calls by outcome",
            labelnames=["result"],
            registry=self.registry,
        )

        for result in REQUEST_RESULTS:
            self.requests_total.labels(result=result)

    def record_request(self, result: str) -> None:
        """Record the dispatch result of one delivery.

        Args:
            result: One of "accepted", "unauthorized" or "malformed".
        """
        self.requests_total.labels(result=result).inc()

    def record_event(self, event_name: str) -> None:
        self.events_total.labels(event=event_name).inc()

    def record_evaluation(self, success: bool, duration_seconds: float) -> None:
        """Record the outcome and duration of one script evaluation."""
        result = "success" if success else "failure"
        self.evaluations_total.labels(result=result).inc()
        self.evaluation_duration_seconds.observe(duration_seconds)

    def record_exec(self, success: bool) -> None:
        result = "success" if success else "failure"
        self.exec_total.labels(result=result).inc()


# Global metrics instance for the default registry
_default_metrics: Optional[HookMetrics] = None


def get_metrics(registry: Optional[CollectorRegistry] = None) -> HookMetrics:
    """Get or create the metrics instance.

    Args:
        registry: Optional Prometheus registry. If None, returns the
                  global metrics instance for the default registry.

    Returns:
        HookMetrics: The metrics instance.
    """
    global _default_metrics

    if registry is not None:
        return HookMetrics(registry=registry)

    if _default_metrics is None:
        _default_metrics = HookMetrics()

    return _default_metrics


def generate_metrics_output(registry: Optional[CollectorRegistry] = None) -> bytes:
    """Generate Prometheus metrics output for the /metrics endpoint."""
    return generate_latest(registry or REGISTRY)
