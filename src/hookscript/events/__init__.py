"""Observability for webhook dispatch.

Log sinks:
- LogSink: Abstract destination for script log lines
- StructlogSink: Writes lines through structlog
- MemoryLogSink: Records lines in memory

Metrics:
- HookMetrics: Container for all Prometheus metrics
- get_metrics: Get or create the metrics instance
- generate_metrics_output: Prometheus text for /metrics
"""

from hookscript.events.metrics import HookMetrics, generate_metrics_output, get_metrics
from hookscript.events.sink import LogSink, MemoryLogSink, StructlogSink

__all__ = [
    "LogSink",
    "StructlogSink",
    "MemoryLogSink",
    "HookMetrics",
    "get_metrics",
    "generate_metrics_output",
]
