"""Unit tests for metrics and log sinks."""

import threading
from unittest.mock import patch

from prometheus_client import CollectorRegistry

from hookscript.events.metrics import generate_metrics_output, get_metrics
from hookscript.events.sink import MemoryLogSink, StructlogSink


class TestHookMetrics:

    def test_request_results_start_at_zero(self, registry, metrics):
        for result in ("accepted", "unauthorized", "malformed"):
            assert registry.get_sample_value(
                "hookscript_requests_total", {"result": result}
            ) == 0

    def test_record_request(self, registry, metrics):
        metrics.record_request("accepted")
        metrics.record_request("accepted")

        assert registry.get_sample_value(
            "hookscript_requests_total", {"result": "accepted"}
        ) == 2

    def test_record_event(self, registry, metrics):
        metrics.record_event("push")

        assert registry.get_sample_value("hookscript_events_total", {"event": "push"}) == 1

    def test_record_evaluation(self, registry, metrics):
        metrics.record_evaluation(success=True, duration_seconds=0.2)
        metrics.record_evaluation(success=False, duration_seconds=2.0)

        assert registry.get_sample_value(
            "hookscript_evaluations_total", {"result": "success"}
        ) == 1
        assert registry.get_sample_value(
            "hookscript_evaluations_total", {"result": "failure"}
        ) == 1
        assert registry.get_sample_value(
            "hookscript_evaluation_duration_seconds_count"
        ) == 2

    def test_record_exec(self, registry, metrics):
        metrics.record_exec(success=False)

        assert registry.get_sample_value("hookscript_exec_total", {"result": "failure"}) == 1

    def test_get_metrics_with_registry_is_fresh(self):
        registry = CollectorRegistry()

        assert get_metrics(registry).registry is registry

    def test_generate_output(self, registry, metrics):
        metrics.record_request("unauthorized")

        output = generate_metrics_output(registry).decode()

        assert 'hookscript_requests_total{result="unauthorized"} 1.0' in output


class TestLogSinks:

    def test_memory_sink_records_lines(self):
        sink = MemoryLogSink()
        sink.write("one")
        sink.write("two")

        assert sink.lines == ["one", "two"]

        sink.clear()
        assert sink.lines == []

    def test_memory_sink_concurrent_writes(self):
        sink = MemoryLogSink()

        def writer(n):
            for i in range(100):
                sink.write(f"{n}-{i}")

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(sink.lines) == 800

    def test_structlog_sink(self):
        with patch("hookscript.events.sink.structlog.get_logger") as get_logger:
            sink = StructlogSink()
            sink.write("hello")

        get_logger.assert_called_once_with("hookscript.script")
        get_logger.return_value.info.assert_called_once_with("hello")
