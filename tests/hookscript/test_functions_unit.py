"""Unit tests for the control functions: env, exec, log and logf."""

import subprocess
import sys
from unittest.mock import MagicMock, patch

import pytest
from prometheus_client import CollectorRegistry

from hookscript.events.metrics import HookMetrics
from hookscript.events.sink import MemoryLogSink
from hookscript.script.errors import ControlFunctionError, ScriptExecError
from hookscript.script.functions import CONTROL_FUNCTION_NAMES, ControlFunctionSet


@pytest.fixture
def sink():
    return MemoryLogSink()


@pytest.fixture
def functions(sink):
    return ControlFunctionSet(sink=sink)


def _completed(stdout: bytes = b"", returncode: int = 0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=b"")


class TestEnv:

    def test_reads_variable(self, monkeypatch, functions):
        monkeypatch.setenv("HOOKSCRIPT_TEST_VAR", "value")

        assert functions.env("HOOKSCRIPT_TEST_VAR") == "value"

    def test_unset_variable_is_empty(self, monkeypatch, functions):
        monkeypatch.delenv("HOOKSCRIPT_TEST_VAR", raising=False)

        assert functions.env("HOOKSCRIPT_TEST_VAR") == ""

    def test_reads_live_value(self, monkeypatch, functions):
        monkeypatch.setenv("HOOKSCRIPT_TEST_VAR", "first")
        first = functions.env("HOOKSCRIPT_TEST_VAR")
        monkeypatch.setenv("HOOKSCRIPT_TEST_VAR", "second")

        assert (first, functions.env("HOOKSCRIPT_TEST_VAR")) == ("first", "second")

    def test_injected_environment(self, sink):
        functions = ControlFunctionSet(sink=sink, environ={"A": "1"})

        assert functions.env("A") == "1"
        assert functions.env("B") == ""

    def test_non_string_name_is_error(self, functions):
        with pytest.raises(ScriptExecError, match="env: expected string"):
            functions.env(5)


class TestExec:

    def test_returns_trimmed_stdout(self, functions):
        output = functions.exec(sys.executable, "-c", "print('  hello  ')")

        assert output == "hello"

    def test_passes_arguments_in_order(self, functions):
        with patch(
            "hookscript.script.functions.subprocess.run",
            return_value=_completed(b"ok\n"),
        ) as run:
            assert functions.exec("curl", "-d", "a b", "http://x") == "ok"

        run.assert_called_once_with(
            ["curl", "-d", "a b", "http://x"], capture_output=True, check=True
        )

    def test_missing_command_raises(self, functions):
        with pytest.raises(ControlFunctionError, match="exec hookscript-no-such-cmd"):
            functions.exec("hookscript-no-such-cmd")

    def test_non_zero_exit_raises(self, functions):
        with pytest.raises(ControlFunctionError, match="exit status 3"):
            functions.exec(sys.executable, "-c", "import sys; sys.exit(3)")

    def test_non_string_argument_is_error(self, functions):
        with pytest.raises(ScriptExecError, match="exec: expected string"):
            functions.exec("echo", 1)

    def test_no_debug_line_by_default(self, functions, sink):
        with patch("hookscript.script.functions.subprocess.run", return_value=_completed()):
            functions.exec("true")

        assert sink.lines == []

    def test_debug_line_on_success(self, sink):
        functions = ControlFunctionSet(sink=sink, debug=True)

        with patch("hookscript.script.functions.subprocess.run", return_value=_completed()):
            functions.exec("curl", "a", "b c")

        assert sink.lines == ['[DEBUG] exec cmd="curl" args=["a" "b c"] err=<nil>']

    def test_debug_line_on_failure(self, sink):
        functions = ControlFunctionSet(sink=sink, debug=True)

        with patch(
            "hookscript.script.functions.subprocess.run",
            side_effect=FileNotFoundError(2, "No such file or directory"),
        ):
            with pytest.raises(ControlFunctionError):
                functions.exec("nope")

        assert len(sink.lines) == 1
        assert sink.lines[0].startswith('[DEBUG] exec cmd="nope" args=[] err=')
        assert "No such file" in sink.lines[0]

    def test_records_metrics(self, sink):
        registry = CollectorRegistry()
        metrics = HookMetrics(registry=registry)
        functions = ControlFunctionSet(sink=sink, metrics=metrics)

        with patch("hookscript.script.functions.subprocess.run", return_value=_completed()):
            functions.exec("true")
        with patch(
            "hookscript.script.functions.subprocess.run",
            side_effect=subprocess.CalledProcessError(1, ["false"]),
        ):
            with pytest.raises(ControlFunctionError):
                functions.exec("false")

        assert registry.get_sample_value("hookscript_exec_total", {"result": "success"}) == 1
        assert registry.get_sample_value("hookscript_exec_total", {"result": "failure"}) == 1


class TestLog:

    def test_joins_values_with_spaces(self, functions, sink):
        assert functions.log("a", 1, None, True) == ""
        assert sink.lines == ["a 1 <nil> true"]

    def test_no_values_writes_nothing(self, functions, sink):
        assert functions.log() == ""
        assert sink.lines == []


class TestLogf:

    def test_formats_values(self, functions, sink):
        assert functions.logf("%s pushed to %s", "a@x.com", "r") == ""
        assert sink.lines == ["a@x.com pushed to r"]

    def test_empty_format_writes_nothing(self, functions, sink):
        assert functions.logf("", "ignored") == ""
        assert sink.lines == []

    def test_no_values_writes_format_verbatim(self, functions, sink):
        functions.logf("100% %s done")

        assert sink.lines == ["100% %s done"]

    def test_missing_values_never_raise(self, functions, sink):
        functions.logf("%s %d", "a")

        assert sink.lines == ["a %!d(MISSING)"]


class TestMapping:
    def test_exposes_exactly_the_control_functions(self, functions):
        assert tuple(sorted(functions.as_mapping())) == CONTROL_FUNCTION_NAMES

    def test_mapping_is_bound_to_instance(self, sink):
        functions = ControlFunctionSet(sink=sink)
        functions.sink = MagicMock()

        functions.as_mapping()["log"]("x")

        functions.sink.write.assert_called_once_with("x")
