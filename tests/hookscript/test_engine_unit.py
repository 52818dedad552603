"""Unit tests for the script engine."""

import threading
from unittest.mock import patch

import pytest

from hookscript.script.engine import ScriptEngine, parse_script
from hookscript.script.errors import ControlFunctionError, ScriptExecError, ScriptLoadError
from hookscript.webhook.classifier import create_event_classifier
from hookscript.webhook.models import Event

from delivery_helpers import push_body

PUSH_SCRIPT = """\
{{- if eq .Name "push" -}}
{{ logf "%s pushed to %s" .Payload.pusher.email .Payload.repository.name }}
{{- end -}}
"""


@pytest.fixture
def push_event():
    return create_event_classifier().classify("push", push_body())


class TestLoading:
    """Unloaded -> Loaded."""

    def test_starts_unloaded(self, engine):
        assert not engine.loaded
        assert engine.script is None

    def test_load_file(self, engine, tmp_path):
        path = tmp_path / "push.tsc"
        path.write_text(PUSH_SCRIPT)

        script = engine.load(path)

        assert engine.loaded
        assert script.name == str(path)

    def test_missing_file(self, engine, tmp_path):
        with pytest.raises(ScriptLoadError, match="cannot read script"):
            engine.load(tmp_path / "missing.tsc")

        assert not engine.loaded

    def test_parse_error_keeps_engine_unloaded(self, engine):
        with pytest.raises(ScriptLoadError) as exc_info:
            engine.load_text("{{if .Name}}", name="bad.tsc")

        assert "bad.tsc" in str(exc_info.value)
        assert not engine.loaded

    def test_unknown_function_fails_load(self, engine):
        with pytest.raises(ScriptLoadError, match="not defined"):
            engine.load_text('{{ system "rm" }}')

    def test_loading_twice_is_error(self, engine):
        engine.load_text("a")

        with pytest.raises(ScriptLoadError, match="already loaded"):
            engine.load_text("b")

    def test_function_names_include_builtins_and_controls(self, engine):
        assert {"env", "exec", "log", "logf", "printf", "eq"} <= engine.function_names


class TestEvaluation:

    def test_evaluate_before_load_is_error(self, engine, push_event):
        with pytest.raises(ScriptExecError, match="no script loaded"):
            engine.evaluate(push_event)

    def test_evaluate_runs_control_functions(self, engine, sink, push_event):
        engine.load_text(PUSH_SCRIPT)

        assert engine.evaluate(push_event) is None
        assert sink.lines == ["a@x.com pushed to r"]

    def test_conditional_skips_other_events(self, engine, sink):
        engine.load_text(PUSH_SCRIPT)

        engine.evaluate(Event(name="ping", payload={"zen": "x"}))

        assert sink.lines == []

    def test_render_returns_text(self, engine):
        engine.load_text("{{.Name}}:{{.Payload.a}}")

        assert engine.render(Event(name="custom", payload={"a": 1})) == "custom:1"

    def test_generic_payload_missing_field(self, engine):
        engine.load_text("[{{.Payload.a.b.c}}]")

        assert engine.render(Event(name="custom", payload={})) == "[]"

    def test_exec_failure_aborts_evaluation(self, engine, sink, push_event):
        engine.load_text('{{log "before"}}{{exec "hookscript-no-such-cmd"}}{{log "after"}}')

        with pytest.raises(ControlFunctionError):
            engine.evaluate(push_event)

        assert sink.lines == ["before"]

    def test_concurrent_evaluations_do_not_share_state(self, engine, sink):
        engine.load_text('{{$n := .Payload.n}}{{range .Payload.items}}{{$n = .}}{{end}}{{log $n}}')
        events = [
            Event(name="custom", payload={"n": i, "items": list(range(i, i + 50))})
            for i in range(20)
        ]

        threads = [threading.Thread(target=engine.evaluate, args=(event,)) for event in events]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(sink.lines, key=int) == [str(i + 49) for i in range(20)]

    def test_exec_arguments_from_payload(self, engine, push_event):
        engine.load_text(
            '{{if eq .Name "push"}}'
            '{{exec "curl" "-d" (printf "%s pushed to %s" .Payload.pusher.email .Payload.repository.name) "http://hooks.invalid"}}'
            "{{end}}"
        )

        with patch("hookscript.script.functions.subprocess.run") as run:
            run.return_value.stdout = b""
            engine.evaluate(push_event)

        run.assert_called_once()
        assert run.call_args.args[0] == [
            "curl", "-d", "a@x.com pushed to r", "http://hooks.invalid",
        ]


class TestScript:
    def test_script_is_reusable(self):
        script = parse_script("{{.}}", "inline", frozenset())

        assert script.execute(1, {}) == "1"
        assert script.execute("two", {}) == "two"
