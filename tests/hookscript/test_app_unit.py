"""Unit tests for the FastAPI application."""

import pytest
from fastapi.testclient import TestClient

from hookscript.config import HookSettings
from hookscript.events.metrics import HookMetrics
from hookscript.events.sink import MemoryLogSink
from hookscript.main import build_dispatcher, create_app
from hookscript.script.errors import ScriptLoadError

from delivery_helpers import SECRET, flip_signature, push_body, signed_headers

LOG_SCRIPT = '{{if eq .Name "push"}}{{logf "%s pushed to %s" .Payload.pusher.email .Payload.repository.name}}{{end}}'


@pytest.fixture
def script_path(tmp_path):
    path = tmp_path / "hook.tsc"
    path.write_text(LOG_SCRIPT)
    return path


def make_settings(script_path, **overrides):
    values = {"secret": SECRET.decode(), "script": script_path}
    values.update(overrides)
    return HookSettings(**values)


def make_app(settings, registry, sink):
    dispatcher = build_dispatcher(settings, HookMetrics(registry=registry), sink=sink)
    return create_app(settings, dispatcher=dispatcher, registry=registry)


class TestEndpoints:

    def test_health(self, script_path, registry):
        app = make_app(make_settings(script_path), registry, MemoryLogSink())

        with TestClient(app) as client:
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_metrics(self, script_path, registry):
        app = make_app(make_settings(script_path), registry, MemoryLogSink())

        with TestClient(app) as client:
            response = client.get("/metrics")

        assert response.status_code == 200
        assert "hookscript_requests_total" in response.text


class TestWebhook:

    def test_signed_push_is_accepted_and_evaluated(self, script_path, registry):
        sink = MemoryLogSink()
        app = make_app(make_settings(script_path), registry, sink)
        body = push_body()

        with TestClient(app) as client:
            response = client.post("/", content=body, headers=signed_headers(body))

        # leaving the client runs shutdown, which waits for evaluation
        assert response.status_code == 202
        assert response.json() == {"status": "accepted", "message": "event accepted"}
        assert sink.lines == ["a@x.com pushed to r"]

    def test_bad_signature_is_rejected(self, script_path, registry):
        sink = MemoryLogSink()
        app = make_app(make_settings(script_path), registry, sink)
        body = push_body()

        with TestClient(app) as client:
            response = client.post(
                "/", content=body, headers=flip_signature(signed_headers(body))
            )

        assert response.status_code == 401
        assert sink.lines == []

    def test_malformed_body_is_rejected(self, script_path, registry):
        app = make_app(make_settings(script_path), registry, MemoryLogSink())
        body = b"[1, 2"

        with TestClient(app) as client:
            response = client.post("/", content=body, headers=signed_headers(body))

        assert response.status_code == 400

    def test_unknown_event_is_accepted(self, tmp_path, registry):
        path = tmp_path / "hook.tsc"
        path.write_text("{{log .Name .Payload.action}}")
        sink = MemoryLogSink()
        app = make_app(make_settings(path), registry, sink)
        body = b'{"action": "created"}'

        with TestClient(app) as client:
            response = client.post(
                "/", content=body, headers=signed_headers(body, event="check_run")
            )

        assert response.status_code == 202
        assert sink.lines == ["check_run created"]

    def test_deeply_nested_body_is_rejected(self, script_path, registry):
        app = make_app(make_settings(script_path), registry, MemoryLogSink())
        body = b"[" * 100000 + b"]" * 100000

        with TestClient(app) as client:
            response = client.post(
                "/", content=body, headers=signed_headers(body, event="custom")
            )

        assert response.status_code == 400

    def test_custom_webhook_path(self, script_path, registry):
        settings = make_settings(script_path, webhook_path="/hooks/github")
        app = make_app(settings, registry, MemoryLogSink())
        body = push_body()

        with TestClient(app) as client:
            moved = client.post("/hooks/github", content=body, headers=signed_headers(body))
            root = client.post("/", content=body, headers=signed_headers(body))

        assert moved.status_code == 202
        assert root.status_code in (404, 405)

    def test_only_post_is_routed(self, script_path, registry):
        app = make_app(make_settings(script_path), registry, MemoryLogSink())

        with TestClient(app) as client:
            response = client.get("/")

        assert response.status_code == 405


class TestBuild:

    def test_unparsable_script_fails_build(self, tmp_path, registry):
        path = tmp_path / "bad.tsc"
        path.write_text("{{if}}")

        with pytest.raises(ScriptLoadError):
            build_dispatcher(make_settings(path), HookMetrics(registry=registry))

    def test_debug_enables_dumper(self, script_path, registry, tmp_path):
        settings = make_settings(script_path, debug=True, dump_dir=tmp_path / "dumps")

        dispatcher = build_dispatcher(settings, HookMetrics(registry=registry))

        assert dispatcher.dumper is not None
        assert dispatcher.engine.functions.debug is True

    def test_dumper_off_by_default(self, script_path, registry):
        dispatcher = build_dispatcher(make_settings(script_path), HookMetrics(registry=registry))

        assert dispatcher.dumper is None

    def test_debug_dumps_deliveries(self, script_path, registry, tmp_path):
        dump_dir = tmp_path / "dumps"
        settings = make_settings(script_path, debug=True, dump_dir=dump_dir)
        app = make_app(settings, registry, MemoryLogSink())
        body = push_body()

        with TestClient(app) as client:
            client.post("/", content=body, headers=signed_headers(body))

        dumped = list(dump_dir.glob("push-*.json"))
        assert len(dumped) == 1
        assert dumped[0].read_bytes() == body
