"""Unit tests for the command line entry point."""

import os
import ssl
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from hookscript.cli import main


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in list(os.environ):
        if name.upper().startswith("HOOKSCRIPT_"):
            monkeypatch.delenv(name)


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("hookscript.cli.configure_logging") as configure:
        yield configure


@pytest.fixture
def script_path(tmp_path):
    path = tmp_path / "hook.tsc"
    path.write_text('{{log .Name}}')
    return path


def invoke(*args):
    return CliRunner().invoke(main, [str(arg) for arg in args])


class TestStartup:

    def test_missing_secret_exits_nonzero(self, script_path):
        with patch("hookscript.cli.uvicorn.run") as run:
            result = invoke(script_path)

        assert result.exit_code == 1
        run.assert_not_called()

    def test_missing_script_argument(self):
        result = invoke("--secret", "s")

        assert result.exit_code == 2

    def test_unreadable_script_exits_nonzero(self, tmp_path):
        with patch("hookscript.cli.uvicorn.run") as run:
            result = invoke("--secret", "s", tmp_path / "missing.tsc")

        assert result.exit_code == 1
        run.assert_not_called()

    def test_unparsable_script_exits_nonzero(self, tmp_path):
        path = tmp_path / "bad.tsc"
        path.write_text("{{end}}")

        with patch("hookscript.cli.uvicorn.run") as run:
            result = invoke("--secret", "s", path)

        assert result.exit_code == 1
        run.assert_not_called()

    def test_cert_without_key(self, script_path, tmp_path):
        with patch("hookscript.cli.uvicorn.run") as run:
            result = invoke("--secret", "s", "--cert", tmp_path / "c.pem", script_path)

        assert result.exit_code == 1
        run.assert_not_called()

    def test_secret_not_echoed_on_error(self, tmp_path):
        result = invoke("--secret", "hunter2-secret", "--addr", "bogus", tmp_path / "h.tsc")

        assert result.exit_code == 1
        assert "hunter2-secret" not in result.output

    def test_log_file_cannot_open(self, script_path, quiet_logging):
        quiet_logging.side_effect = PermissionError("denied")

        with patch("hookscript.cli.uvicorn.run") as run:
            result = invoke("--secret", "s", "--log", "/nope/hook.log", script_path)

        assert result.exit_code == 1
        run.assert_not_called()


class TestServe:

    def test_plain_http_defaults(self, script_path):
        with patch("hookscript.cli.uvicorn.run") as run:
            result = invoke("--secret", "s", script_path)

        assert result.exit_code == 0, result.output
        kwargs = run.call_args.kwargs
        assert (kwargs["host"], kwargs["port"]) == ("0.0.0.0", 8080)
        assert "ssl_certfile" not in kwargs

    def test_tls_options(self, script_path, tmp_path):
        cert, key = tmp_path / "c.pem", tmp_path / "k.pem"

        with patch("hookscript.cli.uvicorn.run") as run:
            result = invoke(
                "--secret", "s", "--cert", cert, "--key", key,
                "--addr", "127.0.0.1:9443", script_path,
            )

        assert result.exit_code == 0, result.output
        kwargs = run.call_args.kwargs
        assert (kwargs["host"], kwargs["port"]) == ("127.0.0.1", 9443)
        assert kwargs["ssl_certfile"] == str(cert)
        assert kwargs["ssl_keyfile"] == str(key)
        assert kwargs["ssl_version"] == ssl.PROTOCOL_TLS_SERVER

    def test_secret_from_environment(self, script_path, monkeypatch):
        monkeypatch.setenv("HOOKSCRIPT_SECRET", "from-env")

        with patch("hookscript.cli.uvicorn.run") as run:
            result = invoke(script_path)

        assert result.exit_code == 0, result.output
        run.assert_called_once()

    def test_log_and_debug_flags(self, script_path, tmp_path, quiet_logging):
        log_file = tmp_path / "hook.log"

        with patch("hookscript.cli.uvicorn.run"):
            result = invoke("--secret", "s", "--log", log_file, "--debug", script_path)

        assert result.exit_code == 0, result.output
        assert quiet_logging.call_args.args[1] == log_file

    def test_keyboard_interrupt_is_clean(self, script_path):
        with patch("hookscript.cli.uvicorn.run", side_effect=KeyboardInterrupt):
            result = invoke("--secret", "s", script_path)

        assert result.exit_code == 0


def test_help():
    result = CliRunner().invoke(main, ["-h"])

    assert result.exit_code == 0
    assert "--secret" in result.output
