"""Control functions: the side-effecting API available to scripts.

Scripts can only affect the outside world through these four functions:

- env: Read a process environment variable
- exec: Run a command and capture its standard output
- log: Write a log line from the given values
- logf: Write a printf-formatted log line

Only ``exec`` can fail. ``env``, ``log`` and ``logf`` always return, and
calls that have nothing to write (``log`` without values, ``logf`` with an
empty format) just do nothing.

Log lines go to the LogSink the set was built with, never to a global
logger.
"""

import json
import os
import subprocess
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..events.metrics import HookMetrics
from ..events.sink import LogSink
from .errors import ControlFunctionError, ScriptExecError
from .printf import NIL_TEXT, sprintf, to_text

CONTROL_FUNCTION_NAMES = ("env", "exec", "log", "logf")


def _require_str(function: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ScriptExecError(
            f"{function}: expected string argument, got {to_text(value)}"
        )
    return value


def _quote_all(values: List[str]) -> str:
    return "[" + " ".join(json.dumps(value, ensure_ascii=False) for value in values) + "]"


class ControlFunctionSet:
    """The control functions bound into script evaluation.

    One instance is built at startup and shared by every evaluation. It holds
    no per-call state, so concurrent evaluations may call it freely.

    Attributes:
        sink: Destination for ``log``/``logf`` lines and debug lines.
        debug: Whether ``exec`` writes a diagnostic line on every call.
        metrics: Optional metrics recorder for ``exec`` outcomes.
    """

    def __init__(
        self,
        sink: LogSink,
        debug: bool = False,
        metrics: Optional[HookMetrics] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.sink = sink
        self.debug = debug
        self.metrics = metrics
        # os.environ is read on every call, never copied
        self._environ = os.environ if environ is None else environ

    def env(self, name: Any) -> str:
        """Return the current value of an environment variable, or "" if unset."""
        return self._environ.get(_require_str("env", name), "")

    def exec(self, command: Any, *args: Any) -> str:
        """Run a command synchronously and return its trimmed standard output.

        Args:
            command: Program name or path, looked up on PATH.
            *args: Arguments passed to the program, in order.

        Returns:
            The process's standard output with surrounding whitespace removed.

        Raises:
            ControlFunctionError: If the process cannot be started or exits
                                  with a non-zero status.
        """
        command = _require_str("exec", command)
        arguments = [_require_str("exec", arg) for arg in args]

        error: Optional[str] = None
        try:
            completed = subprocess.run(
                [command, *arguments],
                capture_output=True,
                check=True,
            )
        except OSError as exc:
            error = str(exc)
            raise ControlFunctionError(f"exec {command}: {exc}") from exc
        except subprocess.CalledProcessError as exc:
            error = f"exit status {exc.returncode}"
            raise ControlFunctionError(f"exec {command}: {error}") from exc
        finally:
            if self.debug:
                self.sink.write(
                    f"[DEBUG] exec cmd={json.dumps(command, ensure_ascii=False)} "
                    f"args={_quote_all(arguments)} err={error or NIL_TEXT}"
                )
            if self.metrics is not None:
                self.metrics.record_exec(success=error is None)

        return completed.stdout.decode("utf-8", errors="replace").strip()

    def log(self, *values: Any) -> str:
        """Write the values as one space-separated line. Writes nothing without values."""
        if values:
            self.sink.write(" ".join(to_text(value) for value in values))
        return ""

    def logf(self, format_string: Any = "", *values: Any) -> str:
        """Write one formatted line.

        An empty format writes nothing. Without values the format is written
        verbatim, directives included.
        """
        format_string = to_text(format_string) if format_string is not None else ""
        if not format_string:
            return ""
        if not values:
            self.sink.write(format_string)
        else:
            self.sink.write(sprintf(format_string, values))
        return ""

    def as_mapping(self) -> Dict[str, Callable[..., Any]]:
        """The functions keyed by the names scripts call them with."""
        return {
            "env": self.env,
            "exec": self.exec,
            "log": self.log,
            "logf": self.logf,
        }
