"""Exceptions raised while loading and evaluating template scripts."""

from typing import Optional


class ScriptError(Exception):
    """Base exception for template script errors.

    Attributes:
        line: The script line the error refers to, if known.
    """

    def __init__(self, message: str, line: Optional[int] = None):
        self.message = message
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class ScriptParseError(ScriptError):
    """Raised when the script text is not a valid template."""


class ScriptLoadError(ScriptError):
    """Raised when a script cannot be read or parsed at startup."""


class ScriptExecError(ScriptError):
    """Raised when evaluating a script against an event fails."""


class ControlFunctionError(ScriptExecError):
    """Raised when a control function's external effect fails.

    Only ``exec`` raises this: the command could not be started or exited
    with a non-zero status.
    """
