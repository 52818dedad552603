"""Template scripts evaluated against webhook events."""

from .engine import Script, ScriptEngine, parse_script
from .errors import (
    ControlFunctionError,
    ScriptError,
    ScriptExecError,
    ScriptLoadError,
    ScriptParseError,
)
from .functions import CONTROL_FUNCTION_NAMES, ControlFunctionSet

__all__ = [
    "CONTROL_FUNCTION_NAMES",
    "ControlFunctionError",
    "ControlFunctionSet",
    "Script",
    "ScriptEngine",
    "ScriptError",
    "ScriptExecError",
    "ScriptLoadError",
    "ScriptParseError",
    "parse_script",
]
