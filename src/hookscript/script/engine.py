"""Script loading and evaluation.

The ScriptEngine has two states. It starts Unloaded and moves to Loaded
once, at startup, when load() parses the script file. A script that does
not parse leaves the engine Unloaded, and the CLI refuses to start.

Once loaded, evaluate() runs the script against one Event. The Event is the
script's only input: ``.Name`` is the event label and ``.Payload`` the
decoded payload. The rendered text is thrown away; scripts act through the
control functions only.

A parsed Script is immutable and every evaluation gets its own execution
state, so evaluate() may run in several threads at once.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional, Union

import structlog

from ..webhook.models import Event
from .builtins import BUILTINS
from .errors import ScriptExecError, ScriptLoadError, ScriptParseError
from .functions import ControlFunctionSet
from .interpreter import execute
from .nodes import ListNode
from .parser import parse

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Script:
    """A parsed template script.

    Attributes:
        name: Where the script came from (file path or a label).
        root: The syntax tree.
        function_names: The function table the script was checked against.
    """

    name: str
    root: ListNode
    function_names: FrozenSet[str]

    def execute(self, data: Any, functions: Mapping[str, Callable[..., Any]]) -> str:
        """Evaluate the script against ``data`` and return the rendered text.

        Raises:
            ScriptExecError: If evaluation fails.
        """
        return execute(self.root, data, functions)


def parse_script(text: str, name: str, function_names: FrozenSet[str]) -> Script:
    """Parse script text.

    Raises:
        ScriptParseError: If the text is not a valid template.
    """
    return Script(name=name, root=parse(text, function_names), function_names=function_names)


class ScriptEngine:
    """Loads one script and evaluates it per event.

    Attributes:
        functions: The control functions bound into every evaluation.
        script: The loaded script, or None while Unloaded.
    """

    def __init__(self, functions: ControlFunctionSet):
        self.functions = functions
        self.script: Optional[Script] = None
        self._table: Dict[str, Callable[..., Any]] = {
            **BUILTINS,
            **functions.as_mapping(),
        }

    @property
    def loaded(self) -> bool:
        return self.script is not None

    @property
    def function_names(self) -> FrozenSet[str]:
        return frozenset(self._table)

    def load(self, path: Union[str, Path]) -> Script:
        """Read and parse the script file.

        Args:
            path: Path to the script, read as UTF-8.

        Returns:
            The loaded script.

        Raises:
            ScriptLoadError: If the engine is already loaded, the file cannot
                             be read, or the script does not parse.
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ScriptLoadError(f"cannot read script {path}: {exc}") from exc
        return self.load_text(text, name=str(path))

    def load_text(self, text: str, name: str = "<script>") -> Script:
        """Parse script text and move to the Loaded state.

        Raises:
            ScriptLoadError: If the engine is already loaded or the text does
                             not parse.
        """
        if self.script is not None:
            raise ScriptLoadError(f"script already loaded from {self.script.name}")

        try:
            script = parse_script(text, name, self.function_names)
        except ScriptParseError as exc:
            raise ScriptLoadError(f"{name}: {exc}") from exc

        self.script = script
        logger.info("script_loaded", script=name)
        return script

    def render(self, event: Event) -> str:
        """Evaluate the loaded script and return its rendered text.

        Raises:
            ScriptExecError: If no script is loaded or evaluation fails.
        """
        if self.script is None:
            raise ScriptExecError("no script loaded")
        return self.script.execute(event, self._table)

    def evaluate(self, event: Event) -> None:
        """Evaluate the loaded script against an event, discarding the output.

        Raises:
            ScriptExecError: If no script is loaded or evaluation fails.
                             Control functions that already ran are not
                             undone.
        """
        self.render(event)
