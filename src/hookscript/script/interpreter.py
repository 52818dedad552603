"""Evaluation of parsed template scripts.

An ExecutionState is created for every evaluation and holds everything that
changes while a script runs: the variable stack and the output buffer. The
syntax tree and the function table are only read, so one parsed script can
be evaluated from many threads at once.

Functions are called in the order the script reaches them: left to right
within a pipeline and following the control flow of ``if``, ``range`` and
``with``. The first function that raises aborts the evaluation; effects of
functions that already ran are kept.
"""

import io
from collections.abc import Mapping
from typing import Any, Callable, List, Mapping as MappingType, Sequence, Tuple

from .builtins import SHORT_CIRCUIT, resolve_field, truth
from .errors import ScriptError, ScriptExecError
from .nodes import (
    ActionNode,
    BoolNode,
    BranchNode,
    ChainNode,
    CommandNode,
    DotNode,
    FieldNode,
    IdentifierNode,
    IfNode,
    ListNode,
    NilNode,
    NumberNode,
    PipeNode,
    RangeNode,
    StringNode,
    TextNode,
    VariableNode,
    WithNode,
)
from .printf import to_text

# Marks "no piped value" so None can still be piped
_MISSING = object()


def _range_items(value: Any, line: int) -> List[Tuple[Any, Any]]:
    """List the (key, element) pairs a ``range`` iterates over."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(enumerate(value))
    if isinstance(value, Mapping):
        try:
            keys = sorted(value)
        except TypeError:
            keys = list(value)
        return [(key, value[key]) for key in keys]
    if isinstance(value, int) and not isinstance(value, bool):
        return [(i, i) for i in range(value)]
    raise ScriptExecError(f"range can't iterate over {to_text(value)}", line)


class ExecutionState:
    """Mutable state of a single script evaluation.

    Attributes:
        functions: The callable table, shared and read-only.
        out: Buffer collecting the rendered text.
    """

    def __init__(self, functions: MappingType[str, Callable[..., Any]], root: Any):
        self.functions = functions
        self.out = io.StringIO()
        self._vars: List[Tuple[str, Any]] = [("$", root)]

    def render(self, tree: ListNode, dot: Any) -> str:
        """Walk the tree with ``dot`` as the current value and return the output."""
        self._walk_list(tree, dot)
        return self.out.getvalue()

    # -------------------------------------------------------------------------
    # Variables
    # -------------------------------------------------------------------------
    def _mark(self) -> int:
        return len(self._vars)

    def _pop(self, mark: int) -> None:
        del self._vars[mark:]

    def _push(self, name: str, value: Any) -> None:
        self._vars.append((name, value))

    def _set(self, name: str, value: Any, line: int) -> None:
        for i in range(len(self._vars) - 1, -1, -1):
            if self._vars[i][0] == name:
                self._vars[i] = (name, value)
                return
        raise ScriptExecError(f"undefined variable {name!r}", line)

    def _lookup(self, name: str, line: int) -> Any:
        for var_name, value in reversed(self._vars):
            if var_name == name:
                return value
        raise ScriptExecError(f"undefined variable {name!r}", line)

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------
    def _walk_list(self, tree: ListNode, dot: Any) -> None:
        for node in tree.nodes:
            self._walk(node, dot)

    def _walk(self, node: Any, dot: Any) -> None:
        if isinstance(node, TextNode):
            self.out.write(node.text)
        elif isinstance(node, ActionNode):
            value = self._eval_pipeline(node.pipe, dot)
            if not node.pipe.decl and value is not None:
                self.out.write(to_text(value))
        elif isinstance(node, IfNode):
            self._walk_if(node, dot)
        elif isinstance(node, RangeNode):
            self._walk_range(node, dot)
        elif isinstance(node, WithNode):
            self._walk_with(node, dot)
        elif isinstance(node, ListNode):
            self._walk_list(node, dot)
        else:
            raise ScriptExecError(f"unknown node {type(node).__name__}")

    def _walk_else(self, node: BranchNode, dot: Any) -> None:
        if node.else_body is not None:
            self._walk_list(node.else_body, dot)

    def _walk_if(self, node: IfNode, dot: Any) -> None:
        mark = self._mark()
        value = self._eval_pipeline(node.pipe, dot)
        if truth(value):
            self._walk_list(node.body, dot)
        else:
            self._walk_else(node, dot)
        self._pop(mark)

    def _walk_with(self, node: WithNode, dot: Any) -> None:
        mark = self._mark()
        value = self._eval_pipeline(node.pipe, dot)
        if truth(value):
            self._walk_list(node.body, value)
        else:
            self._walk_else(node, dot)
        self._pop(mark)

    def _walk_range(self, node: RangeNode, dot: Any) -> None:
        mark = self._mark()
        value = self._eval_commands(node.pipe, dot)
        items = _range_items(value, node.line)
        decl = node.pipe.decl

        for key, element in items:
            if len(decl) == 1:
                self._bind(node.pipe, decl[0], element)
            elif len(decl) == 2:
                self._bind(node.pipe, decl[0], key)
                self._bind(node.pipe, decl[1], element)
            self._walk_list(node.body, element)
            if not node.pipe.is_assign:
                self._pop(mark)

        if not items:
            self._walk_else(node, dot)
        self._pop(mark)

    def _bind(self, pipe: PipeNode, name: str, value: Any) -> None:
        if pipe.is_assign:
            self._set(name, value, pipe.line)
        else:
            self._push(name, value)

    # -------------------------------------------------------------------------
    # Pipelines
    # -------------------------------------------------------------------------
    def _eval_commands(self, pipe: PipeNode, dot: Any) -> Any:
        value = _MISSING
        for cmd in pipe.cmds:
            value = self._eval_command(cmd, dot, value)
        return None if value is _MISSING else value

    def _eval_pipeline(self, pipe: PipeNode, dot: Any) -> Any:
        value = self._eval_commands(pipe, dot)
        for name in pipe.decl:
            self._bind(pipe, name, value)
        return value

    def _eval_command(self, cmd: CommandNode, dot: Any, final: Any) -> Any:
        first = cmd.args[0]
        if isinstance(first, IdentifierNode):
            return self._call(first.name, cmd.args[1:], dot, final, cmd.line)

        if len(cmd.args) > 1 or final is not _MISSING:
            value = self._eval_arg(first, dot, cmd.line)
            raise ScriptExecError(
                f"can't give argument to non-function {to_text(value)}", cmd.line
            )
        return self._eval_arg(first, dot, cmd.line)

    def _call(
        self,
        name: str,
        arg_nodes: Sequence[Any],
        dot: Any,
        final: Any,
        line: int,
    ) -> Any:
        function = self.functions.get(name)
        if function is None:
            raise ScriptExecError(f"function {name!r} not defined", line)

        if name in SHORT_CIRCUIT:
            return self._call_short_circuit(name, arg_nodes, dot, final, line)

        args = [self._eval_arg(node, dot, line) for node in arg_nodes]
        if final is not _MISSING:
            args.append(final)

        try:
            return function(*args)
        except ScriptError:
            raise
        except TypeError as exc:
            raise ScriptExecError(f"wrong arguments for {name}: {exc}", line) from exc
        except Exception as exc:
            raise ScriptExecError(f"error calling {name}: {exc}", line) from exc

    def _call_short_circuit(
        self,
        name: str,
        arg_nodes: Sequence[Any],
        dot: Any,
        final: Any,
        line: int,
    ) -> Any:
        """Evaluate ``and``/``or`` arguments only until the result is known."""
        thunks: List[Callable[[], Any]] = [
            (lambda node=node: self._eval_arg(node, dot, line)) for node in arg_nodes
        ]
        if final is not _MISSING:
            thunks.append(lambda: final)
        if not thunks:
            raise ScriptExecError(f"wrong number of args for {name}: want at least 1 got 0", line)

        stop_on = False if name == "and" else True
        value = None
        for thunk in thunks:
            value = thunk()
            if truth(value) is stop_on:
                return value
        return value

    # -------------------------------------------------------------------------
    # Operands
    # -------------------------------------------------------------------------
    def _eval_arg(self, node: Any, dot: Any, line: int) -> Any:
        if isinstance(node, DotNode):
            return dot
        if isinstance(node, FieldNode):
            return self._chain(dot, node.names, line)
        if isinstance(node, VariableNode):
            return self._chain(self._lookup(node.name, line), node.names, line)
        if isinstance(node, ChainNode):
            return self._chain(self._eval_pipeline(node.pipe, dot), node.names, line)
        if isinstance(node, PipeNode):
            return self._eval_pipeline(node, dot)
        if isinstance(node, IdentifierNode):
            return self._call(node.name, (), dot, _MISSING, line)
        if isinstance(node, (StringNode, NumberNode, BoolNode)):
            return node.value
        if isinstance(node, NilNode):
            return None
        raise ScriptExecError(f"can't evaluate operand {type(node).__name__}", line)

    @staticmethod
    def _chain(value: Any, names: Sequence[str], line: int) -> Any:
        for name in names:
            value = resolve_field(value, name, line)
        return value


def execute(
    tree: ListNode,
    data: Any,
    functions: MappingType[str, Callable[..., Any]],
) -> str:
    """Evaluate a syntax tree against ``data``.

    Args:
        tree: The parsed script.
        data: The value bound to ``.`` and ``$``.
        functions: Callable table. Must contain every name the script calls.

    Returns:
        The rendered text.

    Raises:
        ScriptExecError: If evaluation fails.
    """
    return ExecutionState(functions, data).render(tree, data)


__all__ = ["ExecutionState", "execute"]
