"""Syntax tree for parsed template scripts.

Nodes are frozen dataclasses, so a parsed script can be shared by any number
of concurrent evaluations without copying.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class TextNode:
    text: str


@dataclass(frozen=True)
class DotNode:
    """The current value, ``.``."""


@dataclass(frozen=True)
class FieldNode:
    """A field chain on the current value, ``.A.b``."""

    names: Tuple[str, ...]


@dataclass(frozen=True)
class VariableNode:
    """A variable, optionally followed by a field chain, ``$x.a``."""

    name: str
    names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class IdentifierNode:
    """A function name."""

    name: str


@dataclass(frozen=True)
class StringNode:
    value: str


@dataclass(frozen=True)
class NumberNode:
    value: Union[int, float]


@dataclass(frozen=True)
class BoolNode:
    value: bool


@dataclass(frozen=True)
class NilNode:
    pass


@dataclass(frozen=True)
class CommandNode:
    """One stage of a pipeline: an operand or a function call with arguments."""

    line: int
    args: Tuple["Operand", ...]


@dataclass(frozen=True)
class PipeNode:
    """A pipeline, ``cmd | cmd``, with optional variable declarations.

    Attributes:
        line: Line of the pipeline's first token.
        decl: Variables declared (``:=``) or assigned (``=``) by the pipeline.
        is_assign: True for ``=``, False for ``:=``.
        cmds: The pipeline stages, left to right.
    """

    line: int
    decl: Tuple[str, ...]
    is_assign: bool
    cmds: Tuple[CommandNode, ...]


@dataclass(frozen=True)
class ChainNode:
    """A field chain on a parenthesized pipeline, ``(pipe).a.b``."""

    pipe: PipeNode
    names: Tuple[str, ...]


Operand = Union[
    DotNode,
    FieldNode,
    VariableNode,
    IdentifierNode,
    StringNode,
    NumberNode,
    BoolNode,
    NilNode,
    PipeNode,
    ChainNode,
]


@dataclass(frozen=True)
class ListNode:
    nodes: Tuple["Node", ...]


@dataclass(frozen=True)
class ActionNode:
    """A ``{{pipeline}}`` action. Its value is written unless it declares."""

    line: int
    pipe: PipeNode


@dataclass(frozen=True)
class BranchNode:
    """Shared shape of ``if``, ``range`` and ``with``."""

    line: int
    pipe: PipeNode
    body: ListNode
    else_body: Optional[ListNode]


@dataclass(frozen=True)
class IfNode(BranchNode):
    pass


@dataclass(frozen=True)
class RangeNode(BranchNode):
    pass


@dataclass(frozen=True)
class WithNode(BranchNode):
    pass


Node = Union[TextNode, ActionNode, IfNode, RangeNode, WithNode, ListNode]
