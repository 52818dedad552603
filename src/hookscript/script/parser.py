"""Parser for template scripts.

Builds the syntax tree in nodes.py from the lexer's tokens. The grammar is a
closed subset of Go's text/template:

    {{pipeline}}
    {{if pipeline}} ... {{else if pipeline}} ... {{else}} ... {{end}}
    {{range pipeline}} ... {{else}} ... {{end}}
    {{range $i, $v := pipeline}} ... {{end}}
    {{with pipeline}} ... {{else}} ... {{end}}
    {{$x := pipeline}}  {{$x = pipeline}}

A pipeline is a sequence of commands separated by ``|``; each command's
value is passed as the last argument of the next one.

Function names are checked at parse time against the table the script is
parsed with, and variables must be declared before use. A script that
parses cleanly can only fail at evaluation time on data-dependent errors.
"""

import re
from typing import AbstractSet, List, Optional, Tuple

from .errors import ScriptParseError
from .lexer import Token, TokenType, tokenize
from .nodes import (
    ActionNode,
    BoolNode,
    ChainNode,
    CommandNode,
    DotNode,
    FieldNode,
    IdentifierNode,
    IfNode,
    ListNode,
    NilNode,
    NumberNode,
    Operand,
    PipeNode,
    RangeNode,
    StringNode,
    TextNode,
    VariableNode,
    WithNode,
)

KEYWORDS = frozenset({"if", "else", "end", "range", "with"})

_PIPE_TERMINATORS = (TokenType.RIGHT_DELIM, TokenType.RPAREN)
_COMMAND_TERMINATORS = (TokenType.PIPE,) + _PIPE_TERMINATORS
_LEGACY_OCTAL_RE = re.compile(r"[+-]?0[0-7]+")


def _parse_number(text: str, line: int):
    """Convert a number literal to int or float.

    A leading zero marks an octal integer, so ``010`` is 8.
    """
    cleaned = text.replace("_", "")
    if _LEGACY_OCTAL_RE.fullmatch(cleaned):
        return int(cleaned, 8)
    try:
        return int(cleaned, 0)
    except ValueError:
        pass
    try:
        return float(cleaned)
    except ValueError:
        raise ScriptParseError(f"bad number syntax: {text!r}", line) from None


class Parser:
    """Recursive descent parser over a token tuple.

    Attributes:
        functions: Names callable from the script.
    """

    def __init__(self, tokens: Tuple[Token, ...], functions: AbstractSet[str]):
        self.tokens = tokens
        self.functions = functions
        self.index = 0
        self._vars: List[str] = ["$"]

    # -------------------------------------------------------------------------
    # Token helpers
    # -------------------------------------------------------------------------
    def _peek(self, offset: int = 0) -> Token:
        index = min(self.index + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def _next(self) -> Token:
        token = self._peek()
        if self.index < len(self.tokens) - 1:
            self.index += 1
        return token

    def _expect(self, type_: TokenType, context: str) -> Token:
        token = self._next()
        if token.type != type_:
            raise ScriptParseError(
                f"unexpected {self._describe(token)} in {context}", token.line
            )
        return token

    @staticmethod
    def _describe(token: Token) -> str:
        if token.type == TokenType.EOF:
            return "EOF"
        if token.type == TokenType.RIGHT_DELIM:
            return '"}}"'
        return f"{token.type.value} {token.value!r}"

    # -------------------------------------------------------------------------
    # Lists and control structures
    # -------------------------------------------------------------------------
    def parse(self) -> ListNode:
        """Parse the whole script.

        Returns:
            The root list node.

        Raises:
            ScriptParseError: If the script is not a valid template.
        """
        body, terminator = self._parse_list()
        if terminator is not None:
            raise ScriptParseError(f"unexpected {{{{{terminator}}}}}", self._peek().line)
        return body

    def _parse_list(self) -> Tuple[ListNode, Optional[str]]:
        """Parse nodes until EOF, ``{{else`` or ``{{end``.

        Returns:
            The parsed list and the terminating keyword ("else", "end"), or
            None when EOF was reached. The keyword token is consumed.
        """
        nodes = []
        while True:
            token = self._peek()
            if token.type == TokenType.EOF:
                return ListNode(tuple(nodes)), None

            if token.type == TokenType.TEXT:
                self._next()
                nodes.append(TextNode(token.value))
                continue

            self._expect(TokenType.LEFT_DELIM, "template")
            keyword = self._peek()
            if keyword.type == TokenType.IDENTIFIER and keyword.value in ("else", "end"):
                self._next()
                return ListNode(tuple(nodes)), keyword.value

            if keyword.type == TokenType.IDENTIFIER and keyword.value in ("if", "range", "with"):
                self._next()
                nodes.append(self._parse_branch(keyword.value, keyword.line))
                continue

            pipe = self._parse_pipeline("command")
            self._expect(TokenType.RIGHT_DELIM, "command")
            nodes.append(ActionNode(pipe.line, pipe))

    def _parse_branch(self, keyword: str, line: int):
        """Parse the rest of an ``if``, ``range`` or ``with`` action.

        The keyword token has already been consumed.
        """
        scope = len(self._vars)
        pipe = self._parse_pipeline(keyword)
        self._expect(TokenType.RIGHT_DELIM, keyword)

        body, terminator = self._parse_list()
        else_body = None

        if terminator == "else":
            chained = self._peek()
            if (
                keyword in ("if", "with")
                and chained.type == TokenType.IDENTIFIER
                and chained.value == keyword
            ):
                # {{else if ...}} and {{else with ...}} nest a branch that
                # consumes the shared {{end}}
                self._next()
                nested = self._parse_branch(keyword, chained.line)
                else_body = ListNode((nested,))
                terminator = "end"
            else:
                self._expect(TokenType.RIGHT_DELIM, "else")
                else_body, terminator = self._parse_list()
                if terminator != "end":
                    raise ScriptParseError(
                        f"expected {{{{end}}}} to close {keyword}", self._peek().line
                    )
                self._expect(TokenType.RIGHT_DELIM, "end")
        elif terminator == "end":
            self._expect(TokenType.RIGHT_DELIM, "end")
        else:
            raise ScriptParseError(f"unexpected EOF in {keyword}", line)

        del self._vars[scope:]

        node_type = {"if": IfNode, "range": RangeNode, "with": WithNode}[keyword]
        return node_type(line, pipe, body, else_body)

    # -------------------------------------------------------------------------
    # Pipelines, commands and operands
    # -------------------------------------------------------------------------
    def _parse_pipeline(self, context: str) -> PipeNode:
        start = self._peek()
        decl, is_assign = self._parse_declarations(context)

        cmds = []
        while True:
            cmds.append(self._parse_command(context))
            if self._peek().type == TokenType.PIPE:
                self._next()
                continue
            break

        if self._peek().type not in _PIPE_TERMINATORS:
            raise ScriptParseError(
                f"unexpected {self._describe(self._peek())} in {context}",
                self._peek().line,
            )

        for name in decl:
            if not is_assign:
                self._vars.append(name)

        return PipeNode(start.line, decl, is_assign, tuple(cmds))

    def _parse_declarations(self, context: str) -> Tuple[Tuple[str, ...], bool]:
        """Parse ``$x :=``, ``$x =`` or ``$i, $v :=`` at the pipeline start."""
        first = self._peek()
        if first.type != TokenType.VARIABLE:
            return (), False

        following = self._peek(1)
        if following.type in (TokenType.DECLARE, TokenType.ASSIGN):
            self._next()
            self._next()
            is_assign = following.type == TokenType.ASSIGN
            if is_assign:
                self._check_variable(first.value, first.line)
            return (first.value,), is_assign

        if (
            context == "range"
            and following.type == TokenType.COMMA
            and self._peek(2).type == TokenType.VARIABLE
            and self._peek(3).type in (TokenType.DECLARE, TokenType.ASSIGN)
        ):
            second = self._peek(2)
            operator = self._peek(3)
            for _ in range(4):
                self._next()
            is_assign = operator.type == TokenType.ASSIGN
            if is_assign:
                self._check_variable(first.value, first.line)
                self._check_variable(second.value, second.line)
            return (first.value, second.value), is_assign

        return (), False

    def _parse_command(self, context: str) -> CommandNode:
        line = self._peek().line
        args: List[Operand] = []
        while self._peek().type not in _COMMAND_TERMINATORS:
            if self._peek().type == TokenType.EOF:
                raise ScriptParseError(f"unclosed action in {context}", line)
            args.append(self._parse_operand())

        if not args:
            raise ScriptParseError(f"missing value for {context}", line)

        return CommandNode(line, tuple(args))

    def _parse_operand(self) -> Operand:
        token = self._next()

        if token.type == TokenType.FIELD:
            return FieldNode((token.value,) + self._parse_chain())

        if token.type == TokenType.DOT:
            return DotNode()

        if token.type == TokenType.VARIABLE:
            self._check_variable(token.value, token.line)
            return VariableNode(token.value, self._parse_chain())

        if token.type == TokenType.STRING:
            return StringNode(token.value)

        if token.type == TokenType.NUMBER:
            return NumberNode(_parse_number(token.value, token.line))

        if token.type == TokenType.IDENTIFIER:
            return self._parse_identifier(token)

        if token.type == TokenType.LPAREN:
            pipe = self._parse_pipeline("parenthesized pipeline")
            self._expect(TokenType.RPAREN, "parenthesized pipeline")
            chain = self._parse_chain()
            return ChainNode(pipe, chain) if chain else pipe

        raise ScriptParseError(f"unexpected {self._describe(token)} in operand", token.line)

    def _parse_identifier(self, token: Token) -> Operand:
        name = token.value
        if name == "true":
            return BoolNode(True)
        if name == "false":
            return BoolNode(False)
        if name == "nil":
            return NilNode()
        if name in KEYWORDS:
            raise ScriptParseError(f"unexpected keyword {name!r}", token.line)
        if name not in self.functions:
            raise ScriptParseError(f"function {name!r} not defined", token.line)
        return IdentifierNode(name)

    def _parse_chain(self) -> Tuple[str, ...]:
        """Collect field tokens directly attached to the previous operand."""
        names = []
        while self._peek().type == TokenType.FIELD and not self._peek().space_before:
            names.append(self._next().value)
        return tuple(names)

    def _check_variable(self, name: str, line: int) -> None:
        if name not in self._vars:
            raise ScriptParseError(f"undefined variable {name!r}", line)


def parse(text: str, functions: AbstractSet[str]) -> ListNode:
    """Parse template text into a syntax tree.

    Args:
        text: The script source.
        functions: Names of the functions the script may call.

    Returns:
        The root list node.

    Raises:
        ScriptParseError: If the text is not a valid template.
    """
    return Parser(tokenize(text), functions).parse()
