"""Tokenizer for template scripts.

Scripts are plain text with actions between ``{{`` and ``}}``. Text outside
actions becomes a single TEXT token; inside an action the lexer produces
identifiers, fields, variables, literals and punctuation.

Whitespace trimming follows the usual template convention: ``{{- `` removes
whitespace before the action and `` -}}`` removes whitespace after it. The
dash must be separated from the action body by whitespace, so ``{{-3}}`` is
still the number -3.

Comments (``{{/* ... */}}``) produce no tokens.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from .errors import ScriptParseError

LEFT_DELIM = "{{"
RIGHT_DELIM = "}}"

_WHITESPACE = " \t\r\n"
_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NUMBER_RE = re.compile(
    r"[+-]?(?:0[xX][0-9a-fA-F_]+|0[oO][0-7_]+|0[bB][01_]+"
    r"|(?:\d[\d_]*(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)"
)

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


class TokenType(str, Enum):
    """Kinds of tokens produced by the lexer."""

    TEXT = "text"
    LEFT_DELIM = "left_delim"
    RIGHT_DELIM = "right_delim"
    IDENTIFIER = "identifier"
    FIELD = "field"
    DOT = "dot"
    VARIABLE = "variable"
    STRING = "string"
    NUMBER = "number"
    PIPE = "pipe"
    LPAREN = "lparen"
    RPAREN = "rparen"
    DECLARE = "declare"
    ASSIGN = "assign"
    COMMA = "comma"
    EOF = "eof"


@dataclass(frozen=True)
class Token:
    """A single lexical token.

    Attributes:
        type: The token kind.
        value: Token text. Field tokens hold the name without the dot and
               string tokens hold the unescaped value.
        line: 1-based line number where the token starts.
        space_before: Whether whitespace separates this token from the
                      previous one inside an action. Field chains such as
                      ``$x.a.b`` rely on this.
    """

    type: TokenType
    value: str
    line: int
    space_before: bool = False


def _unescape(body: str, line: int) -> str:
    """Decode the backslash escapes of a double-quoted string literal."""
    out: List[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        if i + 1 >= len(body):
            raise ScriptParseError("unterminated escape in string", line)
        esc = body[i + 1]
        if esc in _ESCAPES:
            out.append(_ESCAPES[esc])
            i += 2
        elif esc in "xuU":
            size = {"x": 2, "u": 4, "U": 8}[esc]
            digits = body[i + 2 : i + 2 + size]
            if len(digits) != size or not all(c in "0123456789abcdefABCDEF" for c in digits):
                raise ScriptParseError(f"invalid \\{esc} escape in string", line)
            out.append(chr(int(digits, 16)))
            i += 2 + size
        else:
            raise ScriptParseError(f"unknown escape sequence \\{esc}", line)
    return "".join(out)


class Lexer:
    """Splits template text into tokens.

    Usage:
        tokens = Lexer(text).tokenize()
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.line = 1
        self.tokens: List[Token] = []

    def tokenize(self) -> List[Token]:
        """Tokenize the whole text.

        Returns:
            The token list, always terminated by an EOF token.

        Raises:
            ScriptParseError: On unterminated actions, strings or comments,
                              and on characters that cannot start a token.
        """
        text = self.text
        while self.pos < len(text):
            start = text.find(LEFT_DELIM, self.pos)
            if start == -1:
                self._emit_text(text[self.pos :])
                self.pos = len(text)
                break

            inner = start + len(LEFT_DELIM)
            chunk = text[self.pos : start]
            if self._is_trim_marker(inner):
                stripped = chunk.rstrip(_WHITESPACE)
                self._emit_text(stripped)
                self._count_lines(chunk[len(stripped) :])
                inner += 1
            else:
                self._emit_text(chunk)

            self.pos = inner
            trim_right = self._lex_action()
            if trim_right:
                end = self.pos
                while end < len(text) and text[end] in _WHITESPACE:
                    end += 1
                self._count_lines(text[self.pos : end])
                self.pos = end

        self.tokens.append(Token(TokenType.EOF, "", self.line))
        return self.tokens

    def _is_trim_marker(self, pos: int) -> bool:
        text = self.text
        return (
            pos + 1 < len(text)
            and text[pos] == "-"
            and text[pos + 1] in _WHITESPACE
        )

    def _count_lines(self, chunk: str) -> None:
        self.line += chunk.count("\n")

    def _emit_text(self, chunk: str) -> None:
        if chunk:
            self.tokens.append(Token(TokenType.TEXT, chunk, self.line))
            self._count_lines(chunk)

    def _emit(self, type_: TokenType, value: str, space_before: bool) -> None:
        self.tokens.append(Token(type_, value, self.line, space_before))

    def _lex_action(self) -> bool:
        """Lex one action body up to and including the right delimiter.

        Returns:
            True if the action ends with a trim marker (`` -}}``).
        """
        text = self.text
        open_line = self.line
        self._emit(TokenType.LEFT_DELIM, LEFT_DELIM, False)
        opened_at = len(self.tokens)
        saw_comment = False
        space = False

        while True:
            while self.pos < len(text) and text[self.pos] in _WHITESPACE:
                if text[self.pos] == "\n":
                    self.line += 1
                self.pos += 1
                space = True

            if self.pos >= len(text):
                raise ScriptParseError("unclosed action", open_line)

            if space and text.startswith("-" + RIGHT_DELIM, self.pos):
                self.pos += 1 + len(RIGHT_DELIM)
                return self._close_action(opened_at, saw_comment, trim=True)

            if text.startswith(RIGHT_DELIM, self.pos):
                self.pos += len(RIGHT_DELIM)
                return self._close_action(opened_at, saw_comment, trim=False)

            if text.startswith("/*", self.pos):
                end = text.find("*/", self.pos + 2)
                if end == -1:
                    raise ScriptParseError("unclosed comment", self.line)
                self._count_lines(text[self.pos : end])
                self.pos = end + 2
                saw_comment = True
                space = True
                continue

            self._lex_token(space)
            space = False

    def _close_action(self, opened_at: int, saw_comment: bool, trim: bool) -> bool:
        if saw_comment and len(self.tokens) == opened_at:
            # comment-only action: drop it entirely
            self.tokens.pop()
        else:
            self._emit(TokenType.RIGHT_DELIM, RIGHT_DELIM, False)
        return trim

    def _lex_token(self, space: bool) -> None:
        text = self.text
        pos = self.pos
        ch = text[pos]

        single = {
            "|": TokenType.PIPE,
            "(": TokenType.LPAREN,
            ")": TokenType.RPAREN,
            ",": TokenType.COMMA,
        }
        if ch in single:
            self._emit(single[ch], ch, space)
            self.pos += 1
            return

        if text.startswith(":=", pos):
            self._emit(TokenType.DECLARE, ":=", space)
            self.pos += 2
            return

        if ch == "=":
            self._emit(TokenType.ASSIGN, "=", space)
            self.pos += 1
            return

        if ch == '"':
            self._lex_quoted(space)
            return

        if ch == "`":
            end = text.find("`", pos + 1)
            if end == -1:
                raise ScriptParseError("unterminated raw string", self.line)
            value = text[pos + 1 : end]
            self._emit(TokenType.STRING, value, space)
            self._count_lines(value)
            self.pos = end + 1
            return

        if ch == "$":
            match = _IDENTIFIER_RE.match(text, pos + 1)
            name = "$" + (match.group(0) if match else "")
            self._emit(TokenType.VARIABLE, name, space)
            self.pos = match.end() if match else pos + 1
            return

        if ch == ".":
            match = _IDENTIFIER_RE.match(text, pos + 1)
            if match:
                self._emit(TokenType.FIELD, match.group(0), space)
                self.pos = match.end()
                return
            if not (pos + 1 < len(text) and text[pos + 1].isdigit()):
                self._emit(TokenType.DOT, ".", space)
                self.pos += 1
                return

        number = _NUMBER_RE.match(text, pos)
        if number and (ch.isdigit() or ch in "+-."):
            self._emit(TokenType.NUMBER, number.group(0), space)
            self.pos = number.end()
            return

        identifier = _IDENTIFIER_RE.match(text, pos)
        if identifier:
            self._emit(TokenType.IDENTIFIER, identifier.group(0), space)
            self.pos = identifier.end()
            return

        raise ScriptParseError(f"unexpected character {ch!r} in action", self.line)

    def _lex_quoted(self, space: bool) -> None:
        text = self.text
        i = self.pos + 1
        while i < len(text):
            ch = text[i]
            if ch == "\\":
                i += 2
                continue
            if ch == "\n":
                break
            if ch == '"':
                body = text[self.pos + 1 : i]
                self._emit(TokenType.STRING, _unescape(body, self.line), space)
                self.pos = i + 1
                return
            i += 1
        raise ScriptParseError("unterminated quoted string", self.line)


def tokenize(text: str) -> Tuple[Token, ...]:
    """Tokenize template text."""
    return tuple(Lexer(text).tokenize())
