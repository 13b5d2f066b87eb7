"""Token types, data structures, and character classification helpers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    # Words
    IDENTIFIER = auto()  # custom token names, modifier names
    KEYWORD = auto()  # builtin words: letter, optional, not, or, with, ...

    # Literals
    STRING = auto()  # 'quoted': value is the decoded text
    NUMBER = auto()  # bare integer used by quantifier bounds

    # Sigils
    HASH_NAME = auto()  # #name: value is the name
    BACKREF = auto()  # @name or @3: value is the name or digits

    # Punctuation
    LPAREN = auto()  # (
    RPAREN = auto()  # )
    COMMA = auto()  # ,

    # Operators
    QUESTION = auto()  # ?
    PLUS = auto()  # +
    STAR = auto()  # *
    DASH = auto()  # -
    TIMES = auto()  # x directly after a number, as in 4x

    EOF = auto()


@dataclass(frozen=True, slots=True)
class Position:
    """Source position, 1-based line and column, 0-based offset."""

    line: int
    column: int
    offset: int


@dataclass(frozen=True, slots=True)
class Span:
    """Source range from start to end position."""

    start: Position
    end: Position


NOWHERE = Span(Position(1, 1, 0), Position(1, 1, 0))


@dataclass(frozen=True, slots=True)
class Token:
    """A single lexer token with resolved value and original source text."""

    type: TokenType
    value: str
    raw: str
    span: Span


def is_ident_start(ch: str) -> bool:
    """Return True if ch may start an identifier."""
    return ch.isascii() and (ch.isalpha() or ch == "_")


def is_ident_char(ch: str) -> bool:
    """Return True if ch may continue an identifier."""
    return ch.isascii() and (ch.isalnum() or ch == "_")


def is_hex_digit(ch: str) -> bool:
    """Return True if ch is a hexadecimal digit."""
    return ch != "" and ch in "0123456789abcdefABCDEF"
