"""AST node types for parsed RegXL expressions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Union

from regxl.tokens import NOWHERE, Span


class GroupKind(Enum):
    NON_CAPTURING = auto()
    CAPTURING = auto()
    NAMED = auto()


class AssertionKind(Enum):
    START = auto()
    END = auto()
    START_LINE = auto()
    END_LINE = auto()
    WORD_BOUNDARY = auto()
    LOOKAHEAD = auto()
    LOOKBEHIND = auto()


@dataclass(frozen=True, slots=True)
class Literal:
    """One concrete character."""

    char: str
    span: Span = field(default=NOWHERE, compare=False, repr=False)


@dataclass(frozen=True, slots=True)
class CharRange:
    """Inclusive codepoint range, low <= high."""

    low: str
    high: str
    span: Span = field(default=NOWHERE, compare=False, repr=False)


@dataclass(frozen=True, slots=True)
class NamedClass:
    """Reference to a builtin class such as letter or digit."""

    name: str
    span: Span = field(default=NOWHERE, compare=False, repr=False)


@dataclass(frozen=True, slots=True)
class CharClass:
    """A set of characters, possibly negated."""

    members: tuple[Literal | CharRange | NamedClass, ...]
    negated: bool = False
    span: Span = field(default=NOWHERE, compare=False, repr=False)


@dataclass(frozen=True, slots=True)
class Group:
    """Parenthesized sub-expression; name is set only for NAMED groups."""

    body: Node
    kind: GroupKind = GroupKind.NON_CAPTURING
    name: str | None = None
    span: Span = field(default=NOWHERE, compare=False, repr=False)


@dataclass(frozen=True, slots=True)
class Backreference:
    """@name or @n: target is a group name or a 1-based group number."""

    target: int | str
    span: Span = field(default=NOWHERE, compare=False, repr=False)


@dataclass(frozen=True, slots=True)
class Assertion:
    """Zero-width assertion; body is set for lookahead and lookbehind."""

    kind: AssertionKind
    negated: bool = False
    body: Node | None = None
    span: Span = field(default=NOWHERE, compare=False, repr=False)


@dataclass(frozen=True, slots=True)
class Alternation:
    left: Node
    right: Node
    span: Span = field(default=NOWHERE, compare=False, repr=False)


@dataclass(frozen=True, slots=True)
class Sequence:
    parts: tuple[Node, ...]
    span: Span = field(default=NOWHERE, compare=False, repr=False)


@dataclass(frozen=True, slots=True)
class Quantifier:
    """Repetition of body; max None means unbounded."""

    body: Node
    min: int
    max: int | None
    greedy: bool = True
    span: Span = field(default=NOWHERE, compare=False, repr=False)


@dataclass(frozen=True, slots=True)
class CustomTokenCall:
    """Call of a user-supplied token; removed by the resolver."""

    name: str
    args: tuple[Node, ...] = ()
    content: Node | None = None
    span: Span = field(default=NOWHERE, compare=False, repr=False)


@dataclass(frozen=True, slots=True)
class Root:
    """Whole expression plus the modifiers of its trailing with clause."""

    body: Node
    modifiers: frozenset[str] = frozenset()
    span: Span = field(default=NOWHERE, compare=False, repr=False)


Node = Union[
    Literal,
    CharClass,
    Group,
    Backreference,
    Assertion,
    Alternation,
    Sequence,
    Quantifier,
    CustomTokenCall,
]
