"""Builtin keyword tables used by the lexer, parser and generator."""

from __future__ import annotations

from dataclasses import dataclass

from regxl.ast import AssertionKind


@dataclass(frozen=True, slots=True)
class ClassForm:
    """Lowering of a named class in one mode.

    ``item`` is the text placed between brackets when the class is a
    member of a larger set; ``single`` marks items that are already a
    complete pattern atom on their own (``\\p{L}``, ``\\t``).
    """

    item: str
    single: bool


@dataclass(frozen=True, slots=True)
class ClassDef:
    """Definition of a builtin character class."""

    name: str
    unicode: ClassForm
    binary: ClassForm | None
    negatable: bool = True
    member: bool = True


def _make_classes() -> dict[str, ClassDef]:
    defs: dict[str, ClassDef] = {}

    def d(
        name: str,
        unicode: tuple[str, bool],
        binary: tuple[str, bool] | None = None,
        *,
        negatable: bool = True,
        member: bool = True,
    ) -> None:
        uform = ClassForm(*unicode)
        if binary is None:
            bform: ClassForm | None = uform
        else:
            bform = ClassForm(*binary)
        defs[name] = ClassDef(name, uform, bform, negatable, member)

    # Wildcards
    d("any", (".", True), negatable=False, member=False)
    d("anything", (r"\s\S", False), negatable=False, member=False)

    # Numbers
    d("digit", ("0-9", False))
    d("numeric", (r"\p{N}", True), ("0-9", False))

    # Letters
    d("alphaNumeric", (r"\p{L}\p{N}", False), ("A-Za-z0-9", False))
    d("ascii", (r"\x00-\x7F", False))
    d("letter", (r"\p{L}", True), ("A-Za-z", False))
    d("upperLetter", (r"\p{Lu}", True), ("A-Z", False))
    d("lowerLetter", (r"\p{Ll}", True), ("a-z", False))
    defs["emoji"] = ClassDef("emoji", ClassForm(r"\p{Extended_Pictographic}", True), None)

    # Whitespace and control characters
    d("whitespace", (r"\p{White_Space}", True), (r"\t\n\v\f\r ", False))
    d("space", (" ", True))
    d("tab", (r"\t", True))
    d("tabSpace", (r"\t ", False))
    d("newline", (r"\n", True))
    d("null", (r"\x00", True))

    return defs


CLASSES: dict[str, ClassDef] = _make_classes()

# Composite builtins expand to these RegXL snippets at parse time
COMPOSITES: dict[str, str] = {
    "integer": "optional oneOf('+' '-') digit+",
    "decimal": "optional oneOf('+' '-') ((digit+ optional('.' digit+)) or ('.' digit+))",
}

# name -> (kind, takes a parenthesized body)
#
# alphaNumericBoundary lowers to \b, which JavaScript engines evaluate
# against ASCII [A-Za-z0-9_] even under the u flag. In Unicode mode it
# therefore disagrees with alphaNumeric: 'é' is alphaNumeric but does
# not form a boundary.
ASSERTIONS: dict[str, tuple[AssertionKind, bool]] = {
    "start": (AssertionKind.START, False),
    "end": (AssertionKind.END, False),
    "startLine": (AssertionKind.START_LINE, False),
    "endLine": (AssertionKind.END_LINE, False),
    "alphaNumericBoundary": (AssertionKind.WORD_BOUNDARY, False),
    "followedBy": (AssertionKind.LOOKAHEAD, True),
    "precededBy": (AssertionKind.LOOKBEHIND, True),
}

# Prefix quantifier keywords: name -> (min, max, greedy); max None is unbounded
PREFIX_QUANTIFIERS: dict[str, tuple[int, int | None, bool]] = {
    "optional": (0, 1, True),
    "maybe": (0, 1, False),
    "asMany": (1, None, True),
    "many": (1, None, False),
}

# "optional" followed by one of these widens to zero-or-more
OPTIONAL_COMBINATIONS: dict[str, tuple[int, int | None, bool]] = {
    "asMany": (0, None, True),
    "many": (0, None, False),
}

# Modifier name -> flag letter it adds; binary is handled by removing "u"
MODIFIERS: dict[str, str | None] = {
    "ignoreCase": "i",
    "indices": "d",
    "binary": None,
}

DEFAULT_FLAGS: frozenset[str] = frozenset({"g", "u"})

# Canonical order used when rendering a flag set
FLAG_ORDER = "dgimsuvy"

STRUCTURAL: frozenset[str] = frozenset(
    {"not", "or", "to", "with", "oneOf", "group", "fewest", "possessive"}
)

KEYWORDS: frozenset[str] = frozenset(
    set(CLASSES) | set(COMPOSITES) | set(ASSERTIONS) | set(PREFIX_QUANTIFIERS) | STRUCTURAL
)


def is_builtin(name: str) -> bool:
    """Return True if name is reserved by the language."""
    return name in KEYWORDS


def render_flags(flags: frozenset[str] | set[str]) -> str:
    """Render a flag set in canonical order."""
    return "".join(ch for ch in FLAG_ORDER if ch in flags)
