"""Code generator — lowers a resolved AST to pattern text and flags."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property

import regex

from regxl.ast import (
    Alternation,
    Assertion,
    AssertionKind,
    Backreference,
    CharClass,
    CharRange,
    CustomTokenCall,
    Group,
    GroupKind,
    Literal,
    NamedClass,
    Node,
    Quantifier,
    Root,
    Sequence,
)
from regxl.builtins import CLASSES, DEFAULT_FLAGS, MODIFIERS, ClassForm, render_flags
from regxl.errors import GenerationError


@dataclass(frozen=True)
class CompiledPattern:
    """Pattern text and flags ready for a backtracking regex engine."""

    pattern: str
    flags: str

    def __str__(self) -> str:
        return f"/{self.pattern}/{self.flags}"

    @cached_property
    def regex(self) -> regex.Pattern[str]:
        """The pattern compiled with the ``regex`` library."""
        options = regex.V0
        if "i" in self.flags:
            options |= regex.IGNORECASE
        if "u" not in self.flags:
            options |= regex.ASCII
        return regex.compile(_host_pattern(self.pattern), options)


# $ matches only at the very end of input; . excludes every line terminator
_HOST_OUTSIDE_CLASS: dict[str, str] = {
    "$": "\\Z",
    ".": "[^\\n\\r\\u2028\\u2029]",
}


def _host_pattern(pattern: str) -> str:
    """Translate emitted pattern text to the dialect the regex library reads.

    ``\\k<name>`` becomes ``(?P=name)``; outside a class ``$`` and ``.``
    are replaced so they match as they would in a JavaScript engine.
    """
    out: list[str] = []
    in_class = False
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and not in_class and pattern.startswith("k<", i + 1):
            close = pattern.index(">", i + 3)
            out.append(f"(?P={pattern[i + 3 : close]})")
            i = close + 1
            continue
        if ch == "\\":
            out.append(pattern[i : i + 2])
            i += 2
            continue
        if in_class:
            in_class = ch != "]"
            out.append(ch)
        elif ch == "[":
            in_class = True
            out.append(ch)
        else:
            out.append(_HOST_OUTSIDE_CLASS.get(ch, ch))
        i += 1
    return "".join(out)


# Characters with syntactic meaning outside a class
_SYNTAX = frozenset("\\^$.|?*+()[]{}/")
# Characters with syntactic meaning inside a class
_CLASS_SYNTAX = frozenset("\\]-^[")
_CONTROL_ESCAPES: dict[str, str] = {
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    "\f": "\\f",
}

_ASSERTION_TEXT: dict[AssertionKind, tuple[str, str]] = {
    AssertionKind.START: ("^", "(?!^)"),
    AssertionKind.END: ("$", "(?!$)"),
    AssertionKind.START_LINE: ("(?<=^|\\n)", "(?<!^|\\n)"),
    AssertionKind.END_LINE: ("(?=$|\\n)", "(?!$|\\n)"),
    AssertionKind.WORD_BOUNDARY: ("\\b", "\\B"),
}

_LOOKAROUND_OPEN: dict[tuple[AssertionKind, bool], str] = {
    (AssertionKind.LOOKAHEAD, False): "(?=",
    (AssertionKind.LOOKAHEAD, True): "(?!",
    (AssertionKind.LOOKBEHIND, False): "(?<=",
    (AssertionKind.LOOKBEHIND, True): "(?<!",
}


def _escape_char(ch: str, syntax: frozenset[str]) -> str:
    if ch in syntax:
        return "\\" + ch
    if ch in _CONTROL_ESCAPES:
        return _CONTROL_ESCAPES[ch]
    code = ord(ch)
    if code < 0x20 or code == 0x7F:
        return f"\\x{code:02X}"
    return ch


def _flags_for(modifiers: frozenset[str]) -> str:
    flags = set(DEFAULT_FLAGS)
    for name in modifiers:
        if name not in MODIFIERS:
            raise GenerationError(f"unsupported modifier '{name}'")
        if name == "binary":
            flags.discard("u")
        else:
            flag = MODIFIERS[name]
            if flag is not None:
                flags.add(flag)
    return render_flags(flags)


class Generator:
    """Lower one resolved AST; group numbering is tracked left to right."""

    def __init__(self, binary: bool = False, source: str = "") -> None:
        self._binary = binary
        self._source = source
        self._next_group = 1
        self._closed_numbers: set[int] = set()
        self._closed_names: set[str] = set()
        self._names: set[str] = set()

    def _error(self, message: str, node: Node | None = None) -> GenerationError:
        if node is None:
            return GenerationError(message, source=self._source)
        return GenerationError(message, node.span, self._source)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def emit(self, node: Node) -> str:
        if isinstance(node, Literal):
            return _escape_char(node.char, _SYNTAX)
        if isinstance(node, CharClass):
            return self._emit_class(node)
        if isinstance(node, Group):
            return self._emit_group(node)
        if isinstance(node, Backreference):
            return self._emit_backreference(node)
        if isinstance(node, Assertion):
            return self._emit_assertion(node)
        if isinstance(node, Alternation):
            return f"{self._emit_branch(node.left)}|{self._emit_branch(node.right)}"
        if isinstance(node, Sequence):
            return self._emit_sequence(node)
        if isinstance(node, Quantifier):
            return self._emit_quantifier(node)
        if isinstance(node, CustomTokenCall):
            raise self._error(f"unresolved custom token '{node.name}'", node)
        raise TypeError(f"unexpected node type: {type(node).__name__}")

    # ------------------------------------------------------------------
    # Character classes
    # ------------------------------------------------------------------

    def _form(self, member: NamedClass, node: CharClass) -> ClassForm:
        definition = CLASSES.get(member.name)
        if definition is None:
            raise self._error(f"unknown character class '{member.name}'", node)
        form = definition.binary if self._binary else definition.unicode
        if form is None:
            raise self._error(f"'{member.name}' is not available with the binary modifier", node)
        if node.negated and not definition.negatable:
            raise self._error(f"'{member.name}' does not support negation", node)
        if len(node.members) > 1 and not definition.member:
            raise self._error(f"'{member.name}' cannot be combined with other characters", node)
        return form

    def _member_item(self, member: Literal | CharRange | NamedClass, node: CharClass) -> str:
        if isinstance(member, Literal):
            return _escape_char(member.char, _CLASS_SYNTAX)
        if isinstance(member, CharRange):
            if ord(member.low) > ord(member.high):
                raise self._error(
                    f"invalid range {member.low!r} to {member.high!r}: bounds out of order", node
                )
            low = _escape_char(member.low, _CLASS_SYNTAX)
            high = _escape_char(member.high, _CLASS_SYNTAX)
            return f"{low}-{high}"
        return self._form(member, node).item

    def _emit_class(self, node: CharClass) -> str:
        if not node.members:
            raise self._error("empty character class", node)

        if len(node.members) == 1:
            member = node.members[0]
            if isinstance(member, Literal) and not node.negated:
                return _escape_char(member.char, _SYNTAX)
            if isinstance(member, NamedClass):
                form = self._form(member, node)
                if form.single and not node.negated:
                    return form.item
                if form.single and form.item.startswith("\\p{"):
                    return "\\P" + form.item[2:]

        items = "".join(self._member_item(m, node) for m in node.members)
        caret = "^" if node.negated else ""
        return f"[{caret}{items}]"

    # ------------------------------------------------------------------
    # Groups and backreferences
    # ------------------------------------------------------------------

    def _emit_group(self, node: Group) -> str:
        if node.kind == GroupKind.NON_CAPTURING:
            return f"(?:{self.emit(node.body)})"

        number = self._next_group
        self._next_group += 1

        if node.kind == GroupKind.NAMED:
            if node.name is None:
                raise self._error("named group without a name", node)
            if node.name in self._names:
                raise self._error(f"duplicate group name '{node.name}'", node)
            self._names.add(node.name)
            text = f"(?<{node.name}>{self.emit(node.body)})"
            self._closed_names.add(node.name)
        else:
            text = f"({self.emit(node.body)})"

        self._closed_numbers.add(number)
        return text

    def _emit_backreference(self, node: Backreference) -> str:
        if isinstance(node.target, int):
            if node.target not in self._closed_numbers:
                raise self._error(f"backreference to missing group {node.target}", node)
            return f"\\{node.target}"
        if node.target not in self._closed_names:
            raise self._error(f"backreference to missing group '{node.target}'", node)
        return f"\\k<{node.target}>"

    # ------------------------------------------------------------------
    # Assertions
    # ------------------------------------------------------------------

    def _emit_assertion(self, node: Assertion) -> str:
        if node.kind in _ASSERTION_TEXT:
            plain, negated = _ASSERTION_TEXT[node.kind]
            return negated if node.negated else plain
        if node.body is None:
            raise self._error("lookaround assertion without a body", node)
        return f"{_LOOKAROUND_OPEN[(node.kind, node.negated)]}{self.emit(node.body)})"

    # ------------------------------------------------------------------
    # Sequences and quantifiers
    # ------------------------------------------------------------------

    def _emit_branch(self, node: Node) -> str:
        # alternation binds loosest, so a branch never needs its own group
        if isinstance(node, Group) and node.kind == GroupKind.NON_CAPTURING:
            return self.emit(node.body)
        return self.emit(node)

    def _emit_sequence(self, node: Sequence) -> str:
        out: list[str] = []
        previous: Node | None = None
        for part in node.parts:
            text = self.emit(part)
            if isinstance(part, Alternation):
                text = f"(?:{text})"
            # \1 followed by a digit would read as \10
            if (
                isinstance(previous, Backreference)
                and isinstance(previous.target, int)
                and text[:1].isdigit()
            ):
                out[-1] = f"(?:{out[-1]})"
            out.append(text)
            previous = part
        return "".join(out)

    def _emit_quantifier(self, node: Quantifier) -> str:
        if isinstance(node.body, Assertion):
            raise self._error("assertions cannot be quantified", node)
        if node.min < 0 or (node.max is not None and node.min > node.max):
            raise self._error(f"invalid quantifier bounds {node.min}..{node.max}", node)

        body = self.emit(node.body)
        if not _is_atomic(node.body):
            body = f"(?:{body})"

        if (node.min, node.max) == (0, 1):
            suffix = "?"
        elif (node.min, node.max) == (0, None):
            suffix = "*"
        elif (node.min, node.max) == (1, None):
            suffix = "+"
        elif node.max is None:
            suffix = f"{{{node.min},}}"
        elif node.min == node.max:
            suffix = f"{{{node.min}}}"
        else:
            suffix = f"{{{node.min},{node.max}}}"

        if not node.greedy:
            suffix += "?"
        return body + suffix


def _is_atomic(node: Node) -> bool:
    """True when node lowers to a single atom that a quantifier can follow."""
    if isinstance(node, (Literal, CharClass, Group, Backreference)):
        return True
    if isinstance(node, Sequence) and len(node.parts) == 1:
        return _is_atomic(node.parts[0])
    return False


def generate(root: Root, source: str = "") -> CompiledPattern:
    """Lower a fully resolved Root to a CompiledPattern."""
    flags = _flags_for(root.modifiers)
    generator = Generator(binary="u" not in flags, source=source)
    return CompiledPattern(generator.emit(root.body), flags)
