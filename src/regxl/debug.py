"""--debug AST dump to stderr."""

from __future__ import annotations

import sys
from typing import TextIO

from regxl.ast import (
    Alternation,
    Assertion,
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


def dump_ast(root: Root, *, file: TextIO | None = None) -> None:
    """Print a human-readable AST tree to *file* (default: stderr)."""
    if file is None:
        file = sys.stderr
    modifiers = " ".join(sorted(root.modifiers))
    file.write(f"Root with ({modifiers})\n" if modifiers else "Root\n")
    _dump_node(root.body, 1, file)


def _indent(depth: int) -> str:
    return "  " * depth


def _member_text(member: Literal | CharRange | NamedClass) -> str:
    if isinstance(member, Literal):
        return repr(member.char)
    if isinstance(member, CharRange):
        return f"{member.low!r} to {member.high!r}"
    return member.name


def _dump_node(node: Node | str | int, depth: int, f: TextIO) -> None:
    pad = _indent(depth)
    if isinstance(node, (str, int)):
        f.write(f"{pad}Arg({node!r})\n")
    elif isinstance(node, Literal):
        f.write(f"{pad}Literal({node.char!r})\n")
    elif isinstance(node, CharClass):
        prefix = "not " if node.negated else ""
        members = " ".join(_member_text(m) for m in node.members)
        f.write(f"{pad}CharClass {prefix}[{members}]\n")
    elif isinstance(node, Group):
        label = {
            GroupKind.NON_CAPTURING: "Group",
            GroupKind.CAPTURING: "Group capturing",
            GroupKind.NAMED: f"Group #{node.name}",
        }[node.kind]
        f.write(f"{pad}{label}\n")
        _dump_node(node.body, depth + 1, f)
    elif isinstance(node, Backreference):
        f.write(f"{pad}Backreference @{node.target}\n")
    elif isinstance(node, Assertion):
        prefix = "not " if node.negated else ""
        f.write(f"{pad}Assertion {prefix}{node.kind.name.lower()}\n")
        if node.body is not None:
            _dump_node(node.body, depth + 1, f)
    elif isinstance(node, Alternation):
        f.write(f"{pad}Alternation\n")
        _dump_node(node.left, depth + 1, f)
        _dump_node(node.right, depth + 1, f)
    elif isinstance(node, Sequence):
        f.write(f"{pad}Sequence\n")
        for part in node.parts:
            _dump_node(part, depth + 1, f)
    elif isinstance(node, Quantifier):
        upper = "inf" if node.max is None else str(node.max)
        lazy = " lazy" if not node.greedy else ""
        f.write(f"{pad}Quantifier {node.min}..{upper}{lazy}\n")
        _dump_node(node.body, depth + 1, f)
    elif isinstance(node, CustomTokenCall):
        f.write(f"{pad}CustomTokenCall {node.name}\n")
        for arg in node.args:
            _dump_node(arg, depth + 1, f)
        if node.content is not None:
            f.write(f"{_indent(depth + 1)}Content\n")
            _dump_node(node.content, depth + 2, f)
