"""Extension resolution — expands custom token calls into builtin nodes."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from collections.abc import Sequence as SequenceABC
from dataclasses import dataclass, field
from typing import Any, Union

from regxl.ast import (
    Alternation,
    Assertion,
    Backreference,
    CharClass,
    CustomTokenCall,
    Group,
    GroupKind,
    Literal,
    Node,
    Quantifier,
    Root,
    Sequence,
)
from regxl.builtins import is_builtin
from regxl.errors import CycleError, ResolutionError
from regxl.parser import parse_snippet

logger = logging.getLogger(__name__)

_NODE_TYPES = (
    Literal,
    CharClass,
    Group,
    Backreference,
    Assertion,
    Alternation,
    Sequence,
    Quantifier,
    CustomTokenCall,
)

Statement = Union[str, Node, SequenceABC[Union[str, Node]]]
Handler = Callable[[tuple[Any, ...], Union[Node, None]], Statement]


@dataclass(eq=False)
class ExtensionRegistry:
    """Custom tokens available to one or more compilations.

    Registries compare and hash by identity, so two registries with the
    same handlers are still distinct compilation cache keys.
    """

    tokens: dict[str, Handler] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in self.tokens:
            _check_token_name(name)

    def add(self, name: str, handler: Handler) -> None:
        """Register handler under name."""
        _check_token_name(name)
        self.tokens[name] = handler

    def token(self, name: str | None = None) -> Callable[[Handler], Handler]:
        """Decorator form of add(); defaults to the function's name."""

        def decorate(handler: Handler) -> Handler:
            self.add(name or handler.__name__, handler)
            return handler

        return decorate

    def get(self, name: str) -> Handler | None:
        return self.tokens.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.tokens

    def __iter__(self) -> Iterator[str]:
        return iter(self.tokens)

    def __len__(self) -> int:
        return len(self.tokens)


Extensions = Union[ExtensionRegistry, Mapping[str, Handler]]


def _check_token_name(name: str) -> None:
    if is_builtin(name):
        raise ValueError(f"'{name}' is a builtin keyword and cannot be redefined")
    if not name.isidentifier() or not name.isascii():
        raise ValueError(f"invalid token name: {name!r}")


@dataclass
class ResolveContext:
    """State carried through one resolution."""

    registry: Extensions | None
    source: str
    chain: list[str] = field(default_factory=list)


def resolve(root: Root, registry: Extensions | None = None, source: str = "") -> Root:
    """Expand every custom token call and validate backreferences."""
    ctx = ResolveContext(registry, source)
    body = _resolve_node(root.body, ctx)
    check_references(body, source)
    return Root(body, root.modifiers, root.span)


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


def _resolve_node(node: Node, ctx: ResolveContext) -> Node:
    if isinstance(node, (Literal, CharClass, Backreference)):
        return node
    if isinstance(node, CustomTokenCall):
        return _expand_call(node, ctx)
    if isinstance(node, Group):
        return Group(_resolve_node(node.body, ctx), node.kind, node.name, node.span)
    if isinstance(node, Assertion):
        if node.body is None:
            return node
        return Assertion(node.kind, node.negated, _resolve_node(node.body, ctx), node.span)
    if isinstance(node, Alternation):
        return Alternation(
            _resolve_node(node.left, ctx), _resolve_node(node.right, ctx), node.span
        )
    if isinstance(node, Quantifier):
        return Quantifier(
            _resolve_node(node.body, ctx), node.min, node.max, node.greedy, node.span
        )
    if isinstance(node, Sequence):
        parts: list[Node] = []
        for part in node.parts:
            resolved = _resolve_node(part, ctx)
            # Splice nested sequences flat; concatenation is associative
            if isinstance(resolved, Sequence):
                parts.extend(resolved.parts)
            else:
                parts.append(resolved)
        return Sequence(tuple(parts), node.span)
    raise TypeError(f"unexpected node type: {type(node).__name__}")


# ---------------------------------------------------------------------------
# Custom token expansion
# ---------------------------------------------------------------------------


def _expand_call(node: CustomTokenCall, ctx: ResolveContext) -> Node:
    handler = ctx.registry.get(node.name) if ctx.registry is not None else None
    if handler is None:
        raise ResolutionError(
            node.name,
            f"unknown token '{node.name}'",
            node.span,
            ctx.source,
            chain=list(ctx.chain),
        )

    if node.name in ctx.chain:
        raise CycleError([*ctx.chain, node.name], node.span, ctx.source)

    # Arguments and content belong to the call site, outside the expansion
    args = tuple(
        arg if isinstance(arg, (str, int)) else _resolve_node(arg, ctx) for arg in node.args
    )
    content = _resolve_node(node.content, ctx) if node.content is not None else None

    ctx.chain.append(node.name)
    try:
        logger.debug("expanding %s", " -> ".join(ctx.chain))
        statement = handler(args, content)
        fragments = [
            _resolve_node(fragment, ctx)
            for fragment in _statement_fragments(statement, node, ctx)
        ]
    finally:
        ctx.chain.pop()

    if len(fragments) == 1:
        return fragments[0]
    parts: list[Node] = []
    for fragment in fragments:
        if isinstance(fragment, Sequence):
            parts.extend(fragment.parts)
        else:
            parts.append(fragment)
    return Sequence(tuple(parts), node.span)


def _statement_fragments(
    statement: Statement, node: CustomTokenCall, ctx: ResolveContext
) -> list[Node]:
    """Normalize a handler's return value to a list of unresolved nodes."""
    if isinstance(statement, (str, *_NODE_TYPES)):
        items: list[Any] = [statement]
    elif isinstance(statement, SequenceABC):
        items = list(statement)
    else:
        raise ResolutionError(
            node.name,
            f"token '{node.name}' returned {type(statement).__name__}, "
            "expected source text, a node, or a sequence of them",
            node.span,
            ctx.source,
            chain=list(ctx.chain),
        )

    fragments: list[Node] = []
    for item in items:
        if isinstance(item, str):
            fragments.append(parse_snippet(item, f"<{node.name}>"))
        elif isinstance(item, _NODE_TYPES):
            fragments.append(item)
        else:
            raise ResolutionError(
                node.name,
                f"token '{node.name}' returned an unsupported fragment: {item!r}",
                node.span,
                ctx.source,
                chain=list(ctx.chain),
            )
    return fragments


# ---------------------------------------------------------------------------
# Backreference validation
# ---------------------------------------------------------------------------


@dataclass
class _GroupScope:
    next_number: int = 1
    closed_numbers: set[int] = field(default_factory=set)
    closed_names: set[str] = field(default_factory=set)


def check_references(node: Node, source: str = "") -> None:
    """Fail on backreferences to groups that do not textually precede them."""
    _check_node(node, _GroupScope(), source)


def _check_node(node: Node, scope: _GroupScope, source: str) -> None:
    if isinstance(node, Group):
        number = None
        if node.kind != GroupKind.NON_CAPTURING:
            number = scope.next_number
            scope.next_number += 1
        _check_node(node.body, scope, source)
        if number is not None:
            scope.closed_numbers.add(number)
        if node.name is not None:
            scope.closed_names.add(node.name)
    elif isinstance(node, Backreference):
        known = (
            scope.closed_numbers if isinstance(node.target, int) else scope.closed_names
        )
        if node.target not in known:
            raise ResolutionError(
                str(node.target),
                f"backreference @{node.target} does not refer to a preceding group",
                node.span,
                source,
            )
    elif isinstance(node, Sequence):
        for part in node.parts:
            _check_node(part, scope, source)
    elif isinstance(node, Alternation):
        _check_node(node.left, scope, source)
        _check_node(node.right, scope, source)
    elif isinstance(node, (Quantifier, Assertion)):
        if node.body is not None:
            _check_node(node.body, scope, source)
