"""Resolver unit tests: expansion, splicing, cycles, backreference checks."""

from __future__ import annotations

import pytest

from regxl.ast import (
    CharClass,
    CustomTokenCall,
    Group,
    GroupKind,
    Literal,
    NamedClass,
    Root,
    Sequence,
)
from regxl.errors import CycleError, ParseError, ResolutionError
from regxl.parser import parse
from regxl.resolver import ExtensionRegistry, check_references, resolve

DIGIT = CharClass((NamedClass("digit"),))


def _resolve(source: str, registry=None) -> Root:
    return resolve(parse(source), registry, source)


class TestRegistry:
    def test_decorator_uses_function_name(self):
        registry = ExtensionRegistry()

        @registry.token()
        def comma(args, content):
            return "','"

        assert "comma" in registry
        assert registry.get("comma") is comma
        assert len(registry) == 1

    def test_decorator_with_explicit_name(self):
        registry = ExtensionRegistry()

        @registry.token("sep")
        def separator(args, content):
            return "','"

        assert list(registry) == ["sep"]

    def test_builtin_name_rejected(self):
        registry = ExtensionRegistry()
        with pytest.raises(ValueError, match="builtin keyword"):
            registry.add("letter", lambda args, content: "'x'")

    def test_builtin_name_rejected_in_constructor(self):
        with pytest.raises(ValueError, match="builtin keyword"):
            ExtensionRegistry({"digit": lambda args, content: "'x'"})

    def test_registries_compare_by_identity(self):
        handlers = {"x": lambda args, content: "'x'"}
        assert ExtensionRegistry(dict(handlers)) != ExtensionRegistry(dict(handlers))


class TestExpansion:
    def test_snippet_is_reparsed(self):
        registry = {"twoDigits": lambda args, content: "digit 2x"}
        root = _resolve("twoDigits", registry)
        assert root.body.min == 2
        assert root.body.body == DIGIT

    def test_node_fragments_are_spliced(self):
        registry = {"dot": lambda args, content: Literal(".")}
        assert _resolve("dot", registry).body == Literal(".")

    def test_statement_sequence_is_flattened(self):
        registry = {"quoted": lambda args, content: ["'\"'", content, "'\"'"]}
        root = _resolve("'x' quoted(digit)", registry)
        assert root.body == Sequence((Literal("x"), Literal('"'), DIGIT, Literal('"')))

    def test_args_are_passed(self):
        seen = []

        def sep(args, content):
            seen.append(args)
            return "','"

        _resolve("sep(';', 3, digit)", {"sep": sep})
        assert seen == [(";", 3, DIGIT)]

    def test_content_is_resolved_before_call(self):
        seen = []

        def outer(args, content):
            seen.append(content)
            return [content]

        registry = {"outer": outer, "inner": lambda args, content: "'i'"}
        _resolve("outer(inner)", registry)
        assert seen == [Literal("i")]

    def test_nested_calls_in_statement(self):
        registry = {
            "a": lambda args, content: "'<' b '>'",
            "b": lambda args, content: "digit",
        }
        root = _resolve("a", registry)
        assert root.body == Sequence((Literal("<"), DIGIT, Literal(">")))

    def test_same_token_nested_through_content_is_not_a_cycle(self):
        registry = {"wrap": lambda args, content: ["'('", content, "')'"]}
        root = _resolve("wrap(wrap('x'))", registry)
        chars = [p.char for p in root.body.parts]
        assert chars == ["(", "(", "x", ")", ")"]

    def test_calls_inside_groups_and_quantifiers(self):
        registry = {"d": lambda args, content: "digit"}
        root = _resolve("#n(d+)", registry)
        assert root.body == Group(
            root.body.body, GroupKind.NAMED, "n"
        )
        assert root.body.body.body == DIGIT

    def test_no_calls_left(self):
        registry = {"d": lambda args, content: "digit"}
        root = _resolve("d or (d 'x')", registry)
        assert "CustomTokenCall" not in repr(root)

    def test_modifiers_preserved(self):
        root = _resolve("letter with (binary)")
        assert root.modifiers == frozenset({"binary"})


class TestFailures:
    def test_unknown_token(self):
        with pytest.raises(ResolutionError, match="unknown token 'mystery'") as exc_info:
            _resolve("mystery")
        assert exc_info.value.name == "mystery"

    def test_unknown_token_with_registry(self):
        with pytest.raises(ResolutionError, match="unknown token 'b'"):
            _resolve("a", {"a": lambda args, content: "b"})

    def test_direct_cycle(self):
        with pytest.raises(CycleError) as exc_info:
            _resolve("loop", {"loop": lambda args, content: "'x' loop"})
        assert exc_info.value.chain == ["loop", "loop"]

    def test_indirect_cycle(self):
        registry = {
            "ping": lambda args, content: "pong",
            "pong": lambda args, content: "ping",
        }
        with pytest.raises(CycleError) as exc_info:
            _resolve("'x' ping", registry)
        assert exc_info.value.chain == ["ping", "pong", "ping"]

    def test_bad_snippet(self):
        with pytest.raises(ParseError):
            _resolve("bad", {"bad": lambda args, content: "('x'"})

    def test_bad_return_type(self):
        with pytest.raises(ResolutionError, match="returned int"):
            _resolve("bad", {"bad": lambda args, content: 42})

    def test_bad_fragment(self):
        with pytest.raises(ResolutionError, match="unsupported fragment"):
            _resolve("bad", {"bad": lambda args, content: ["'x'", 3.5]})


class TestBackreferences:
    def test_forward_reference_fails(self):
        with pytest.raises(ResolutionError, match="@a does not refer to a preceding group"):
            _resolve("@a #a('x')")

    def test_missing_number_fails(self):
        with pytest.raises(ResolutionError, match="@2"):
            _resolve("group('x') @2")

    def test_reference_inside_own_group_fails(self):
        with pytest.raises(ResolutionError):
            _resolve("#a('x' @a)")

    def test_non_capturing_groups_are_not_numbered(self):
        with pytest.raises(ResolutionError):
            _resolve("('x') @1")

    def test_named_groups_are_numbered(self):
        _resolve("#a('x') @1")

    def test_group_from_extension_visible_after_call(self):
        registry = {"tag": lambda args, content: "#tag(letter+)"}
        root = _resolve("tag '-' @tag", registry)
        assert root.body.parts[-1].target == "tag"

    def test_check_references_directly(self):
        check_references(Sequence((Group(Literal("a"), GroupKind.CAPTURING),)))
        with pytest.raises(ResolutionError):
            from regxl.ast import Backreference

            check_references(Backreference(1))

    def test_call_node_type_survives_in_unresolved_ast(self):
        assert isinstance(parse("x").body, CustomTokenCall)
