"""Code generator tests: lowering table, flags, numbering, generation errors."""

from __future__ import annotations

import pytest

from regxl.ast import (
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
    Quantifier,
    Root,
    Sequence,
)
from regxl.errors import GenerationError
from regxl.generator import generate

from tests.conftest import compiled, pattern_of

# (RegXL, unicode lowering, binary lowering)
LOWERING = [
    ("any", ".", "."),
    ("anything", r"[\s\S]", r"[\s\S]"),
    ("digit", "[0-9]", "[0-9]"),
    ("numeric", r"\p{N}", "[0-9]"),
    ("alphaNumeric", r"[\p{L}\p{N}]", "[A-Za-z0-9]"),
    ("ascii", r"[\x00-\x7F]", r"[\x00-\x7F]"),
    ("letter", r"\p{L}", "[A-Za-z]"),
    ("upperLetter", r"\p{Lu}", "[A-Z]"),
    ("lowerLetter", r"\p{Ll}", "[a-z]"),
    ("whitespace", r"\p{White_Space}", r"[\t\n\v\f\r ]"),
    ("space", " ", " "),
    ("tab", r"\t", r"\t"),
    ("tabSpace", r"[\t ]", r"[\t ]"),
    ("newline", r"\n", r"\n"),
    ("null", r"\x00", r"\x00"),
    ("integer", r"[+\-]?[0-9]+", r"[+\-]?[0-9]+"),
    ("decimal", r"[+\-]?(?:[0-9]+(?:\.[0-9]+)?|\.[0-9]+)", r"[+\-]?(?:[0-9]+(?:\.[0-9]+)?|\.[0-9]+)"),
    ("not letter", r"\P{L}", "[^A-Za-z]"),
    ("not digit", "[^0-9]", "[^0-9]"),
    ("not whitespace", r"\P{White_Space}", r"[^\t\n\v\f\r ]"),
    ("not tab", r"[^\t]", r"[^\t]"),
    ("not 'a'", "[^a]", "[^a]"),
    ("oneOf('a' 'x' to 'z' digit)", "[ax-z0-9]", "[ax-z0-9]"),
    ("oneOf(letter digit)", r"[\p{L}0-9]", "[A-Za-z0-9]"),
    ("not oneOf('-' ']')", r"[^\-\]]", r"[^\-\]]"),
    ("'a' to 'z'", "[a-z]", "[a-z]"),
    ("not 'a' to 'f'", "[^a-f]", "[^a-f]"),
    ("start", "^", "^"),
    ("end", "$", "$"),
    ("not start", "(?!^)", "(?!^)"),
    ("not end", "(?!$)", "(?!$)"),
    ("startLine", r"(?<=^|\n)", r"(?<=^|\n)"),
    ("endLine", r"(?=$|\n)", r"(?=$|\n)"),
    ("alphaNumericBoundary", r"\b", r"\b"),
    ("not alphaNumericBoundary", r"\B", r"\B"),
    ("followedBy('a')", "(?=a)", "(?=a)"),
    ("not followedBy('a')", "(?!a)", "(?!a)"),
    ("precededBy('a')", "(?<=a)", "(?<=a)"),
    ("not precededBy('a')", "(?<!a)", "(?<!a)"),
    ("('ab')", "(?:ab)", "(?:ab)"),
    ("group('ab')", "(ab)", "(ab)"),
    ("#word(letter)", r"(?<word>\p{L})", "(?<word>[A-Za-z])"),
    ("group('a') @1", r"(a)\1", r"(a)\1"),
    ("#q('a') @q", r"(?<q>a)\k<q>", r"(?<q>a)\k<q>"),
    ("'a' or 'b'", "a|b", "a|b"),
    ("'a' 'b' or 'c' 'd'", "a(?:b|c)d", "a(?:b|c)d"),
    ("optional 'a'", "a?", "a?"),
    ("'a'?", "a?", "a?"),
    ("maybe 'a'", "a??", "a??"),
    ("'a'??", "a??", "a??"),
    ("optional asMany 'a'", "a*", "a*"),
    ("optional many 'a'", "a*?", "a*?"),
    ("asMany 'a'", "a+", "a+"),
    ("many 'a'", "a+?", "a+?"),
    ("'a' 4x", "a{4}", "a{4}"),
    ("'a' 3+", "a{3,}", "a{3,}"),
    ("'a' 2-5", "a{2,5}", "a{2,5}"),
    ("'a' fewest 3+", "a{3,}?", "a{3,}?"),
    ("'a' fewest 2-5", "a{2,5}?", "a{2,5}?"),
    ("3*('ab')", "(?:ab){3}", "(?:ab){3}"),
    ("('ab')+", "(?:ab)+", "(?:ab)+"),
    ("('ab')*", "(?:ab)*", "(?:ab)*"),
]


class TestLoweringTable:
    @pytest.mark.parametrize("source, unicode, binary", LOWERING)
    def test_unicode(self, source, unicode, binary):
        assert pattern_of(source) == unicode

    @pytest.mark.parametrize("source, unicode, binary", LOWERING)
    def test_binary(self, source, unicode, binary):
        assert pattern_of(f"{source} with (binary)") == binary


class TestEscaping:
    @pytest.mark.parametrize(
        "source, expected",
        [
            ("'.'", r"\."),
            ("'a+b'", r"a\+b"),
            ("'(x)'", r"\(x\)"),
            ("'1/2'", r"1\/2"),
            ("'$'", r"\$"),
            (r"'\n'", r"\n"),
            (r"'\x01'", r"\x01"),
            ("'é'", "é"),
            ("'-'", "-"),
        ],
    )
    def test_literals(self, source, expected):
        assert pattern_of(source) == expected

    def test_class_members(self):
        assert pattern_of(r"oneOf('^' '[' '\\' '.')") == r"[\^\[\\.]"


class TestQuantifierWrapping:
    def test_multi_char_literal(self):
        assert pattern_of("'ab'+") == "(?:ab)+"

    def test_alternation_body(self):
        assert pattern_of("('a' or 'b')+") == "(?:a|b)+"

    def test_nested_quantifier(self):
        assert pattern_of("'a'+ ?") == "(?:a+)?"

    def test_class_needs_no_wrapping(self):
        assert pattern_of("letter 2-3") == r"\p{L}{2,3}"

    def test_backreference_needs_no_wrapping(self):
        assert pattern_of("#a('x') @a+") == r"(?<a>x)\k<a>+"

    def test_numeric_backreference_before_digit(self):
        assert pattern_of("group('x') @1 '0'") == r"(x)(?:\1)0"

    def test_assertion_cannot_be_quantified(self):
        with pytest.raises(GenerationError, match="assertions cannot be quantified"):
            pattern_of("start+")


class TestFlags:
    def test_default(self):
        assert compiled("letter").flags == "gu"

    def test_binary_removes_unicode(self):
        assert compiled("letter with binary").flags == "g"

    def test_ignore_case(self):
        assert compiled("letter with (ignoreCase)").flags == "giu"

    def test_indices(self):
        assert compiled("letter with (indices)").flags == "dgu"

    def test_binary_indices(self):
        pattern = compiled("letter whitespace with (binary indices)")
        assert pattern.flags == "dg"
        assert pattern.pattern == r"[A-Za-z][\t\n\v\f\r ]"

    def test_all(self):
        assert compiled("letter with (ignoreCase, binary, indices)").flags == "dgi"

    def test_unsupported_modifier_on_hand_built_root(self):
        with pytest.raises(GenerationError, match="unsupported modifier 'sticky'"):
            generate(Root(Literal("a"), frozenset({"sticky"})))


class TestNumbering:
    def test_left_to_right_numbering(self):
        assert pattern_of("group('a' group('b')) @2 @1") == r"(a(b))\2\1"

    def test_named_groups_count(self):
        assert pattern_of("#x('a') group('b') @2") == r"(?<x>a)(b)\2"

    def test_dangling_numeric_reference(self):
        root = Root(Sequence((Group(Literal("a"), GroupKind.CAPTURING), Backreference(2))))
        with pytest.raises(GenerationError, match="missing group 2"):
            generate(root)

    def test_dangling_named_reference(self):
        with pytest.raises(GenerationError, match="missing group 'x'"):
            generate(Root(Backreference("x")))

    def test_duplicate_names_after_splicing(self):
        body = Sequence(
            (
                Group(Literal("a"), GroupKind.NAMED, "t"),
                Group(Literal("b"), GroupKind.NAMED, "t"),
            )
        )
        with pytest.raises(GenerationError, match="duplicate group name 't'"):
            generate(Root(body))


class TestGenerationErrors:
    def test_emoji_unicode(self):
        assert pattern_of("emoji") == r"\p{Extended_Pictographic}"

    def test_emoji_binary(self):
        with pytest.raises(GenerationError, match="'emoji' is not available"):
            pattern_of("emoji with binary")

    def test_unresolved_call(self):
        with pytest.raises(GenerationError, match="unresolved custom token"):
            generate(Root(CustomTokenCall("x")))

    def test_reversed_range_in_hand_built_ast(self):
        with pytest.raises(GenerationError, match="bounds out of order"):
            generate(Root(CharClass((CharRange("z", "a"),))))

    def test_bad_quantifier_in_hand_built_ast(self):
        with pytest.raises(GenerationError, match="invalid quantifier bounds"):
            generate(Root(Quantifier(Literal("a"), 3, 1)))

    def test_non_member_class_combined(self):
        with pytest.raises(GenerationError, match="cannot be combined"):
            generate(Root(CharClass((NamedClass("any"), Literal("a")))))

    def test_lookaround_without_body(self):
        with pytest.raises(GenerationError, match="without a body"):
            generate(Root(Assertion(AssertionKind.LOOKAHEAD)))
