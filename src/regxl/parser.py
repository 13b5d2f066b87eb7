"""RegXL parser — converts a token stream into an AST."""

from __future__ import annotations

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
from regxl.builtins import (
    ASSERTIONS,
    CLASSES,
    COMPOSITES,
    MODIFIERS,
    OPTIONAL_COMBINATIONS,
    PREFIX_QUANTIFIERS,
)
from regxl.errors import ParseError
from regxl.lexer import tokenize
from regxl.tokens import Position, Span, Token, TokenType


class Parser:
    """Recursive descent parser for RegXL token streams."""

    def __init__(self, tokens: list[Token], source: str, filename: str = "input.regxl") -> None:
        self._tokens = tokens
        self._source = source
        self._filename = filename
        self._pos = 0
        self._group_names: set[str] = set()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def _peek(self, offset: int = 0) -> Token:
        idx = self._pos + offset
        if idx < len(self._tokens):
            return self._tokens[idx]
        return self._tokens[-1]  # EOF

    def _at(self, *types: TokenType) -> bool:
        return self._peek().type in types

    def _at_keyword(self, *names: str) -> bool:
        tok = self._peek()
        return tok.type == TokenType.KEYWORD and tok.value in names

    def _at_eof(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _advance(self) -> Token:
        tok = self._tokens[self._pos]
        if tok.type != TokenType.EOF:
            self._pos += 1
        return tok

    def _expect(self, tt: TokenType, message: str, expected: str) -> Token:
        tok = self._peek()
        if tok.type != tt:
            raise self._error(message, tok.span, expected=expected)
        return self._advance()

    def _prev_end(self) -> Position:
        """End position of the previously consumed token."""
        if self._pos > 0:
            return self._tokens[self._pos - 1].span.end
        return self._tokens[0].span.start

    def _span_from(self, start: Position) -> Span:
        return Span(start, self._prev_end())

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def parse(self) -> Root:
        """Parse a complete expression, including a trailing with clause."""
        start = self._peek().span.start
        body = self._parse_sequence()
        modifiers: frozenset[str] = frozenset()
        if self._at_keyword("with"):
            modifiers = self._parse_modifiers()
        self._expect_end()
        return Root(body, modifiers, self._span_from(start))

    def parse_snippet(self) -> Node:
        """Parse a bare sequence; with clauses are not allowed here."""
        body = self._parse_sequence()
        if self._at_keyword("with"):
            raise self._error("modifiers are only allowed at the end of a whole expression")
        self._expect_end()
        return body

    def _expect_end(self) -> None:
        if not self._at_eof():
            tok = self._peek()
            if tok.type == TokenType.RPAREN:
                raise self._error("unmatched ')'", tok.span, expected="end of input")
            raise self._error("unexpected token after expression", tok.span, expected="end of input")

    # ------------------------------------------------------------------
    # Sequences and alternation
    # ------------------------------------------------------------------

    def _at_sequence_end(self, allow_commas: bool) -> bool:
        if self._at(TokenType.EOF, TokenType.RPAREN):
            return True
        if not allow_commas and self._at(TokenType.COMMA):
            return True
        return self._at_keyword("with")

    def _parse_sequence(self, allow_commas: bool = True) -> Node:
        start = self._peek().span.start
        parts: list[Node] = []
        while not self._at_sequence_end(allow_commas):
            if self._at(TokenType.COMMA):
                self._advance()
                continue
            parts.append(self._parse_alternation())
        if len(parts) == 1:
            return parts[0]
        return Sequence(tuple(parts), self._span_from(start))

    def _parse_alternation(self) -> Node:
        start = self._peek().span.start
        left = self._parse_term()
        while self._at_keyword("or"):
            self._advance()
            if self._at_sequence_end(True) or self._at(TokenType.COMMA):
                raise self._error("expected expression after 'or'", expected="expression")
            right = self._parse_term()
            left = Alternation(left, right, self._span_from(start))
        return left

    # ------------------------------------------------------------------
    # Terms: prefix quantifiers, atom, postfix quantifiers
    # ------------------------------------------------------------------

    def _parse_term(self) -> Node:
        start = self._peek().span.start
        tok = self._peek()

        if tok.type == TokenType.KEYWORD and tok.value in PREFIX_QUANTIFIERS:
            self._advance()
            lo, hi, greedy = PREFIX_QUANTIFIERS[tok.value]
            if tok.value == "optional" and self._at_keyword(*OPTIONAL_COMBINATIONS):
                lo, hi, greedy = OPTIONAL_COMBINATIONS[self._advance().value]
            body = self._parse_operand(tok.value)
            return Quantifier(body, lo, hi, greedy, self._span_from(start))

        if tok.type == TokenType.KEYWORD and tok.value == "possessive":
            raise self._error("possessive quantifiers are not supported", tok.span)

        if tok.type == TokenType.NUMBER and self._peek(1).type == TokenType.STAR:
            count = int(self._advance().value)
            self._advance()  # consume *
            body = self._parse_operand(f"{count}*")
            return Quantifier(body, count, count, True, self._span_from(start))

        atom = self._parse_atom()
        return self._parse_postfix(atom, start)

    def _parse_operand(self, after: str) -> Node:
        if self._at_sequence_end(True) or self._at(TokenType.COMMA) or self._at_keyword("or"):
            raise self._error(f"expected expression after '{after}'", expected="expression")
        return self._parse_term()

    def _parse_postfix(self, atom: Node, start: Position) -> Node:
        node = atom
        while True:
            if self._at(TokenType.QUESTION):
                self._advance()
                if self._at(TokenType.QUESTION):
                    self._advance()
                    node = Quantifier(node, 0, 1, False, self._span_from(start))
                else:
                    node = Quantifier(node, 0, 1, True, self._span_from(start))
            elif self._at(TokenType.PLUS):
                self._advance()
                node = Quantifier(node, 1, None, True, self._span_from(start))
            elif self._at(TokenType.STAR):
                self._advance()
                node = Quantifier(node, 0, None, True, self._span_from(start))
            elif self._at_keyword("fewest"):
                fewest = self._advance()
                if not (
                    self._at(TokenType.NUMBER)
                    and self._peek(1).type in (TokenType.PLUS, TokenType.DASH)
                ):
                    raise self._error(
                        "'fewest' must be followed by a bound like 2+ or 2-5",
                        fewest.span,
                        expected="n+ or n-m",
                    )
                lo, hi = self._parse_bound()
                node = Quantifier(node, lo, hi, False, self._span_from(start))
            elif self._at(TokenType.NUMBER):
                if self._peek(1).type == TokenType.STAR:
                    # n*( ) starts the next term
                    break
                lo, hi = self._parse_bound()
                node = Quantifier(node, lo, hi, True, self._span_from(start))
            else:
                break
        return node

    def _parse_bound(self) -> tuple[int, int | None]:
        num_tok = self._advance()
        lo = int(num_tok.value)
        if self._at(TokenType.TIMES):
            self._advance()
            return lo, lo
        if self._at(TokenType.PLUS):
            self._advance()
            return lo, None
        if self._at(TokenType.DASH):
            self._advance()
            hi_tok = self._expect(
                TokenType.NUMBER, "expected upper bound after '-'", expected="number"
            )
            hi = int(hi_tok.value)
            if lo > hi:
                raise self._error(
                    f"invalid quantifier bound {lo}-{hi}: minimum exceeds maximum",
                    Span(num_tok.span.start, hi_tok.span.end),
                )
            return lo, hi
        raise self._error(
            f"expected 'x', '+' or '-' after {lo}",
            self._peek().span,
            expected="'x', '+' or '-'",
        )

    # ------------------------------------------------------------------
    # Atoms
    # ------------------------------------------------------------------

    def _parse_atom(self) -> Node:
        tok = self._peek()
        start = tok.span.start

        if tok.type == TokenType.STRING:
            return self._parse_string_or_range()

        if tok.type == TokenType.LPAREN:
            body = self._parse_parenthesized("(")
            return Group(body, GroupKind.NON_CAPTURING, None, self._span_from(start))

        if tok.type == TokenType.HASH_NAME:
            self._advance()
            if tok.value in self._group_names:
                raise self._error(f"duplicate group name '{tok.value}'", tok.span)
            self._group_names.add(tok.value)
            body = self._parse_parenthesized(tok.raw)
            return Group(body, GroupKind.NAMED, tok.value, self._span_from(start))

        if tok.type == TokenType.BACKREF:
            self._advance()
            if tok.value.isdigit():
                number = int(tok.value)
                if number == 0:
                    raise self._error("group numbers start at 1", tok.span)
                return Backreference(number, tok.span)
            return Backreference(tok.value, tok.span)

        if tok.type == TokenType.IDENTIFIER:
            return self._parse_custom_call()

        if tok.type == TokenType.KEYWORD:
            return self._parse_keyword_atom()

        raise self._error("expected expression", tok.span, expected="expression")

    def _parse_keyword_atom(self) -> Node:
        tok = self._peek()
        start = tok.span.start
        name = tok.value

        if name == "not":
            return self._parse_negation()

        if name == "group":
            self._advance()
            body = self._parse_parenthesized("group")
            return Group(body, GroupKind.CAPTURING, None, self._span_from(start))

        if name == "oneOf":
            return self._parse_one_of()

        if name in CLASSES:
            self._advance()
            return CharClass((NamedClass(name, tok.span),), False, tok.span)

        if name in COMPOSITES:
            self._advance()
            return parse_snippet(COMPOSITES[name], f"<{name}>")

        if name in ASSERTIONS:
            self._advance()
            kind, takes_body = ASSERTIONS[name]
            body = self._parse_parenthesized(name) if takes_body else None
            return Assertion(kind, False, body, self._span_from(start))

        raise self._error(f"unexpected '{name}'", tok.span, expected="expression")

    def _parse_parenthesized(self, after: str) -> Node:
        self._expect(TokenType.LPAREN, f"expected '(' after '{after}'", expected="'('")
        body = self._parse_sequence()
        self._expect(TokenType.RPAREN, "expected closing ')'", expected="')'")
        return body

    def _parse_string_or_range(self) -> Node:
        tok = self._advance()
        if self._at_keyword("to"):
            rng = self._finish_range(tok)
            return CharClass((rng,), False, rng.span)
        if not tok.value:
            raise self._error("empty literal", tok.span)
        return _literal_node(tok.value, tok.span)

    def _finish_range(self, low_tok: Token) -> CharRange:
        self._advance()  # consume 'to'
        high_tok = self._expect(
            TokenType.STRING, "expected quoted character after 'to'", expected="quoted character"
        )
        span = Span(low_tok.span.start, high_tok.span.end)
        if len(low_tok.value) != 1 or len(high_tok.value) != 1:
            raise self._error("range bounds must be single characters", span)
        if ord(low_tok.value) > ord(high_tok.value):
            raise self._error(
                f"invalid range {low_tok.raw} to {high_tok.raw}: bounds out of order", span
            )
        return CharRange(low_tok.value, high_tok.value, span)

    def _parse_one_of(self) -> CharClass:
        start = self._advance().span.start  # consume oneOf
        self._expect(TokenType.LPAREN, "expected '(' after 'oneOf'", expected="'('")
        members: list[Literal | CharRange | NamedClass] = []
        while not self._at(TokenType.RPAREN, TokenType.EOF):
            tok = self._peek()
            if tok.type == TokenType.COMMA:
                self._advance()
            elif tok.type == TokenType.STRING:
                self._advance()
                if self._at_keyword("to"):
                    members.append(self._finish_range(tok))
                elif len(tok.value) == 1:
                    members.append(Literal(tok.value, tok.span))
                else:
                    raise self._error(
                        "oneOf members must be single characters or ranges", tok.span
                    )
            elif tok.type == TokenType.KEYWORD and tok.value in CLASSES:
                self._advance()
                if not CLASSES[tok.value].member:
                    raise self._error(f"'{tok.value}' cannot be used inside oneOf", tok.span)
                members.append(NamedClass(tok.value, tok.span))
            else:
                raise self._error(
                    "expected character, range or class inside oneOf",
                    tok.span,
                    expected="character, range or class",
                )
        self._expect(TokenType.RPAREN, "expected closing ')'", expected="')'")
        if not members:
            raise self._error("oneOf requires at least one member", self._span_from(start))
        return CharClass(tuple(members), False, self._span_from(start))

    def _parse_negation(self) -> Node:
        not_tok = self._advance()
        target = self._peek()
        if target.type == TokenType.KEYWORD:
            unsupported = target.value in COMPOSITES or (
                target.value in CLASSES and not CLASSES[target.value].negatable
            )
            if unsupported:
                raise self._error(
                    f"'{target.value}' does not support negation",
                    Span(not_tok.span.start, target.span.end),
                )
        if self._at_sequence_end(True) or self._at(TokenType.COMMA):
            raise self._error("expected expression after 'not'", expected="expression")

        node = self._parse_atom()
        span = self._span_from(not_tok.span.start)

        if isinstance(node, CharClass):
            if node.negated:
                raise self._error("expression is already negated", span)
            return CharClass(node.members, True, span)
        if isinstance(node, Literal):
            return CharClass((node,), True, span)
        if isinstance(node, Assertion):
            if node.negated:
                raise self._error("expression is already negated", span)
            return Assertion(node.kind, True, node.body, span)
        raise self._error(
            "'not' can only be applied to characters, classes and assertions",
            span,
            expected="negatable expression",
        )

    # ------------------------------------------------------------------
    # Custom token calls
    # ------------------------------------------------------------------

    def _parse_custom_call(self) -> CustomTokenCall:
        name_tok = self._advance()
        start = name_tok.span.start

        if not self._at(TokenType.LPAREN):
            return CustomTokenCall(name_tok.value, (), None, name_tok.span)

        items, had_comma = self._parse_call_items()

        if self._at(TokenType.LPAREN):
            content = self._parse_parenthesized(name_tok.value)
            return CustomTokenCall(name_tok.value, tuple(items), content, self._span_from(start))

        if not had_comma and len(items) == 1 and not isinstance(items[0], (str, int)):
            return CustomTokenCall(name_tok.value, (), items[0], self._span_from(start))
        if not had_comma and len(items) == 1 and isinstance(items[0], str):
            if not items[0]:
                raise self._error("empty literal", self._span_from(start))
            content = _literal_node(items[0], name_tok.span)
            return CustomTokenCall(name_tok.value, (), content, self._span_from(start))
        return CustomTokenCall(name_tok.value, tuple(items), None, self._span_from(start))

    def _parse_call_items(self) -> tuple[list[Node | str | int], bool]:
        self._advance()  # consume (
        items: list[Node | str | int] = []
        had_comma = False
        while not self._at(TokenType.RPAREN, TokenType.EOF):
            items.append(self._parse_call_item())
            if self._at(TokenType.COMMA):
                self._advance()
                had_comma = True
            elif not self._at(TokenType.RPAREN):
                raise self._error(
                    "expected ',' or ')' in argument list", expected="',' or ')'"
                )
        self._expect(TokenType.RPAREN, "expected closing ')'", expected="')'")
        return items, had_comma

    def _parse_call_item(self) -> Node | str | int:
        tok = self._peek()
        follower = self._peek(1).type
        if follower in (TokenType.COMMA, TokenType.RPAREN):
            if tok.type == TokenType.STRING:
                self._advance()
                return tok.value
            if tok.type == TokenType.NUMBER:
                self._advance()
                return int(tok.value)
        if self._at(TokenType.COMMA):
            raise self._error("empty argument", tok.span, expected="expression")
        return self._parse_sequence(allow_commas=False)

    # ------------------------------------------------------------------
    # Modifiers
    # ------------------------------------------------------------------

    def _parse_modifiers(self) -> frozenset[str]:
        with_tok = self._advance()  # consume 'with'
        names: list[Token] = []
        if self._at(TokenType.LPAREN):
            self._advance()
            while not self._at(TokenType.RPAREN, TokenType.EOF):
                if self._at(TokenType.COMMA):
                    self._advance()
                    continue
                names.append(self._advance())
            self._expect(TokenType.RPAREN, "expected closing ')'", expected="')'")
        elif self._at(TokenType.IDENTIFIER, TokenType.KEYWORD):
            names.append(self._advance())

        if not names:
            raise self._error("expected modifier after 'with'", with_tok.span, expected="modifier")

        modifiers: set[str] = set()
        for tok in names:
            if tok.value not in MODIFIERS:
                raise self._error(
                    f"unsupported modifier '{tok.raw}'",
                    tok.span,
                    expected="ignoreCase, binary or indices",
                    found=tok.raw,
                )
            modifiers.add(tok.value)
        return frozenset(modifiers)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _error(
        self,
        message: str,
        span: Span | None = None,
        expected: str | None = None,
        found: str | None = None,
    ) -> ParseError:
        if span is None:
            span = self._peek().span
        if found is None:
            found = _describe(self._peek())
        return ParseError(message, span, self._source, expected=expected, found=found)


def _describe(tok: Token) -> str:
    if tok.type == TokenType.EOF:
        return "end of input"
    return repr(tok.raw)


def _literal_node(text: str, span: Span) -> Node:
    if len(text) == 1:
        return Literal(text, span)
    return Sequence(tuple(Literal(ch, span) for ch in text), span)


def parse_tokens(tokens: list[Token], source: str, filename: str = "input.regxl") -> Root:
    """Parse an already tokenized expression."""
    return Parser(tokens, source, filename).parse()


def parse(source: str, filename: str = "input.regxl") -> Root:
    """Convenience function: parse source text and return a Root AST."""
    return parse_tokens(tokenize(source, filename), source, filename)


def parse_snippet(source: str, filename: str = "<snippet>") -> Node:
    """Parse a sequence without a with clause, as produced by extensions."""
    return Parser(tokenize(source, filename), source, filename).parse_snippet()
