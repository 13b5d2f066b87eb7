"""RegXL lexer — converts source text into a flat token stream."""

from __future__ import annotations

from regxl.builtins import KEYWORDS
from regxl.errors import LexError
from regxl.tokens import (
    Position,
    Span,
    Token,
    TokenType,
    is_hex_digit,
    is_ident_char,
    is_ident_start,
)

_PUNCTUATION: dict[str, TokenType] = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ",": TokenType.COMMA,
    "?": TokenType.QUESTION,
    "+": TokenType.PLUS,
    "*": TokenType.STAR,
    "-": TokenType.DASH,
}

_SIMPLE_ESCAPES: dict[str, str] = {
    "\\": "\\",
    "'": "'",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "0": "\0",
}


class Lexer:
    """Tokenize RegXL source text into a stream of Token objects."""

    def __init__(self, source: str, filename: str = "input.regxl") -> None:
        self._source = source
        self._filename = filename
        self._pos = 0
        self._line = 1
        self._col = 1
        self._tokens: list[Token] = []

    def tokenize(self) -> list[Token]:
        """Tokenize the full source and return the token list."""
        while True:
            self._skip_trivia()
            if self._pos >= len(self._source):
                break
            self._lex_token()

        self._emit(TokenType.EOF, "", "")
        return self._tokens

    # ------------------------------------------------------------------
    # Position helpers
    # ------------------------------------------------------------------

    def _current_pos(self) -> Position:
        return Position(self._line, self._col, self._pos)

    def _peek(self, offset: int = 0) -> str:
        idx = self._pos + offset
        if idx < len(self._source):
            return self._source[idx]
        return ""

    def _advance(self) -> str:
        ch = self._source[self._pos]
        self._pos += 1
        if ch == "\n":
            self._line += 1
            self._col = 1
        else:
            self._col += 1
        return ch

    def _emit(self, tt: TokenType, value: str, raw: str, start: Position | None = None) -> Token:
        end = self._current_pos()
        if start is None:
            start = end
        tok = Token(tt, value, raw, Span(start, end))
        self._tokens.append(tok)
        return tok

    def _error(self, message: str, pos: Position | None = None) -> LexError:
        if pos is None:
            pos = self._current_pos()
        return LexError(message, pos, self._source)

    # ------------------------------------------------------------------
    # Whitespace and comments
    # ------------------------------------------------------------------

    def _skip_trivia(self) -> None:
        while self._pos < len(self._source):
            ch = self._peek()
            if ch.isspace():
                self._advance()
            elif ch == "/" and self._peek(1) == "/":
                while self._pos < len(self._source) and self._peek() != "\n":
                    self._advance()
            else:
                return

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _lex_token(self) -> None:
        ch = self._peek()

        if ch in _PUNCTUATION:
            start = self._current_pos()
            self._advance()
            self._emit(_PUNCTUATION[ch], ch, ch, start)
            return

        if ch == "'":
            self._lex_string()
            return

        if ch.isascii() and ch.isdigit():
            self._lex_number()
            return

        if is_ident_start(ch):
            start = self._current_pos()
            name = self._read_identifier()
            tt = TokenType.KEYWORD if name in KEYWORDS else TokenType.IDENTIFIER
            self._emit(tt, name, name, start)
            return

        if ch == "#":
            self._lex_hash_name()
            return

        if ch == "@":
            self._lex_backref()
            return

        raise self._error(f"unexpected character {ch!r}")

    def _read_identifier(self) -> str:
        chars = []
        while self._pos < len(self._source) and is_ident_char(self._peek()):
            chars.append(self._advance())
        return "".join(chars)

    def _read_digits(self) -> str:
        chars = []
        while self._pos < len(self._source) and self._peek().isascii() and self._peek().isdigit():
            chars.append(self._advance())
        return "".join(chars)

    # ------------------------------------------------------------------
    # Numbers and the nx suffix
    # ------------------------------------------------------------------

    def _lex_number(self) -> None:
        start = self._current_pos()
        digits = self._read_digits()
        self._emit(TokenType.NUMBER, digits, digits, start)

        ch = self._peek()
        if ch == "x" and not is_ident_char(self._peek(1)):
            x_start = self._current_pos()
            self._advance()
            self._emit(TokenType.TIMES, "x", "x", x_start)
        elif is_ident_char(ch):
            raise self._error(f"invalid number suffix {ch!r}", start)

    # ------------------------------------------------------------------
    # Sigils
    # ------------------------------------------------------------------

    def _lex_hash_name(self) -> None:
        start = self._current_pos()
        self._advance()  # consume #
        if not is_ident_start(self._peek()):
            raise self._error("expected group name after '#'", start)
        name = self._read_identifier()
        self._emit(TokenType.HASH_NAME, name, f"#{name}", start)

    def _lex_backref(self) -> None:
        start = self._current_pos()
        self._advance()  # consume @
        ch = self._peek()
        if ch.isascii() and ch.isdigit():
            target = self._read_digits()
        elif is_ident_start(ch):
            target = self._read_identifier()
        else:
            raise self._error("expected group name or number after '@'", start)
        self._emit(TokenType.BACKREF, target, f"@{target}", start)

    # ------------------------------------------------------------------
    # Quoted literals
    # ------------------------------------------------------------------

    def _lex_string(self) -> None:
        start = self._current_pos()
        self._advance()  # consume opening quote
        chars: list[str] = []

        while True:
            if self._pos >= len(self._source):
                raise self._error("unterminated string literal", start)
            ch = self._peek()
            if ch == "'":
                self._advance()
                break
            if ch == "\n":
                raise self._error("unterminated string literal", start)
            if ch == "\\":
                chars.append(self._lex_escape())
            else:
                chars.append(self._advance())

        raw = self._source[start.offset : self._pos]
        self._emit(TokenType.STRING, "".join(chars), raw, start)

    def _lex_escape(self) -> str:
        start = self._current_pos()
        self._advance()  # consume backslash

        if self._pos >= len(self._source):
            raise self._error("unexpected end of input in escape sequence", start)

        ch = self._peek()

        if ch in _SIMPLE_ESCAPES:
            self._advance()
            return _SIMPLE_ESCAPES[ch]

        if ch == "x":
            self._advance()
            return self._lex_hex_escape(2, start)

        if ch == "u":
            self._advance()
            if self._peek() == "{":
                return self._lex_braced_escape(start)
            return self._lex_hex_escape(4, start)

        raise self._error(f"invalid escape sequence '\\{ch}'", start)

    def _lex_hex_escape(self, count: int, start: Position) -> str:
        """Read `count` hex digits and return the resolved character."""
        digits = []
        for i in range(count):
            if self._pos >= len(self._source):
                raise self._error(
                    f"incomplete escape: expected {count} hex digits, got {i}", start
                )
            ch = self._peek()
            if not is_hex_digit(ch):
                raise self._error(f"invalid hex digit {ch!r} in escape sequence", start)
            digits.append(self._advance())
        return chr(int("".join(digits), 16))

    def _lex_braced_escape(self, start: Position) -> str:
        self._advance()  # consume {
        digits = []
        while is_hex_digit(self._peek()):
            digits.append(self._advance())
        if self._peek() != "}" or not digits or len(digits) > 6:
            raise self._error("malformed \\u{...} escape", start)
        self._advance()  # consume }
        hex_str = "".join(digits)
        codepoint = int(hex_str, 16)
        if codepoint > 0x10FFFF:
            raise self._error(f"Unicode codepoint U+{hex_str} is out of range", start)
        return chr(codepoint)


def tokenize(source: str, filename: str = "input.regxl") -> list[Token]:
    """Convenience function: tokenize source text and return token list."""
    return Lexer(source, filename).tokenize()
