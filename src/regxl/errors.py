"""Error types with formatted source context."""

from __future__ import annotations

from regxl.tokens import NOWHERE, Position, Span


def _render(message: str, span: Span, source: str, filename: str) -> str:
    lines = source.splitlines(keepends=True)
    line_idx = span.start.line - 1
    col = span.start.column

    # Build the source line (strip trailing newline for display)
    if 0 <= line_idx < len(lines):
        source_line = lines[line_idx].rstrip("\n").rstrip("\r")
    else:
        source_line = ""

    # Underline the full span when on one line, otherwise to end of line
    if span.end.line == span.start.line:
        underline_len = max(1, span.end.column - col)
    else:
        underline_len = max(1, len(source_line) - col + 1)

    pad = " " * (col - 1)
    carets = "^" * underline_len

    line_num = str(span.start.line)
    gutter_width = len(line_num) + 1

    blank_gutter = " " * gutter_width + "|"
    line_gutter = f"{line_num:>{gutter_width - 1}} |"

    return (
        f"error: {message}\n"
        f"{' ' * gutter_width}--> {filename}:{span.start.line}:{col}\n"
        f"{blank_gutter}\n"
        f"{line_gutter} {source_line}\n"
        f"{blank_gutter} {pad}{carets}"
    )


class RegXLError(Exception):
    """Base class for every compile failure."""

    def __init__(self, message: str, span: Span, source: str) -> None:
        self.message = message
        self.span = span
        self.source = source
        super().__init__(self.format())

    @property
    def offset(self) -> int:
        return self.span.start.offset

    def format(self, filename: str = "input.regxl") -> str:
        return _render(self.message, self.span, self.source, filename)


class LexError(RegXLError):
    """Raised on the first lexing error, with position and source context."""

    def __init__(self, message: str, position: Position, source: str) -> None:
        self.position = position
        end = Position(position.line, position.column + 1, position.offset + 1)
        super().__init__(message, Span(position, end), source)


class ParseError(RegXLError):
    """Raised on the first parse error, with span and source context."""

    def __init__(
        self,
        message: str,
        span: Span,
        source: str,
        expected: str | None = None,
        found: str | None = None,
    ) -> None:
        self.expected = expected
        self.found = found
        super().__init__(message, span, source)


class ResolutionError(RegXLError):
    """Raised when a custom token or backreference cannot be resolved."""

    def __init__(
        self,
        name: str,
        reason: str,
        span: Span = NOWHERE,
        source: str = "",
        chain: list[str] | None = None,
    ) -> None:
        self.name = name
        self.reason = reason
        self.chain = chain or []
        super().__init__(reason, span, source)

    def format(self, filename: str = "input.regxl") -> str:
        result = _render(self.message, self.span, self.source, filename)
        if self.chain:
            result += f"\n  in expansion chain: {' -> '.join(self.chain)}"
        return result


class CycleError(RegXLError):
    """Raised when a custom token re-enters itself during expansion."""

    def __init__(self, chain: list[str], span: Span = NOWHERE, source: str = "") -> None:
        self.chain = chain
        super().__init__(f"recursive expansion of '{chain[-1]}'", span, source)

    def format(self, filename: str = "input.regxl") -> str:
        result = _render(self.message, self.span, self.source, filename)
        return result + f"\n  in expansion chain: {' -> '.join(self.chain)}"


class GenerationError(RegXLError):
    """Raised when a resolved AST cannot be lowered to pattern text."""

    def __init__(self, message: str, span: Span = NOWHERE, source: str = "") -> None:
        super().__init__(message, span, source)
