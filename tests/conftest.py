"""Shared test fixtures and helpers."""

from __future__ import annotations

import pytest

from regxl.ast import Root
from regxl.compiler import CompilationCache, compile_pattern
from regxl.generator import CompiledPattern
from regxl.lexer import tokenize
from regxl.parser import parse
from regxl.tokens import Token, TokenType


@pytest.fixture
def lex():
    """Return a helper that tokenizes source and returns tokens (excluding EOF)."""

    def _lex(source: str) -> list[Token]:
        tokens = tokenize(source)
        # Strip trailing EOF for convenience
        return [t for t in tokens if t.type != TokenType.EOF]

    return _lex


@pytest.fixture
def parse_source():
    """Return a helper that parses source and returns the Root body."""

    def _parse(source: str) -> Root:
        return parse(source, "test.regxl")

    return _parse


@pytest.fixture
def cache() -> CompilationCache:
    """An isolated compilation cache."""
    return CompilationCache()


def pattern_of(source: str, extensions=None) -> str:
    """Compile source without caching and return only the pattern text."""
    return compile_pattern(source, extensions).pattern


def compiled(source: str, extensions=None) -> CompiledPattern:
    return compile_pattern(source, extensions)


def assert_types(tokens: list[Token], expected: list[TokenType]) -> None:
    """Assert that the token types match the expected list."""
    actual = [t.type for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


def assert_values(tokens: list[Token], expected: list[str]) -> None:
    """Assert that the token values match the expected list."""
    actual = [t.value for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"
