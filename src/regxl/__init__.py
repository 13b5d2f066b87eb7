"""RegXL — compiles a readable grammar notation to regular expressions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from regxl.compiler import CompilationCache, compile_pattern
from regxl.errors import (
    CycleError,
    GenerationError,
    LexError,
    ParseError,
    RegXLError,
    ResolutionError,
)
from regxl.generator import CompiledPattern
from regxl.resolver import ExtensionRegistry

if TYPE_CHECKING:
    from regxl.resolver import Extensions

__version__ = "0.1.0"

# Process-wide cache used by compile(); pass cache= to isolate callers
default_cache = CompilationCache()


def compile(
    source: str,
    extensions: Extensions | None = None,
    *,
    cache: CompilationCache | None = None,
) -> CompiledPattern:
    """Compile RegXL source to a pattern, memoized per (source, extensions)."""
    return (cache if cache is not None else default_cache).compile(source, extensions)


__all__ = [
    "CompilationCache",
    "CompiledPattern",
    "CycleError",
    "ExtensionRegistry",
    "GenerationError",
    "LexError",
    "ParseError",
    "RegXLError",
    "ResolutionError",
    "compile",
    "compile_pattern",
    "default_cache",
]
