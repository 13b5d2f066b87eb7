"""Compilation pipeline and the memoizing compilation cache."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from regxl.generator import CompiledPattern, generate
from regxl.lexer import tokenize
from regxl.parser import parse_tokens
from regxl.resolver import Extensions, resolve

logger = logging.getLogger(__name__)


def compile_pattern(
    source: str,
    extensions: Extensions | None = None,
    filename: str = "input.regxl",
) -> CompiledPattern:
    """Run lexer, parser, resolver and generator without caching."""
    tokens = tokenize(source, filename)
    root = parse_tokens(tokens, source, filename)
    root = resolve(root, extensions, source)
    return generate(root, source)


@dataclass(frozen=True, slots=True)
class _Entry:
    # Holding the registry keeps its id() from being reused while cached
    extensions: Extensions | None
    pattern: CompiledPattern


class CompilationCache:
    """Memoizes compiled patterns by source text and registry identity.

    Entries are never evicted. Lookup, compilation and insertion happen
    under one lock, so each key is compiled at most once even when
    several threads ask for it together.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, int | None], _Entry] = {}
        # Reentrant: an extension handler may itself compile through this cache
        self._lock = threading.RLock()

    def compile(self, source: str, extensions: Extensions | None = None) -> CompiledPattern:
        """Return the cached pattern for (source, extensions), compiling on first use."""
        key = (source, None if extensions is None else id(extensions))
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                logger.debug("cache hit for %r", source)
                return entry.pattern
            logger.debug("cache miss for %r", source)
            pattern = compile_pattern(source, extensions)
            self._entries[key] = _Entry(extensions, pattern)
            return pattern

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        if isinstance(key, str):
            key = (key, None)
        elif isinstance(key, tuple) and len(key) == 2 and key[1] is not None:
            key = (key[0], id(key[1]))
        with self._lock:
            return key in self._entries
