"""Tests for the LSP server — diagnostic generation."""

from __future__ import annotations

import pytest
from lsprotocol.types import (
    DiagnosticSeverity,
    PublishDiagnosticsParams,
    TextDocumentItem,
    TextDocumentSyncKind,
)
from pygls.lsp.server import LanguageServer
from pygls.workspace import Workspace

import regxl.lsp
from regxl import ExtensionRegistry
from regxl.lsp import _validate

URI = "file:///test.regxl"


@pytest.fixture
def lsp_env():
    """Create a LanguageServer with an initialized workspace and captured diagnostics."""
    ls = LanguageServer("test", "v0", text_document_sync_kind=TextDocumentSyncKind.Full)
    ws = Workspace(None)
    ls.protocol._workspace = ws

    published: list[PublishDiagnosticsParams] = []
    ls.text_document_publish_diagnostics = lambda params: published.append(params)

    def put(source: str, uri: str = URI) -> None:
        ws.put_text_document(TextDocumentItem(uri=uri, language_id="regxl", version=0, text=source))

    return ls, published, put


def _only_diagnostic(published):
    assert len(published) == 1
    diags = published[0].diagnostics
    assert len(diags) == 1
    return diags[0]


# ---------------------------------------------------------------------------
# Lex and parse errors
# ---------------------------------------------------------------------------


class TestLexErrors:
    def test_unexpected_character(self, lsp_env) -> None:
        ls, published, put = lsp_env
        put("digit ~")
        _validate(ls, URI)

        d = _only_diagnostic(published)
        assert d.severity == DiagnosticSeverity.Error
        assert "unexpected character" in d.message
        assert d.source == "regxl"
        # ~ is at column 7 (1-based) → character 6 (0-based)
        assert d.range.start.line == 0
        assert d.range.start.character == 6


class TestParseErrors:
    def test_unclosed_group(self, lsp_env) -> None:
        ls, published, put = lsp_env
        put("letter\ngroup('a'")
        _validate(ls, URI)

        d = _only_diagnostic(published)
        assert "closing" in d.message
        assert d.range.start.line == 1

    def test_reversed_range(self, lsp_env) -> None:
        ls, published, put = lsp_env
        put("'z' to 'a'")
        _validate(ls, URI)

        d = _only_diagnostic(published)
        assert "bounds out of order" in d.message
        assert d.range.start.character == 0
        assert d.range.end.character == 10


# ---------------------------------------------------------------------------
# Resolution errors
# ---------------------------------------------------------------------------


class TestResolutionErrors:
    def test_unknown_token(self, lsp_env) -> None:
        ls, published, put = lsp_env
        put("'x' mystery")
        _validate(ls, URI)

        d = _only_diagnostic(published)
        assert "unknown token 'mystery'" in d.message
        assert d.range.start.character == 4

    def test_cycle_mentions_chain(self, lsp_env, monkeypatch) -> None:
        registry = ExtensionRegistry({"a": lambda args, content: "b", "b": lambda args, content: "a"})
        monkeypatch.setattr(regxl.lsp, "extensions", registry)
        ls, published, put = lsp_env
        put("a")
        _validate(ls, URI)

        d = _only_diagnostic(published)
        assert "recursive expansion of 'a'" in d.message
        assert "a -> b -> a" in d.message

    def test_error_inside_snippet_has_zero_range(self, lsp_env, monkeypatch) -> None:
        registry = ExtensionRegistry({"broken": lambda args, content: "('x'"})
        monkeypatch.setattr(regxl.lsp, "extensions", registry)
        ls, published, put = lsp_env
        put("digit digit broken")
        _validate(ls, URI)

        d = _only_diagnostic(published)
        assert d.range.start.line == 0
        assert d.range.start.character == 0
        assert d.range.end.character == 0


# ---------------------------------------------------------------------------
# Clean documents
# ---------------------------------------------------------------------------


class TestCleanDocument:
    def test_no_diagnostics(self, lsp_env) -> None:
        ls, published, put = lsp_env
        put("start #year(digit 4x) '-' @year end with ignoreCase")
        _validate(ls, URI)

        assert len(published) == 1
        assert published[0].uri == URI
        assert published[0].diagnostics == []

    def test_fixing_the_error_clears_diagnostics(self, lsp_env) -> None:
        ls, published, put = lsp_env
        put("group(")
        _validate(ls, URI)
        put("group(digit)")
        _validate(ls, URI)

        assert len(published[0].diagnostics) == 1
        assert published[1].diagnostics == []


# ---------------------------------------------------------------------------
# Custom tokens from regxl.toml
# ---------------------------------------------------------------------------


class TestConfiguredExtensions:
    def test_tokens_from_regxl_toml(self, lsp_env, tmp_path) -> None:
        (tmp_path / "regxl.toml").write_text(
            '[extensions]\nmodules = ["tests.sample_tokens:registry"]\n'
        )
        uri = (tmp_path / "colour.regxl").as_uri()
        ls, published, put = lsp_env
        put("'#' hexByte 3x", uri)
        _validate(ls, uri)

        assert published[0].diagnostics == []

    def test_without_config_tokens_are_unknown(self, lsp_env, tmp_path) -> None:
        uri = (tmp_path / "colour.regxl").as_uri()
        ls, published, put = lsp_env
        put("'#' hexByte 3x", uri)
        _validate(ls, uri)

        d = _only_diagnostic(published)
        assert "unknown token 'hexByte'" in d.message

    def test_unimportable_module_is_reported(self, lsp_env, tmp_path) -> None:
        (tmp_path / "regxl.toml").write_text(
            '[extensions]\nmodules = ["tests.no_such_module:registry"]\n'
        )
        uri = (tmp_path / "colour.regxl").as_uri()
        ls, published, put = lsp_env
        put("digit", uri)
        _validate(ls, uri)

        d = _only_diagnostic(published)
        assert d.message.startswith("regxl.toml:")
        assert "cannot import" in d.message
