"""Minimal LSP server for RegXL — diagnostics only."""

from __future__ import annotations

import argparse
from pathlib import Path

from lsprotocol.types import (
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_OPEN,
    Diagnostic,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidOpenTextDocumentParams,
    Position,
    PublishDiagnosticsParams,
    Range,
    TextDocumentSyncKind,
)
from pygls.lsp.server import LanguageServer

from regxl.cli import config_extension_specs, load_config, load_extensions
from regxl.compiler import compile_pattern
from regxl.errors import CycleError, RegXLError, ResolutionError
from regxl.resolver import Extensions

server = LanguageServer("regxl-lsp", "0.1.0", text_document_sync_kind=TextDocumentSyncKind.Full)

# Overrides the regxl.toml lookup when set
extensions: Extensions | None = None


def _error_diagnostic(message: str) -> Diagnostic:
    return Diagnostic(
        range=Range(start=Position(line=0, character=0), end=Position(line=0, character=0)),
        message=message,
        severity=DiagnosticSeverity.Error,
        source="regxl",
    )


def _document_extensions(path: str | None) -> Extensions | None:
    """Load the registries named by the regxl.toml beside the document."""
    if extensions is not None:
        return extensions
    input_dir = Path(path).parent if path else Path(".")
    return load_extensions(config_extension_specs(load_config(None, input_dir)))


def _validate(ls: LanguageServer, uri: str) -> None:
    """Run the RegXL pipeline and publish diagnostics."""
    doc = ls.workspace.get_text_document(uri)
    source = doc.source
    filename = uri.rsplit("/", 1)[-1] if "/" in uri else uri
    diagnostics: list[Diagnostic] = []

    try:
        registry = _document_extensions(doc.path)
    except (argparse.ArgumentTypeError, OSError, ValueError) as exc:
        diagnostics.append(_error_diagnostic(f"regxl.toml: {exc}"))
        ls.text_document_publish_diagnostics(
            PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
        )
        return

    try:
        compile_pattern(source, registry, filename)
    except RegXLError as exc:
        start_line = exc.span.start.line - 1
        start_col = exc.span.start.column - 1
        end_line = exc.span.end.line - 1
        end_col = exc.span.end.column - 1
        message = exc.message
        if isinstance(exc, (ResolutionError, CycleError)) and exc.chain:
            message += f" (in expansion: {' -> '.join(exc.chain)})"
        # Errors raised inside an extension snippet point into that snippet
        if exc.source != source:
            start_line = start_col = end_line = end_col = 0
        diagnostics.append(
            Diagnostic(
                range=Range(
                    start=Position(line=start_line, character=start_col),
                    end=Position(line=end_line, character=end_col),
                ),
                message=message,
                severity=DiagnosticSeverity.Error,
                source="regxl",
            )
        )

    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: LanguageServer, params: DidOpenTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: LanguageServer, params: DidChangeTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


def main() -> None:
    server.start_io()
