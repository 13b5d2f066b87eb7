"""Command-line interface for RegXL."""

from __future__ import annotations

import argparse
import importlib
import json
import logging
import sys
import time
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from regxl.errors import CycleError, GenerationError, LexError, ParseError, ResolutionError
from regxl.generator import CompiledPattern
from regxl.resolver import ExtensionRegistry

FORMATS = ("literal", "pattern", "json")


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Parsed CLI options."""

    input_file: Path | None
    expression: str | None
    output_file: Path | None
    output_format: str
    extension_specs: list[str]
    watch: bool
    debug: bool
    verbose: bool


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (separate function for testability)."""
    p = argparse.ArgumentParser(
        prog="regxl",
        description="Compile RegXL expressions to regular expressions",
    )
    p.add_argument("input", nargs="?", help="Input .regxl file ('-' for stdin)")
    p.add_argument("-e", "--expr", help="Compile this expression instead of a file")
    p.add_argument("-o", "--output", help="Output file (default: stdout)")
    p.add_argument(
        "-f",
        "--format",
        choices=FORMATS,
        default=None,
        help="Output format (default: literal)",
    )
    p.add_argument(
        "-x",
        "--extensions",
        action="append",
        default=[],
        metavar="MODULE:ATTR",
        help="Custom token registry to load (repeatable)",
    )
    p.add_argument(
        "--config",
        metavar="FILE",
        help="Config file (default: auto-discover regxl.toml)",
    )
    p.add_argument("--watch", action="store_true", help="Watch for changes and recompile")
    p.add_argument("--debug", action="store_true", help="Dump resolved AST to stderr")
    p.add_argument("-v", "--verbose", action="store_true", help="Log compiler activity to stderr")
    return p


def parse_extension_spec(s: str) -> tuple[str, str]:
    """Parse a MODULE:ATTR string into (module, attribute)."""
    module, sep, attr = s.partition(":")
    if not sep or not module or not attr:
        raise argparse.ArgumentTypeError(f"invalid extension format (expected MODULE:ATTR): {s}")
    return module, attr


def load_config(config_path: Path | None, input_dir: Path) -> dict[str, Any]:
    """Load a TOML config file, returning an empty dict on missing/absent file."""
    path = config_path if config_path is not None else input_dir / "regxl.toml"

    if not path.is_file():
        return {}

    with open(path, "rb") as f:
        return tomllib.load(f)


def config_extension_specs(config: Mapping[str, Any]) -> list[str]:
    """Return the MODULE:ATTR entries of the [extensions] table."""
    cfg_ext = config.get("extensions")
    if isinstance(cfg_ext, dict):
        cfg_modules = cfg_ext.get("modules")
        if isinstance(cfg_modules, list):
            return [str(m) for m in cfg_modules]
    return []


def resolve_options(args: argparse.Namespace) -> CliOptions:
    """Merge config file and CLI args into CliOptions.

    Precedence: config file < CLI flags.
    """
    if args.input is None and args.expr is None:
        raise argparse.ArgumentTypeError("an input file or --expr is required")
    if args.input is not None and args.expr is not None:
        raise argparse.ArgumentTypeError("give either an input file or --expr, not both")
    if args.watch and (args.input in (None, "-")):
        raise argparse.ArgumentTypeError("--watch requires an input file")

    input_file = Path(args.input) if args.input not in (None, "-") else None
    input_dir = Path(".")
    if input_file is not None and input_file.parent.parts:
        input_dir = input_file.parent

    config_path = Path(args.config) if args.config else None
    config = load_config(config_path, input_dir)

    # Extension registries: config < CLI
    specs = [*config_extension_specs(config), *args.extensions]
    for spec in specs:
        parse_extension_spec(spec)

    # Output format: config < CLI
    output_format = "literal"
    cfg_output = config.get("output")
    if isinstance(cfg_output, dict):
        cfg_format = cfg_output.get("format")
        if isinstance(cfg_format, str):
            if cfg_format not in FORMATS:
                raise argparse.ArgumentTypeError(f"invalid output format in config: {cfg_format}")
            output_format = cfg_format
    if args.format is not None:
        output_format = args.format

    output_file = Path(args.output) if args.output else None

    return CliOptions(
        input_file=input_file,
        expression=args.expr,
        output_file=output_file,
        output_format=output_format,
        extension_specs=specs,
        watch=args.watch,
        debug=args.debug,
        verbose=args.verbose,
    )


def load_extensions(specs: list[str]) -> ExtensionRegistry | None:
    """Import each MODULE:ATTR registry and merge them into one."""
    if not specs:
        return None
    merged = ExtensionRegistry()
    for spec in specs:
        module_name, attr = parse_extension_spec(spec)
        try:
            module = importlib.import_module(module_name)
        except ImportError as exc:
            raise argparse.ArgumentTypeError(f"cannot import {module_name}: {exc}") from None
        registry = getattr(module, attr, None)
        if isinstance(registry, ExtensionRegistry):
            tokens: Mapping[str, Any] = registry.tokens
        elif isinstance(registry, Mapping):
            tokens = registry
        else:
            raise argparse.ArgumentTypeError(f"{spec} is not an extension registry")
        for name, handler in tokens.items():
            if name in merged:
                raise argparse.ArgumentTypeError(f"{spec}: token '{name}' is already defined")
            try:
                merged.add(name, handler)
            except ValueError as exc:
                raise argparse.ArgumentTypeError(f"{spec}: {exc}") from None
    return merged


def read_source(options: CliOptions) -> str:
    if options.expression is not None:
        return options.expression
    if options.input_file is None:
        return sys.stdin.read()
    return options.input_file.read_text(encoding="utf-8")


def format_pattern(pattern: CompiledPattern, output_format: str) -> str:
    """Render a compiled pattern for output."""
    if output_format == "pattern":
        return pattern.pattern + "\n"
    if output_format == "json":
        return json.dumps({"pattern": pattern.pattern, "flags": pattern.flags}) + "\n"
    return f"{pattern}\n"


def compile_file(options: CliOptions, extensions: ExtensionRegistry | None = None) -> str:
    """Read, parse, resolve, and generate a RegXL source to formatted output."""
    from regxl.debug import dump_ast
    from regxl.generator import generate
    from regxl.parser import parse
    from regxl.resolver import resolve

    source = read_source(options)
    filename = str(options.input_file) if options.input_file else "<expr>"

    root = parse(source, filename)
    root = resolve(root, extensions, source)

    if options.debug:
        dump_ast(root)

    return format_pattern(generate(root, source), options.output_format)


def _write(options: CliOptions, text: str) -> None:
    if options.output_file:
        options.output_file.write_text(text, encoding="utf-8")
    else:
        sys.stdout.write(text)
        sys.stdout.flush()


def watch_loop(options: CliOptions, extensions: ExtensionRegistry | None) -> None:
    """Poll input file for changes, recompile on each modification."""
    if options.input_file is None:
        raise argparse.ArgumentTypeError("--watch requires an input file")
    last_mtime = 0.0
    print(f"Watching {options.input_file} for changes...", file=sys.stderr)
    try:
        while True:
            try:
                mtime = options.input_file.stat().st_mtime
            except OSError:
                time.sleep(0.5)
                continue
            if mtime != last_mtime:
                last_mtime = mtime
                try:
                    _write(options, compile_file(options, extensions))
                    print(f"Compiled {options.input_file}", file=sys.stderr)
                except _COMPILE_ERRORS as exc:
                    print(exc.format(str(options.input_file)), file=sys.stderr)
            time.sleep(0.5)
    except KeyboardInterrupt:
        pass


_COMPILE_ERRORS = (LexError, ParseError, ResolutionError, CycleError, GenerationError)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns exit code (0/1/2). Does not call sys.exit()."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    try:
        options = resolve_options(args)
        extensions = load_extensions(options.extension_specs)
        if options.watch:
            watch_loop(options, extensions)
            return 0
    except argparse.ArgumentTypeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    filename = str(options.input_file) if options.input_file else "<expr>"
    try:
        output = compile_file(options, extensions)
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except (LexError, ParseError) as exc:
        print(exc.format(filename), file=sys.stderr)
        return 1
    except (ResolutionError, CycleError, GenerationError) as exc:
        print(exc.format(filename), file=sys.stderr)
        return 2

    _write(options, output)
    return 0


def _run() -> None:
    sys.exit(main())
