"""Command-line interface for md2docx.

Usage::

    md2docx notes.md                        # writes notes.docx next to it
    md2docx a.md b.md -o out/               # batch into out/
    md2docx report.md -t report             # report layout (title, contents)
    md2docx a.md --style paragraphSize=22   # override a style knob
    md2docx a.md --config options.json      # load options from JSON
    md2docx --list-options                  # show defaults
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any

from md2docx import __version__
from md2docx.config import ConversionOptions, SourceKind
from md2docx.errors import ContextualError, Md2DocxError
from md2docx.items import BinaryData, ErrorRecord, InputItem, OutputItem
from md2docx.pipeline import run_batch
from md2docx.style import DocumentType, StyleConfig

LOGGER = logging.getLogger(__name__)


def _parse_style_value(raw: str) -> Any:
    """Interpret ``--style`` values as JSON scalars, falling back to text."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _style_pair(text: str) -> tuple[str, Any]:
    key, sep, value = text.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {text!r}")
    return key.strip(), _parse_style_value(value.strip())


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="md2docx",
        description="Convert Markdown files to DOCX (Word) format.",
    )
    parser.add_argument(
        "inputs",
        nargs="*",
        metavar="INPUT",
        help="Markdown files to convert.",
    )
    parser.add_argument(
        "-o", "--output-dir",
        help="Directory for the DOCX files. Defaults to each input's directory.",
    )
    parser.add_argument(
        "-t", "--document-type",
        choices=[t.value for t in DocumentType],
        help="Document layout (default: document).",
    )
    parser.add_argument(
        "--style",
        action="append",
        type=_style_pair,
        default=[],
        metavar="KEY=VALUE",
        help="Override a style option, e.g. paragraphAlignment=CENTER. Repeatable.",
    )
    parser.add_argument(
        "-c", "--config",
        help="JSON file with conversion options.",
    )
    parser.add_argument(
        "--continue-on-fail",
        action="store_true",
        help="Keep converting the remaining files when one fails.",
    )
    parser.add_argument(
        "--list-options",
        action="store_true",
        help="Print the default options and style settings and exit.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Print progress information (-vv for debug output).",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _base_options(args: argparse.Namespace) -> ConversionOptions:
    options = ConversionOptions.from_file(args.config) if args.config else ConversionOptions()
    advanced = {**options.advanced_options, **dict(args.style)}
    options = replace(options, source=SourceKind.FROM_BINARY, advanced_options=advanced)
    if args.document_type:
        options = replace(options, document_type=DocumentType(args.document_type))
    return options


def main(argv: list[str] | None = None) -> int:
    """Entry point for the CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.list_options:
        print(json.dumps(
            {"options": ConversionOptions().to_dict(), "style": StyleConfig().to_dict()},
            indent=2,
        ))
        return 0

    if not args.inputs:
        parser.error("the following arguments are required: INPUT")

    paths = [Path(p) for p in args.inputs]
    missing = [p for p in paths if not p.is_file()]
    if missing:
        for path in missing:
            print(f"Error: file not found: {path}", file=sys.stderr)
        return 1

    try:
        base = _base_options(args)
    except Md2DocxError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    out_dir = Path(args.output_dir) if args.output_dir else None
    targets = [
        (out_dir or path.parent) / path.with_suffix(".docx").name for path in paths
    ]
    seen: dict[Path, Path] = {}
    for path, target in zip(paths, targets):
        if target in seen:
            print(
                f"Error: {path} and {seen[target]} would both be written to {target}",
                file=sys.stderr,
            )
            return 1
        seen[target] = path

    items = [
        InputItem(binary={base.binary_property_name: BinaryData.from_path(path)})
        for path in paths
    ]

    def options_for(index: int, _item: InputItem) -> ConversionOptions:
        return replace(base, filename=targets[index].name)

    try:
        results = asyncio.run(
            run_batch(items, options_for, continue_on_fail=args.continue_on_fail)
        )
    except ContextualError as exc:
        where = paths[exc.item_index] if exc.item_index is not None else "batch"
        print(f"Error: {where}: {exc}", file=sys.stderr)
        return 1

    exit_code = 0
    for path, target, result in zip(paths, targets, results):
        if isinstance(result, ErrorRecord):
            print(f"Error: {path}: {result.message}", file=sys.stderr)
            exit_code = 1
            continue
        _write_output(result, base.output_binary_property, target)
        print(f"Converted: {target}")
    return exit_code


def _write_output(result: OutputItem, slot: str, target: Path) -> None:
    artifact = result.binary[slot]
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(artifact.data)
    LOGGER.info("Wrote %s (%d bytes)", target, artifact.file_size)


if __name__ == "__main__":
    sys.exit(main())
