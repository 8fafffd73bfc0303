from __future__ import annotations

import argparse
import logging
import re
import sys
from dataclasses import replace
from pathlib import Path

from .config import RenderConfig, load_config
from .converter import convert, validate
from .document_classes import list_supported_classes
from .model import RenderContext
from .utils import configure_logging, read_source, render_page, resolve_output_path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="texpreview",
        description="Convert a LaTeX document into an HTML preview.",
    )
    parser.add_argument("input", type=str, nargs="?", help="Path to .tex file")
    parser.add_argument("-o", "--output", type=str, help="Output HTML path")
    parser.add_argument("--config", type=str, help="YAML settings file")
    parser.add_argument("--theme", type=str, help="Theme name added to the document root")
    parser.add_argument("--check", action="store_true", help="Only validate the document structure")
    parser.add_argument("--list-classes", action="store_true", help="Print supported document classes")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose)

    if args.list_classes:
        print("\n".join(list_supported_classes()))
        return 0
    if not args.input:
        parser.error("the following arguments are required: input")

    input_path = Path(args.input).expanduser()
    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")

    logging.info("Reading %s", input_path)
    source = read_source(input_path)
    logging.debug("Source length: %d chars", len(source))

    if args.check:
        report = validate(source)
        for error in report.errors:
            print(error)
        if report.ok:
            logging.info("No structural problems found")
        return 0 if report.ok else 1

    config = load_config(args.config) if args.config else RenderConfig()
    if args.theme:
        config = replace(config, theme=args.theme)

    logging.info("Converting...")
    result = convert(source, context=RenderContext(theme=config.theme), config=config)

    output_path = resolve_output_path(input_path, args.output)
    title = re.sub(r"\\[A-Za-z]+|[{}]", "", result.metadata.get("title", input_path.stem)).strip()
    output_path.write_text(render_page(result.markup, title or input_path.stem), encoding="utf-8")
    logging.info("Done. Saved to %s", output_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
