#!/usr/bin/env python3
"""Render a case-study document into its JSON render sequence.

Usage:
    python3 scripts/render_case_study.py --input case_studies/tendril.md

    # With the catalog TOC, joined prose HTML and a custom config:
    python3 scripts/render_case_study.py --input case_studies/tendril.md \
      --with-toc --html --config render_config.json --output out/tendril.json

Structured JSON output goes to stdout (or --output); human messages go to
stderr.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from casestudy.assembler import render_document
from casestudy.catalog import missing_sections
from casestudy.config import DEFAULT_CONFIG, load_config
from casestudy.io_utils import dumps_json, read_text, save_json
from casestudy.render_types import rendered_document_to_dict
from casestudy.toc import TableOfContents

log = logging.getLogger("render_case_study")


def build_payload(
    text: str,
    *,
    config_path: Path | None = None,
    with_toc: bool = False,
    with_html: bool = False,
) -> dict[str, Any]:
    config = load_config(config_path) if config_path else DEFAULT_CONFIG
    document = render_document(text, config=config)
    payload: dict[str, Any] = {
        "status": "ok",
        "config": config.to_dict(),
        "document": rendered_document_to_dict(document),
    }
    if with_toc:
        toc = TableOfContents(active_offset=config.active_offset)
        missing = missing_sections(toc.entries, document.heading_slugs())
        payload["toc"] = {**toc.to_dict(), "missing": [e.id for e in missing]}
        for entry in missing:
            log.info("Catalog section %r has no heading in the document", entry.title)
    if with_html:
        payload["html"] = document.prose_html()

    block_count = len(document.block_items)
    log.info(
        "Rendered %d items (%d blocks, %d headings, %d warnings)",
        len(document.items), block_count, len(document.headings), len(document.warnings),
    )
    for warning in document.warnings:
        log.debug("%s at %s: %s", warning.code, warning.position, warning.message)
    return payload


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Render a case-study document into a JSON render sequence.",
    )
    parser.add_argument("--input", required=True, help="Path to the document ('-' for stdin)")
    parser.add_argument("--config", default=None, help="Optional JSON render config")
    parser.add_argument("--output", default=None, help="Write JSON here instead of stdout")
    parser.add_argument("--with-toc", action="store_true", help="Include the catalog TOC")
    parser.add_argument("--html", action="store_true", help="Include joined prose HTML")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    if args.input == "-":
        text = sys.stdin.read()
    else:
        input_path = Path(args.input)
        if not input_path.exists():
            log.error("Input file not found: %s", input_path)
            sys.exit(1)
        text = read_text(input_path)

    payload = build_payload(
        text,
        config_path=Path(args.config) if args.config else None,
        with_toc=args.with_toc,
        with_html=args.html,
    )

    if args.output:
        save_json(payload, Path(args.output))
        log.info("Wrote %s", args.output)
    else:
        sys.stdout.buffer.write(dumps_json(payload))
        sys.stdout.buffer.write(b"\n")


if __name__ == "__main__":
    main()
