"""
Locate a quoted fragment inside a document and print the match as JSON.

Usage:
  poetry run python scripts/run_locate.py --content-file notes/chapter1.md \
    --query "quick bown fox jumps"

  poetry run python scripts/run_locate.py --content-file notes/chapter1.md \
    --query-file scripts/output/quote.txt --context-radius 40

Environment variables (optional, read from .env.local / .env):
  SPAN_LOCATOR_CONTEXT_RADIUS, SPAN_LOCATOR_FUZZY_MAX_CONTENT_CHARS,
  SPAN_LOCATOR_FUZZY_MAX_QUERY_CHARS, SPAN_LOCATOR_MAX_WINDOW_EVALUATIONS
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from text_patch_engine.core.span_locator import LocatorSettings, SpanLocator


def _load_env() -> None:
    project_root = Path(__file__).resolve().parents[1]
    load_dotenv(project_root / ".env.local")
    load_dotenv(project_root / ".env")


def _read_text(inline: Optional[str], path: Optional[str], label: str) -> str:
    if path:
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"{label} file not found: {file_path}")
        return file_path.read_text(encoding="utf-8")
    return inline or ""


def main() -> int:
    parser = argparse.ArgumentParser(description="Locate a quoted fragment in a document")
    parser.add_argument("--content-file", required=True, help="Path to the document body")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--query", help="Quoted fragment to locate")
    group.add_argument("--query-file", help="File containing the quoted fragment")
    parser.add_argument("--context-radius", type=int, default=None, help="Override context radius")
    parser.add_argument("--verbose", action="store_true", help="Log each strategy tier")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    _load_env()

    settings = LocatorSettings.from_env()
    if args.context_radius is not None:
        settings = dataclasses.replace(settings, context_radius=args.context_radius)

    content = _read_text(None, args.content_file, "Content")
    query = _read_text(args.query, args.query_file, "Query")

    result = SpanLocator(settings).locate(content, query)
    print(json.dumps({"locate": result.to_dict()}, ensure_ascii=False, indent=2))
    return 0 if result.is_match else 1


if __name__ == "__main__":
    sys.exit(main())
