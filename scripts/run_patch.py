"""
Apply a single (original -> changed) edit to a document.

The original text is located with the span locator cascade, so it may differ
from the document by whitespace, casing or small typos. The patched document
is written to --output (or back to --content-file with --in-place).

With --anchor the anchor is validated first; an anchor that would insert in
the middle of a sentence or quotation is rejected (exit code 1) and the
suggested better anchor is printed.

Usage:
  poetry run python scripts/run_patch.py --content-file notes/chapter1.md \
    --original "brown fox" --changed "red fox" --output scripts/output/chapter1.md

  poetry run python scripts/run_patch.py --content-file notes/chapter1.md \
    --anchor "The fox was very clever." --changed " It always was." --in-place
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from text_patch_engine.core.span_locator import AnchorValidator, LocatorSettings, TextPatcher


def _load_env() -> None:
    project_root = Path(__file__).resolve().parents[1]
    load_dotenv(project_root / ".env.local")
    load_dotenv(project_root / ".env")


def _read_arg(inline: Optional[str], path: Optional[str]) -> Optional[str]:
    if path:
        return Path(path).read_text(encoding="utf-8")
    return inline


def main() -> int:
    parser = argparse.ArgumentParser(description="Apply a located edit to a document")
    parser.add_argument("--content-file", required=True, help="Path to the document body")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--original", help="Quoted text to replace")
    target.add_argument("--original-file", help="File containing the quoted text to replace")
    target.add_argument("--anchor", help="Insert --changed right after this quoted text")
    parser.add_argument("--changed", default=None, help="Replacement (or inserted) text")
    parser.add_argument("--changed-file", default=None, help="File containing the replacement text")
    parser.add_argument("--min-confidence", type=float, default=None, help="Reject matches below this confidence")
    output = parser.add_mutually_exclusive_group()
    output.add_argument("--output", default=None, help="Where to write the patched document")
    output.add_argument("--in-place", action="store_true", help="Overwrite --content-file")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    _load_env()

    content_path = Path(args.content_file)
    if not content_path.exists():
        print(f"❌ Content file not found: {content_path}")
        return 2
    content = content_path.read_text(encoding="utf-8")
    changed = _read_arg(args.changed, args.changed_file)
    if changed is None:
        print("❌ One of --changed / --changed-file is required")
        return 2

    patcher = TextPatcher(settings=LocatorSettings.from_env())
    summary = {}
    if args.anchor:
        validation = AnchorValidator(patcher.locator).validate(content, args.anchor)
        summary["anchor_validation"] = {
            "is_valid": validation.is_valid,
            "insertion_point": validation.insertion_point,
            "error_message": validation.error_message,
            "suggested_anchor_text": validation.suggested_anchor_text,
        }
        if not validation.is_valid:
            print(json.dumps(summary, ensure_ascii=False, indent=2))
            print(f"❌ Anchor rejected: {validation.error_message}")
            return 1
        result = patcher.insert_after(content, args.anchor, changed)
    else:
        original = _read_arg(args.original, args.original_file) or ""
        result = patcher.apply(content, original, changed, min_confidence=args.min_confidence)
    summary["patch"] = result.to_dict()
    print(json.dumps(summary, ensure_ascii=False, indent=2))

    if not result.success:
        return 1

    destination = content_path if args.in_place else (Path(args.output) if args.output else None)
    if destination is not None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(result.modified_text, encoding="utf-8")
        print(f"✅ Patched document written to {destination}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
