"""
Insertion-anchor validation.

Before inserting new text "after" an anchor quote, check that the insertion
point lands on a natural boundary (end of sentence, paragraph or quotation)
rather than in the middle of a sentence or inside an open quote. When it
does not, suggest a longer anchor that ends on the next boundary.
"""

import logging
import re
from typing import Optional

from text_patch_engine.core.span_locator.locator import SpanLocator
from text_patch_engine.core.span_locator.models import AnchorValidation

logger = logging.getLogger(__name__)

SHORT_ANCHOR_CHARS = 15
LOOKAROUND_CHARS = 100
SENTENCE_SCAN_CHARS = 200
BETTER_ANCHOR_SEARCH_CHARS = 500
BETTER_ANCHOR_LEAD_CHARS = 50
BETTER_ANCHOR_MIN_CHARS = 10

_DIALOGUE_TAG_RE = re.compile(
    r'"[^"]*"\s*(?:he|she|they|it|\w+)\s+'
    r'(?:said|whispered|shouted|asked|replied|answered|muttered|declared|announced)\w*\.?\s*$',
    re.IGNORECASE,
)
_PARAGRAPH_BREAK_RE = re.compile(r"\s*\n\s*\n")
_LINE_BREAK_RE = re.compile(r"\s*\n")
_SENTENCE_END_RE = re.compile(r"[.!?]")


def _next_word_is_capitalized(text: str) -> bool:
    """True for whitespace followed by an uppercase letter ("  Then ...")."""
    stripped = text.lstrip()
    return len(stripped) < len(text) and stripped[:1].isupper()


def anchor_ends_appropriately(anchor_text: str) -> bool:
    """Whether the anchor itself ends at a sentence, quote or paragraph boundary."""
    if not anchor_text:
        return False
    trimmed = anchor_text.rstrip()
    if trimmed.endswith((".", "!", "?", '"', "'")):
        return True
    if _DIALOGUE_TAG_RE.search(trimmed):
        return True
    # Very short anchors are often intentionally minimal
    if len(trimmed) < SHORT_ANCHOR_CHARS:
        return True
    return anchor_text.endswith(("\n\n", "\r\n\r\n"))


def insertion_point_is_appropriate(content: str, insertion_point: int) -> bool:
    """Whether inserting at insertion_point would land between sentences or paragraphs."""
    if insertion_point >= len(content):
        return True

    after = content[insertion_point:insertion_point + LOOKAROUND_CHARS]
    before = content[max(0, insertion_point - LOOKAROUND_CHARS):insertion_point]

    if _next_word_is_capitalized(after):
        return True
    if _PARAGRAPH_BREAK_RE.match(after):
        return True
    if before.rstrip().endswith('"') and _LINE_BREAK_RE.match(after):
        return True
    # Odd number of double quotes before: inside a quotation
    if before.count('"') % 2 == 1:
        return False

    ahead = content[insertion_point:insertion_point + SENTENCE_SCAN_CHARS]
    next_capital = next((i for i, ch in enumerate(ahead) if ch.isupper()), None)
    if next_capital is not None and not _SENTENCE_END_RE.search(ahead[:next_capital]):
        return False
    return True


def find_better_anchor_text(content: str, match_index: int, match_end: int) -> Optional[str]:
    """
    Anchor text ending at the next sentence end or paragraph break after the match,
    starting a little before the match. None when no boundary is close enough.
    """
    lead_start = max(0, match_index - BETTER_ANCHOR_LEAD_CHARS)
    limit = min(len(content), match_end + BETTER_ANCHOR_SEARCH_CHARS)
    for i in range(match_end, limit):
        ch = content[i]
        if ch in ".!?" and (i + 1 == len(content) or content[i + 1].isspace()):
            candidate = content[lead_start:i + 1].strip()
            if len(candidate) >= BETTER_ANCHOR_MIN_CHARS:
                return candidate
        if ch == "\n" and i + 1 < len(content) and content[i + 1] == "\n":
            candidate = content[lead_start:i].strip()
            if len(candidate) >= BETTER_ANCHOR_MIN_CHARS:
                return candidate
    return None


class AnchorValidator:
    """Checks anchors for insert-after edits."""

    def __init__(self, locator: Optional[SpanLocator] = None):
        self.locator = locator or SpanLocator()

    def validate(self, content: str, anchor_text: str) -> AnchorValidation:
        if not content or not anchor_text:
            return AnchorValidation(is_valid=False, error_message="Content or anchor text is empty")

        match = self.locator.locate(content, anchor_text)
        if not match.is_match:
            return AnchorValidation(is_valid=False, error_message="Anchor text not found in document")

        insertion_point = match.end
        ends_well = anchor_ends_appropriately(anchor_text)
        point_ok = insertion_point_is_appropriate(content, insertion_point)
        if ends_well and point_ok:
            return AnchorValidation(is_valid=True, insertion_point=insertion_point)

        better = find_better_anchor_text(content, match.index, insertion_point)
        if better:
            if not ends_well:
                message = ("Anchor text appears incomplete (doesn't end at sentence/paragraph boundary). "
                           "Better anchor text suggested.")
            else:
                message = "Insertion would occur in middle of paragraph/sentence. Better anchor text suggested."
        elif not ends_well:
            message = "Anchor text appears incomplete (doesn't end at natural boundary) and no better anchor found"
        else:
            message = "Insertion point is inappropriate (middle of paragraph/sentence) and no better anchor found"

        logger.info("Anchor rejected at %d: %s", insertion_point, message)
        return AnchorValidation(
            is_valid=False,
            insertion_point=insertion_point,
            error_message=message,
            suggested_anchor_text=better,
        )


_default_validator = AnchorValidator()


def validate_insertion_anchor(content: str, anchor_text: str) -> AnchorValidation:
    return _default_validator.validate(content, anchor_text)
