"""
TextPatcher component for applying located edits to a document body.

The patcher relocates the caller's quoted original text with the span
locator and splices the new text over exactly that span, once. It never does
a global find-and-replace: unrelated occurrences stay untouched and the
located span's full length (which can exceed the quote's length after
normalization) is what gets replaced.
"""

import logging
import time
from typing import Optional

from text_patch_engine.core.span_locator.config import LocatorSettings
from text_patch_engine.core.span_locator.locator import SpanLocator
from text_patch_engine.core.span_locator.models import (
    PatchError,
    PatchErrorKind,
    PatchPostconditionError,
    PatchResult,
)
from text_patch_engine.core.span_locator.utils import preview

logger = logging.getLogger(__name__)


def _splice(content: str, index: int, length: int, replacement: str) -> str:
    """Replace content[index:index+length] with replacement and verify nothing else moved."""
    modified = content[:index] + replacement + content[index + length:]
    tail_start = index + len(replacement)
    if modified[:index] != content[:index] or modified[tail_start:] != content[index + length:]:
        raise PatchPostconditionError(
            f"Splice at {index}-{index + length} altered content outside the located span"
        )
    return modified


class TextPatcher:
    """
    Applies (original_text -> changed_text) edits to document content.

    Handles:
    - Quotes that differ from the document by whitespace, casing or small typos
    - Replacement of the full located span, never a truncated one
    - "Not found" as a normal, reportable outcome
    """

    def __init__(self, locator: Optional[SpanLocator] = None, settings: Optional[LocatorSettings] = None):
        """
        Initialize the patcher.

        Args:
            locator: Span locator to use (one is built from settings if None)
            settings: Locator settings, ignored when a locator is given
        """
        self.locator = locator or SpanLocator(settings)

    def apply(
        self,
        content: str,
        original_text: str,
        changed_text: str,
        min_confidence: Optional[float] = None,
    ) -> PatchResult:
        """
        Replace the span of content that original_text refers to with changed_text.

        Args:
            content: Document body
            original_text: Quote of the text to replace
            changed_text: Replacement text
            min_confidence: Optional floor; a weaker match is reported as LOW_CONFIDENCE

        Returns:
            PatchResult. On failure modified_text is content, unchanged.
        """
        start_time = time.time()
        if not content or not original_text:
            return self._failure(
                content, PatchErrorKind.EMPTY_INPUT, original_text,
                "Content and original text must both be non-empty", start_time,
            )

        match = self.locator.locate(content, original_text)
        if not match.is_match:
            return self._failure(
                content, PatchErrorKind.NOT_FOUND, original_text,
                f"Original text not found in document: '{preview(original_text, 100)}'", start_time,
            )

        if min_confidence is not None and match.confidence < min_confidence:
            result = self._failure(
                content, PatchErrorKind.LOW_CONFIDENCE, original_text,
                f"Match confidence too low ({match.confidence:.2f} < {min_confidence:.2f})", start_time,
            )
            result.match = match
            return result

        modified = _splice(content, match.index, match.length, changed_text)
        logger.info(
            "Applied edit using %s match at %d: replaced '%s' with '%s'",
            match.match_type.value, match.index, preview(match.matched_text, 50), preview(changed_text, 50),
        )
        return PatchResult(
            success=True,
            modified_text=modified,
            applied_fragment=changed_text,
            match=match,
            processing_time_ms=int((time.time() - start_time) * 1000),
        )

    def insert_after(self, content: str, anchor_text: str, new_text: str) -> PatchResult:
        """Insert new_text immediately after the span that anchor_text refers to."""
        start_time = time.time()
        if not content or not anchor_text:
            return self._failure(
                content, PatchErrorKind.EMPTY_INPUT, anchor_text,
                "Content and anchor text must both be non-empty", start_time,
            )

        match = self.locator.locate(content, anchor_text)
        if not match.is_match:
            return self._failure(
                content, PatchErrorKind.NOT_FOUND, anchor_text,
                f"Anchor text not found in document: '{preview(anchor_text, 100)}'", start_time,
            )

        modified = _splice(content, match.end, 0, new_text)
        logger.info("Inserted %d chars after %s anchor match ending at %d", len(new_text), match.match_type.value, match.end)
        return PatchResult(
            success=True,
            modified_text=modified,
            applied_fragment=new_text,
            match=match,
            processing_time_ms=int((time.time() - start_time) * 1000),
        )

    def _failure(self, content: str, kind: PatchErrorKind, query: str, message: str, start_time: float) -> PatchResult:
        logger.warning("Patch not applied (%s): %s", kind.value, message)
        return PatchResult(
            success=False,
            modified_text=content,
            applied_fragment="",
            error=PatchError(kind=kind, query=query, message=message),
            processing_time_ms=int((time.time() - start_time) * 1000),
        )


_default_patcher = TextPatcher()


def apply_patch(
    content: str,
    original_text: str,
    changed_text: str,
    settings: Optional[LocatorSettings] = None,
    min_confidence: Optional[float] = None,
) -> PatchResult:
    """Apply one edit with default settings unless settings are given."""
    patcher = TextPatcher(settings=settings) if settings is not None else _default_patcher
    return patcher.apply(content, original_text, changed_text, min_confidence=min_confidence)
