"""
Span locator: cascading approximate search for a quoted fragment.

Given a document body and a fragment that a caller believes appears in it
(typically recalled by an assistant, with reflowed whitespace, different
casing, a typo or a paraphrased word), the locator returns the single best
span together with the tier that found it.

Tiers run strictest first and the first tier that matches wins:
  1. Exact substring                (confidence 1.0)
  2. Case-insensitive substring     (confidence 0.95)
  3. Whitespace-normalized          (confidence 0.85)
  4. Fuzzy token window             (confidence >= 0.6, graded)
  5. Partial-sentence alignment     (confidence = aligned fraction, may be < 0.6)
"""

import dataclasses
import logging
from typing import Optional

from text_patch_engine.core.span_locator.config import (
    FUZZY_LENGTH_RATIO,
    STRICT_LENGTH_RATIO,
    LocatorSettings,
)
from text_patch_engine.core.span_locator.models import MatchResult, MatchType
from text_patch_engine.core.span_locator.strategies import STRATEGY_CASCADE
from text_patch_engine.core.span_locator.utils import extract_context, preview

logger = logging.getLogger(__name__)

_LENGTH_RATIOS = {
    MatchType.EXACT: STRICT_LENGTH_RATIO,
    MatchType.CASE_INSENSITIVE: STRICT_LENGTH_RATIO,
    MatchType.NORMALIZED_WHITESPACE: STRICT_LENGTH_RATIO,
    MatchType.FUZZY: FUZZY_LENGTH_RATIO,
}


def _check_types(content, query) -> None:
    if not isinstance(content, str) or not isinstance(query, str):
        raise TypeError(
            f"content and query must be str, got {type(content).__name__} and {type(query).__name__}"
        )


class SpanLocator:
    """
    Locates the span of content that a query refers to.

    Holds only immutable settings; instances can be shared across threads.
    """

    def __init__(self, settings: Optional[LocatorSettings] = None):
        self.settings = settings or LocatorSettings()

    def locate(self, content: str, query: str) -> MatchResult:
        """
        Find the best span of content matching query.

        Args:
            content: The document body (never modified)
            query: The quoted fragment to find

        Returns:
            MatchResult of the first tier that matched, or a NO_MATCH result.
            Empty content or query is a normal no-match, not an error.
        """
        _check_types(content, query)
        if not content or not query:
            logger.debug("Empty content or query; skipping search")
            return MatchResult.no_match()

        logger.debug("Searching for text: '%s' in %d chars", preview(query, 50), len(content))
        for match_type, strategy in STRATEGY_CASCADE:
            result = strategy(content, query, self.settings)
            if result is None:
                logger.debug("%s tier: no match", match_type.value)
                continue
            if not self._is_adequate(result, content, query):
                logger.warning(
                    "%s tier produced an inadequate span (index=%s, length=%d, query length=%d); trying next tier",
                    match_type.value, result.index, result.length, len(query),
                )
                continue
            logger.info(
                "Found %s match at index %d (length %d, confidence %.2f)",
                match_type.value, result.index, result.length, result.confidence,
            )
            return self._with_text(result, content)

        logger.info("No match found with any strategy for '%s'", preview(query, 50))
        return MatchResult.no_match()

    def _is_adequate(self, result: MatchResult, content: str, query: str) -> bool:
        """Bounds check plus the per-tier length floor relative to the query."""
        if result.index is None or result.index < 0 or result.length < 0:
            return False
        if result.index + result.length > len(content):
            return False
        ratio = _LENGTH_RATIOS.get(result.match_type)
        # Raw query length: a query spelled as a fold expansion ("i̇" for "İ") is rejected
        if ratio is not None and result.length < ratio * len(query):
            return False
        return True

    def _with_text(self, result: MatchResult, content: str) -> MatchResult:
        return dataclasses.replace(
            result,
            matched_text=content[result.index:result.end],
            context=extract_context(content, result.index, result.length, self.settings.context_radius),
        )


_default_locator = SpanLocator()


def locate(content: str, query: str, settings: Optional[LocatorSettings] = None) -> MatchResult:
    """Locate query in content with default settings unless settings are given."""
    locator = SpanLocator(settings) if settings is not None else _default_locator
    return locator.locate(content, query)
