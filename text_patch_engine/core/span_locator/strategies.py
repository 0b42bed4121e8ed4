"""
Matching strategies for the span locator, strictest first.

Each strategy is a pure function (content, query, settings) -> Optional[MatchResult].
None means "this tier found nothing"; the locator then moves on to the next tier.
Returned results carry index/length in original-content offsets but no
matched_text/context; the locator fills those in.
"""

import logging
import re
from collections import Counter
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from rapidfuzz.distance import Levenshtein

from text_patch_engine.core.span_locator.config import (
    CASE_INSENSITIVE_CONFIDENCE,
    EXACT_CONFIDENCE,
    FUZZY_COVERAGE_WEIGHT,
    FUZZY_LENGTH_RATIO,
    FUZZY_MAX_LENGTH_RATIO,
    FUZZY_MAX_LENGTH_SLACK,
    FUZZY_MIN_SCORE,
    FUZZY_ORDER_WEIGHT,
    FUZZY_TOKEN_COVERAGE_RATIO,
    NORMALIZED_WHITESPACE_CONFIDENCE,
    PARTIAL_SENTENCE_MIN_FRACTION,
    SENTENCE_LIKE_MIN_CHARS,
    LocatorSettings,
)
from text_patch_engine.core.span_locator.models import MatchResult, MatchType
from text_patch_engine.core.span_locator.normalization import (
    Token,
    fold_case,
    normalize_for_match,
    query_tokens,
    tokenize,
)

logger = logging.getLogger(__name__)

_TERMINAL_PUNCTUATION_RE = re.compile(r"[.!?]")

Strategy = Callable[[str, str, LocatorSettings], Optional[MatchResult]]


def _result(index: int, length: int, confidence: float, match_type: MatchType) -> MatchResult:
    return MatchResult(
        index=index,
        length=length,
        is_exact_match=match_type == MatchType.EXACT,
        confidence=confidence,
        match_type=match_type,
    )


# --- Substring tiers ---

def find_exact(content: str, query: str, settings: LocatorSettings) -> Optional[MatchResult]:
    """Ordinal substring search; leftmost occurrence wins."""
    idx = content.find(query)
    if idx == -1:
        return None
    return _result(idx, len(query), EXACT_CONFIDENCE, MatchType.EXACT)


def find_case_insensitive(content: str, query: str, settings: LocatorSettings) -> Optional[MatchResult]:
    """Substring search on full Unicode case folds of both sides."""
    folded_content = fold_case(content)
    folded_query = fold_case(query).text
    span = folded_content.find(folded_query)
    if span is None:
        return None
    start, end = folded_content.to_original_span(*span)
    return _result(start, end - start, CASE_INSENSITIVE_CONFIDENCE, MatchType.CASE_INSENSITIVE)


def find_normalized_whitespace(content: str, query: str, settings: LocatorSettings) -> Optional[MatchResult]:
    """
    Substring search after collapsing whitespace runs and folding case.

    The span is translated back through the position map, so it covers all the
    original whitespace between the matched tokens.
    """
    normalized_content = normalize_for_match(content)
    normalized_query = normalize_for_match(query).text
    span = normalized_content.find(normalized_query)
    if span is None:
        return None
    start, end = normalized_content.to_original_span(*span)
    return _result(start, end - start, NORMALIZED_WHITESPACE_CONFIDENCE, MatchType.NORMALIZED_WHITESPACE)


# --- Token-window helpers ---

def _allowed_distance(a: str, b: str) -> int:
    """Edit budget for a token pair: none for 1-2 chars, 1 up to 5 chars, then max(2, 20%)."""
    shortest = min(len(a), len(b))
    if shortest <= 2:
        return 0
    if shortest <= 5:
        return 1
    return max(2, int(shortest * 0.2))


class _TokenSimilarity:
    """Memoized bounded-edit-distance similarity between token keys."""

    def __init__(self):
        self._cache: Dict[Tuple[str, str], float] = {}

    def __call__(self, a: str, b: str) -> float:
        if a == b:
            return 1.0
        key = (a, b)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        allowed = _allowed_distance(a, b)
        score = 0.0
        if allowed and abs(len(a) - len(b)) <= allowed:
            distance = Levenshtein.distance(a, b, score_cutoff=allowed)
            if distance <= allowed:
                score = 1.0 - distance / max(len(a), len(b))
        self._cache[key] = score
        return score


def _lcs_alignment(
    query_keys: Sequence[str],
    window_keys: Sequence[str],
    equal: Callable[[str, str], bool],
) -> Tuple[int, List[int]]:
    """
    Word-level longest common subsequence.

    Returns (aligned count, window positions taking part in the alignment).
    """
    n, m = len(query_keys), len(window_keys)
    table = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n - 1, -1, -1):
        row, below = table[i], table[i + 1]
        for j in range(m - 1, -1, -1):
            if equal(query_keys[i], window_keys[j]):
                row[j] = below[j + 1] + 1
            else:
                row[j] = max(below[j], row[j + 1])
    aligned: List[int] = []
    i = j = 0
    while i < n and j < m:
        if equal(query_keys[i], window_keys[j]):
            aligned.append(j)
            i += 1
            j += 1
        elif table[i + 1][j] >= table[i][j + 1]:
            i += 1
        else:
            j += 1
    return table[0][0], aligned


def _window_sizes(preferred: Sequence[int], token_count: int) -> List[int]:
    sizes: List[int] = []
    for size in preferred:
        size = min(max(size, 1), token_count)
        if size not in sizes:
            sizes.append(size)
    return sizes


class _HitIndex:
    """
    Per query key prefix counts of matching content tokens.

    coverable(start, end) is the number of query tokens (with multiplicity)
    that have at least one match in tokens[start:end]. It bounds both the
    coverage and the LCS count of that window, so windows can be skipped
    without scoring them.
    """

    def __init__(self, tokens: Sequence[Token], query_keys: Sequence[str], matches: Callable[[str, str], bool]):
        self._multiplicity = Counter(query_keys)
        self._prefix: Dict[str, List[int]] = {}
        for key in self._multiplicity:
            prefix = [0]
            for token in tokens:
                prefix.append(prefix[-1] + (1 if matches(key, token.key) else 0))
            self._prefix[key] = prefix

    def has_hits(self) -> bool:
        return any(prefix[-1] for prefix in self._prefix.values())

    def coverable(self, start: int, end: int) -> int:
        return sum(
            count for key, count in self._multiplicity.items()
            if self._prefix[key][end] > self._prefix[key][start]
        )


def _within_size_limits(content: str, query: str, settings: LocatorSettings, tier: str) -> bool:
    if len(content) > settings.fuzzy_max_content_chars or len(query) > settings.fuzzy_max_query_chars:
        logger.warning(
            "Skipping %s search: content %d chars (limit %d), query %d chars (limit %d)",
            tier, len(content), settings.fuzzy_max_content_chars,
            len(query), settings.fuzzy_max_query_chars,
        )
        return False
    return True


def _candidate_windows(
    token_count: int,
    sizes: Sequence[int],
    worth_scoring: Callable[[int, int], bool],
    settings: LocatorSettings,
    tier: str,
) -> Iterator[Tuple[int, int]]:
    """
    Yield (start, size) of the windows a tier should score, in scan order.

    worth_scoring(start, end) is consulted lazily, so it can read the caller's
    best score so far. Stops early once max_window_evaluations is reached.
    """
    evaluated = 0
    for size in sizes:
        for start in range(0, token_count - size + 1):
            if not worth_scoring(start, start + size):
                continue
            if settings.max_window_evaluations is not None and evaluated >= settings.max_window_evaluations:
                logger.warning("%s search stopped after %d window evaluations; keeping best window so far", tier, evaluated)
                return
            evaluated += 1
            yield start, size


# --- Fuzzy tier ---

def _span_coverage(query_keys: Sequence[str], span_tokens: Sequence[Token], similarity: _TokenSimilarity) -> float:
    covered = sum(1 for q in query_keys if any(similarity(q, t.key) > 0.0 for t in span_tokens))
    return covered / len(query_keys)


def find_fuzzy(content: str, query: str, settings: LocatorSettings) -> Optional[MatchResult]:
    """
    Token-window search tolerating misspellings and single-word edits.

    Windows of the query's token count (and +/-1) slide over the content
    tokens. A window scores the mean best per-token similarity of the query
    tokens (coverage) blended with their in-order agreement (LCS fraction).
    A window at or above FUZZY_MIN_SCORE is mapped back to original offsets
    from its first through its last matched token, then widened by at most one
    token on each side until the length and coverage floors hold. The best
    window whose span settles wins.
    """
    if not _within_size_limits(content, query, settings, "fuzzy"):
        return None
    q_keys = query_tokens(query)
    tokens = tokenize(normalize_for_match(content))
    if not q_keys or not tokens:
        return None

    n = len(q_keys)
    similarity = _TokenSimilarity()

    def is_similar(a: str, b: str) -> bool:
        return similarity(a, b) > 0.0

    hit_index = _HitIndex(tokens, q_keys, is_similar)
    if not hit_index.has_hits():
        return None

    min_length = FUZZY_LENGTH_RATIO * len(query)
    max_length = FUZZY_MAX_LENGTH_RATIO * len(query) + FUZZY_MAX_LENGTH_SLACK

    def satisfied(lo_idx: int, hi_idx: int) -> bool:
        if tokens[hi_idx].end - tokens[lo_idx].start < min_length:
            return False
        return _span_coverage(q_keys, tokens[lo_idx:hi_idx + 1], similarity) >= FUZZY_TOKEN_COVERAGE_RATIO

    def settle_span(start: int, size: int, matched: List[int]) -> Optional[Tuple[int, int]]:
        """
        Token span from the first to the last matched token of a window, widened
        alternately right then left, at most one token past either window edge,
        until the length and coverage floors hold. None if they never do or the
        span outgrows max_length.
        """
        lo, hi = start + matched[0], start + matched[-1]
        lo_limit, hi_limit = max(0, start - 1), min(len(tokens) - 1, start + size)
        extend_right = True
        while not satisfied(lo, hi):
            can_right, can_left = hi < hi_limit, lo > lo_limit
            if not can_right and not can_left:
                return None
            if (extend_right and can_right) or not can_left:
                hi += 1
            else:
                lo -= 1
            extend_right = not extend_right
        if tokens[hi].end - tokens[lo].start > max_length:
            return None
        return lo, hi

    best_score = 0.0
    best: Optional[Tuple[int, int]] = None

    def worth_scoring(start: int, end: int) -> bool:
        upper_bound = hit_index.coverable(start, end) / n
        return upper_bound >= FUZZY_MIN_SCORE and upper_bound > best_score

    sizes = _window_sizes((n, n - 1, n + 1), len(tokens))
    for start, size in _candidate_windows(len(tokens), sizes, worth_scoring, settings, "Fuzzy"):
        window_keys = [t.key for t in tokens[start:start + size]]
        coverage = sum(max(similarity(q, w) for w in window_keys) for q in q_keys) / n
        aligned_count, _ = _lcs_alignment(q_keys, window_keys, is_similar)
        score = FUZZY_COVERAGE_WEIGHT * coverage + FUZZY_ORDER_WEIGHT * (aligned_count / n)
        if score < FUZZY_MIN_SCORE or score <= best_score:
            continue
        matched = [j for j, w in enumerate(window_keys) if any(is_similar(q, w) for q in q_keys)]
        span = settle_span(start, size, matched)
        if span is None:
            logger.debug("Fuzzy window at token %d scored %.3f but its span fails the length/coverage limits", start, score)
            continue
        best_score, best = score, span

    if best is None:
        logger.debug("Fuzzy search found no acceptable window (best score %.3f)", best_score)
        return None

    lo, hi = best
    index = tokens[lo].start
    length = tokens[hi].end - index
    return _result(index, length, max(FUZZY_MIN_SCORE, min(best_score, 1.0)), MatchType.FUZZY)


# --- Partial-sentence tier ---

def is_sentence_like(query: str) -> bool:
    stripped = query.strip()
    return len(stripped) > SENTENCE_LIKE_MIN_CHARS or bool(_TERMINAL_PUNCTUATION_RE.search(stripped))


def find_partial_sentence(content: str, query: str, settings: LocatorSettings) -> Optional[MatchResult]:
    """
    Last-resort alignment for paraphrased sentences.

    Word-level LCS between the query tokens and content windows of comparable
    size; the window with the most aligned tokens wins. Confidence is the
    aligned fraction of query tokens, reported as-is.
    """
    if not is_sentence_like(query):
        return None
    if not _within_size_limits(content, query, settings, "partial-sentence"):
        return None
    q_keys = query_tokens(query)
    tokens = tokenize(normalize_for_match(content))
    if not q_keys or not tokens:
        return None

    n = len(q_keys)

    def equal(a: str, b: str) -> bool:
        return a == b

    hit_index = _HitIndex(tokens, q_keys, equal)
    best_count = 0
    best: Optional[Tuple[int, List[int]]] = None

    def worth_scoring(start: int, end: int) -> bool:
        upper_bound = hit_index.coverable(start, end)
        return upper_bound / n >= PARTIAL_SENTENCE_MIN_FRACTION and upper_bound > best_count

    spread = max(1, n // 4)
    sizes = _window_sizes((n, n - spread, n + spread), len(tokens))
    for start, size in _candidate_windows(len(tokens), sizes, worth_scoring, settings, "Partial-sentence"):
        window_keys = [t.key for t in tokens[start:start + size]]
        count, aligned = _lcs_alignment(q_keys, window_keys, equal)
        if count > best_count:
            best_count = count
            best = (start, aligned)

    fraction = best_count / n
    if best is None or fraction < PARTIAL_SENTENCE_MIN_FRACTION:
        logger.debug("Partial-sentence alignment %.3f below %.2f", fraction, PARTIAL_SENTENCE_MIN_FRACTION)
        return None

    start, aligned = best
    first, last = tokens[start + aligned[0]], tokens[start + aligned[-1]]
    return _result(first.start, last.end - first.start, fraction, MatchType.PARTIAL_SENTENCE)


# Fixed cascade order: strictest first
STRATEGY_CASCADE: Tuple[Tuple[MatchType, Strategy], ...] = (
    (MatchType.EXACT, find_exact),
    (MatchType.CASE_INSENSITIVE, find_case_insensitive),
    (MatchType.NORMALIZED_WHITESPACE, find_normalized_whitespace),
    (MatchType.FUZZY, find_fuzzy),
    (MatchType.PARTIAL_SENTENCE, find_partial_sentence),
)
