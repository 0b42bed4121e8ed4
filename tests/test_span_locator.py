"""
Tests for the SpanLocator cascade.

Covers the documented examples, the tier ordering, the bounds and length
guarantees of every returned span, and the no-match edge cases.
"""

import logging
import random
from concurrent.futures import ThreadPoolExecutor

import pytest

from text_patch_engine.core.span_locator import LocatorSettings, MatchType, SpanLocator, locate
from text_patch_engine.core.span_locator.config import FUZZY_MAX_LENGTH_RATIO, FUZZY_MAX_LENGTH_SLACK
from text_patch_engine.core.span_locator.normalization import normalize_for_match

FOX = "The quick brown fox jumps over the lazy dog."
FOX_STORY = "The quick brown fox jumps over the lazy dog. The fox was very clever."

_LENGTH_FLOORS = {
    MatchType.EXACT: 0.8,
    MatchType.CASE_INSENSITIVE: 0.8,
    MatchType.NORMALIZED_WHITESPACE: 0.8,
    MatchType.FUZZY: 0.7,
}


def assert_well_formed(result, content, query):
    """Bounds, matched_text, the per-tier length floor and the fuzzy span cap."""
    if not result.is_match:
        assert result.match_type == MatchType.NO_MATCH
        assert result.index is None
        assert result.confidence == 0.0
        return
    assert 0 <= result.index
    assert result.index + result.length <= len(content)
    assert result.matched_text == content[result.index:result.index + result.length]
    floor = _LENGTH_FLOORS.get(result.match_type)
    if floor is not None:
        assert result.length >= floor * len(query)
    if result.match_type == MatchType.FUZZY:
        assert result.length <= FUZZY_MAX_LENGTH_RATIO * len(query) + FUZZY_MAX_LENGTH_SLACK


class TestSpanLocator:
    """Cascade behaviour on the documented examples."""

    def setup_method(self):
        self.locator = SpanLocator()

    def test_exact_match(self):
        result = self.locator.locate(FOX, "brown fox")
        assert result.index == 10
        assert result.length == 9
        assert result.is_exact_match is True
        assert result.confidence == 1.0
        assert result.match_type == MatchType.EXACT
        assert result.matched_text == "brown fox"

    def test_case_insensitive_match(self):
        result = self.locator.locate("The Quick Brown Fox Jumps Over The Lazy Dog.", "quick brown fox")
        assert result.index == 4
        assert result.length == 15
        assert result.is_exact_match is False
        assert result.confidence == 0.95
        assert result.match_type == MatchType.CASE_INSENSITIVE

    def test_normalized_whitespace_match(self):
        content = "The quick    brown\n\nfox jumps\tover the lazy dog."
        result = self.locator.locate(content, "quick brown fox jumps")
        assert result.index == 4
        assert result.confidence == 0.85
        assert result.match_type == MatchType.NORMALIZED_WHITESPACE
        for word in ("quick", "brown", "fox", "jumps"):
            assert word in result.matched_text

    def test_normalized_whitespace_with_crlf(self):
        content = "The quick    brown\n\nfox jumps\tover\r\n\r\nthe lazy dog."
        query = "quick brown fox jumps over the lazy dog"
        result = self.locator.locate(content, query)
        assert result.match_type == MatchType.NORMALIZED_WHITESPACE
        assert result.matched_text.startswith("quick")
        assert result.matched_text.endswith("dog")
        assert result.length >= len(query)

    def test_fuzzy_match(self):
        result = self.locator.locate(FOX, "quick bown fox jumps")
        assert result.index == 4
        assert result.length == 21
        assert result.match_type == MatchType.FUZZY
        assert result.confidence >= 0.6
        assert result.length >= 0.7 * len("quick bown fox jumps")
        assert result.matched_text == "quick brown fox jumps"

    def test_fuzzy_match_with_replaced_word(self):
        query = "The quick brown fox jumps over the lazy dog. The fox was extremely clever."
        result = self.locator.locate(FOX_STORY, query)
        assert result.match_type == MatchType.FUZZY
        assert result.matched_text == FOX_STORY

    def test_fuzzy_length_covers_query(self):
        content = "The quick brown fox jumped over the lazy dog yesterday."
        query = "quick brown fox jumps over the lazy dog"
        result = self.locator.locate(content, query)
        assert result.match_type == MatchType.FUZZY
        assert result.length >= 0.7 * len(query)
        for word in ("quick", "brown", "fox", "over", "lazy", "dog"):
            assert word in result.matched_text

    def test_partial_sentence_match(self):
        content = "The committee approved the annual budget after a long and heated debate on Tuesday evening."
        query = "After a long debate, the committee finally approved the annual budget for next year."
        result = self.locator.locate(content, query)
        assert result.match_type == MatchType.PARTIAL_SENTENCE
        assert result.matched_text == "The committee approved the annual budget"
        assert 0.4 <= result.confidence < 0.6

    def test_no_match(self):
        result = self.locator.locate(FOX, "elephant")
        assert result.is_match is False
        assert result.index is None
        assert result.length == 0
        assert result.confidence == 0.0
        assert result.match_type == MatchType.NO_MATCH
        assert result.matched_text is None

    def test_exact_beats_later_tiers(self):
        """A full-length exact match is preferred over any looser tier."""
        result = self.locator.locate(FOX_STORY, "quick brown fox jumps over the lazy dog")
        assert result.match_type == MatchType.EXACT
        assert result.length == len("quick brown fox jumps over the lazy dog")

    def test_idempotent(self):
        assert self.locator.locate(FOX, "quick bown fox jumps") == self.locator.locate(FOX, "quick bown fox jumps")


class TestEdgeCases:
    """Empty input, types and Unicode folding."""

    def setup_method(self):
        self.locator = SpanLocator()

    @pytest.mark.parametrize("content, query", [
        ("", "fox"),
        (FOX, ""),
        ("", ""),
    ])
    def test_empty_input_is_no_match(self, content, query):
        assert self.locator.locate(content, query).match_type == MatchType.NO_MATCH

    def test_query_longer_than_content(self):
        assert self.locator.locate("fox", "the quick brown fox").match_type == MatchType.NO_MATCH

    def test_non_string_input_raises(self):
        with pytest.raises(TypeError, match="must be str"):
            self.locator.locate(None, "fox")
        with pytest.raises(TypeError, match="must be str"):
            self.locator.locate(FOX, 42)

    def test_expanding_case_fold(self):
        result = self.locator.locate("Ring STRASSE 5", "straße")
        assert result.match_type == MatchType.CASE_INSENSITIVE
        assert result.matched_text == "STRASSE"

    def test_inadequate_span_falls_through(self, caplog):
        """'SS' folds onto a single 'ß', which is too short a span to accept."""
        with caplog.at_level(logging.WARNING):
            result = self.locator.locate("Maß", "SS")
        assert result.match_type == MatchType.NO_MATCH
        assert "inadequate span" in caplog.text

    def test_query_spelled_as_case_fold_expansion(self):
        """'i' + combining dot is the fold of 'İ' but twice its length, so it is rejected."""
        assert self.locator.locate("İ", "i\u0307").match_type == MatchType.NO_MATCH
        assert self.locator.locate("İstanbul", "İstanbul").match_type == MatchType.EXACT


class TestContext:
    """matched_text and surrounding context."""

    def test_context_marks_truncation(self):
        result = locate(FOX, "brown fox", settings=LocatorSettings(context_radius=5))
        assert result.context == "...uick brown fox jump..."

    def test_context_at_document_edges(self):
        result = locate("brown fox", "brown fox", settings=LocatorSettings(context_radius=5))
        assert result.context == "brown fox"

    def test_to_dict(self):
        data = locate(FOX, "brown fox").to_dict()
        assert data["match_type"] == "EXACT"
        assert data["index"] == 10
        assert data["matched_text"] == "brown fox"


class TestSpanGuarantees:
    """Every returned span is in bounds and long enough for its tier."""

    VOCAB = [
        "river", "stone", "lantern", "quiet", "harbor", "the", "a", "of",
        "whisper", "copper", "garden", "north", "evening", "bridge", "salt",
    ]

    @pytest.mark.parametrize("content, query", [
        (FOX, " "),
        (FOX, "."),
        (FOX, "THE"),
        (FOX, "the"),
        (FOX, "dog. The"),
        (FOX, "fox fox fox fox"),
        (FOX, "quick" + " " * 30 + "brown"),
        ("Maß und Straße", "MASS UND STRASSE"),
        ("İstanbul is large", "i̇stanbul"),
        ("Emoji 🦊 fox here", "🦊 FOX"),
        ("a b c d e f g", "a c e g"),
        ("one\n\n\n\ntwo", "one two"),
        ("short", "a very much longer query that cannot fit."),
    ])
    def test_handpicked_inputs(self, content, query):
        assert_well_formed(locate(content, query), content, query)

    @pytest.mark.parametrize("seed", range(25))
    def test_reflowed_quotes_are_found(self, seed):
        """A quote whose only differences are whitespace and case is always found."""
        rng = random.Random(seed)
        words = [rng.choice(self.VOCAB) for _ in range(40)]
        content = "".join(
            word + rng.choice([" ", " ", "  ", "\n", "\t", "\n\n"]) for word in words
        )
        start = rng.randrange(0, 30)
        quoted = words[start:start + rng.randint(2, 8)]
        query = " ".join(quoted)
        if seed % 3 == 0:
            query = query.upper()

        result = locate(content, query)

        assert result.match_type in (
            MatchType.EXACT, MatchType.CASE_INSENSITIVE, MatchType.NORMALIZED_WHITESPACE,
        )
        assert normalize_for_match(result.matched_text).text == normalize_for_match(query).text
        assert_well_formed(result, content, query)

    @pytest.mark.parametrize("seed", range(25))
    def test_typo_quotes_are_well_formed(self, seed):
        rng = random.Random(1000 + seed)
        words = [rng.choice(self.VOCAB) for _ in range(30)]
        content = " ".join(words)
        start = rng.randrange(0, 24)
        quoted = list(words[start:start + 6])
        victim = rng.randrange(len(quoted))
        word = quoted[victim]
        pos = rng.randrange(len(word))
        quoted[victim] = word[:pos] + "x" + word[pos + 1:]
        query = " ".join(quoted)

        assert_well_formed(locate(content, query), content, query)

    @pytest.mark.parametrize("seed", range(15))
    def test_scattered_quote_words(self, seed):
        """Quote words spread far apart in the document never yield a document-sized span."""
        rng = random.Random(2000 + seed)
        quoted = [rng.choice(self.VOCAB) for _ in range(6)]
        content = " ".join(
            word + " " + " ".join(["lorem"] * rng.randint(3, 40)) for word in quoted
        )
        victim = rng.randrange(len(quoted))
        quoted[victim] = quoted[victim] + "x"
        query = " ".join(quoted)

        result = locate(content, query)

        assert_well_formed(result, content, query)
        assert result.length <= FUZZY_MAX_LENGTH_RATIO * len(query) + FUZZY_MAX_LENGTH_SLACK


def test_concurrent_calls_agree():
    locator = SpanLocator()
    queries = ["brown fox", "quick bown fox jumps", "LAZY DOG", "elephant"] * 10
    expected = [locator.locate(FOX, q) for q in queries]
    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda q: locator.locate(FOX, q), queries))
    assert results == expected
