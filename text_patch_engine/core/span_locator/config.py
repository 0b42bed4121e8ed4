"""
Configuration for the span locator.

Per-tier confidences and acceptance thresholds are fixed module constants.
Cost limits and the context radius can be tuned through SPAN_LOCATOR_*
environment variables (scripts load them from .env.local / .env first).
"""

import os
from dataclasses import dataclass
from typing import Optional

# Fixed per-tier confidences
EXACT_CONFIDENCE = 1.0
CASE_INSENSITIVE_CONFIDENCE = 0.95
NORMALIZED_WHITESPACE_CONFIDENCE = 0.85

# Fuzzy tier
FUZZY_MIN_SCORE = 0.6
FUZZY_TOKEN_COVERAGE_RATIO = 0.8
FUZZY_COVERAGE_WEIGHT = 0.7
FUZZY_ORDER_WEIGHT = 0.3

# Partial-sentence tier
PARTIAL_SENTENCE_MIN_FRACTION = 0.4
SENTENCE_LIKE_MIN_CHARS = 40

# Length adequacy ratios (match length vs query length)
STRICT_LENGTH_RATIO = 0.8
FUZZY_LENGTH_RATIO = 0.7

# Upper bound on a fuzzy span: ratio * len(query) + slack characters
FUZZY_MAX_LENGTH_RATIO = 2.0
FUZZY_MAX_LENGTH_SLACK = 20

# Context and token-tier size limits
DEFAULT_CONTEXT_RADIUS = 100
DEFAULT_FUZZY_MAX_CONTENT_CHARS = 50000
DEFAULT_FUZZY_MAX_QUERY_CHARS = 1000


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class LocatorSettings:
    """
    Tunable limits for a locator instance.

    Attributes:
        context_radius: Characters of surrounding text kept in MatchResult.context
        fuzzy_max_content_chars: Content size above which the token-window tiers are skipped
        fuzzy_max_query_chars: Query size above which the token-window tiers are skipped
        max_window_evaluations: Optional cap on windows scored per token-window tier;
            when reached the tier keeps the best window seen so far
    """
    context_radius: int = DEFAULT_CONTEXT_RADIUS
    fuzzy_max_content_chars: int = DEFAULT_FUZZY_MAX_CONTENT_CHARS
    fuzzy_max_query_chars: int = DEFAULT_FUZZY_MAX_QUERY_CHARS
    max_window_evaluations: Optional[int] = None

    def __post_init__(self):
        if self.context_radius < 0:
            raise ValueError("context_radius must be >= 0")
        if self.fuzzy_max_content_chars < 0 or self.fuzzy_max_query_chars < 0:
            raise ValueError("fuzzy size limits must be >= 0")
        if self.max_window_evaluations is not None and self.max_window_evaluations < 1:
            raise ValueError("max_window_evaluations must be >= 1 when set")

    @classmethod
    def from_env(cls) -> "LocatorSettings":
        """Build settings from SPAN_LOCATOR_* environment variables, falling back to defaults."""
        return cls(
            context_radius=_env_int("SPAN_LOCATOR_CONTEXT_RADIUS", DEFAULT_CONTEXT_RADIUS),
            fuzzy_max_content_chars=_env_int("SPAN_LOCATOR_FUZZY_MAX_CONTENT_CHARS", DEFAULT_FUZZY_MAX_CONTENT_CHARS),
            fuzzy_max_query_chars=_env_int("SPAN_LOCATOR_FUZZY_MAX_QUERY_CHARS", DEFAULT_FUZZY_MAX_QUERY_CHARS),
            max_window_evaluations=_env_int("SPAN_LOCATOR_MAX_WINDOW_EVALUATIONS", None),
        )
