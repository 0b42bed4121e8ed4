"""
Data models for the span locator.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


# --- Enums ---

class MatchType(Enum):
    """Strategy tier that produced a match, strictest first."""
    EXACT = "EXACT"
    CASE_INSENSITIVE = "CASE_INSENSITIVE"
    NORMALIZED_WHITESPACE = "NORMALIZED_WHITESPACE"
    FUZZY = "FUZZY"
    PARTIAL_SENTENCE = "PARTIAL_SENTENCE"
    NO_MATCH = "NO_MATCH"


class PatchErrorKind(Enum):
    NOT_FOUND = "NOT_FOUND"
    EMPTY_INPUT = "EMPTY_INPUT"
    LOW_CONFIDENCE = "LOW_CONFIDENCE"


# --- Exceptions ---

class PatchPostconditionError(RuntimeError):
    """Raised when a splice altered content outside the located span."""


# --- Results ---

@dataclass(frozen=True)
class MatchResult:
    """
    Located span of a query inside a document body.

    index/length are code-point offsets into the original, unmodified content.
    A no-match result has index None, length 0 and confidence 0.0.
    """
    index: Optional[int]
    length: int
    is_exact_match: bool
    confidence: float
    match_type: MatchType
    matched_text: Optional[str] = None
    context: Optional[str] = None

    @classmethod
    def no_match(cls) -> "MatchResult":
        return cls(
            index=None,
            length=0,
            is_exact_match=False,
            confidence=0.0,
            match_type=MatchType.NO_MATCH,
        )

    @property
    def is_match(self) -> bool:
        return self.index is not None and self.match_type != MatchType.NO_MATCH

    @property
    def end(self) -> Optional[int]:
        if self.index is None:
            return None
        return self.index + self.length

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "length": self.length,
            "is_exact_match": self.is_exact_match,
            "confidence": self.confidence,
            "match_type": self.match_type.value,
            "matched_text": self.matched_text,
            "context": self.context,
        }


@dataclass(frozen=True)
class PatchError:
    """Why a patch could not be applied. Carries the query for user-facing messages."""
    kind: PatchErrorKind
    query: str
    message: str


@dataclass
class PatchResult:
    """Result of applying a single edit to a document body."""
    success: bool
    modified_text: str
    applied_fragment: str
    match: Optional[MatchResult] = None
    error: Optional[PatchError] = None
    processing_time_ms: int = 0

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "applied_fragment": self.applied_fragment,
            "match": self.match.to_dict() if self.match else None,
            "error": {
                "kind": self.error.kind.value,
                "query": self.error.query,
                "message": self.error.message,
            } if self.error else None,
            "processing_time_ms": self.processing_time_ms,
        }


@dataclass(frozen=True)
class AnchorValidation:
    """Outcome of checking whether text can be inserted right after an anchor."""
    is_valid: bool
    insertion_point: Optional[int] = None
    error_message: Optional[str] = None
    suggested_anchor_text: Optional[str] = None
