"""
Span locator module.

This module finds the span of a document that a quoted, possibly imperfect
fragment refers to, and applies edits to exactly that span.

The main entry points are locate() and apply_patch().
"""

# Core components
from text_patch_engine.core.span_locator.locator import SpanLocator, locate
from text_patch_engine.core.span_locator.patcher import TextPatcher, apply_patch
from text_patch_engine.core.span_locator.anchor_validator import AnchorValidator, validate_insertion_anchor

# Configuration
from text_patch_engine.core.span_locator.config import LocatorSettings

# Data models
from text_patch_engine.core.span_locator.models import (
    AnchorValidation,
    MatchResult,
    MatchType,
    PatchError,
    PatchErrorKind,
    PatchPostconditionError,
    PatchResult,
)

__all__ = [
    # Entry points
    'locate',
    'apply_patch',
    'validate_insertion_anchor',

    # Core components
    'SpanLocator',
    'TextPatcher',
    'AnchorValidator',
    'LocatorSettings',

    # Data models
    'MatchType',
    'MatchResult',
    'PatchErrorKind',
    'PatchError',
    'PatchResult',
    'PatchPostconditionError',
    'AnchorValidation',
]
