"""
Text normalization with offset mapping back to the original string.

Every normalized character remembers the [start, end) span of the original
character that produced it, so a match found in normalized space can be
translated back into a span of the untouched content.
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import List, Optional, Tuple

_TOKEN_RE = re.compile(r"\S+")


@dataclass(frozen=True)
class NormalizedText:
    """Normalized form of a string plus its per-character position map."""
    text: str
    starts: List[int]
    ends: List[int]

    def __len__(self) -> int:
        return len(self.text)

    def to_original_span(self, nstart: int, nend: int) -> Tuple[int, int]:
        """Map the normalized half-open span [nstart, nend) to an original span."""
        if nstart < 0 or nend > len(self.text) or nstart >= nend:
            raise ValueError(f"Invalid normalized span {nstart}-{nend} for length {len(self.text)}")
        return self.starts[nstart], self.ends[nend - 1]

    def is_aligned(self, nstart: int, nend: int) -> bool:
        """
        True when the span does not cut through the expansion of a single original
        character (e.g. matching only one 's' of a folded 'ß').
        """
        if nstart > 0 and self.starts[nstart - 1] == self.starts[nstart]:
            return False
        if nend < len(self.text) and self.starts[nend] == self.starts[nend - 1]:
            return False
        return True

    def find(self, needle: str, start: int = 0) -> Optional[Tuple[int, int]]:
        """Leftmost aligned occurrence of needle, as a normalized span."""
        if not needle:
            return None
        idx = self.text.find(needle, start)
        while idx != -1:
            end = idx + len(needle)
            if self.is_aligned(idx, end):
                return idx, end
            idx = self.text.find(needle, idx + 1)
        return None


def normalize_for_match(text: str, collapse_whitespace: bool = True) -> NormalizedText:
    """
    Normalize text for robust substring matching and keep the index map.

    Normalization steps:
      - Full Unicode case fold (str.casefold), character by character
      - When collapse_whitespace is set: every run of Unicode whitespace becomes
        a single ' ' and leading/trailing whitespace is dropped

    No compatibility normalization (NFKC) is applied: it can merge or split
    characters and would make the map ambiguous.
    """
    out_chars: List[str] = []
    starts: List[int] = []
    ends: List[int] = []
    last_was_space = False
    for i, ch in enumerate(text):
        if collapse_whitespace and ch.isspace():
            if last_was_space:
                # Extend the collapsed space over the whole run
                ends[-1] = i + 1
            else:
                out_chars.append(" ")
                starts.append(i)
                ends.append(i + 1)
                last_was_space = True
            continue
        last_was_space = False
        for folded in ch.casefold():
            out_chars.append(folded)
            starts.append(i)
            ends.append(i + 1)

    lo, hi = 0, len(out_chars)
    if collapse_whitespace:
        while lo < hi and out_chars[lo] == " ":
            lo += 1
        while hi > lo and out_chars[hi - 1] == " ":
            hi -= 1
    return NormalizedText(
        text="".join(out_chars[lo:hi]),
        starts=starts[lo:hi],
        ends=ends[lo:hi],
    )


def fold_case(text: str) -> NormalizedText:
    """Case-folded copy of text with its index map; whitespace untouched."""
    return normalize_for_match(text, collapse_whitespace=False)


# --- Tokens ---

@dataclass(frozen=True)
class Token:
    """Whitespace-delimited word of normalized text, with its original span."""
    text: str
    key: str
    start: int
    end: int


def _is_punctuation(ch: str) -> bool:
    return unicodedata.category(ch)[0] in ("P", "S")


def token_key(token: str) -> str:
    """Comparison key for a token: surrounding punctuation stripped ("dog." -> "dog")."""
    lo, hi = 0, len(token)
    while lo < hi and _is_punctuation(token[lo]):
        lo += 1
    while hi > lo and _is_punctuation(token[hi - 1]):
        hi -= 1
    return token[lo:hi] or token


def tokenize(normalized: NormalizedText) -> List[Token]:
    tokens: List[Token] = []
    for m in _TOKEN_RE.finditer(normalized.text):
        start, end = normalized.to_original_span(m.start(), m.end())
        tokens.append(Token(text=m.group(), key=token_key(m.group()), start=start, end=end))
    return tokens


def query_tokens(query: str) -> List[str]:
    """Comparison keys of a query's whitespace-delimited tokens."""
    return [token_key(t) for t in normalize_for_match(query).text.split()]
