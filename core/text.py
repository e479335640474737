"""
Text matching helpers for search.

Matching is case- and diacritic-insensitive: both the stored value and the
query token are decomposed (NFKD), stripped of combining marks and
casefolded before a plain substring test. "Diseño" therefore matches
"diseno", "DISEÑO" and "señ".
"""

import unicodedata
from typing import Iterable, List, Optional


def normalize(text: Optional[str]) -> str:
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(text))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def contains(haystack: Optional[str], needle: Optional[str]) -> bool:
    """Insensitive substring test; an empty needle always matches."""
    return normalize(needle) in normalize(haystack)


def any_contains(haystacks: Iterable[Optional[str]], needle: str) -> bool:
    normalized_needle = normalize(needle)
    return any(normalized_needle in normalize(value) for value in haystacks)


def tokenize(filter_text: Optional[str]) -> List[str]:
    """Split a free-text filter on whitespace, dropping empty tokens."""
    if not filter_text:
        return []
    return [word for word in filter_text.split() if word.strip()]
