"""
Shared text normalization and edit-distance similarity.
Every fuzzy comparison in the project (ingredient matching, recipe ingredient
resolution, title dedup) goes through these two functions.
"""

import re
import unicodedata

from rapidfuzz.distance import Levenshtein

# Not decomposed by NFD; mapped explicitly.
_LETTER_FOLD = str.maketrans({"đ": "d", "Đ": "d"})
_WHITESPACE = re.compile(r"\s+")


def normalize(text: str | None) -> str:
    """Lowercase, strip combining diacritics, collapse whitespace. Never raises."""
    if not text or not isinstance(text, str):
        return ""
    decomposed = unicodedata.normalize("NFD", text.lower().translate(_LETTER_FOLD))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", stripped).strip()


def similarity(a: str, b: str) -> float:
    """1 - levenshtein(a, b) / max(len(a), len(b)); two empty strings are identical."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(a, b) / longest


def normalized_similarity(a: str | None, b: str | None) -> float:
    return similarity(normalize(a), normalize(b))
