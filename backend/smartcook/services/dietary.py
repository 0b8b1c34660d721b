"""
Allergy and diet filtering for recipe candidates.
Matching is a case-insensitive substring test on ingredient names. Diacritics are
kept: "cá" (fish) must not match "cà" (eggplant).
"""

import unicodedata
from typing import Iterable

from smartcook.config import settings
from smartcook.logging import get_logger
from smartcook.schemas.mix import RecipeCandidate, UserConstraints

logger = get_logger(__name__)

VEGETARIAN_TAGS = frozenset({"vegetarian", "vegan"})


def _fold(text: str) -> str:
    return unicodedata.normalize("NFC", (text or "").strip()).casefold()


def _contains_any(names: list[str], terms: Iterable[str]) -> str | None:
    for term in terms:
        if term and any(term in name for name in names):
            return term
    return None


def violation(candidate: RecipeCandidate, constraints: UserConstraints) -> str | None:
    """Return the offending term, or None when the candidate is allowed."""
    names = [_fold(n) for n in candidate.ingredient_names()]
    allergen = _contains_any(names, (_fold(a) for a in constraints.allergies))
    if allergen:
        return f"allergen:{allergen}"
    restrictions = {_fold(r) for r in constraints.dietary_restrictions}
    if restrictions & VEGETARIAN_TAGS:
        meat = _contains_any(names, (_fold(m) for m in settings.meat_keywords))
        if meat:
            return f"meat:{meat}"
    return None


def apply_dietary_filters(
    candidates: list[RecipeCandidate], constraints: UserConstraints
) -> list[RecipeCandidate]:
    kept: list[RecipeCandidate] = []
    for candidate in candidates:
        reason = violation(candidate, constraints)
        if reason:
            logger.info("dietary.excluded id=%s title=%s reason=%s", candidate.id, candidate.title, reason)
            continue
        kept.append(candidate)
    return kept
