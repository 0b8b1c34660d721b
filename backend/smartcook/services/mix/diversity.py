"""Gap computation: which techniques the generative source should fill."""

from typing import Sequence

from smartcook.schemas.mix import RecipeCandidate
from smartcook.services.matching.similarity import normalize


def compute_gap(desired_count: int, catalog_candidates: Sequence[RecipeCandidate]) -> int:
    """`catalog_candidates` must already be deduplicated."""
    return max(0, desired_count - len(catalog_candidates))


def techniques_represented(candidates: Sequence[RecipeCandidate]) -> set[str]:
    return {normalize(c.technique) for c in candidates}


def missing_techniques(
    catalog_candidates: Sequence[RecipeCandidate], gap: int, vocabulary: Sequence[str]
) -> list[str]:
    """Unrepresented vocabulary techniques, in vocabulary order, at most `gap` of them."""
    if gap <= 0:
        return []
    covered = techniques_represented(catalog_candidates)
    return [t for t in vocabulary if normalize(t) not in covered][:gap]
