"""Near-duplicate title suppression. First seen wins."""

from typing import Sequence

from smartcook.config import settings
from smartcook.logging import get_logger
from smartcook.schemas.mix import RecipeCandidate
from smartcook.services.matching.similarity import normalize, similarity

logger = get_logger(__name__)


def deduplicate(
    candidates: Sequence[RecipeCandidate],
    threshold: float | None = None,
    kept: Sequence[RecipeCandidate] = (),
) -> list[RecipeCandidate]:
    """
    Drop any candidate whose normalized title is >= threshold similar to an already kept one.
    `kept` seeds the comparison set and is not part of the returned list.
    """
    threshold = settings.title_duplicate_threshold if threshold is None else threshold
    seen = [normalize(c.title) for c in kept]
    unique: list[RecipeCandidate] = []
    for candidate in candidates:
        title = normalize(candidate.title)
        if any(similarity(title, other) >= threshold for other in seen):
            logger.info("mix.dedup.dropped id=%s title=%s", candidate.id, candidate.title)
            continue
        seen.append(title)
        unique.append(candidate)
    return unique
