"""
Resolve raw ingredient tokens to master ingredients: exact -> alias -> fuzzy.
The matcher is built once per request from the active vocabulary and holds no
state beyond that snapshot.
"""

from typing import Iterable, Sequence

from smartcook.config import settings
from smartcook.errors import MixValidationError
from smartcook.logging import get_logger
from smartcook.schemas.ingredient import (
    IngredientValidationResponse,
    InvalidIngredient,
    MasterIngredient,
    MatchingWarning,
    MatchResult,
)
from smartcook.services.matching.similarity import normalize, similarity

logger = get_logger(__name__)

EXACT_SCORE = 1.0
ALIAS_SCORE = 0.95


class IngredientMatcher:
    def __init__(
        self,
        vocabulary: Iterable[MasterIngredient],
        fuzzy_threshold: float | None = None,
        suggestion_threshold: float | None = None,
        max_suggestions: int | None = None,
    ) -> None:
        # Sorted by id so fuzzy ties resolve the same way on every run.
        active = sorted((v for v in vocabulary if v.is_active), key=lambda v: v.id)
        self._entries = [
            (v, normalize(v.name), frozenset(normalize(a) for a in v.aliases if normalize(a)))
            for v in active
        ]
        self.fuzzy_threshold = settings.fuzzy_match_threshold if fuzzy_threshold is None else fuzzy_threshold
        self.suggestion_threshold = (
            settings.suggestion_threshold if suggestion_threshold is None else suggestion_threshold
        )
        self.max_suggestions = settings.max_suggestions if max_suggestions is None else max_suggestions

    def __len__(self) -> int:
        return len(self._entries)

    def match(self, raw: str) -> MatchResult:
        norm = normalize(raw)
        if not norm:
            return MatchResult(original=raw)

        for entry, name, _ in self._entries:
            if name == norm:
                return _result(raw, entry, "exact", EXACT_SCORE)
        for entry, _, aliases in self._entries:
            if norm in aliases:
                return _result(raw, entry, "alias", ALIAS_SCORE)

        scored = [(similarity(norm, name), entry) for entry, name, _ in self._entries]
        best: tuple[float, MasterIngredient] | None = None
        for score, entry in scored:
            if best is None or score > best[0]:
                best = (score, entry)
        if best is not None and best[0] >= self.fuzzy_threshold:
            return _result(raw, best[1], "fuzzy", best[0])

        # sorted() is stable, so equal scores keep vocabulary order.
        ranked = sorted(
            (item for item in scored if item[0] >= self.suggestion_threshold),
            key=lambda item: item[0],
            reverse=True,
        )
        return MatchResult(
            original=raw,
            score=best[0] if best else 0.0,
            suggestions=[entry.name for _, entry in ranked[: self.max_suggestions]],
        )

    def canonical_id(self, text: str) -> str | None:
        """Exact or alias lookup only; used to equate spellings of the same ingredient."""
        norm = normalize(text)
        if not norm:
            return None
        for entry, name, aliases in self._entries:
            if name == norm or norm in aliases:
                return entry.id
        return None

    def resolves(self, ingredient_name: str, requested: Sequence[str]) -> bool:
        """
        True when a recipe ingredient is covered by the requested set:
        substring either way, fuzzy similarity over threshold, or same master ingredient.
        `requested` must already be normalized.
        """
        norm = normalize(ingredient_name)
        if not norm:
            return False
        for token in requested:
            if not token:
                continue
            if token in norm or norm in token:
                return True
            if similarity(norm, token) >= self.fuzzy_threshold:
                return True
        canonical = self.canonical_id(norm)
        if canonical is not None:
            return any(self.canonical_id(token) == canonical for token in requested)
        return False


def _result(raw: str, entry: MasterIngredient, match_type: str, score: float) -> MatchResult:
    return MatchResult(
        original=raw,
        ingredient_id=entry.id,
        matched_name=entry.name,
        category=entry.category or None,
        match_type=match_type,
        score=round(score, 4),
    )


def match_ingredient(raw: str, vocabulary: Iterable[MasterIngredient]) -> MatchResult:
    return IngredientMatcher(vocabulary).match(raw)


def validate_ingredients(
    tokens: Sequence[str], matcher: IngredientMatcher
) -> IngredientValidationResponse:
    """
    Batch-validate raw tokens. Oversized batches are rejected before any matching;
    individual misses become `invalid` entries and never abort the batch.
    """
    if len(tokens) > settings.max_ingredients:
        raise MixValidationError(f"at most {settings.max_ingredients} ingredients allowed per request")

    response = IngredientValidationResponse()
    for raw in tokens:
        if not (raw or "").strip():
            response.invalid.append(InvalidIngredient(original=raw or "", reason="empty"))
            continue
        result = matcher.match(raw)
        if not result.matched:
            response.invalid.append(
                InvalidIngredient(original=raw, reason="not_found", suggestions=result.suggestions)
            )
            logger.warning("ingredient.not_found original=%s suggestions=%s", raw, result.suggestions)
            continue
        response.valid.append(result)
        if result.match_type == "fuzzy":
            response.warnings.append(
                MatchingWarning(
                    original=raw,
                    corrected=result.matched_name,
                    confidence=result.score,
                    message=f'Did you mean "{result.matched_name}"?',
                )
            )
    logger.info(
        "ingredient.validate total=%s valid=%s invalid=%s warnings=%s",
        len(tokens),
        len(response.valid),
        len(response.invalid),
        len(response.warnings),
    )
    return response
