"""
Recipe mix engine: catalog first, generative fill for the technique gap.

RECEIVED -> CATALOG_SOURCED -> GAP_COMPUTED -> GENERATIVE_FILLED -> DEDUPED
-> FILTERED -> FINALIZED. Every valid request reaches FINALIZED; only request
validation raises. The engine never writes; persisting generated recipes or
analytics is left to the caller.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Any, Protocol, Sequence

from smartcook.config import settings
from smartcook.logging import get_logger
from smartcook.schemas.ingredient import MasterIngredient, MatchingWarning, MatchResult
from smartcook.schemas.mix import MixRequest, MixResponse
from smartcook.services.dietary import apply_dietary_filters
from smartcook.services.matching.ingredient_matcher import IngredientMatcher, validate_ingredients
from smartcook.services.matching.similarity import normalize
from smartcook.services.mix.catalog_source import CatalogSource, CatalogStore
from smartcook.services.mix.dedup import deduplicate
from smartcook.services.mix.diversity import compute_gap, missing_techniques
from smartcook.services.mix.generative_source import GenerativeSource, RecipeGenerator
from smartcook.services.mix.stats import calculate_stats, estimate_cost
from smartcook.utils.timing import time_span

logger = get_logger(__name__)


class MixState(str, Enum):
    RECEIVED = "received"
    CATALOG_SOURCED = "catalog_sourced"
    GAP_COMPUTED = "gap_computed"
    GENERATIVE_FILLED = "generative_filled"
    DEDUPED = "deduped"
    FILTERED = "filtered"
    FINALIZED = "finalized"


class IngredientVocabulary(Protocol):
    def list_active(self) -> list[MasterIngredient]:
        """Active master ingredients. Read-only."""


class MixEngine:
    def __init__(
        self,
        catalog: CatalogStore,
        vocabulary: IngredientVocabulary,
        generator: RecipeGenerator,
        techniques: Sequence[str] | None = None,
    ) -> None:
        self.catalog = catalog
        self.vocabulary = vocabulary
        self.generator = generator
        self.techniques = list(techniques or settings.default_techniques)

    @staticmethod
    def _enter(states: list[str], state: MixState, **fields: Any) -> None:
        states.append(state.value)
        details = " ".join(f"{k}={v}" for k, v in fields.items())
        logger.info("mix.state %s %s", state.value, details)

    def _load_matcher(self) -> IngredientMatcher:
        try:
            entries = self.vocabulary.list_active()
        except Exception as e:
            logger.warning("mix.vocabulary_unavailable error=%s", e)
            entries = []
        return IngredientMatcher(entries)

    def resolve_ingredients(
        self, tokens: Sequence[str], matcher: IngredientMatcher
    ) -> tuple[list[str], list[str], list[MatchResult], list[MatchingWarning]]:
        """
        Returns (requested, generation_names, matches, warnings).
        `requested` holds normalized raw tokens plus normalized canonical names;
        `generation_names` prefers the canonical spelling for the generator prompt.
        """
        report = validate_ingredients(tokens, matcher)
        warnings = list(report.warnings)
        for invalid in report.invalid:
            if invalid.reason == "empty":
                message = "Empty ingredient ignored"
            else:
                message = f'"{invalid.original}" is not in the ingredient list'
                if invalid.suggestions:
                    message += f'; did you mean "{invalid.suggestions[0]}"?'
            warnings.append(
                MatchingWarning(
                    original=invalid.original,
                    corrected=invalid.suggestions[0] if invalid.suggestions else None,
                    message=message,
                )
            )

        by_original = {m.original: m for m in report.valid}
        requested: list[str] = []
        generation_names: list[str] = []
        for raw in tokens:
            norm = normalize(raw)
            if not norm:
                continue
            match = by_original.get(raw)
            for value in (norm, normalize(match.matched_name) if match else ""):
                if value and value not in requested:
                    requested.append(value)
            generation_names.append(match.matched_name if match else raw.strip())
        return requested, generation_names, report.valid, warnings

    def generate(
        self, request: MixRequest | dict, cancel_event: threading.Event | None = None
    ) -> MixResponse:
        """Raises MixValidationError for malformed requests; everything else degrades."""
        request = MixRequest.parse(request)
        states: list[str] = []
        desired = request.desired_count
        constraints = request.constraints

        with time_span("mix.generate.total", desired=desired, ingredients=len(request.ingredients)):
            self._enter(states, MixState.RECEIVED, desired=desired)
            matcher = self._load_matcher()
            requested, generation_names, matches, warnings = self.resolve_ingredients(
                request.ingredients, matcher
            )

            with time_span("mix.catalog"):
                catalog = CatalogSource(self.catalog, matcher, self.techniques).collect(
                    desired, requested, constraints
                )
            self._enter(states, MixState.CATALOG_SOURCED, candidates=len(catalog.candidates))

            catalog_kept = deduplicate(catalog.candidates)
            gap = compute_gap(desired, catalog_kept)
            missing = missing_techniques(catalog_kept, gap, self.techniques)
            self._enter(states, MixState.GAP_COMPUTED, gap=gap, missing=missing)

            with time_span("mix.generative", calls=len(missing)):
                generation = GenerativeSource(self.generator).fill(
                    generation_names, missing, constraints, cancel_event
                )
            self._enter(
                states,
                MixState.GENERATIVE_FILLED,
                generated=len(generation.candidates),
                failed=generation.failed_techniques,
                abandoned=generation.abandoned_techniques,
            )

            generated = generation.candidates
            if settings.dedupe_generated_against_catalog:
                generated = deduplicate(generated, kept=catalog_kept)
            combined = catalog_kept + generated
            self._enter(states, MixState.DEDUPED, kept=len(combined))

            filtered = apply_dietary_filters(combined, constraints)
            self._enter(states, MixState.FILTERED, kept=len(filtered))

            recipes = filtered[:desired]
            stats = calculate_stats(desired, recipes)
            cost = estimate_cost(stats)
            if catalog.rejected_records:
                warnings.append(
                    MatchingWarning(
                        original="",
                        message=f"{catalog.rejected_records} malformed catalog record(s) skipped",
                    )
                )
            self._enter(
                states,
                MixState.FINALIZED,
                from_catalog=stats.from_catalog,
                from_generated=stats.from_generated,
                coverage_pct=stats.coverage_pct,
            )

        return MixResponse(
            recipes=recipes,
            stats=stats,
            cost_estimate=cost.estimated_cost_saved,
            cost_breakdown=cost,
            matches=matches,
            warnings=warnings,
            rejected_records=catalog.rejected_records,
            states=states,
        )
