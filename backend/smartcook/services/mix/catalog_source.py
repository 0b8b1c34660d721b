"""
Catalog sourcing: query the curated store one cooking technique at a time.

Preferred techniques are queried first (up to `preferred_technique_limit` hits each),
then the rest of the default vocabulary (`sweep_technique_limit` each). Queries run
in waves on a thread pool; each wave is only as wide as the number of techniques
that could still be needed, so no query is issued once enough candidates are in.
Results are merged in technique order regardless of completion order.
"""

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

from smartcook.config import settings
from smartcook.errors import MalformedRecordError, SourceUnavailable
from smartcook.logging import get_logger
from smartcook.schemas.mix import RecipeCandidate, UserConstraints
from smartcook.services.dietary import violation
from smartcook.services.matching.ingredient_matcher import IngredientMatcher
from smartcook.services.matching.similarity import normalize

logger = get_logger(__name__)


class CatalogStore(Protocol):
    def query_by_technique(self, technique: str, limit: int) -> list[dict[str, Any]]:
        """Newest-first raw records for one technique. Read-only."""


@dataclass
class CatalogResult:
    candidates: list[RecipeCandidate] = field(default_factory=list)
    queried_techniques: list[str] = field(default_factory=list)
    failed_techniques: list[str] = field(default_factory=list)
    rejected_records: int = 0


def technique_plan(preferred: Sequence[str], vocabulary: Sequence[str]) -> list[tuple[list[str], int]]:
    """
    [(techniques, per_technique_limit), ...] in query priority order.
    A preferred technique that matches a vocabulary entry up to case and accents
    is queried with the vocabulary spelling ("xao" -> "xào").
    """
    spelling = {normalize(t): t for t in vocabulary}
    seen: set[str] = set()
    first: list[str] = []
    for technique in preferred:
        key = normalize(technique or "")
        if key and key not in seen:
            seen.add(key)
            first.append(spelling.get(key, technique.strip()))
    rest = [t for t in vocabulary if normalize(t) not in seen]
    plan = []
    if first:
        plan.append((first, settings.preferred_technique_limit))
    if rest:
        plan.append((rest, settings.sweep_technique_limit))
    return plan


class CatalogSource:
    def __init__(
        self,
        store: CatalogStore,
        matcher: IngredientMatcher,
        vocabulary: Sequence[str] | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.store = store
        self.matcher = matcher
        self.vocabulary = list(vocabulary or settings.default_techniques)
        self.max_workers = max(1, max_workers or settings.catalog_max_workers)

    def collect(
        self, desired_count: int, requested: Sequence[str], constraints: UserConstraints
    ) -> CatalogResult:
        result = CatalogResult()
        for techniques, limit in technique_plan(constraints.preferred_techniques, self.vocabulary):
            self._run_pass(techniques, limit, desired_count, requested, constraints, result)
            if len(result.candidates) >= desired_count:
                break
        logger.info(
            "mix.catalog.done candidates=%s queried=%s failed=%s rejected=%s",
            len(result.candidates),
            result.queried_techniques,
            result.failed_techniques,
            result.rejected_records,
        )
        return result

    def _run_pass(
        self,
        techniques: list[str],
        limit: int,
        desired_count: int,
        requested: Sequence[str],
        constraints: UserConstraints,
        result: CatalogResult,
    ) -> None:
        pending = list(techniques)
        while pending and len(result.candidates) < desired_count:
            needed = desired_count - len(result.candidates)
            width = min(len(pending), self.max_workers, max(1, math.ceil(needed / limit)))
            wave, pending = pending[:width], pending[width:]
            found = self._query_wave(wave, limit, requested, constraints, result)
            for technique in wave:
                result.candidates.extend(found.get(technique, []))

    def _query_wave(
        self,
        wave: list[str],
        limit: int,
        requested: Sequence[str],
        constraints: UserConstraints,
        result: CatalogResult,
    ) -> dict[str, list[RecipeCandidate]]:
        found: dict[str, list[RecipeCandidate]] = {}
        result.queried_techniques.extend(wave)
        with ThreadPoolExecutor(max_workers=len(wave)) as ex:
            futures = {
                ex.submit(self._query_technique, technique, limit, requested, constraints): technique
                for technique in wave
            }
            for fut in as_completed(futures):
                technique = futures[fut]
                try:
                    candidates, rejected = fut.result()
                except SourceUnavailable as e:
                    logger.warning("mix.catalog.technique_failed technique=%s error=%s", technique, e.cause)
                    result.failed_techniques.append(technique)
                    continue
                result.rejected_records += rejected
                found[technique] = candidates
                logger.info("mix.catalog.technique technique=%s found=%s", technique, len(candidates))
        return found

    def _query_technique(
        self,
        technique: str,
        limit: int,
        requested: Sequence[str],
        constraints: UserConstraints,
    ) -> tuple[list[RecipeCandidate], int]:
        try:
            records = self.store.query_by_technique(technique, limit * settings.catalog_overfetch_factor)
        except Exception as e:
            raise SourceUnavailable("catalog", technique, e) from e

        accepted: list[RecipeCandidate] = []
        rejected = 0
        for record in records or []:
            try:
                candidate = RecipeCandidate.from_record(record, "catalog")
            except MalformedRecordError as e:
                rejected += 1
                logger.warning("mix.catalog.malformed technique=%s id=%s reason=%s", technique, e.record_id, e.reason)
                continue
            if not (candidate.is_approved and candidate.is_public):
                continue
            if not self.matches_ingredients(candidate, requested):
                continue
            reason = violation(candidate, constraints)
            if reason:
                logger.info("mix.catalog.excluded id=%s reason=%s", candidate.id, reason)
                continue
            accepted.append(candidate)
            if len(accepted) >= limit:
                break
        return accepted, rejected

    def matches_ingredients(self, candidate: RecipeCandidate, requested: Sequence[str]) -> bool:
        """At least `ingredient_match_ratio` of the non-optional ingredients must resolve."""
        required = [line for line in candidate.ingredients if not line.is_optional]
        if not required:
            return True
        hits = sum(1 for line in required if self.matcher.resolves(line.name, requested))
        ratio = hits / len(required)
        logger.debug("mix.catalog.ingredient_match id=%s hits=%s/%s", candidate.id, hits, len(required))
        return ratio >= settings.ingredient_match_ratio
