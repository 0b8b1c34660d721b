"""
Generative fill: one call per missing technique, issued concurrently.
No retries. A failed technique contributes nothing and never affects the others.
Cancellation or the overall deadline abandons whatever is still outstanding.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

from smartcook.config import settings
from smartcook.errors import SourceUnavailable
from smartcook.logging import get_logger
from smartcook.schemas.mix import GenerationRequest, RecipeCandidate, UserConstraints

logger = get_logger(__name__)

# How often the fan-out loop re-checks the cancel event.
_POLL_INTERVAL_S = 0.05


class RecipeGenerator(Protocol):
    def generate(self, request: GenerationRequest) -> RecipeCandidate | dict[str, Any]:
        """One recipe for request.technique. May raise or time out."""


@dataclass
class GenerationResult:
    candidates: list[RecipeCandidate] = field(default_factory=list)
    failed_techniques: list[str] = field(default_factory=list)
    abandoned_techniques: list[str] = field(default_factory=list)

    @property
    def calls_issued(self) -> int:
        return len(self.candidates) + len(self.failed_techniques) + len(self.abandoned_techniques)


def _as_generated(output: RecipeCandidate | dict[str, Any], technique: str) -> RecipeCandidate:
    if isinstance(output, RecipeCandidate):
        record = output.model_dump()
    else:
        record = dict(output or {})
    if not (record.get("technique") or record.get("cooking_method")):
        record["technique"] = technique
    candidate = RecipeCandidate.from_record(record, "generated")
    return candidate.model_copy(update={"provenance": "generated", "is_approved": False})


class GenerativeSource:
    def __init__(
        self,
        generator: RecipeGenerator,
        max_workers: int | None = None,
        timeout_s: float | None = None,
    ) -> None:
        self.generator = generator
        self.max_workers = max(1, max_workers or settings.generation_max_workers)
        self.timeout_s = settings.generation_timeout_s if timeout_s is None else timeout_s

    def _invoke(self, request: GenerationRequest) -> RecipeCandidate:
        try:
            return _as_generated(self.generator.generate(request), request.technique)
        except Exception as e:
            raise SourceUnavailable("generative", request.technique, e) from e

    def fill(
        self,
        ingredients: Sequence[str],
        techniques: Sequence[str],
        constraints: UserConstraints,
        cancel_event: threading.Event | None = None,
    ) -> GenerationResult:
        result = GenerationResult()
        if not techniques:
            return result
        if cancel_event is not None and cancel_event.is_set():
            result.abandoned_techniques.extend(techniques)
            logger.info("mix.generative.cancelled_before_start techniques=%s", list(techniques))
            return result

        produced: dict[str, RecipeCandidate] = {}
        executor = ThreadPoolExecutor(max_workers=min(self.max_workers, len(techniques)))
        futures: dict[Future, str] = {
            executor.submit(
                self._invoke,
                GenerationRequest(ingredients=list(ingredients), technique=t, constraints=constraints),
            ): t
            for t in techniques
        }
        pending = set(futures)
        deadline = time.monotonic() + self.timeout_s
        try:
            while pending:
                if cancel_event is not None and cancel_event.is_set():
                    logger.info("mix.generative.cancelled outstanding=%s", len(pending))
                    break
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.warning("mix.generative.deadline_exceeded outstanding=%s", len(pending))
                    break
                done, pending = wait(
                    pending, timeout=min(remaining, _POLL_INTERVAL_S), return_when=FIRST_COMPLETED
                )
                for fut in done:
                    technique = futures[fut]
                    try:
                        produced[technique] = fut.result()
                        logger.info("mix.generative.technique technique=%s id=%s", technique, produced[technique].id)
                    except SourceUnavailable as e:
                        logger.warning("mix.generative.technique_failed technique=%s error=%s", technique, e.cause)
                        result.failed_techniques.append(technique)
        finally:
            for fut in pending:
                fut.cancel()
            executor.shutdown(wait=False, cancel_futures=True)

        result.abandoned_techniques.extend(futures[f] for f in pending)
        # Keep gap-fill order, not completion order.
        result.candidates = [produced[t] for t in techniques if t in produced]
        return result
