from typing import Sequence

from smartcook.config import settings
from smartcook.schemas.mix import CostEstimate, MixStats, RecipeCandidate


def calculate_stats(requested: int, recipes: Sequence[RecipeCandidate]) -> MixStats:
    from_catalog = sum(1 for r in recipes if r.provenance == "catalog")
    from_generated = sum(1 for r in recipes if r.provenance == "generated")
    coverage = round(100 * from_catalog / requested) if requested > 0 else 0
    return MixStats(
        requested=requested,
        from_catalog=from_catalog,
        from_generated=from_generated,
        coverage_pct=coverage,
    )


def estimate_cost(stats: MixStats, unit_cost: float | None = None) -> CostEstimate:
    """Cost avoided: each catalog recipe is one generative call not made."""
    unit_cost = settings.generated_recipe_unit_cost if unit_cost is None else unit_cost
    return CostEstimate(
        estimated_cost_saved=round(stats.from_catalog * unit_cost, 2),
        catalog_recipes_used=stats.from_catalog,
        generated_recipes=stats.from_generated,
    )
