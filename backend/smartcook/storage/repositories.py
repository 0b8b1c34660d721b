from collections import defaultdict
from typing import Any, Iterable

from sqlmodel import Session, select

from smartcook.logging import get_logger
from smartcook.schemas.ingredient import MasterIngredient
from smartcook.schemas.mix import MixRequest, MixResponse
from smartcook.services.matching.similarity import normalize
from smartcook.storage.models import (
    CatalogRecipe,
    CatalogRecipeIngredient,
    LLMCallLog,
    MasterIngredientRow,
    MixLog,
)

logger = get_logger(__name__)


def create_catalog_recipe(
    session: Session, recipe: CatalogRecipe, ingredients: Iterable[CatalogRecipeIngredient]
) -> CatalogRecipe:
    session.add(recipe)
    session.commit()
    session.refresh(recipe)
    items = list(ingredients)
    for position, item in enumerate(items):
        item.recipe_id = recipe.id
        item.position = position
    session.add_all(items)
    session.commit()
    logger.info(
        "catalog_recipe.created id=%s title=%s technique=%s ingredients=%s",
        recipe.id,
        recipe.title,
        recipe.technique,
        len(items),
    )
    return recipe


def query_recipes_by_technique(session: Session, technique: str, limit: int) -> list[dict[str, Any]]:
    """Approved, public recipes for one technique, newest first, as raw records."""
    recipes = list(
        session.exec(
            select(CatalogRecipe)
            .where(
                CatalogRecipe.technique == technique,
                CatalogRecipe.is_approved == True,  # noqa: E712
                CatalogRecipe.is_public == True,  # noqa: E712
            )
            .order_by(CatalogRecipe.created_at.desc(), CatalogRecipe.id.desc())
            .limit(limit)
        )
    )
    if not recipes:
        return []
    lines: dict[int, list[CatalogRecipeIngredient]] = defaultdict(list)
    rows = session.exec(
        select(CatalogRecipeIngredient)
        .where(CatalogRecipeIngredient.recipe_id.in_([r.id for r in recipes]))
        .order_by(CatalogRecipeIngredient.position)
    )
    for row in rows:
        lines[row.recipe_id].append(row)
    return [
        {
            "id": str(r.id),
            "title": r.title,
            "technique": r.technique,
            "description": r.description,
            "instructions": r.instructions or [],
            "is_approved": r.is_approved,
            "is_public": r.is_public,
            "ingredients": [
                {"name": i.name, "quantity": i.quantity, "unit": i.unit, "is_optional": i.is_optional}
                for i in lines[r.id]
            ],
        }
        for r in recipes
    ]


def create_master_ingredient(
    session: Session,
    name: str,
    category: str = "",
    aliases: list[str] | None = None,
    is_active: bool = True,
) -> MasterIngredientRow:
    row = MasterIngredientRow(
        name=name,
        normalized_name=normalize(name),
        category=category,
        aliases=aliases or [],
        is_active=is_active,
    )
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


def list_active_master_ingredients(session: Session) -> list[MasterIngredient]:
    rows = session.exec(
        select(MasterIngredientRow)
        .where(MasterIngredientRow.is_active == True)  # noqa: E712
        .order_by(MasterIngredientRow.id)
    )
    return [
        MasterIngredient(
            id=str(row.id),
            name=row.name,
            normalized_name=row.normalized_name,
            category=row.category,
            aliases=list(row.aliases or []),
            is_active=row.is_active,
        )
        for row in rows
    ]


def create_mix_log(session: Session, request: MixRequest, response: MixResponse) -> MixLog:
    log = MixLog(
        ingredients=list(request.ingredients),
        requested=response.stats.requested,
        from_catalog=response.stats.from_catalog,
        from_generated=response.stats.from_generated,
        coverage_pct=response.stats.coverage_pct,
        cost_estimate=response.cost_estimate,
        recipe_ids=[r.id for r in response.recipes],
    )
    session.add(log)
    session.commit()
    session.refresh(log)
    logger.info(
        "mix_log.created id=%s catalog=%s generated=%s cost_saved=%s",
        log.id,
        log.from_catalog,
        log.from_generated,
        log.cost_estimate,
    )
    return log


def log_llm_call(
    session: Session,
    prompt_name: str,
    prompt_version: str,
    model: str,
    input_payload: str,
    output_payload: str,
    latency_ms: int,
) -> None:
    session.add(
        LLMCallLog(
            prompt_name=prompt_name,
            prompt_version=prompt_version,
            model=model,
            input_payload=input_payload,
            output_payload=output_payload,
            latency_ms=latency_ms,
        )
    )
    session.commit()
