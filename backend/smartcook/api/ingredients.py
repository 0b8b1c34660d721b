"""Batch validation of raw ingredient names against the master list."""

from fastapi import APIRouter, HTTPException

from smartcook.errors import MixValidationError
from smartcook.logging import get_logger
from smartcook.schemas.ingredient import IngredientValidationRequest, IngredientValidationResponse
from smartcook.services.matching.ingredient_matcher import IngredientMatcher, validate_ingredients
from smartcook.storage.catalog import SqlIngredientVocabulary

router = APIRouter()
logger = get_logger(__name__)


@router.post("/ingredients/validate", response_model=IngredientValidationResponse)
def post_validate_ingredients(body: IngredientValidationRequest) -> IngredientValidationResponse:
    if not body.ingredients:
        raise HTTPException(status_code=422, detail="At least one ingredient is required")
    # Vocabulary is loaded once for the whole batch.
    matcher = IngredientMatcher(SqlIngredientVocabulary().list_active())
    try:
        return validate_ingredients(body.ingredients, matcher)
    except MixValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
