from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from smartcook.config import settings
from smartcook.errors import MalformedRecordError, MixValidationError
from smartcook.schemas.ingredient import MatchingWarning, MatchResult

Provenance = Literal["catalog", "generated"]


class UserConstraints(BaseModel):
    allergies: list[str] = Field(default_factory=list)
    dietary_restrictions: list[str] = Field(default_factory=list)
    preferred_techniques: list[str] = Field(default_factory=list)


class RecipeIngredientLine(BaseModel):
    name: str = Field(min_length=1)
    quantity: str | None = None
    unit: str | None = None
    is_optional: bool = False


class RecipeCandidate(BaseModel):
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    technique: str = Field(min_length=1)
    description: str = ""
    ingredients: list[RecipeIngredientLine] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    provenance: Provenance
    is_approved: bool = False
    is_public: bool = False

    @field_validator("title", "technique", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @classmethod
    def from_record(cls, record: dict[str, Any], provenance: Provenance) -> "RecipeCandidate":
        """
        Validate a raw store or generator record into a candidate.
        Accepts the legacy keys recipe_id / cooking_method / ingredient_name.
        Missing or mistyped fields are rejected, never defaulted or coerced.
        """
        if not isinstance(record, dict):
            raise MalformedRecordError(None, f"expected object, got {type(record).__name__}")
        record_id = record.get("id") or record.get("recipe_id")
        if record_id is not None and not isinstance(record_id, (str, int)):
            raise MalformedRecordError(None, f"id must be text or integer, got {type(record_id).__name__}")
        raw_ingredients = record.get("ingredients") or []
        if not isinstance(raw_ingredients, list):
            raise MalformedRecordError(record_id, "ingredients must be a list")
        ingredients = []
        for item in raw_ingredients:
            if isinstance(item, str):
                item = {"name": item}
            if not isinstance(item, dict):
                raise MalformedRecordError(record_id, "ingredient entry must be an object")
            ingredients.append(
                {
                    "name": item.get("name") or item.get("ingredient_name") or "",
                    "quantity": _as_text(item.get("quantity")),
                    "unit": _as_text(item.get("unit")),
                    "is_optional": bool(item.get("is_optional", False)),
                }
            )
        raw_steps = record.get("instructions") or []
        if not isinstance(raw_steps, list):
            raise MalformedRecordError(record_id, "instructions must be a list")
        # Non-text steps are left as they are so validation rejects them.
        steps = [step.get("description", "") if isinstance(step, dict) else step for step in raw_steps]
        payload = {
            "id": str(record_id) if record_id is not None else "",
            "title": record.get("title") or "",
            "technique": record.get("technique") or record.get("cooking_method") or "",
            "description": record.get("description") or "",
            "ingredients": ingredients,
            "instructions": [s for s in steps if not (isinstance(s, str) and not s.strip())],
            "provenance": provenance,
            "is_approved": bool(record.get("is_approved", False)),
            "is_public": bool(record.get("is_public", False)),
        }
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            fields = ",".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise MalformedRecordError(record_id, f"invalid fields: {fields}") from e

    def ingredient_names(self) -> list[str]:
        return [line.name for line in self.ingredients]


def _as_text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


class MixRequest(BaseModel):
    ingredients: list[str]
    desired_count: int
    constraints: UserConstraints = Field(default_factory=UserConstraints)

    @field_validator("ingredients")
    @classmethod
    def _check_ingredients(cls, value: list[str]) -> list[str]:
        if not value or not any((token or "").strip() for token in value):
            raise ValueError("ingredients must be a non-empty list")
        if len(value) > settings.max_ingredients:
            raise ValueError(f"at most {settings.max_ingredients} ingredients allowed per request")
        return value

    @field_validator("desired_count")
    @classmethod
    def _check_desired_count(cls, value: int) -> int:
        if not settings.min_recipe_count <= value <= settings.max_recipe_count:
            raise ValueError(
                f"desired_count must be between {settings.min_recipe_count} and {settings.max_recipe_count}"
            )
        return value

    @classmethod
    def parse(cls, payload: Any) -> "MixRequest":
        """Build a request, converting schema errors into MixValidationError."""
        if isinstance(payload, MixRequest):
            payload = payload.model_dump()
        if isinstance(payload, dict) and "desired_count" not in payload and "recipe_count" in payload:
            payload = {**payload, "desired_count": payload["recipe_count"]}
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            messages = "; ".join(err["msg"] for err in e.errors())
            raise MixValidationError(messages) from e


class GenerationRequest(BaseModel):
    ingredients: list[str]
    technique: str
    constraints: UserConstraints = Field(default_factory=UserConstraints)


class MixStats(BaseModel):
    requested: int
    from_catalog: int = 0
    from_generated: int = 0
    coverage_pct: int = 0


class CostEstimate(BaseModel):
    estimated_cost_saved: float = 0.0
    catalog_recipes_used: int = 0
    generated_recipes: int = 0


class MixResponse(BaseModel):
    recipes: list[RecipeCandidate] = Field(default_factory=list)
    stats: MixStats
    cost_estimate: float = 0.0
    cost_breakdown: CostEstimate = Field(default_factory=CostEstimate)
    matches: list[MatchResult] = Field(default_factory=list)
    warnings: list[MatchingWarning] = Field(default_factory=list)
    rejected_records: int = 0
    states: list[str] = Field(default_factory=list)
