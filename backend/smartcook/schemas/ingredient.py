from typing import Literal

from pydantic import BaseModel, Field

MatchType = Literal["exact", "alias", "fuzzy", "none"]


class MasterIngredient(BaseModel):
    id: str
    name: str
    normalized_name: str = ""
    category: str = ""
    aliases: list[str] = Field(default_factory=list)
    is_active: bool = True


class MatchResult(BaseModel):
    original: str
    ingredient_id: str | None = None
    matched_name: str | None = None
    category: str | None = None
    match_type: MatchType = "none"
    score: float = 0.0
    suggestions: list[str] = Field(default_factory=list)  # only filled when match_type == "none"

    @property
    def matched(self) -> bool:
        return self.ingredient_id is not None


class InvalidIngredient(BaseModel):
    original: str
    reason: str  # "empty" | "not_found"
    suggestions: list[str] = Field(default_factory=list)


class MatchingWarning(BaseModel):
    original: str
    corrected: str | None = None
    confidence: float = 0.0
    message: str


class IngredientValidationRequest(BaseModel):
    ingredients: list[str]


class IngredientValidationResponse(BaseModel):
    valid: list[MatchResult] = Field(default_factory=list)
    invalid: list[InvalidIngredient] = Field(default_factory=list)
    warnings: list[MatchingWarning] = Field(default_factory=list)
