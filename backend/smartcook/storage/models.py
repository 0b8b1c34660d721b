from datetime import datetime
from typing import Optional

from sqlalchemy import Column, JSON
from sqlmodel import Field, SQLModel


class CatalogRecipe(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    technique: str = Field(index=True)  # xào | canh | hấp | chiên | nướng | luộc | kho | ...
    description: str = ""
    instructions: Optional[list] = Field(default=None, sa_column=Column(JSON, default=None))
    is_approved: bool = False
    is_public: bool = False
    is_generated: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)


class CatalogRecipeIngredient(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    recipe_id: int = Field(foreign_key="catalogrecipe.id", index=True)
    name: str
    quantity: Optional[str] = None
    unit: Optional[str] = None
    is_optional: bool = False
    position: int = 0


class MasterIngredientRow(SQLModel, table=True):
    __tablename__ = "masteringredient"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    normalized_name: str = Field(index=True)
    category: str = ""
    aliases: Optional[list] = Field(default=None, sa_column=Column(JSON, default=None))
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)


class MixLog(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    ingredients: Optional[list] = Field(default=None, sa_column=Column(JSON, default=None))
    requested: int
    from_catalog: int
    from_generated: int
    coverage_pct: int
    cost_estimate: float
    recipe_ids: Optional[list] = Field(default=None, sa_column=Column(JSON, default=None))
    created_at: datetime = Field(default_factory=datetime.utcnow)


class LLMCallLog(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    prompt_name: str
    prompt_version: str
    model: str
    input_payload: str
    output_payload: str
    latency_ms: int
    created_at: datetime = Field(default_factory=datetime.utcnow)
