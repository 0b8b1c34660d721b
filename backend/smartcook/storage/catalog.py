"""Read-only store adapters handed to the mix engine. One session per call, so safe across threads."""

from typing import Any

from smartcook.schemas.ingredient import MasterIngredient
from smartcook.storage import db
from smartcook.storage.repositories import list_active_master_ingredients, query_recipes_by_technique


class SqlCatalogStore:
    def query_by_technique(self, technique: str, limit: int) -> list[dict[str, Any]]:
        with db.get_session() as session:
            return query_recipes_by_technique(session, technique, limit)


class SqlIngredientVocabulary:
    def list_active(self) -> list[MasterIngredient]:
        with db.get_session() as session:
            return list_active_master_ingredients(session)
