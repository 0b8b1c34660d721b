from fastapi import APIRouter

from smartcook.api.health import router as health_router
from smartcook.api.ingredients import router as ingredients_router
from smartcook.api.suggestions import router as suggestions_router

router = APIRouter(prefix="/api")
router.include_router(health_router)
router.include_router(ingredients_router)
router.include_router(suggestions_router)
