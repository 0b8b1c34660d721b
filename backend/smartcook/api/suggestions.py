"""
Mixed recipe suggestions: curated catalog first, generated recipes for the gap.
The route is the caller of the engine, so it owns the analytics write (MixLog).
"""

import asyncio
import threading
from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response

from smartcook.errors import MixValidationError
from smartcook.logging import get_logger
from smartcook.schemas.mix import MixRequest, MixResponse
from smartcook.services.llm.recipe_generator import DspyRecipeGenerator
from smartcook.services.mix import MixEngine
from smartcook.storage.catalog import SqlCatalogStore, SqlIngredientVocabulary
from smartcook.storage.db import get_session
from smartcook.storage.repositories import create_mix_log

router = APIRouter()
logger = get_logger(__name__)

_DISCONNECT_POLL_S = 0.05


def get_mix_engine() -> MixEngine:
    return MixEngine(
        catalog=SqlCatalogStore(),
        vocabulary=SqlIngredientVocabulary(),
        generator=DspyRecipeGenerator(),
    )


async def watch_disconnect(request: Request, cancel_event: threading.Event) -> None:
    """Set cancel_event when the client goes away so outstanding generations are abandoned."""
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info("suggestions.mix.client_disconnected")
            cancel_event.set()
            return
        await asyncio.sleep(_DISCONNECT_POLL_S)


def _run_mix(body: Any, cancel_event: threading.Event) -> MixResponse:
    request = MixRequest.parse(body)
    result = get_mix_engine().generate(request, cancel_event=cancel_event)
    try:
        with get_session() as session:
            create_mix_log(session, request, result)
    except Exception as e:
        logger.warning("suggestions.mix_log_failed error=%s", e)
    if not result.recipes:
        logger.warning("suggestions.mix.empty ingredients=%s", request.ingredients)
    return result


@router.post("/suggestions/mix", response_model=MixResponse)
async def post_mix_suggestions(body: dict, request: Request, response: Response) -> MixResponse:
    """
    Expects: { "ingredients": [str], "desired_count": 1..5,
               "constraints": { "allergies", "dietary_restrictions", "preferred_techniques" } }
    The engine runs on a worker thread; a client disconnect cancels its generative calls.
    """
    cancel_event = threading.Event()
    watcher = asyncio.create_task(watch_disconnect(request, cancel_event))
    try:
        result = await asyncio.get_running_loop().run_in_executor(None, _run_mix, body, cancel_event)
    except MixValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    finally:
        watcher.cancel()

    response.headers["X-Cost-Saved"] = f"{result.cost_estimate:.2f}"
    response.headers["X-Catalog-Coverage"] = str(result.stats.coverage_pct)
    return result
