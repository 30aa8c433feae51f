# src/app/routers/recipes.py
from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, status
from starlette.concurrency import run_in_threadpool

from src.app.deps import (
    CurrentUser,
    get_audit_logger,
    get_current_user,
    get_media_cleanup,
    get_orchestrator,
    get_recipe_repository,
    get_storage,
)
from src.app.domain.errors import (
    EmptyReplyError,
    ProviderConfigError,
    ProviderConnectionError,
    QuotaExceededError,
    RateLimitError,
    RecipeGenerationError,
    RecipeRepositoryError,
    ReplyParseError,
)
from src.app.infra.db.base import RecipeRepository
from src.app.infra.storage.base import StorageProvider
from src.app.schemas.recipes import (
    DeleteRecipeResponse,
    GenerateRecipeRequest,
    RecipeOptionsResponse,
    RecipeOut,
)
from src.app.services import audit as events
from src.app.services.audit import AuditLogger
from src.app.services.generation_pipeline import GenerationOrchestrator
from src.app.services.media_cleanup import MediaCleanupService

log = logging.getLogger("recipes")
router = APIRouter(prefix="/recipes", tags=["recipes"])

CUISINES = [
    "Italian", "Mexican", "Chinese", "Indian", "Japanese",
    "Thai", "Mediterranean", "American", "French", "Greek",
    "Korean", "Vietnamese", "Spanish", "Middle Eastern",
]
MEAT_TYPES = [
    "Chicken", "Beef", "Pork", "Fish", "Seafood",
    "Lamb", "Turkey", "None (Vegetarian)",
]
SIDE_INGREDIENTS = [
    "Vegetables", "Rice", "Pasta", "Potatoes", "Grains",
    "Legumes", "Noodles", "Bread", "Quinoa", "Couscous",
]
DIETARY_PREFERENCES = ["Vegetarian", "Vegan", "Gluten-free", "Dairy-free", "Low-carb", "Keto"]

REQUEST_ID_HEADER = "X-Request-ID"


def _request_id(request: Request) -> str:
    return request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def _to_http_error(error: RecipeGenerationError) -> HTTPException:
    # provider messages stay in the logs, callers get a fixed category message
    if isinstance(error, QuotaExceededError):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Recipe generation limit reached. Contact an administrator to raise your limit.",
        )
    if isinstance(error, RateLimitError):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="The recipe service is busy. Please wait a moment and try again.",
        )
    if isinstance(error, (ProviderConfigError, ProviderConnectionError)):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="The recipe service is temporarily unavailable.",
        )
    if isinstance(error, EmptyReplyError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="The recipe service returned no recipe. Please try again.",
        )
    if isinstance(error, ReplyParseError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Could not read the generated recipe. Please try again.",
        )
    if isinstance(error, RecipeRepositoryError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save the recipe.",
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Recipe generation failed.",
    )


@router.post("/generate", response_model=RecipeOut, status_code=status.HTTP_201_CREATED)
async def generate_recipe(
    body: GenerateRecipeRequest,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    storage: StorageProvider = Depends(get_storage),
):
    """
    Generate, illustrate and save a recipe.

    This calls a text model and an image model in series and routinely takes
    tens of seconds; clients should allow about 120 seconds
    (GENERATION_REQUEST_TIMEOUT_SECONDS). If the client disconnects, the
    pipeline still runs to completion in its worker thread, so the recipe is
    either saved whole or not at all.
    """
    request_id = _request_id(request)
    try:
        recipe = await run_in_threadpool(
            orchestrator.generate,
            current_user.id,
            body.to_domain(),
            request_id,
            _client_ip(request),
        )
    except RecipeGenerationError as error:
        raise _to_http_error(error)

    return RecipeOut.from_domain(recipe, storage.public_url)


@router.delete("/{recipe_id}", response_model=DeleteRecipeResponse)
async def delete_recipe(
    recipe_id: str,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    recipes: RecipeRepository = Depends(get_recipe_repository),
    cleanup: MediaCleanupService = Depends(get_media_cleanup),
    audit: AuditLogger = Depends(get_audit_logger),
):
    request_id = _request_id(request)

    try:
        media = await run_in_threadpool(recipes.get_recipe_media, recipe_id, current_user.id)
        if media is None:
            raise HTTPException(status_code=404, detail="Recipe not found")
        deleted = await run_in_threadpool(recipes.delete_recipe, recipe_id, current_user.id)
    except RecipeRepositoryError as error:
        log.error("Failed to delete recipe %s: %s", recipe_id, error)
        raise HTTPException(status_code=500, detail="Failed to delete recipe")

    if not deleted:
        raise HTTPException(status_code=404, detail="Recipe not found")

    report = await run_in_threadpool(
        cleanup.delete_variants,
        media.paths,
        recipe_id,
        current_user.id,
        request_id,
    )

    audit.info(
        events.RECIPE_DELETE,
        "Recipe deleted",
        request_id=request_id,
        user_id=current_user.id,
        ip_address=_client_ip(request),
        metadata={"recipe_id": recipe_id, "images_deleted": len(report.deleted)},
    )

    return DeleteRecipeResponse(
        id=recipe_id,
        deleted=True,
        images_deleted=len(report.deleted),
        images_failed=len(report.failed),
    )


@router.get("/options", response_model=RecipeOptionsResponse)
def recipe_options():
    return RecipeOptionsResponse(
        cuisines=CUISINES,
        meat_types=MEAT_TYPES,
        side_ingredients=SIDE_INGREDIENTS,
        dietary_preferences=DIETARY_PREFERENCES,
        cooking_times=["quick", "medium", "long"],
        difficulties=["easy", "medium", "hard"],
    )
