from __future__ import annotations

import logging
import os
from dataclasses import asdict
from datetime import datetime
from typing import Any, Optional

from supabase import Client, create_client

from src.app.domain.errors import RecipeRepositoryError
from src.app.domain.models import CookingStep, Ingredient, Recipe, RecipeMediaRecord
from src.app.infra.db.base import QuotaRepository, RecipeRepository

logger = logging.getLogger(__name__)

MEDIA_COLUMNS = "id,image_path,thumbnail_path"


def _parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    try:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _safe_int(value: object, default: int = 0) -> int:
    return int(value) if value else default


def _safe_str(value: object) -> str | None:
    return str(value) if value else None


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _create_supabase_client() -> Client:
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required")
    return create_client(url, key)


def _recipe_to_row(recipe: Recipe) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": recipe.id,
        "user_id": recipe.user_id,
        "title": recipe.title,
        "description": recipe.description,
        "ingredients": [asdict(i) for i in recipe.ingredients],
        "steps": [asdict(s) for s in recipe.steps],
        "tips": list(recipe.tips),
        "serving_size": recipe.serving_size,
        "cooking_time": recipe.cooking_time,
        "difficulty": recipe.difficulty,
        "cuisine_type": recipe.cuisine_type,
        "meat_type": recipe.meat_type,
        "dietary_tags": list(recipe.dietary_tags),
        "side_ingredients": list(recipe.side_ingredients),
        "cooking_time_band": recipe.cooking_time_band,
        "language": recipe.language,
        "is_favorite": recipe.is_favorite,
        "image_path": recipe.image_path,
        "thumbnail_path": recipe.thumbnail_path,
    }
    if recipe.created_at:
        row["created_at"] = recipe.created_at.isoformat()
    return row


def _row_to_recipe(row: dict[str, Any]) -> Recipe:
    return Recipe(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        title=str(row.get("title") or ""),
        description=str(row.get("description") or ""),
        ingredients=[
            Ingredient(
                name=str(item.get("name") or ""),
                quantity=str(item.get("quantity") or ""),
                unit=str(item.get("unit") or ""),
            )
            for item in _as_list(row.get("ingredients"))
            if isinstance(item, dict)
        ],
        steps=[
            CookingStep(
                step_number=_safe_int(item.get("step_number")),
                instruction=str(item.get("instruction") or ""),
                timing=_safe_str(item.get("timing")),
                temperature=_safe_str(item.get("temperature")),
            )
            for item in _as_list(row.get("steps"))
            if isinstance(item, dict)
        ],
        tips=[str(t) for t in _as_list(row.get("tips"))],
        serving_size=_safe_int(row.get("serving_size")),
        cooking_time=_safe_int(row.get("cooking_time")),
        difficulty=str(row.get("difficulty") or ""),
        cuisine_type=str(row.get("cuisine_type") or ""),
        meat_type=str(row.get("meat_type") or ""),
        dietary_tags=[str(t) for t in _as_list(row.get("dietary_tags"))],
        side_ingredients=[str(t) for t in _as_list(row.get("side_ingredients"))],
        cooking_time_band=_safe_str(row.get("cooking_time_band")),
        language=str(row.get("language") or "en"),
        is_favorite=bool(row.get("is_favorite")),
        image_path=_safe_str(row.get("image_path")),
        thumbnail_path=_safe_str(row.get("thumbnail_path")),
        created_at=_parse_datetime(row.get("created_at")),
    )


def _row_to_media(row: dict[str, Any]) -> RecipeMediaRecord:
    return RecipeMediaRecord(
        recipe_id=str(row["id"]),
        image_path=_safe_str(row.get("image_path")),
        thumbnail_path=_safe_str(row.get("thumbnail_path")),
    )


class SupabaseQuotaRepository(QuotaRepository):
    USERS_TABLE = "users"
    RECIPES_TABLE = "recipes"

    def __init__(self, client: Client | None = None):
        self._client = client or _create_supabase_client()

    def get_user_recipe_limit(self, user_id: str) -> Optional[int]:
        result = (
            self._client.table(self.USERS_TABLE)
            .select("recipe_limit")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        rows = result.data or []
        if not rows:
            raise RecipeRepositoryError("get_user_recipe_limit", f"user {user_id} not found")

        value = rows[0].get("recipe_limit")
        return int(value) if value is not None else None

    def count_user_recipes(self, user_id: str) -> int:
        result = (
            self._client.table(self.RECIPES_TABLE)
            .select("id", count="exact")
            .eq("user_id", user_id)
            .execute()
        )
        if result.count is not None:
            return int(result.count)
        return len(result.data or [])


class SupabaseRecipeRepository(RecipeRepository):
    TABLE_NAME = "recipes"

    def __init__(self, client: Client | None = None):
        self._client = client or _create_supabase_client()
        logger.info("SupabaseRecipeRepository initialized")

    def insert_recipe(self, recipe: Recipe) -> Recipe:
        try:
            result = self._client.table(self.TABLE_NAME).insert(_recipe_to_row(recipe)).execute()
        except Exception as error:
            logger.error("Error inserting recipe: %s", error)
            raise RecipeRepositoryError("insert", str(error)) from error

        if not result.data:
            raise RecipeRepositoryError("insert", "no row returned")

        stored = _row_to_recipe(result.data[0])
        logger.info("Inserted recipe: id=%s, user=%s", stored.id, stored.user_id)
        return stored

    def get_recipe_media(self, recipe_id: str, user_id: str) -> Optional[RecipeMediaRecord]:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select(MEDIA_COLUMNS)
                .eq("id", recipe_id)
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as error:
            logger.error("Error fetching recipe media: %s", error)
            raise RecipeRepositoryError("get_recipe_media", str(error)) from error

        rows = result.data or []
        return _row_to_media(rows[0]) if rows else None

    def delete_recipe(self, recipe_id: str, user_id: str) -> bool:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .delete()
                .eq("id", recipe_id)
                .eq("user_id", user_id)
                .execute()
            )
        except Exception as error:
            logger.error("Error deleting recipe: %s", error)
            raise RecipeRepositoryError("delete", str(error)) from error

        return bool(result.data)

    def list_user_media(self, user_id: str) -> list[RecipeMediaRecord]:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select(MEDIA_COLUMNS)
                .eq("user_id", user_id)
                .execute()
            )
        except Exception as error:
            logger.error("Error listing user media: %s", error)
            raise RecipeRepositoryError("list_user_media", str(error)) from error

        return [_row_to_media(row) for row in result.data or []]
