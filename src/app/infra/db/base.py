# src/app/infra/db/base.py
"""
Abstract base classes for recipe persistence.
The generation pipeline only depends on these interfaces.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from src.app.domain.models import Recipe, RecipeMediaRecord


class QuotaRepository(ABC):
    """
    Read-only lookups needed to resolve a user's generation quota.
    """

    @abstractmethod
    def get_user_recipe_limit(self, user_id: str) -> Optional[int]:
        """
        Get the per-user override.

        Args:
            user_id: The user to look up

        Returns:
            The raw stored value (None, -1, 0 or a positive count)
        """
        pass

    @abstractmethod
    def count_user_recipes(self, user_id: str) -> int:
        """
        Count the recipes currently owned by a user.

        Args:
            user_id: The user

        Returns:
            Number of recipe rows
        """
        pass


class RecipeRepository(ABC):
    """
    Abstract interface for recipe rows.

    Implementations:
    - SupabaseRecipeRepository: Postgres via Supabase
    """

    @abstractmethod
    def insert_recipe(self, recipe: Recipe) -> Recipe:
        """
        Insert a fully built recipe in a single write.

        Args:
            recipe: The recipe to persist

        Returns:
            The stored recipe (with server-side fields such as created_at)
        """
        pass

    @abstractmethod
    def get_recipe_media(self, recipe_id: str, user_id: str) -> Optional[RecipeMediaRecord]:
        """
        Get stored media locations for a recipe owned by the user.

        Returns:
            The media record, or None if the recipe does not exist
        """
        pass

    @abstractmethod
    def delete_recipe(self, recipe_id: str, user_id: str) -> bool:
        """
        Delete a recipe owned by the user.

        Returns:
            True if a row was removed
        """
        pass

    @abstractmethod
    def list_user_media(self, user_id: str) -> list[RecipeMediaRecord]:
        """
        Get media locations for every recipe owned by a user (account deletion).
        """
        pass
