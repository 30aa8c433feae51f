from __future__ import annotations

from datetime import datetime
from typing import Callable, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from src.app.domain.models import CookingTimeBand, Difficulty, GenerationRequest, Recipe


class GenerateRecipeRequest(BaseModel):
    meat_type: str = ""
    cuisine_type: str = ""
    side_ingredients: list[str] = Field(default_factory=list)
    dietary_preferences: list[str] = Field(default_factory=list)
    cooking_time: Optional[Literal["quick", "medium", "long"]] = None
    difficulty: Optional[Literal["easy", "medium", "hard"]] = None
    language: str = Field(default="en", max_length=8)

    @field_validator("cooking_time", "difficulty", mode="before")
    @classmethod
    def _blank_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("side_ingredients", "dietary_preferences")
    @classmethod
    def _strip_items(cls, value: list[str]) -> list[str]:
        return [item.strip() for item in value if item and item.strip()]

    def to_domain(self) -> GenerationRequest:
        return GenerationRequest(
            meat_type=self.meat_type.strip(),
            cuisine_type=self.cuisine_type.strip(),
            side_ingredients=tuple(self.side_ingredients),
            dietary_preferences=tuple(self.dietary_preferences),
            cooking_time_band=CookingTimeBand(self.cooking_time) if self.cooking_time else None,
            difficulty=Difficulty(self.difficulty) if self.difficulty else None,
            locale=(self.language or "en").strip().lower() or "en",
        )


class IngredientOut(BaseModel):
    name: str
    quantity: str
    unit: str


class StepOut(BaseModel):
    step_number: int
    instruction: str
    timing: Optional[str] = None
    temperature: Optional[str] = None


class RecipeOut(BaseModel):
    id: str
    title: str
    description: str
    ingredients: list[IngredientOut]
    steps: list[StepOut]
    tips: list[str] = Field(default_factory=list)
    serving_size: int
    cooking_time: int
    difficulty: str
    cuisine_type: str
    meat_type: str
    dietary_tags: list[str] = Field(default_factory=list)
    side_ingredients: list[str] = Field(default_factory=list)
    language: str = "en"
    is_favorite: bool = False
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, recipe: Recipe, to_url: Callable[[str], str]) -> "RecipeOut":
        return cls(
            id=recipe.id,
            title=recipe.title,
            description=recipe.description,
            ingredients=[IngredientOut(name=i.name, quantity=i.quantity, unit=i.unit) for i in recipe.ingredients],
            steps=[
                StepOut(
                    step_number=s.step_number,
                    instruction=s.instruction,
                    timing=s.timing,
                    temperature=s.temperature,
                )
                for s in recipe.steps
            ],
            tips=list(recipe.tips),
            serving_size=recipe.serving_size,
            cooking_time=recipe.cooking_time,
            difficulty=recipe.difficulty,
            cuisine_type=recipe.cuisine_type,
            meat_type=recipe.meat_type,
            dietary_tags=list(recipe.dietary_tags),
            side_ingredients=list(recipe.side_ingredients),
            language=recipe.language,
            is_favorite=recipe.is_favorite,
            image_url=to_url(recipe.image_path) if recipe.image_path else None,
            thumbnail_url=to_url(recipe.thumbnail_path) if recipe.thumbnail_path else None,
            created_at=recipe.created_at,
        )


class DeleteRecipeResponse(BaseModel):
    id: str
    deleted: bool
    images_deleted: int = 0
    images_failed: int = 0


class RecipeOptionsResponse(BaseModel):
    cuisines: list[str]
    meat_types: list[str]
    side_ingredients: list[str]
    dietary_preferences: list[str]
    cooking_times: list[str]
    difficulties: list[str]
