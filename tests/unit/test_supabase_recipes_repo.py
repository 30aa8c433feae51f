from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Optional

import pytest

from src.app.domain.errors import RecipeRepositoryError
from src.app.domain.models import CookingStep, Ingredient, Recipe
from src.app.infra.db.supabase_recipes_repo import SupabaseQuotaRepository, SupabaseRecipeRepository


class FakeQuery:
    """Chainable stand-in for a postgrest query builder."""

    def __init__(self, data: Any = None, count: Optional[int] = None, error: Optional[Exception] = None) -> None:
        self.data = data
        self.count = count
        self.error = error
        self.calls: list[tuple[str, tuple, dict]] = []

    def __getattr__(self, name: str):
        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self

        return method

    def execute(self):
        if self.error:
            raise self.error
        return SimpleNamespace(data=self.data, count=self.count)


class FakeClient:
    def __init__(self, query: FakeQuery) -> None:
        self.query = query
        self.tables: list[str] = []

    def table(self, name: str) -> FakeQuery:
        self.tables.append(name)
        return self.query


def _recipe() -> Recipe:
    return Recipe(
        id="recipe-1",
        user_id="user-1",
        title="Pad Thai",
        description="Noodles.",
        ingredients=[Ingredient(name="rice noodles", quantity="200", unit="g")],
        steps=[CookingStep(step_number=1, instruction="Soak noodles", timing="10 minutes")],
        tips=[],
        serving_size=2,
        cooking_time=30,
        difficulty="medium",
        cuisine_type="Thai",
        meat_type="Seafood",
        dietary_tags=["Dairy-free"],
        side_ingredients=["Noodles"],
        cooking_time_band="medium",
        image_path="images/full/a.jpg",
        thumbnail_path="images/thumbnails/a_thumb.jpg",
    )


class TestSupabaseQuotaRepository:
    def test_reads_recipe_limit(self) -> None:
        query = FakeQuery(data=[{"recipe_limit": 0}])
        client = FakeClient(query)
        assert SupabaseQuotaRepository(client=client).get_user_recipe_limit("user-1") == 0
        assert client.tables == ["users"]

    def test_null_limit_is_none(self) -> None:
        query = FakeQuery(data=[{"recipe_limit": None}])
        assert SupabaseQuotaRepository(client=FakeClient(query)).get_user_recipe_limit("user-1") is None

    def test_unknown_user_raises(self) -> None:
        with pytest.raises(RecipeRepositoryError):
            SupabaseQuotaRepository(client=FakeClient(FakeQuery(data=[]))).get_user_recipe_limit("ghost")

    def test_count_uses_exact_count(self) -> None:
        query = FakeQuery(data=[], count=7)
        assert SupabaseQuotaRepository(client=FakeClient(query)).count_user_recipes("user-1") == 7
        assert ("select", ("id",), {"count": "exact"}) in query.calls


class TestSupabaseRecipeRepository:
    def test_insert_round_trips_row(self) -> None:
        recipe = _recipe()
        query = FakeQuery()
        client = FakeClient(query)

        def insert(row):
            query.calls.append(("insert", (row,), {}))
            query.data = [{**row, "created_at": "2024-05-01T12:00:00Z"}]
            return query

        query.insert = insert

        stored = SupabaseRecipeRepository(client=client).insert_recipe(recipe)

        row = query.calls[0][1][0]
        assert row["ingredients"] == [{"name": "rice noodles", "quantity": "200", "unit": "g"}]
        assert row["steps"][0]["timing"] == "10 minutes"
        assert row["image_path"] == "images/full/a.jpg"
        assert stored.id == "recipe-1"
        assert stored.steps[0].temperature is None
        assert stored.created_at is not None
        assert stored.dietary_tags == ["Dairy-free"]

    def test_insert_failure_is_wrapped(self) -> None:
        query = FakeQuery(error=RuntimeError("duplicate key"))
        with pytest.raises(RecipeRepositoryError):
            SupabaseRecipeRepository(client=FakeClient(query)).insert_recipe(_recipe())

    def test_insert_without_returned_row(self) -> None:
        with pytest.raises(RecipeRepositoryError):
            SupabaseRecipeRepository(client=FakeClient(FakeQuery(data=[]))).insert_recipe(_recipe())

    def test_get_recipe_media(self) -> None:
        query = FakeQuery(data=[{"id": "recipe-1", "image_path": "images/full/a.jpg", "thumbnail_path": None}])
        media = SupabaseRecipeRepository(client=FakeClient(query)).get_recipe_media("recipe-1", "user-1")
        assert media.recipe_id == "recipe-1"
        assert media.paths == ["images/full/a.jpg"]

    def test_get_recipe_media_missing(self) -> None:
        repo = SupabaseRecipeRepository(client=FakeClient(FakeQuery(data=[])))
        assert repo.get_recipe_media("nope", "user-1") is None

    def test_delete_recipe(self) -> None:
        repo = SupabaseRecipeRepository(client=FakeClient(FakeQuery(data=[{"id": "recipe-1"}])))
        assert repo.delete_recipe("recipe-1", "user-1") is True

    def test_list_user_media(self) -> None:
        query = FakeQuery(
            data=[
                {"id": "r1", "image_path": "images/full/r1.jpg", "thumbnail_path": "images/thumbnails/r1_thumb.jpg"},
                {"id": "r2", "image_path": None, "thumbnail_path": None},
            ]
        )
        records = SupabaseRecipeRepository(client=FakeClient(query)).list_user_media("user-1")
        assert [r.recipe_id for r in records] == ["r1", "r2"]
        assert records[1].paths == []

    def test_get_recipe_media_failure_is_wrapped(self) -> None:
        repo = SupabaseRecipeRepository(client=FakeClient(FakeQuery(error=RuntimeError("connection reset"))))
        with pytest.raises(RecipeRepositoryError) as exc_info:
            repo.get_recipe_media("recipe-1", "user-1")
        assert exc_info.value.operation == "get_recipe_media"

    def test_list_user_media_failure_is_wrapped(self) -> None:
        repo = SupabaseRecipeRepository(client=FakeClient(FakeQuery(error=RuntimeError("connection reset"))))
        with pytest.raises(RecipeRepositoryError) as exc_info:
            repo.list_user_media("user-1")
        assert exc_info.value.operation == "list_user_media"
