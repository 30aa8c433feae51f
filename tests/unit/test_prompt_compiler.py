from __future__ import annotations

from src.app.domain.models import CookingTimeBand, Difficulty, GenerationRequest
from src.app.services.prompt_compiler import compile_prompt


class TestCompilePrompt:
    def test_is_deterministic(self) -> None:
        req = GenerationRequest(meat_type="Chicken", cuisine_type="Italian")
        assert compile_prompt(req) == compile_prompt(req)

    def test_full_request_lines(self) -> None:
        req = GenerationRequest(
            meat_type="Chicken",
            cuisine_type="Italian",
            side_ingredients=("Rice", "Vegetables"),
            dietary_preferences=("Gluten-free",),
            cooking_time_band=CookingTimeBand.QUICK,
            difficulty=Difficulty.EASY,
        )

        prompt = compile_prompt(req)

        assert "- Main protein: Chicken\n" in prompt
        assert "- Cuisine style: Italian\n" in prompt
        assert "- Include these ingredients: Rice, Vegetables\n" in prompt
        assert "- Dietary requirements: Gluten-free\n" in prompt
        assert "- Total cooking time: under 30 minutes\n" in prompt
        assert "- Difficulty level: easy\n" in prompt

    def test_absent_fields_produce_no_lines(self) -> None:
        prompt = compile_prompt(GenerationRequest(cuisine_type="Thai"))

        assert "- Cuisine style: Thai" in prompt
        assert "Main protein" not in prompt
        assert "Include these ingredients" not in prompt
        assert "Dietary requirements" not in prompt
        assert "Total cooking time" not in prompt
        assert "Difficulty level" not in prompt

    def test_time_band_phrases(self) -> None:
        medium = compile_prompt(GenerationRequest(cooking_time_band=CookingTimeBand.MEDIUM))
        long = compile_prompt(GenerationRequest(cooking_time_band=CookingTimeBand.LONG))
        assert "30-60 minutes" in medium
        assert "over 60 minutes" in long

    def test_vegetarian_meat_type(self) -> None:
        prompt = compile_prompt(GenerationRequest(meat_type="None (Vegetarian)"))
        assert "- Vegetarian recipe (no meat)" in prompt
        assert "Main protein" not in prompt

    def test_metric_rules_and_template(self) -> None:
        prompt = compile_prompt(GenerationRequest())
        assert "DO NOT use cups, teaspoons (tsp), tablespoons (tbsp), or ounces" in prompt
        assert "Celsius" in prompt
        assert '"quantity": "500"' in prompt
        assert prompt.endswith("Generate the recipe now:")

    def test_english_has_no_locale_preamble(self) -> None:
        assert "IMPORTANT: Generate this recipe IN" not in compile_prompt(GenerationRequest(locale="en"))

    def test_slovak_locale(self) -> None:
        prompt = compile_prompt(GenerationRequest(locale="sk"))
        assert "IMPORTANT: Generate this recipe IN SLOVAK LANGUAGE (Slovenčina)." in prompt
        assert "- Ingredient names" in prompt
        assert prompt.index("SLOVAK") < prompt.index("Requirements:")

    def test_other_locale_uses_code(self) -> None:
        prompt = compile_prompt(GenerationRequest(locale="de"))
        assert "IMPORTANT: Generate this recipe IN DE." in prompt
