from __future__ import annotations

from src.app.domain.models import CookingTimeBand, GenerationRequest

VEGETARIAN_MEAT_TYPE = "None (Vegetarian)"
DEFAULT_LOCALE = "en"

LOCALE_NAMES = {
    "sk": "SLOVAK LANGUAGE (Slovenčina)",
}

TIME_BAND_PHRASES = {
    CookingTimeBand.QUICK: "under 30 minutes",
    CookingTimeBand.MEDIUM: "30-60 minutes",
    CookingTimeBand.LONG: "over 60 minutes",
}

PREAMBLE = (
    "You are a professional chef and recipe creator. "
    "Generate a detailed, high-quality recipe in JSON format.\n\n"
)

CONTENT_RULES = """
Please provide a recipe with:
1. A creative and appetizing title
2. A brief description (2-3 sentences)
3. Precise ingredient list with measurements in METRIC/EUROPEAN units:
   - Use grams (g) or kilograms (kg) for solid ingredients
   - Use milliliters (ml) or liters (l) for liquids
   - Use pieces, cloves, pinches for items like garlic, spices
   - DO NOT use cups, teaspoons (tsp), tablespoons (tbsp), or ounces
   - Use Celsius (°C) for all temperatures
4. Detailed step-by-step cooking instructions
5. Each step should include timing and temperature where relevant
6. Professional cooking tips and techniques
7. Serving size (number of people)

IMPORTANT: Return ONLY valid JSON in this EXACT format:
- serving_size, cooking_time, prep_time, step_number must be NUMBERS (not strings)
- ingredient quantity must be a STRING (e.g., "500" not 500)
- timing and temperature in steps must be STRINGS

"""

EXAMPLE_PAYLOAD = """{
  "title": "Recipe Name",
  "description": "Brief description",
  "serving_size": 4,
  "cooking_time": 45,
  "prep_time": 15,
  "difficulty": "medium",
  "ingredients": [
    {"name": "chicken breast", "quantity": "500", "unit": "g"},
    {"name": "pasta", "quantity": "400", "unit": "g"}
  ],
  "steps": [
    {"step_number": 1, "instruction": "detailed instruction", "timing": "5 minutes", "temperature": "180°C"},
    {"step_number": 2, "instruction": "next instruction", "timing": "10 minutes", "temperature": ""}
  ],
  "tips": ["tip 1", "tip 2"],
  "cuisine_type": "Italian",
  "meat_type": "Chicken"
}"""

CLOSING = "\n\nGenerate the recipe now:"


def _locale_lines(locale: str) -> list[str]:
    code = (locale or DEFAULT_LOCALE).strip().lower()
    if code == DEFAULT_LOCALE:
        return []

    language = LOCALE_NAMES.get(code, code.upper())
    return [
        f"IMPORTANT: Generate this recipe IN {language}.",
        f"All text must be in {language}:",
        "- Recipe title",
        "- Description",
        "- Ingredient names",
        "- Instructions",
        "- Tips",
        "",
    ]


def _protein_line(meat_type: str) -> str | None:
    meat = meat_type.strip()
    if meat == VEGETARIAN_MEAT_TYPE:
        return "- Vegetarian recipe (no meat)"
    if meat:
        return f"- Main protein: {meat}"
    return None


def _requirement_lines(req: GenerationRequest) -> list[str]:
    lines: list[str] = []

    protein = _protein_line(req.meat_type)
    if protein:
        lines.append(protein)

    if req.cuisine_type.strip():
        lines.append(f"- Cuisine style: {req.cuisine_type.strip()}")

    if req.side_ingredients:
        lines.append(f"- Include these ingredients: {', '.join(req.side_ingredients)}")

    if req.dietary_preferences:
        lines.append(f"- Dietary requirements: {', '.join(req.dietary_preferences)}")

    if req.cooking_time_band is not None:
        lines.append(f"- Total cooking time: {TIME_BAND_PHRASES[req.cooking_time_band]}")

    if req.difficulty is not None:
        lines.append(f"- Difficulty level: {req.difficulty.value}")

    return lines


def compile_prompt(req: GenerationRequest) -> str:
    """
    Build the text-provider instruction block for a request.

    Deterministic for identical input. A field left empty in the request
    produces no requirement line; nothing is defaulted in its place.
    """
    parts = [PREAMBLE]

    locale_lines = _locale_lines(req.locale)
    if locale_lines:
        parts.append("\n".join(locale_lines) + "\n")

    parts.append("Requirements:\n")
    for line in _requirement_lines(req):
        parts.append(line + "\n")

    parts.append(CONTENT_RULES)
    parts.append(EXAMPLE_PAYLOAD)
    parts.append(CLOSING)

    return "".join(parts)
