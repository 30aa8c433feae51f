# src/app/services/reply_parser.py
"""
Turns the text provider's free-form reply into a typed RecipeDraft.

The reply is expected to contain one JSON object, possibly wrapped in prose or
code fences. Quantities may arrive as strings or numbers; they are normalized
to strings here so nothing past the parser sees the union.
"""
from __future__ import annotations

import logging
import math
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.app.domain.errors import InvalidPayloadError, MalformedPayloadError
from src.app.domain.models import CookingStep, GenerationRequest, Ingredient, RecipeDraft

logger = logging.getLogger(__name__)

Scalar = Union[str, int, float, None]


class _IngredientPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    name: str
    quantity: Scalar = None
    unit: Scalar = None


class _StepPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    step_number: int
    instruction: str
    timing: Scalar = None
    temperature: Scalar = None


class _RecipePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    description: Optional[str] = ""
    serving_size: int = 0
    cooking_time: int = 0
    prep_time: int = 0
    difficulty: Optional[str] = ""
    ingredients: List[_IngredientPayload]
    steps: List[_StepPayload]
    tips: Optional[List[str]] = Field(default_factory=list)
    cuisine_type: Optional[str] = ""
    meat_type: Optional[str] = ""


def format_quantity(value: Scalar) -> str:
    """
    Render a quantity as text.

    Strings pass through trimmed; numbers lose trailing zeros and any
    needless decimal point (500 -> "500", 2.50 -> "2.5").

    Raises:
        MalformedPayloadError: For infinite or NaN numbers
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, int):
        return str(value)

    if not math.isfinite(value):
        raise MalformedPayloadError(f"quantity: non-finite number {value!r}")
    number = Decimal(repr(value))
    if number == number.to_integral_value():
        return str(int(number))
    return format(number.normalize(), "f")


def _optional_text(value: Scalar) -> Optional[str]:
    text = format_quantity(value)
    return text or None


def extract_payload(raw_text: str) -> str:
    """
    Isolate the JSON object between the first '{' and the last '}'.

    Raises:
        InvalidPayloadError: If no brace pair is present
    """
    text = raw_text or ""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise InvalidPayloadError()
    return text[start:end + 1]


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


def parse_reply(raw_text: str, request: GenerationRequest) -> RecipeDraft:
    """
    Parse a provider reply into a RecipeDraft.

    Args:
        raw_text: The full text reply
        request: The request the reply answers; dietary tags come from here

    Returns:
        The typed draft

    Raises:
        InvalidPayloadError: No JSON object could be isolated
        MalformedPayloadError: The object failed to decode or lacks required content
    """
    payload_text = extract_payload(raw_text)

    try:
        payload = _RecipePayload.model_validate_json(payload_text)
    except ValidationError as error:
        reason = _describe(error)
        logger.warning("Recipe payload rejected: %s", reason)
        raise MalformedPayloadError(reason) from error

    if not payload.ingredients:
        raise MalformedPayloadError("ingredients: at least one ingredient is required")
    if not payload.steps:
        raise MalformedPayloadError("steps: at least one step is required")

    ingredients = [
        Ingredient(
            name=item.name.strip(),
            quantity=format_quantity(item.quantity),
            unit=format_quantity(item.unit),
        )
        for item in payload.ingredients
    ]

    steps = [
        CookingStep(
            step_number=step.step_number,
            instruction=step.instruction.strip(),
            timing=_optional_text(step.timing),
            temperature=_optional_text(step.temperature),
        )
        for step in payload.steps
    ]

    draft = RecipeDraft(
        title=payload.title.strip(),
        description=(payload.description or "").strip(),
        serving_size=payload.serving_size,
        prep_time_minutes=payload.prep_time,
        cook_time_minutes=payload.cooking_time,
        difficulty=(payload.difficulty or "").strip(),
        ingredients=ingredients,
        steps=steps,
        tips=[tip.strip() for tip in payload.tips or [] if tip and tip.strip()],
        cuisine_type=(payload.cuisine_type or "").strip(),
        meat_type=(payload.meat_type or "").strip(),
        dietary_tags=list(request.dietary_preferences),
    )

    logger.debug(
        "Parsed recipe draft: title=%s, ingredients=%d, steps=%d",
        draft.title,
        len(draft.ingredients),
        len(draft.steps),
    )
    return draft
