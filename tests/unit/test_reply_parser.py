from __future__ import annotations

import json

import pytest

from src.app.domain.errors import InvalidPayloadError, MalformedPayloadError
from src.app.domain.models import GenerationRequest
from src.app.services.reply_parser import extract_payload, format_quantity, parse_reply

REQUEST = GenerationRequest(meat_type="Chicken", dietary_preferences=("Gluten-free",))


def _payload(**overrides) -> dict:
    payload = {
        "title": "Lemon Chicken",
        "description": "Bright and quick.",
        "serving_size": 4,
        "cooking_time": 20,
        "prep_time": 10,
        "difficulty": "easy",
        "ingredients": [{"name": "chicken breast", "quantity": "500", "unit": "g"}],
        "steps": [
            {"step_number": 1, "instruction": "Season the chicken", "timing": "2 minutes", "temperature": ""},
            {"step_number": 2, "instruction": "Roast", "timing": "18 minutes", "temperature": "200°C"},
        ],
        "tips": ["Rest the meat"],
        "cuisine_type": "Italian",
        "meat_type": "Chicken",
    }
    payload.update(overrides)
    return payload


class TestFormatQuantity:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (500, "500"),
            (500.0, "500"),
            (1.5, "1.5"),
            (2.50, "2.5"),
            (" 500 ", "500"),
            ("1/2", "1/2"),
            (None, ""),
        ],
    )
    def test_formats(self, value, expected) -> None:
        assert format_quantity(value) == expected

    @pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_numbers_rejected(self, value) -> None:
        with pytest.raises(MalformedPayloadError):
            format_quantity(value)


class TestExtractPayload:
    def test_strips_surrounding_prose(self) -> None:
        assert extract_payload('Sure! {"a": 1} Enjoy.') == '{"a": 1}'

    def test_keeps_nested_braces(self) -> None:
        assert extract_payload('x {"a": {"b": 1}} y') == '{"a": {"b": 1}}'

    @pytest.mark.parametrize("raw", ["no json here", "only { opening", "only } closing", "} backwards {", ""])
    def test_missing_braces(self, raw) -> None:
        with pytest.raises(InvalidPayloadError):
            extract_payload(raw)


class TestParseReply:
    def test_numeric_and_string_quantities_normalize_identically(self) -> None:
        as_number = _payload(ingredients=[{"name": "rice", "quantity": 500, "unit": "g"}])
        as_string = _payload(ingredients=[{"name": "rice", "quantity": "500", "unit": "g"}])

        first = parse_reply(json.dumps(as_number), REQUEST)
        second = parse_reply(json.dumps(as_string), REQUEST)

        assert first.ingredients[0].quantity == "500"
        assert first.ingredients == second.ingredients

    def test_payload_wrapped_in_prose_and_fences(self) -> None:
        raw = "Here is your recipe:\n```json\n" + json.dumps(_payload()) + "\n```\nBon appétit!"
        draft = parse_reply(raw, REQUEST)
        assert draft.title == "Lemon Chicken"
        assert len(draft.steps) == 2

    def test_times_and_tags(self) -> None:
        draft = parse_reply(json.dumps(_payload()), REQUEST)
        assert draft.prep_time_minutes == 10
        assert draft.cook_time_minutes == 20
        assert draft.total_time_minutes == 30
        assert draft.dietary_tags == ["Gluten-free"]

    def test_dietary_tags_come_from_request_not_reply(self) -> None:
        raw = json.dumps(_payload(dietary_tags=["Vegan"]))
        draft = parse_reply(raw, GenerationRequest())
        assert draft.dietary_tags == []

    def test_steps_kept_in_given_order(self) -> None:
        steps = [
            {"step_number": 2, "instruction": "Second"},
            {"step_number": 1, "instruction": "First"},
        ]
        draft = parse_reply(json.dumps(_payload(steps=steps)), REQUEST)
        assert [s.step_number for s in draft.steps] == [2, 1]

    def test_empty_step_fields_become_none(self) -> None:
        draft = parse_reply(json.dumps(_payload()), REQUEST)
        assert draft.steps[0].temperature is None
        assert draft.steps[1].temperature == "200°C"

    def test_numeric_step_timing_is_stringified(self) -> None:
        steps = [{"step_number": 1, "instruction": "Bake", "timing": 15, "temperature": 180}]
        draft = parse_reply(json.dumps(_payload(steps=steps)), REQUEST)
        assert draft.steps[0].timing == "15"
        assert draft.steps[0].temperature == "180"

    def test_tips_default_to_empty(self) -> None:
        payload = _payload()
        del payload["tips"]
        assert parse_reply(json.dumps(payload), REQUEST).tips == []

    def test_null_tips(self) -> None:
        assert parse_reply(json.dumps(_payload(tips=None)), REQUEST).tips == []

    def test_no_braces(self) -> None:
        with pytest.raises(InvalidPayloadError):
            parse_reply("I cannot help with that.", REQUEST)

    def test_missing_title(self) -> None:
        payload = _payload()
        del payload["title"]
        with pytest.raises(MalformedPayloadError) as exc_info:
            parse_reply(json.dumps(payload), REQUEST)
        assert "title" in exc_info.value.reason

    def test_broken_json(self) -> None:
        with pytest.raises(MalformedPayloadError):
            parse_reply('{"title": "x", "ingredients": [}', REQUEST)

    def test_empty_ingredients(self) -> None:
        with pytest.raises(MalformedPayloadError):
            parse_reply(json.dumps(_payload(ingredients=[])), REQUEST)

    def test_empty_steps(self) -> None:
        with pytest.raises(MalformedPayloadError):
            parse_reply(json.dumps(_payload(steps=[])), REQUEST)

    def test_step_without_number(self) -> None:
        with pytest.raises(MalformedPayloadError):
            parse_reply(json.dumps(_payload(steps=[{"instruction": "Stir"}])), REQUEST)

    @pytest.mark.parametrize("literal", ["Infinity", "-Infinity", "1e400", "NaN"])
    def test_non_finite_quantity_is_malformed(self, literal) -> None:
        raw = (
            '{"title": "T", "ingredients": [{"name": "flour", "quantity": ' + literal + ', "unit": "g"}],'
            ' "steps": [{"step_number": 1, "instruction": "Mix"}]}'
        )
        with pytest.raises(MalformedPayloadError):
            parse_reply(raw, REQUEST)
