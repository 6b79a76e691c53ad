import pytest

from product_creator.models.schemas import DEFAULT_CONFIDENCE, ContentGeneration, VisionAnalysis
from product_creator.utils.errors import ParseError
from product_creator.utils.parsing import extract_json, lenient_decode, parse_json_object


def test_extract_json_from_code_fence():
    text = 'Here you go:\n```json\n{"productType": "Mat"}\n```\nAnything else?'
    assert extract_json(text) == '{"productType": "Mat"}'


def test_extract_json_from_prose():
    assert extract_json('Sure! {"a": 1} Hope that helps.') == '{"a": 1}'


def test_parse_json_object_rejects_arrays():
    with pytest.raises(ParseError, match="Expected a JSON object"):
        parse_json_object("[1, 2, 3]")


def test_parse_json_object_rejects_empty():
    with pytest.raises(ParseError):
        parse_json_object("")


def test_lenient_decode_prose_uses_defaults():
    result = lenient_decode(
        "I think this is a wicker mat.",
        VisionAnalysis,
        lambda parsed: {"product_type": "Unknown Product", "confidence": DEFAULT_CONFIDENCE},
    )
    assert result.parse_error is not None
    assert result.value.product_type == "Unknown Product"
    assert result.value.confidence == DEFAULT_CONFIDENCE
    assert not result.fully_parsed


def test_lenient_decode_accepts_camel_case_and_snake_case():
    camel = lenient_decode('{"productType": "Mat", "detectedBrand": "Acme"}', VisionAnalysis)
    snake = lenient_decode('{"product_type": "Mat", "detected_brand": "Acme"}', VisionAnalysis)
    assert camel.value.detected_brand == snake.value.detected_brand == "Acme"
    assert camel.parse_error is None


def test_lenient_decode_replaces_invalid_field_with_fallback():
    result = lenient_decode(
        '{"productType": "Mat", "confidence": "high", "colors": "red"}',
        VisionAnalysis,
        lambda parsed: {"confidence": 0.5, "colors": []},
    )
    assert result.value.product_type == "Mat"
    assert result.value.confidence == 0.5
    assert result.value.colors == []
    assert set(result.defaulted_fields) == {"confidence", "colors"}


def test_lenient_decode_blank_strings_count_as_absent():
    result = lenient_decode(
        '{"name": "", "seoTitle": "   "}',
        ContentGeneration,
        lambda parsed: {"name": "Fallback name", "seo_title": "Fallback title"},
    )
    assert result.value.name == "Fallback name"
    assert result.value.seo_title == "Fallback title"


def test_lenient_decode_defaults_see_supplied_fields():
    seen = {}

    def defaults(parsed):
        seen.update(parsed)
        return {"seo_title": parsed.get("name", "none")}

    result = lenient_decode('{"name": "Acme mat"}', ContentGeneration, defaults)
    assert seen == {"name": "Acme mat"}
    assert result.value.seo_title == "Acme mat"


def test_lenient_decode_truncated_json():
    result = lenient_decode('{"productType": "Mat", "colors": ["red", ', VisionAnalysis)
    assert result.parse_error is not None
    assert result.value.product_type == "Unknown Product"
