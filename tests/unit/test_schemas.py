import pytest
from pydantic import ValidationError

from product_creator.models.schemas import (
    ContentGeneration,
    ImagePayload,
    PipelineImage,
    PipelineInput,
    PipelineOutput,
    ProviderConfig,
    StageResult,
    StageStatus,
    UnifiedProduct,
    ValidationReport,
    VisionAnalysis,
    VisionCompletionRequest,
)


# =============================================================================
# VisionAnalysis
# =============================================================================

@pytest.mark.parametrize("raw,expected", [(-1, 0.0), (2, 1.0), (0.73, 0.73), (1, 1.0)])
def test_vision_confidence_is_clamped(raw, expected):
    assert VisionAnalysis(product_type="Mat", confidence=raw).confidence == expected


def test_vision_confidence_rejects_text():
    with pytest.raises(ValidationError):
        VisionAnalysis(product_type="Mat", confidence="high")


def test_vision_confidence_defaults_when_absent():
    assert VisionAnalysis(product_type="Mat").confidence == 0.5


def test_vision_lists_never_none():
    analysis = VisionAnalysis.model_validate({
        "productType": "Mat",
        "colors": None,
        "materials": ["wicker", None, "", 3],
    })
    assert analysis.colors == []
    assert analysis.materials == ["wicker", "3"]


def test_vision_unknown_condition_becomes_none():
    assert VisionAnalysis(product_type="Mat", condition="like new").condition is None
    assert VisionAnalysis(product_type="Mat", condition="USED").condition == "used"


def test_vision_blank_product_type_rejected():
    with pytest.raises(ValidationError):
        VisionAnalysis(product_type="   ")


# =============================================================================
# ContentGeneration
# =============================================================================

def test_content_bounded_fields_are_truncated():
    content = ContentGeneration(
        name="n" * 300,
        short_description="s" * 600,
        seo_title="t" * 100,
        seo_description="d" * 200,
    )
    assert len(content.name) == 255
    assert len(content.short_description) == 500
    assert len(content.seo_title) == 70
    assert len(content.seo_description) == 160
    assert content.seo_title.endswith("...")


def test_content_attributes_drop_nested_and_blank_values():
    content = ContentGeneration(attributes={"Color": "red", "Size": {"w": 1}, "Empty": " ", "Count": 3})
    assert content.attributes == {"Color": "red", "Count": "3"}


def test_content_rejects_non_text_name():
    with pytest.raises(ValidationError):
        ContentGeneration(name=["not", "text"])


# =============================================================================
# Requests and Inputs
# =============================================================================

def test_image_payload_base64():
    payload = ImagePayload(data=b"abc", mime_type="image/png")
    assert payload.as_base64() == "YWJj"
    assert payload.as_data_url() == "data:image/png;base64,YWJj"


def test_vision_request_requires_images():
    with pytest.raises(ValidationError):
        VisionCompletionRequest(prompt="Describe", images=[])


def test_provider_config_is_frozen():
    config = ProviderConfig(
        provider_id="groq",
        display_name="Groq",
        api_key="secret",
        base_url="https://api.groq.com",
        default_model="llama",
        priority=1,
    )
    assert "secret" not in repr(config)
    with pytest.raises(ValidationError):
        config.priority = 2


@pytest.mark.parametrize("url", [
    "https://cdn.example.com/a.jpg",
    "file:///tmp/a.jpg",
    "data:image/png;base64,YWJj",
])
def test_pipeline_image_accepts_urls(url):
    assert PipelineImage(url=url).url == url


@pytest.mark.parametrize("url", ["not a url", "ftp://example.com/a.jpg", "https://"])
def test_pipeline_image_rejects_invalid_urls(url):
    with pytest.raises(ValidationError):
        PipelineImage(url=url)


def test_pipeline_input_accepts_camel_case():
    pipeline_input = PipelineInput.model_validate({
        "images": [{"url": "https://cdn.example.com/a.jpg"}],
        "userHint": "mat",
        "rawData": {"priceGross": 10, "vatRate": 8},
    })
    assert pipeline_input.user_hint == "mat"
    assert pipeline_input.raw_data.price_gross == 10
    assert pipeline_input.raw_data.vat_rate == 8


def test_pipeline_image_bytes_not_serialized():
    image = PipelineImage(url="https://cdn.example.com/a.jpg", data=b"bytes")
    assert "data" not in image.model_dump()


# =============================================================================
# Pipeline Results
# =============================================================================

def test_stage_result_is_write_once():
    result = StageResult[ValidationReport](status=StageStatus.COMPLETED)
    with pytest.raises(ValidationError):
        result.status = StageStatus.FAILED


def test_stage_result_succeeded_requires_data():
    assert not StageResult[VisionAnalysis](status=StageStatus.COMPLETED).succeeded
    assert StageResult[VisionAnalysis](
        status=StageStatus.COMPLETED, data=VisionAnalysis(product_type="Mat")
    ).succeeded


def test_pipeline_output_defaults():
    output = PipelineOutput()
    assert output.status == "failed"
    assert output.vision_analysis.status == "pending"
    assert output.warnings == []


def test_unified_product_requires_images():
    with pytest.raises(ValidationError) as exc_info:
        UnifiedProduct.model_validate({
            "name": "Mat",
            "description": {"short": "Short", "long": "Long"},
            "seo": {"title": "Mat", "description": "Mat"},
            "pricing": {"gross": 10, "net": 8.13},
            "images": [],
        })
    assert exc_info.value.errors()[0]["loc"] == ("images",)


def test_pipeline_output_reloads_from_json():
    output = PipelineOutput(run_id="run-9", errors=["Vision analysis failed: timeout"])
    restored = PipelineOutput.from_json(output.to_json())
    assert restored.run_id == "run-9"
    assert restored.status == "failed"
    assert restored.errors == ["Vision analysis failed: timeout"]


def test_enum_defaults_are_plain_values():
    output = PipelineOutput()
    assert type(output.status) is str
    assert type(output.vision_analysis.status) is str
    assert type(StageResult().status) is str
    assert f"{output.validation.status}" == "pending"
