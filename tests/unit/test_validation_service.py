"""
Unit tests for the validation stage.

Covers:
- Price derivation (gross/net/VAT) and the default price
- Field precedence across seller data, vision and content
- Truncation of bounded fields
- Schema failures reported as path: reason messages
- Non-blocking warnings
"""

import pytest

from conftest import make_images

from product_creator.models.schemas import (
    ContentGeneration,
    PipelineInput,
    RawProductData,
    StageStatus,
    VisionAnalysis,
)
from product_creator.services.validation_service import (
    FIELD_PRECEDENCE,
    MergeSources,
    ValidationService,
    resolve_field,
)
from product_creator.utils.errors import SchemaValidationError


@pytest.fixture
def service(settings):
    return ValidationService(settings)


def with_raw(**raw) -> PipelineInput:
    return PipelineInput(images=make_images(2), raw_data=RawProductData(**raw))


# =============================================================================
# Pricing
# =============================================================================

def test_net_price_derived_from_gross(service, pipeline_input, vision_analysis, content_generation):
    outcome = service.validate(pipeline_input, vision_analysis, content_generation)

    assert outcome.result.status == StageStatus.COMPLETED
    pricing = outcome.product.pricing
    assert pricing.gross == 123.0
    assert pricing.net == pytest.approx(100.0)
    assert pricing.vat_rate == 23.0
    assert pricing.currency == "PLN"


def test_gross_price_derived_from_net(service, vision_analysis, content_generation):
    outcome = service.validate(with_raw(price_net=100.0, vat_rate=8), vision_analysis, content_generation)
    assert outcome.product.pricing.gross == pytest.approx(108.0)
    assert outcome.product.pricing.net == 100.0


def test_default_price_applied_with_warning(service, vision_analysis, content_generation):
    outcome = service.validate(with_raw(), vision_analysis, content_generation)

    assert outcome.product.pricing.gross == 99.99
    assert outcome.product.pricing.net == pytest.approx(99.99 / 1.23)
    assert "No price supplied - default price 99.99 PLN applied" in outcome.result.data.warnings


def test_seller_currency_is_upper_cased(service, vision_analysis, content_generation):
    outcome = service.validate(with_raw(price_gross=10, currency="eur"), vision_analysis, content_generation)
    assert outcome.product.pricing.currency == "EUR"


# =============================================================================
# Field Precedence
# =============================================================================

def test_seller_brand_wins_over_vision(service, vision_analysis, content_generation):
    outcome = service.validate(with_raw(brand="Seller Brand"), vision_analysis, content_generation)
    assert outcome.product.brand == "Seller Brand"
    assert outcome.product.metadata["field_sources"]["brand"] == "raw.brand"


def test_vision_brand_used_without_seller_brand(service, pipeline_input, vision_analysis, content_generation):
    outcome = service.validate(pipeline_input, vision_analysis, content_generation)
    assert outcome.product.brand == "Acme"
    assert outcome.product.metadata["field_sources"]["brand"] == "vision.detected_brand"


def test_brand_falls_back_to_localized_attribute(service, pipeline_input):
    vision = VisionAnalysis(product_type="Mata")
    content = ContentGeneration(
        name="Mata",
        short_description="Mata",
        long_description="Mata",
        seo_title="Mata",
        seo_description="Mata",
        attributes={"Marka": "Wiklina"},
    )
    outcome = service.validate(pipeline_input, vision, content)
    assert outcome.product.brand == "Wiklina"
    assert outcome.product.metadata["field_sources"]["brand"] == "attributes.Marka"


def test_condition_defaults_to_new(service, pipeline_input, content_generation):
    outcome = service.validate(pipeline_input, VisionAnalysis(product_type="Mat"), content_generation)
    assert outcome.product.condition == "new"
    assert outcome.product.metadata["field_sources"]["condition"] == "default"


def test_seller_condition_wins(service, vision_analysis, content_generation):
    outcome = service.validate(with_raw(condition="used"), vision_analysis, content_generation)
    assert outcome.product.condition == "used"


def test_zero_quantity_is_out_of_stock(service, vision_analysis, content_generation):
    outcome = service.validate(with_raw(quantity=0), vision_analysis, content_generation)
    assert outcome.product.stock.quantity == 0
    assert outcome.product.stock.availability == "out_of_stock"


def test_quantity_defaults_to_one_in_stock(service, pipeline_input, vision_analysis, content_generation):
    stock = service.validate(pipeline_input, vision_analysis, content_generation).product.stock
    assert stock.quantity == 1
    assert stock.availability == "in_stock"


def test_categories_from_vision_unless_supplied(service, pipeline_input, vision_analysis, content_generation):
    product = service.validate(pipeline_input, vision_analysis, content_generation).product
    assert product.categories == ["Garden", "Fences"]

    product = service.validate(with_raw(categories=["Home"]), vision_analysis, content_generation).product
    assert product.categories == ["Home"]


def test_blank_seller_values_count_as_missing(settings, vision_analysis, content_generation):
    sources = MergeSources(
        raw_data=RawProductData(brand="   "),
        vision=vision_analysis,
        content=content_generation,
        settings=settings,
    )
    value, ref = resolve_field("brand", sources)
    assert value == "Acme"
    assert str(ref) == "vision.detected_brand"


def test_every_precedence_chain_is_non_empty():
    assert all(FIELD_PRECEDENCE.values())


# =============================================================================
# Product Assembly
# =============================================================================

def test_product_carries_images_identifiers_and_metadata(
    service, pipeline_input, vision_analysis, content_generation
):
    outcome = service.validate(
        pipeline_input, vision_analysis, content_generation, metadata={"run_id": "run-1"}
    )
    product = outcome.product

    assert [image.position for image in product.images] == [0, 1]
    assert product.images[0].url == "https://cdn.example.com/mat-1.jpg"
    assert product.images[0].alt == "Acme wicker mat - front"
    assert product.identifiers.ean == "5901234123457"
    assert product.identifiers.sku == "MAT-13"
    assert product.metadata["vision_confidence"] == 0.9
    assert product.metadata["run_id"] == "run-1"
    assert "generated_at" in product.metadata


def test_missing_alt_text_gets_positional_fallback(service, vision_analysis, content_generation):
    content = content_generation.model_copy(update={"image_alts": []})
    product = service.validate(with_raw(), vision_analysis, content).product
    assert [image.alt for image in product.images] == ["Product image 1", "Product image 2"]


def test_bounded_fields_are_truncated(service, pipeline_input, vision_analysis, content_generation):
    content = content_generation.model_copy(update={"name": "n" * 200})
    product = service.validate(pipeline_input, vision_analysis, content).product
    assert len(product.name) == 128
    assert product.name.endswith("...")


def test_slug_recorded_in_metadata(service, pipeline_input, vision_analysis, content_generation):
    content = content_generation.model_copy(update={"slug": "acme-mat"})
    product = service.validate(pipeline_input, vision_analysis, content).product
    assert product.metadata["slug"] == "acme-mat"


# =============================================================================
# Failures and Warnings
# =============================================================================

def test_no_images_fails_validation(service, vision_analysis, content_generation):
    outcome = service.validate(PipelineInput(images=[]), vision_analysis, content_generation)

    assert outcome.product is None
    assert outcome.result.status == StageStatus.FAILED
    report = outcome.result.data
    assert report.is_valid is False
    assert report.errors[0].startswith("images:")
    assert outcome.result.error.startswith("Validation failed: images:")


def test_empty_content_fails_with_field_paths(service, pipeline_input, vision_analysis):
    outcome = service.validate(pipeline_input, vision_analysis, ContentGeneration())
    paths = {error.split(":")[0] for error in outcome.result.data.errors}
    assert {"name", "description.short", "description.long", "seo.title", "seo.description"} <= paths


def test_build_product_raises_schema_error(service, vision_analysis, content_generation):
    with pytest.raises(SchemaValidationError) as exc_info:
        service.build_product(PipelineInput(images=[]), vision_analysis, content_generation)
    assert exc_info.value.errors


def test_complete_product_has_no_warnings(service, pipeline_input, vision_analysis, content_generation):
    outcome = service.validate(pipeline_input, vision_analysis, content_generation)
    assert outcome.result.data.warnings == []


def test_quality_warnings(service):
    pipeline_input = PipelineInput(images=make_images(1), raw_data=RawProductData(price_gross=10))
    content = ContentGeneration(
        name="Mat",
        short_description="Short",
        long_description="Long",
        seo_title="Mat",
        seo_description="Mat",
        keywords=["mat"],
    )
    outcome = service.validate(pipeline_input, VisionAnalysis(product_type="Mat"), content)

    assert outcome.result.status == StageStatus.COMPLETED
    assert outcome.result.data.warnings == [
        "Short description might be too short for good SEO",
        "Consider adding more SEO keywords",
        "Products with multiple images typically perform better",
        "Brand is not specified - this may affect searchability",
    ]
