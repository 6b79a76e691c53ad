import json

import pytest

from conftest import FakeAdapter

from product_creator.generators.marketplace_generator import (
    MarketplaceContentGenerator,
    build_marketplace_long_description,
    build_marketplace_name,
)
from product_creator.generators.prompts import format_marketplace_prompt
from product_creator.models.schemas import Language, StageStatus, VisionAnalysis
from product_creator.services.failover import FailoverOrchestrator


def make_generator(settings, make_registry, *responses) -> MarketplaceContentGenerator:
    adapter = FakeAdapter("groq", 1, responses=responses)
    return MarketplaceContentGenerator(FailoverOrchestrator(make_registry(adapter)), settings=settings)


@pytest.mark.parametrize("language,expected", [("de", True), ("pl", True), ("en", False)])
def test_supported_languages(language, expected):
    assert MarketplaceContentGenerator.supports(language) is expected


@pytest.mark.asyncio
async def test_model_output_is_normalized(settings, make_registry, vision_analysis):
    body = json.dumps({
        "name": "Acme Weidenmatte Natur | Sichtschutz für Balkon",
        "shortDescription": "<p><strong>Natürlicher Sichtschutz.</strong></p><p>✅ <strong>UV:</strong> beständig</p>",
        "longDescription": "<h2>Acme Weidenmatte</h2><p>Aus Weide.</p>",
        "slug": "Acme Weidenmatte Natur",
    })
    generator = make_generator(settings, make_registry, body)

    result = await generator.generate(vision_analysis, language="de", image_count=2)

    assert result.status == StageStatus.COMPLETED
    content = result.data
    assert content.name == "Acme Weidenmatte Natur | Sichtschutz für Balkon"
    assert content.slug == "acme-weidenmatte-natur"
    assert content.html_description == content.long_description
    assert content.seo_title == "Acme Weidenmatte Natur | Sichtschutz für Balkon"
    assert content.seo_description == "Natürlicher Sichtschutz. ✅ UV: beständig"
    assert content.attributes["Farbe"] == "natural"
    assert content.image_alts == [
        "Acme Weidenmatte Natur | Sichtschutz für Balkon - Hauptansicht",
        "Acme Weidenmatte Natur | Sichtschutz für Balkon - Seitenansicht",
    ]


@pytest.mark.asyncio
async def test_unparsable_output_uses_marketplace_defaults(settings, make_registry, vision_analysis):
    result = await make_generator(settings, make_registry, "no json").generate(
        vision_analysis, language="de", image_count=1
    )

    content = result.data
    assert content.name == "Acme Wicker privacy mat natural | Hochwertige Qualität"
    assert content.slug == "acme-wicker-privacy-mat-natural-hochwertige-qualitaet"
    assert "✅ <strong>Material:</strong> wicker" in content.short_description
    assert "<h3>Eigenschaften</h3>" in content.long_description
    assert "<table>" in content.long_description
    assert content.keywords[0] == "wicker privacy mat"


@pytest.mark.asyncio
async def test_slug_derived_from_name_when_missing(settings, make_registry, vision_analysis):
    body = json.dumps({"name": "Mata wiklinowa żółta"})
    result = await make_generator(settings, make_registry, body).generate(vision_analysis, language="pl")
    assert result.data.slug == "mata-wiklinowa-zolta"


@pytest.mark.asyncio
async def test_failure_message_names_marketplace_stage(settings, make_registry, vision_analysis):
    generator = MarketplaceContentGenerator(FailoverOrchestrator(make_registry()), settings=settings)
    result = await generator.generate(vision_analysis, language="pl")
    assert result.status == StageStatus.FAILED
    assert result.error.startswith("Marketplace content generation failed:")


def test_fallback_html_is_escaped():
    vision = VisionAnalysis(product_type="Mat <b>", features=["a & b"])
    html = build_marketplace_long_description(vision, Language.PL)
    assert "Mat &lt;b&gt;" in html
    assert "<li><strong>a &amp; b</strong></li>" in html


def test_name_uses_seller_brand():
    vision = VisionAnalysis(product_type="Lampa")
    assert build_marketplace_name(vision, Language.PL, brand="Lumo") == "Lumo Lampa | Wysoka jakość"


def test_marketplace_prompt_rejects_english(vision_analysis):
    with pytest.raises(ValueError):
        format_marketplace_prompt(vision_analysis, "en")


def test_marketplace_prompt_is_localized(vision_analysis):
    system_prompt, user_prompt = format_marketplace_prompt(vision_analysis, "pl", user_hint="mata 1x3")
    assert system_prompt.endswith("Język: Polski")
    assert "Wicker privacy mat" in user_prompt
    assert '"mata 1x3"' in user_prompt
