"""
Marketplace content format (German and Polish listings).

The marketplace format is a compact listing: a benefit-style name
(``[Brand] [Product] [Color] | [Benefit]``), an HTML short description made of
check-mark bullet lines, a sectioned HTML long description and a URL slug.
The result is normalized back into ``ContentGeneration`` so later stages do
not care which format produced it.
"""

from __future__ import annotations

from html import escape
from typing import Any, Optional

from pydantic import field_validator

from product_creator.generators.content_generator import (
    ATTRIBUTE_LABELS,
    ContentGenerator,
    clean_text,
    build_default_attributes,
    build_default_keywords,
    build_image_alts,
)
from product_creator.generators.prompts import MARKETPLACE_LANGUAGES, format_marketplace_prompt
from product_creator.models.schemas import (
    ContentGeneration,
    Language,
    ModelOutput,
    RawProductData,
    VisionAnalysis,
    coerce_optional_text,
)
from product_creator.utils.parsing import DecodeResult, DefaultsProvider, lenient_decode
from product_creator.utils.text import slugify, strip_html

BENEFITS = {
    Language.DE: "Hochwertige Qualität",
    Language.PL: "Wysoka jakość",
}

SHORT_INTROS = {
    Language.DE: "{product_type} in erstklassiger Qualität.",
    Language.PL: "{product_type} najwyższej jakości.",
}

QUALITY_LINES = {
    Language.DE: ("Qualität", "Hochwertige Verarbeitung"),
    Language.PL: ("Jakość", "Wysoka jakość wykonania"),
}

LONG_INTROS = {
    Language.DE: "Entdecken Sie dieses hochwertige Produkt: {product_type}. Perfekt für den täglichen Gebrauch.",
    Language.PL: "Odkryj produkt najwyższej jakości: {product_type}. Idealny do codziennego użytku.",
}

SECTION_HEADINGS = {
    Language.DE: ("Eigenschaften", "Technische Daten"),
    Language.PL: ("Cechy produktu", "Dane techniczne"),
}

BULLET = "✅"


class MarketplaceContent(ModelOutput):
    """Raw marketplace-format record as returned by the model."""

    name: str = ""
    short_description: str = ""
    long_description: str = ""
    slug: Optional[str] = None

    @field_validator("name", "short_description", "long_description", mode="before")
    @classmethod
    def validate_text(cls, v: Any) -> str:
        if v is None:
            return ""
        if not isinstance(v, str):
            raise ValueError("expected text")
        return v

    @field_validator("slug", mode="before")
    @classmethod
    def validate_slug(cls, v: Any) -> Optional[str]:
        return coerce_optional_text(v)


# =============================================================================
# Fallback Builders
# =============================================================================

def build_marketplace_name(
    vision: VisionAnalysis,
    language: Language,
    brand: Optional[str] = None,
) -> str:
    parts = [part for part in (vision.detected_brand or brand, vision.product_type) if part]
    if vision.colors:
        parts.append(vision.colors[0])
    return f"{' '.join(parts)} | {BENEFITS[language]}"


def build_marketplace_short_description(vision: VisionAnalysis, language: Language) -> str:
    labels = ATTRIBUTE_LABELS[language]
    intro = SHORT_INTROS[language].format(product_type=escape(vision.product_type))
    lines = [f"<p><strong>{intro}</strong></p>"]

    if vision.materials:
        lines.append(
            f"<p>{BULLET} <strong>{labels['material']}:</strong> {escape(', '.join(vision.materials))}</p>"
        )
    if vision.colors:
        lines.append(
            f"<p>{BULLET} <strong>{labels['color']}:</strong> {escape(', '.join(vision.colors))}</p>"
        )
    if vision.features:
        lines.append(f"<p>{BULLET} <strong>{escape(vision.features[0])}</strong></p>")

    quality_label, quality_text = QUALITY_LINES[language]
    lines.append(f"<p>{BULLET} <strong>{quality_label}:</strong> {quality_text}</p>")
    return "".join(lines)


def build_marketplace_long_description(
    vision: VisionAnalysis,
    language: Language,
    brand: Optional[str] = None,
) -> str:
    labels = ATTRIBUTE_LABELS[language]
    features_heading, specs_heading = SECTION_HEADINGS[language]
    brand = vision.detected_brand or brand

    parts = [
        f"<h2>{escape(f'{brand} ' if brand else '')}{escape(vision.product_type)}</h2>",
        f"<p>{LONG_INTROS[language].format(product_type=escape(vision.product_type))}</p>",
        f"<h3>{features_heading}</h3>",
    ]
    if vision.features:
        items = "".join(f"<li><strong>{escape(feature)}</strong></li>" for feature in vision.features)
        parts.append(f"<ul>{items}</ul>")

    parts.append(f"<h3>{specs_heading}</h3>")
    rows = []
    if vision.materials:
        rows.append((labels["material"], ", ".join(vision.materials)))
    if vision.colors:
        rows.append((labels["color"], ", ".join(vision.colors)))
    if vision.style:
        rows.append((labels["style"], vision.style))
    if rows:
        cells = "".join(f"<tr><td>{label}:</td><td>{escape(value)}</td></tr>" for label, value in rows)
        parts.append(f"<table>{cells}</table>")

    return "".join(parts)


def marketplace_defaults(
    vision: VisionAnalysis,
    language: Language,
    brand: Optional[str] = None,
) -> DefaultsProvider:
    def provide(parsed: dict[str, Any]) -> dict[str, Any]:
        name = clean_text(parsed.get("name")) or build_marketplace_name(vision, language, brand)
        return {
            "name": name,
            "short_description": build_marketplace_short_description(vision, language),
            "long_description": build_marketplace_long_description(vision, language, brand),
            "slug": slugify(name),
        }

    return provide


def to_content_generation(
    content: MarketplaceContent,
    vision: VisionAnalysis,
    language: Language,
    image_count: int,
    brand: Optional[str] = None,
) -> ContentGeneration:
    """Normalize a marketplace record into the common content shape."""
    slug = slugify(content.slug or content.name)
    return ContentGeneration(
        name=content.name,
        short_description=content.short_description,
        long_description=content.long_description,
        html_description=content.long_description,
        seo_title=strip_html(content.name),
        seo_description=strip_html(content.short_description),
        keywords=build_default_keywords(vision, brand),
        attributes=build_default_attributes(vision, language),
        tags=[],
        image_alts=build_image_alts(image_count, strip_html(content.name), language),
        slug=slug or None,
    )


class MarketplaceContentGenerator(ContentGenerator):
    """Content stage variant producing the marketplace listing format."""

    stage_label = "Marketplace content generation"

    @staticmethod
    def supports(language: Language | str) -> bool:
        return Language(language) in MARKETPLACE_LANGUAGES

    def build_prompts(
        self,
        vision: VisionAnalysis,
        language: Language,
        user_hint: Optional[str],
        raw_data: Optional[RawProductData],
        image_count: int,
    ) -> tuple[str, str]:
        return format_marketplace_prompt(
            vision,
            language=language,
            user_hint=user_hint,
            raw_data=raw_data,
        )

    def decode(
        self,
        text: str,
        vision: VisionAnalysis,
        language: Language,
        raw_data: Optional[RawProductData],
        image_count: int,
    ) -> DecodeResult[ContentGeneration]:
        brand = raw_data.brand if raw_data else None
        decoded = lenient_decode(text, MarketplaceContent, marketplace_defaults(vision, language, brand))
        return DecodeResult(
            value=to_content_generation(decoded.value, vision, language, image_count, brand),
            parse_error=decoded.parse_error,
            defaulted_fields=decoded.defaulted_fields,
        )


__all__ = [
    "MarketplaceContent",
    "MarketplaceContentGenerator",
    "build_marketplace_name",
    "build_marketplace_short_description",
    "build_marketplace_long_description",
    "marketplace_defaults",
    "to_content_generation",
]
