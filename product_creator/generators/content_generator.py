"""
Content stage of the Product AI Creator pipeline.

This module provides the ContentGenerator class which turns a vision
analysis (plus optional seller hint and seed data) into marketing and SEO
content.

Every field of the result has a deterministic fallback derived from the
vision analysis, so a provider that answers with prose, truncated JSON or
wrongly typed fields still yields a complete ``ContentGeneration``:

    - name: brand + product type
    - descriptions: sentences built from materials, colors and features
    - HTML description: paragraphs of the long description
    - SEO title/description: name and plain-text short description
    - attributes: color, material, style, brand and condition under
      localized keys
    - image alt texts: positional ("main view", "side view", "detail", ...)

Example:
    >>> generator = ContentGenerator(FailoverOrchestrator(registry))
    >>> result = await generator.generate(vision, language="en", image_count=3)
    >>> result.data.image_alts[0]
    'Acme Wicker Mat - main view'
"""

from __future__ import annotations

import time
from typing import Any, Optional

from product_creator.config.settings import Settings, get_settings
from product_creator.generators.prompts import format_content_prompt
from product_creator.models.schemas import (
    CompletionRequest,
    ContentGeneration,
    Language,
    ProductCondition,
    RawProductData,
    StageResult,
    StageStatus,
    VisionAnalysis,
)
from product_creator.services.failover import FailoverOrchestrator
from product_creator.utils.errors import ProviderUnavailableError
from product_creator.utils.logger import get_logger
from product_creator.utils.parsing import DecodeResult, DefaultsProvider, lenient_decode
from product_creator.utils.text import format_as_html, strip_html

logger = get_logger(__name__)


# =============================================================================
# Localized Fallback Vocabulary
# =============================================================================

ATTRIBUTE_LABELS: dict[Language, dict[str, str]] = {
    Language.EN: {
        "color": "Color",
        "extra_colors": "Additional colors",
        "material": "Material",
        "style": "Style",
        "brand": "Brand",
        "condition": "Condition",
    },
    Language.PL: {
        "color": "Kolor",
        "extra_colors": "Kolory dodatkowe",
        "material": "Materiał",
        "style": "Styl",
        "brand": "Marka",
        "condition": "Stan",
    },
    Language.DE: {
        "color": "Farbe",
        "extra_colors": "Weitere Farben",
        "material": "Material",
        "style": "Stil",
        "brand": "Marke",
        "condition": "Zustand",
    },
}

CONDITION_LABELS: dict[Language, dict[str, str]] = {
    Language.EN: {"new": "New", "used": "Used", "refurbished": "Refurbished"},
    Language.PL: {"new": "Nowy", "used": "Używany", "refurbished": "Odnowiony"},
    Language.DE: {"new": "Neu", "used": "Gebraucht", "refurbished": "Generalüberholt"},
}

# First three positions are named; later ones are numbered from 1
IMAGE_VIEW_LABELS: dict[Language, tuple[str, str, str, str]] = {
    Language.EN: ("main view", "side view", "detail", "photo {number}"),
    Language.PL: ("widok główny", "widok z boku", "szczegół", "zdjęcie {number}"),
    Language.DE: ("Hauptansicht", "Seitenansicht", "Detail", "Foto {number}"),
}

FEATURES_LABELS = {
    Language.EN: "Features",
    Language.PL: "Cechy",
    Language.DE: "Eigenschaften",
}


# =============================================================================
# Fallback Builders
# =============================================================================

def clean_text(value: Any) -> Optional[str]:
    """Model-supplied value if it is non-blank text."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def build_fallback_name(vision: VisionAnalysis, brand: Optional[str] = None) -> str:
    brand = vision.detected_brand or brand
    return f"{brand or ''} {vision.product_type}".strip()


def build_default_attributes(
    vision: VisionAnalysis,
    language: Language | str = Language.PL,
) -> dict[str, str]:
    """Attribute map derived from the vision analysis, keyed in ``language``."""
    language = Language(language)
    labels = ATTRIBUTE_LABELS[language]
    attributes: dict[str, str] = {}

    if vision.colors:
        attributes[labels["color"]] = vision.colors[0]
        if len(vision.colors) > 1:
            attributes[labels["extra_colors"]] = ", ".join(vision.colors[1:])
    if vision.materials:
        attributes[labels["material"]] = ", ".join(vision.materials)
    if vision.style:
        attributes[labels["style"]] = vision.style
    if vision.detected_brand:
        attributes[labels["brand"]] = vision.detected_brand
    if vision.condition:
        condition = ProductCondition(vision.condition).value
        attributes[labels["condition"]] = CONDITION_LABELS[language][condition]

    return attributes


def build_image_alts(
    count: int,
    product_name: str,
    language: Language | str = Language.PL,
) -> list[str]:
    """One alt text per image position."""
    views = IMAGE_VIEW_LABELS[Language(language)]
    alts = []
    for index in range(count):
        view = views[index] if index < 3 else views[3].format(number=index + 1)
        alts.append(f"{product_name} - {view}")
    return alts


def build_default_keywords(vision: VisionAnalysis, brand: Optional[str] = None) -> list[str]:
    """Lowercase, de-duplicated search terms from the vision findings."""
    candidates = [vision.product_type, vision.detected_brand or brand, vision.detected_model]
    candidates.extend(vision.materials)
    candidates.extend(vision.colors)
    keywords: list[str] = []
    for candidate in candidates:
        if candidate and candidate.lower() not in keywords:
            keywords.append(candidate.lower())
    return keywords


def build_fallback_short_description(
    name: str,
    vision: VisionAnalysis,
    language: Language | str = Language.PL,
) -> str:
    language = Language(language)
    labels = ATTRIBUTE_LABELS[language]
    sentences = [f"{name}."]
    if vision.materials:
        sentences.append(f"{labels['material']}: {', '.join(vision.materials)}.")
    if vision.colors:
        sentences.append(f"{labels['color']}: {', '.join(vision.colors)}.")
    return " ".join(sentences)


def build_fallback_long_description(
    short_description: str,
    vision: VisionAnalysis,
    language: Language | str = Language.PL,
) -> str:
    paragraphs = [strip_html(short_description)]
    if vision.features:
        paragraphs.append(f"{FEATURES_LABELS[Language(language)]}: {', '.join(vision.features)}.")
    return "\n\n".join(paragraphs)


def content_defaults(
    vision: VisionAnalysis,
    language: Language | str = Language.PL,
    image_count: int = 1,
    brand: Optional[str] = None,
) -> DefaultsProvider:
    """
    Build the fallback provider for a content record.

    Fallbacks that depend on other fields (SEO title on name, HTML on long
    description, alt texts on name) follow whatever the model did supply,
    as long as it is text.
    """
    language = Language(language)

    def provide(parsed: dict[str, Any]) -> dict[str, Any]:
        name = clean_text(parsed.get("name")) or build_fallback_name(vision, brand)
        short = clean_text(parsed.get("short_description")) or build_fallback_short_description(
            name, vision, language
        )
        long = clean_text(parsed.get("long_description")) or build_fallback_long_description(
            short, vision, language
        )
        return {
            "name": name,
            "short_description": short,
            "long_description": long,
            "html_description": format_as_html(long),
            "seo_title": name,
            "seo_description": strip_html(short),
            "keywords": build_default_keywords(vision, brand),
            "attributes": build_default_attributes(vision, language),
            "tags": [],
            "image_alts": build_image_alts(image_count, name, language),
        }

    return provide


# =============================================================================
# Content Generator
# =============================================================================

class ContentGenerator:
    """
    Runs the content stage against text providers.

    Subclasses change the prompt (``build_prompts``) and the decoding
    (``decode``); provider failover, timing and stage bookkeeping are shared.
    """

    stage_label = "Content generation"

    def __init__(
        self,
        orchestrator: FailoverOrchestrator,
        settings: Optional[Settings] = None,
    ):
        self.orchestrator = orchestrator
        self.settings = settings or get_settings()

    def build_prompts(
        self,
        vision: VisionAnalysis,
        language: Language,
        user_hint: Optional[str],
        raw_data: Optional[RawProductData],
        image_count: int,
    ) -> tuple[str, str]:
        return format_content_prompt(
            vision,
            language=language,
            user_hint=user_hint,
            raw_data=raw_data,
            image_count=image_count,
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
        decoded = lenient_decode(
            text,
            ContentGeneration,
            content_defaults(vision, language, image_count, brand),
        )
        content = decoded.value
        if len(content.image_alts) < image_count:
            padding = build_image_alts(image_count, content.name, language)[len(content.image_alts):]
            decoded.value = content.model_copy(update={"image_alts": content.image_alts + padding})
        return decoded

    async def generate(
        self,
        vision: VisionAnalysis,
        language: Optional[Language | str] = None,
        user_hint: Optional[str] = None,
        raw_data: Optional[RawProductData] = None,
        image_count: int = 1,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> StageResult[ContentGeneration]:
        """
        Generate content for the product described by ``vision``.

        Args:
            vision: Findings from the vision stage
            language: Output language; defaults to ``DEFAULT_LANGUAGE``
            user_hint: Optional seller note
            raw_data: Optional seller-supplied seed data
            image_count: Number of product images needing alt texts
            model: Overrides each provider's default model
            system_prompt: Replaces the built-in system prompt

        Returns:
            A completed StageResult, or a failed one when every text provider
            failed (or none is configured).
        """
        start = time.perf_counter()
        language = Language(language or self.settings.default_language)
        image_count = max(image_count, 1)

        default_system, user_prompt = self.build_prompts(
            vision, language, user_hint, raw_data, image_count
        )
        request = CompletionRequest(
            prompt=user_prompt,
            system_prompt=system_prompt or default_system,
            model=model,
            temperature=self.settings.content_temperature,
            max_tokens=self.settings.content_max_tokens,
        )

        logger.info(f"Starting {self.stage_label.lower()}", language=language.value, product_type=vision.product_type)
        try:
            outcome = await self.orchestrator.complete(request)
        except ProviderUnavailableError as e:
            message = f"{self.stage_label} failed: {e}"
            logger.error(f"{self.stage_label} failed", error=str(e))
            return StageResult[ContentGeneration](
                status=StageStatus.FAILED,
                error=message,
                duration_ms=self._elapsed_ms(start),
            )

        decoded = self.decode(outcome.result.content, vision, language, raw_data, image_count)
        content = decoded.value.model_copy(update={"raw_response": outcome.result.content})

        if decoded.parse_error:
            logger.warning(
                "Content response was not valid JSON, using defaults",
                provider=outcome.provider_id,
                error=decoded.parse_error,
            )

        duration_ms = self._elapsed_ms(start)
        logger.info(
            f"{self.stage_label} complete",
            provider=outcome.provider_id,
            name=content.name,
            defaulted_fields=decoded.defaulted_fields,
            duration_ms=duration_ms,
        )
        return StageResult[ContentGeneration](
            status=StageStatus.COMPLETED,
            data=content,
            duration_ms=duration_ms,
            provider_id=outcome.provider_id,
        )

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)


__all__ = [
    "ATTRIBUTE_LABELS",
    "CONDITION_LABELS",
    "IMAGE_VIEW_LABELS",
    "build_fallback_name",
    "build_default_attributes",
    "build_default_keywords",
    "build_image_alts",
    "content_defaults",
    "ContentGenerator",
]
