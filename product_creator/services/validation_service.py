"""
Validation stage: merge, price and validate the canonical product.

Provides the ValidationService, a pure (network-free) step that combines the
seller's raw data, the vision analysis and the generated content into a
``UnifiedProduct``.

Fields that more than one source can supply are resolved through
``FIELD_PRECEDENCE``, a declarative table of ordered sources; the first
source holding a non-empty value wins.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from product_creator.config.settings import Settings, get_settings
from product_creator.models.schemas import (
    Availability,
    ContentGeneration,
    SEO_DESCRIPTION_MAX_LENGTH,
    SEO_TITLE_MAX_LENGTH,
    SHORT_DESCRIPTION_MAX_LENGTH,
    PipelineInput,
    RawProductData,
    StageResult,
    StageStatus,
    UnifiedProduct,
    ValidationReport,
    VisionAnalysis,
)
from product_creator.utils.errors import SchemaValidationError
from product_creator.utils.logger import get_logger
from product_creator.utils.text import calculate_gross_price, calculate_net_price, truncate

logger = get_logger(__name__)

PRODUCT_NAME_MAX_LENGTH = 128
SHORT_DESCRIPTION_WARNING_LENGTH = 50
MIN_KEYWORDS = 3
MIN_IMAGES = 2

# Localized attribute keys the content stage may have put the brand under
BRAND_ATTRIBUTE_KEYS = ("Brand", "Marka", "Marke")


# =============================================================================
# Field Precedence
# =============================================================================

@dataclass(frozen=True)
class MergeSources:
    """Everything a product field can be taken from."""
    raw_data: RawProductData
    vision: VisionAnalysis
    content: ContentGeneration
    settings: Settings


@dataclass(frozen=True)
class SourceRef:
    """
    One candidate source for a product field.

    ``source`` is ``raw``, ``vision``, ``content``, ``settings`` (an attribute
    of that object named ``key``), ``attributes`` (a key of the generated
    attribute map) or ``literal`` (``key`` itself is the value).
    """
    source: str
    key: Any

    def read(self, sources: MergeSources) -> Any:
        if self.source == "literal":
            return self.key
        if self.source == "attributes":
            return sources.content.attributes.get(self.key)
        container = {
            "raw": sources.raw_data,
            "vision": sources.vision,
            "content": sources.content,
            "settings": sources.settings,
        }[self.source]
        return getattr(container, self.key, None)

    def __str__(self) -> str:
        if self.source == "literal":
            return "default"
        return f"{self.source}.{self.key}"


def from_raw(key: str) -> SourceRef:
    return SourceRef("raw", key)


def from_vision(key: str) -> SourceRef:
    return SourceRef("vision", key)


def from_attribute(key: str) -> SourceRef:
    return SourceRef("attributes", key)


def from_setting(key: str) -> SourceRef:
    return SourceRef("settings", key)


def literal(value: Any) -> SourceRef:
    return SourceRef("literal", value)


FIELD_PRECEDENCE: dict[str, tuple[SourceRef, ...]] = {
    "brand": (
        from_raw("brand"),
        from_vision("detected_brand"),
        *(from_attribute(key) for key in BRAND_ATTRIBUTE_KEYS),
    ),
    "manufacturer": (from_raw("manufacturer"),),
    "condition": (from_raw("condition"), from_vision("condition"), literal("new")),
    "categories": (from_raw("categories"), from_vision("suggested_categories")),
    "currency": (from_raw("currency"), from_setting("default_currency")),
    "vat_rate": (from_raw("vat_rate"), from_setting("default_vat_rate")),
    "quantity": (from_raw("quantity"), literal(1)),
    "weight": (from_raw("weight"),),
}


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return not value
    return False


def resolve_field(
    field_name: str,
    sources: MergeSources,
    precedence: dict[str, tuple[SourceRef, ...]] = FIELD_PRECEDENCE,
) -> tuple[Any, Optional[SourceRef]]:
    """Value of ``field_name`` from its first non-empty source, and that source."""
    for ref in precedence[field_name]:
        value = ref.read(sources)
        if not _is_empty(value):
            return value, ref
    return None, None


# =============================================================================
# Validation Service
# =============================================================================

@dataclass
class ValidationOutcome:
    """Stage result plus the product, present only when validation passed."""
    result: StageResult[ValidationReport]
    product: Optional[UnifiedProduct] = None


@dataclass
class _Pricing:
    gross: float
    net: float
    vat_rate: float
    currency: str
    defaulted: bool


class ValidationService:
    """Builds and validates the canonical product record."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def validate(
        self,
        pipeline_input: PipelineInput,
        vision: VisionAnalysis,
        content: ContentGeneration,
        metadata: Optional[dict[str, Any]] = None,
    ) -> ValidationOutcome:
        """
        Merge all sources into a UnifiedProduct and validate it.

        Args:
            pipeline_input: Images and seller raw data
            vision: Vision stage output
            content: Content stage output
            metadata: Extra entries for ``UnifiedProduct.metadata``

        Returns:
            ValidationOutcome; on schema violations the result is failed and
            lists one ``path: reason`` message per violation.
        """
        start = time.perf_counter()
        try:
            product, pricing = self.build_product(pipeline_input, vision, content, metadata)
        except SchemaValidationError as e:
            logger.warning("Product failed schema validation", errors=e.errors)
            return ValidationOutcome(
                result=StageResult[ValidationReport](
                    status=StageStatus.FAILED,
                    data=ValidationReport(is_valid=False, errors=e.errors),
                    error=f"Validation failed: {'; '.join(e.errors)}",
                    duration_ms=self._elapsed_ms(start),
                ),
            )

        warnings = self.collect_warnings(product, pricing)
        duration_ms = self._elapsed_ms(start)
        logger.info("Product validated", name=product.name, warnings=len(warnings), duration_ms=duration_ms)
        return ValidationOutcome(
            result=StageResult[ValidationReport](
                status=StageStatus.COMPLETED,
                data=ValidationReport(is_valid=True, warnings=warnings),
                duration_ms=duration_ms,
            ),
            product=product,
        )

    def build_product(
        self,
        pipeline_input: PipelineInput,
        vision: VisionAnalysis,
        content: ContentGeneration,
        metadata: Optional[dict[str, Any]] = None,
    ) -> tuple[UnifiedProduct, _Pricing]:
        """
        Raises:
            SchemaValidationError: The merged record violates the schema.
        """
        sources = MergeSources(
            raw_data=pipeline_input.raw_data,
            vision=vision,
            content=content,
            settings=self.settings,
        )
        resolved = {name: resolve_field(name, sources) for name in FIELD_PRECEDENCE}
        values = {name: value for name, (value, _) in resolved.items()}
        pricing = self._resolve_pricing(pipeline_input.raw_data, values["vat_rate"], values["currency"])

        quantity = values["quantity"]
        data = {
            "name": truncate(content.name, PRODUCT_NAME_MAX_LENGTH),
            "description": {
                "short": truncate(content.short_description, SHORT_DESCRIPTION_MAX_LENGTH),
                "long": content.long_description,
                "html": content.html_description,
            },
            "seo": {
                "title": truncate(content.seo_title, SEO_TITLE_MAX_LENGTH),
                "description": truncate(content.seo_description, SEO_DESCRIPTION_MAX_LENGTH),
                "keywords": content.keywords,
            },
            "pricing": {
                "gross": pricing.gross,
                "net": pricing.net,
                "currency": pricing.currency,
                "vat_rate": pricing.vat_rate,
            },
            "attributes": content.attributes,
            "categories": values["categories"] or [],
            "images": [
                {
                    "url": image.url,
                    "alt": self._image_alt(content, index),
                    "position": index,
                }
                for index, image in enumerate(pipeline_input.images)
            ],
            "identifiers": {
                "ean": pipeline_input.raw_data.ean,
                "sku": pipeline_input.raw_data.sku,
                "mpn": pipeline_input.raw_data.mpn,
            },
            "stock": {
                "quantity": quantity,
                "availability": Availability.IN_STOCK if quantity else Availability.OUT_OF_STOCK,
            },
            "brand": values["brand"],
            "manufacturer": values["manufacturer"],
            "condition": values["condition"],
            "weight": values["weight"],
            "tags": content.tags,
            "metadata": {
                "vision_confidence": vision.confidence,
                "generated_at": datetime.now(timezone.utc).isoformat(),
                "field_sources": {name: str(ref) for name, (_, ref) in resolved.items() if ref is not None},
                **({"slug": content.slug} if content.slug else {}),
                **(metadata or {}),
            },
        }

        try:
            product = UnifiedProduct.model_validate(data)
        except PydanticValidationError as e:
            errors = [
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]
            raise SchemaValidationError("Product does not match the schema", errors) from e
        return product, pricing

    def collect_warnings(self, product: UnifiedProduct, pricing: _Pricing) -> list[str]:
        """Non-blocking quality hints for a valid product."""
        warnings = []
        if len(product.description.short) < SHORT_DESCRIPTION_WARNING_LENGTH:
            warnings.append("Short description might be too short for good SEO")
        if len(product.seo.keywords) < MIN_KEYWORDS:
            warnings.append("Consider adding more SEO keywords")
        if len(product.images) < MIN_IMAGES:
            warnings.append("Products with multiple images typically perform better")
        if not product.brand:
            warnings.append("Brand is not specified - this may affect searchability")
        if pricing.defaulted:
            warnings.append(
                f"No price supplied - default price {pricing.gross:.2f} {pricing.currency} applied"
            )
        return warnings

    def _resolve_pricing(self, raw_data: RawProductData, vat_rate: float, currency: str) -> _Pricing:
        gross, net, defaulted = raw_data.price_gross, raw_data.price_net, False
        if gross is None and net is not None:
            gross = calculate_gross_price(net, vat_rate)
        elif gross is None:
            gross, defaulted = self.settings.default_price_gross, True
        if net is None:
            net = calculate_net_price(gross, vat_rate)
        return _Pricing(gross=gross, net=net, vat_rate=vat_rate, currency=currency.upper(), defaulted=defaulted)

    @staticmethod
    def _image_alt(content: ContentGeneration, index: int) -> str:
        if index < len(content.image_alts) and content.image_alts[index]:
            return content.image_alts[index]
        return f"Product image {index + 1}"

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)


__all__ = [
    "FIELD_PRECEDENCE",
    "MergeSources",
    "SourceRef",
    "resolve_field",
    "ValidationOutcome",
    "ValidationService",
]
