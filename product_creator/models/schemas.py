"""
Pydantic models and schemas for Product AI Creator.

This module defines all data structures used throughout the pipeline,
ensuring type safety, validation, and serialization consistency.

Models:
    - ProviderConfig: Immutable per-provider configuration
    - CompletionRequest / VisionCompletionRequest: Normalized adapter input
    - CompletionResult: Normalized adapter output
    - VisionAnalysis: Stage 1 output
    - ContentGeneration: Stage 2 output
    - UnifiedProduct: Canonical, schema-validated product record
    - StageResult / PipelineOutput: Pipeline bookkeeping
"""

from __future__ import annotations

import base64
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Generic, Optional, Self, TypeVar
from urllib.parse import urlparse
from uuid import uuid4

from pydantic import (
    BaseModel as PydanticBaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
)
from pydantic.alias_generators import to_camel

from product_creator.utils.text import truncate


# =============================================================================
# Base Configuration
# =============================================================================

class BaseModel(PydanticBaseModel):
    """Base model with common configuration for all schemas."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=False,
        populate_by_name=True,
        use_enum_values=True,
        ser_json_timedelta="iso8601",
        ser_json_bytes="base64",
    )

    def to_json(self, **kwargs) -> str:
        """Serialize model to JSON string."""
        return self.model_dump_json(indent=2, **kwargs)

    def to_dict(self, **kwargs) -> dict[str, Any]:
        """Serialize model to dictionary."""
        return self.model_dump(**kwargs)

    @classmethod
    def from_json(cls, json_str: str) -> Self:
        """Deserialize model from JSON string."""
        return cls.model_validate_json(json_str)


class ModelOutput(BaseModel):
    """Base for records decoded from model output; accepts camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Enums
# =============================================================================

class Language(str, Enum):
    """Supported content languages."""
    PL = "pl"
    EN = "en"
    DE = "de"


class Capability(str, Enum):
    """What an upstream call needs from a provider."""
    TEXT = "text"
    VISION = "vision"


class ProductCondition(str, Enum):
    NEW = "new"
    USED = "used"
    REFURBISHED = "refurbished"


class Availability(str, Enum):
    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"
    PREORDER = "preorder"


class StageStatus(str, Enum):
    """Status of an individual pipeline stage."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class PipelineStage(str, Enum):
    VISION = "vision"
    CONTENT = "content"
    VALIDATION = "validation"


class PipelineStatus(str, Enum):
    """Overall outcome of a pipeline run."""
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


# =============================================================================
# Validators
# =============================================================================

ALLOWED_URL_SCHEMES = ("http", "https", "file", "data")


def validate_url(value: str) -> str:
    """Accept absolute http(s), file and data URLs."""
    parsed = urlparse(value)
    if parsed.scheme not in ALLOWED_URL_SCHEMES:
        raise ValueError(f"Invalid URL: {value!r}")
    if parsed.scheme in ("http", "https") and not parsed.netloc:
        raise ValueError(f"Invalid URL: {value!r}")
    if parsed.scheme == "file" and not parsed.path:
        raise ValueError(f"Invalid URL: {value!r}")
    return value


def coerce_string_list(value: Any) -> list[str]:
    """
    Normalize a model-supplied list into clean strings.

    ``None`` becomes an empty list; scalars inside the list are stringified,
    blanks and nested structures are dropped. Anything that is not a list is
    rejected so the caller can fall back to a default.
    """
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValueError("expected a list")
    items = []
    for item in value:
        if item is None or isinstance(item, (dict, list, tuple)):
            continue
        text = str(item).strip()
        if text:
            items.append(text)
    return items


def coerce_optional_text(value: Any) -> Optional[str]:
    """Blank or non-scalar values become None."""
    if value is None or isinstance(value, (dict, list, tuple, bool)):
        return None
    text = str(value).strip()
    return text or None


# =============================================================================
# Provider Models
# =============================================================================

class ProviderConfig(BaseModel):
    """
    Static configuration of one upstream provider.

    Built once per provider from the environment and never mutated.
    """

    model_config = ConfigDict(frozen=True)

    provider_id: str = Field(..., description="Stable provider identifier, e.g. 'groq'")
    display_name: str = Field(..., description="Human readable provider name")
    api_key: SecretStr = Field(..., description="Provider credential")
    base_url: str = Field(..., description="Endpoint URL")
    default_model: str = Field(..., description="Model used for text requests")
    vision_model: Optional[str] = Field(
        default=None,
        description="Model used for vision requests (vision-capable providers only)",
    )
    rate_limit_rpm: int = Field(default=30, ge=0, description="Requests per minute hint")
    rate_limit_rpd: int = Field(default=1000, ge=0, description="Requests per day hint")
    priority: int = Field(..., ge=1, description="Lower value is tried first")
    supports_vision: bool = Field(default=False)
    text_timeout_seconds: float = Field(default=30.0, gt=0)
    vision_timeout_seconds: float = Field(default=90.0, gt=0)
    extra_headers: dict[str, str] = Field(default_factory=dict)


class ImagePayload(BaseModel):
    """Inline image passed to a vision-capable provider."""

    data: bytes = Field(..., min_length=1)
    mime_type: str = Field(default="image/jpeg")

    def as_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def as_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.as_base64()}"


class CompletionRequest(BaseModel):
    """Provider-neutral text completion request."""

    prompt: str = Field(..., min_length=1)
    system_prompt: Optional[str] = None
    model: Optional[str] = Field(default=None, description="Overrides the provider default model")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2000, gt=0)


class VisionCompletionRequest(CompletionRequest):
    """Completion request carrying ordered inline images."""

    images: list[ImagePayload] = Field(..., min_length=1)


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class CompletionResult(BaseModel):
    """Normalized result of one successful provider call."""

    content: str
    model: str
    provider_id: str
    usage: Optional[TokenUsage] = None
    latency_ms: int = 0
    finish_reason: Optional[str] = None


class ConnectionTestResult(BaseModel):
    provider_id: str
    ok: bool
    error: Optional[str] = None
    latency_ms: Optional[int] = None


class ProviderStatusInfo(BaseModel):
    """Registry view of one provider identity, configured or not."""

    provider_id: str
    display_name: str
    priority: int
    configured: bool
    supports_vision: bool
    default_model: str
    vision_model: Optional[str] = None


# =============================================================================
# Stage 1: Vision Analysis
# =============================================================================

DEFAULT_PRODUCT_TYPE = "Unknown Product"
DEFAULT_CONFIDENCE = 0.5


class VisionAnalysis(ModelOutput):
    """
    Structured description of a product derived from its photographs.

    ``confidence`` is always clamped into [0, 1] and list fields are never
    None.
    """

    product_type: str = Field(default=DEFAULT_PRODUCT_TYPE, examples=["Sneakers", "Wicker mat"])
    detected_brand: Optional[str] = None
    detected_model: Optional[str] = None
    colors: list[str] = Field(default_factory=list)
    materials: list[str] = Field(default_factory=list)
    style: Optional[str] = Field(default=None, examples=["Casual", "Rustic"])
    condition: Optional[ProductCondition] = None
    features: list[str] = Field(default_factory=list)
    suggested_categories: list[str] = Field(default_factory=list)
    confidence: float = Field(default=DEFAULT_CONFIDENCE, ge=0.0, le=1.0)
    raw_response: Optional[str] = Field(default=None, description="Provider text, for diagnostics")

    @field_validator("product_type", mode="before")
    @classmethod
    def validate_product_type(cls, v: Any) -> str:
        text = coerce_optional_text(v)
        if text is None:
            raise ValueError("product type must be a non-empty string")
        return text

    @field_validator("detected_brand", "detected_model", "style", mode="before")
    @classmethod
    def validate_optional_text(cls, v: Any) -> Optional[str]:
        return coerce_optional_text(v)

    @field_validator("colors", "materials", "features", "suggested_categories", mode="before")
    @classmethod
    def validate_lists(cls, v: Any) -> list[str]:
        return coerce_string_list(v)

    @field_validator("condition", mode="before")
    @classmethod
    def validate_condition(cls, v: Any) -> Optional[str]:
        if isinstance(v, ProductCondition):
            return v.value
        if isinstance(v, str) and v.strip().lower() in {c.value for c in ProductCondition}:
            return v.strip().lower()
        return None

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> float:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("confidence must be a number")
        if math.isnan(v):
            raise ValueError("confidence must be a number")
        return max(0.0, min(1.0, float(v)))


# =============================================================================
# Stage 2: Content Generation
# =============================================================================

NAME_MAX_LENGTH = 255
SHORT_DESCRIPTION_MAX_LENGTH = 500
SEO_TITLE_MAX_LENGTH = 70
SEO_DESCRIPTION_MAX_LENGTH = 160


class ContentGeneration(ModelOutput):
    """
    Marketing and SEO content for a product.

    Bounded fields are truncated, never rejected.
    """

    name: str = ""
    short_description: str = ""
    long_description: str = ""
    html_description: Optional[str] = None
    seo_title: str = ""
    seo_description: str = ""
    keywords: list[str] = Field(default_factory=list)
    attributes: dict[str, str] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    image_alts: list[str] = Field(default_factory=list)
    slug: Optional[str] = Field(default=None, description="Set by the marketplace content format")
    raw_response: Optional[str] = None

    @field_validator("name", "short_description", "long_description", "seo_title", "seo_description", mode="before")
    @classmethod
    def validate_text(cls, v: Any) -> str:
        if v is None:
            return ""
        if isinstance(v, (dict, list, tuple, bool)):
            raise ValueError("expected text")
        return str(v)

    @field_validator("html_description", "slug", mode="before")
    @classmethod
    def validate_optional_text(cls, v: Any) -> Optional[str]:
        return coerce_optional_text(v)

    @field_validator("keywords", "tags", "image_alts", mode="before")
    @classmethod
    def validate_lists(cls, v: Any) -> list[str]:
        return coerce_string_list(v)

    @field_validator("attributes", mode="before")
    @classmethod
    def validate_attributes(cls, v: Any) -> dict[str, str]:
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("attributes must be an object")
        attributes = {}
        for key, value in v.items():
            if value is None or isinstance(value, (dict, list, tuple)):
                continue
            key_text, value_text = str(key).strip(), str(value).strip()
            if key_text and value_text:
                attributes[key_text] = value_text
        return attributes

    @field_validator("name")
    @classmethod
    def bound_name(cls, v: str) -> str:
        return truncate(v, NAME_MAX_LENGTH)

    @field_validator("short_description")
    @classmethod
    def bound_short_description(cls, v: str) -> str:
        return truncate(v, SHORT_DESCRIPTION_MAX_LENGTH)

    @field_validator("seo_title")
    @classmethod
    def bound_seo_title(cls, v: str) -> str:
        return truncate(v, SEO_TITLE_MAX_LENGTH)

    @field_validator("seo_description")
    @classmethod
    def bound_seo_description(cls, v: str) -> str:
        return truncate(v, SEO_DESCRIPTION_MAX_LENGTH)


# =============================================================================
# Canonical Product
# =============================================================================

class ProductDescription(BaseModel):
    short: str = Field(..., min_length=1, max_length=SHORT_DESCRIPTION_MAX_LENGTH)
    long: str = Field(..., min_length=1)
    html: Optional[str] = None


class ProductSEO(BaseModel):
    title: str = Field(..., min_length=1, max_length=SEO_TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=1, max_length=SEO_DESCRIPTION_MAX_LENGTH)
    keywords: list[str] = Field(default_factory=list)


class ProductPricing(BaseModel):
    gross: float = Field(..., gt=0)
    net: float = Field(..., gt=0)
    currency: str = Field(default="PLN", min_length=3, max_length=3)
    vat_rate: float = Field(default=23.0, ge=0, le=100)


class ProductImage(BaseModel):
    url: str
    alt: Optional[str] = None
    position: int = Field(default=0, ge=0)

    @field_validator("url")
    @classmethod
    def validate_image_url(cls, v: str) -> str:
        return validate_url(v)


class ProductIdentifiers(BaseModel):
    ean: Optional[str] = None
    sku: Optional[str] = None
    mpn: Optional[str] = None
    isbn: Optional[str] = None


class ProductStock(BaseModel):
    quantity: int = Field(default=1, ge=0)
    availability: Availability = Field(default=Availability.IN_STOCK, validate_default=True)
    low_stock_threshold: Optional[int] = Field(default=None, ge=0)


class ProductDimensions(BaseModel):
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    depth: float = Field(..., gt=0)
    unit: str = Field(default="cm", pattern=r"^(cm|mm|in)$")


class UnifiedProduct(BaseModel):
    """Canonical product record produced by the validation stage."""

    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    description: ProductDescription
    seo: ProductSEO
    pricing: ProductPricing
    attributes: dict[str, str] = Field(default_factory=dict)
    categories: list[str] = Field(default_factory=list)
    images: list[ProductImage] = Field(..., min_length=1)
    identifiers: ProductIdentifiers = Field(default_factory=ProductIdentifiers)
    stock: ProductStock = Field(default_factory=ProductStock)
    brand: Optional[str] = None
    manufacturer: Optional[str] = None
    condition: ProductCondition = Field(default=ProductCondition.NEW, validate_default=True)
    weight: Optional[float] = Field(default=None, gt=0, description="Weight in kg")
    dimensions: Optional[ProductDimensions] = None
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Pipeline Input
# =============================================================================

class PipelineImage(BaseModel):
    """An uploaded image; ``data`` may carry bytes already in hand."""

    url: str
    mime_type: str = "image/jpeg"
    filename: Optional[str] = None
    data: Optional[bytes] = Field(default=None, exclude=True, repr=False)

    @field_validator("url")
    @classmethod
    def validate_image_url(cls, v: str) -> str:
        return validate_url(v)


class RawProductData(BaseModel):
    """Seed data supplied by the user (barcode scan, CSV import, etc.)."""

    model_config = ConfigDict(alias_generator=to_camel)

    ean: Optional[str] = None
    sku: Optional[str] = None
    mpn: Optional[str] = None
    price_gross: Optional[float] = Field(default=None, gt=0)
    price_net: Optional[float] = Field(default=None, gt=0)
    vat_rate: Optional[float] = Field(default=None, ge=0, le=100)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    brand: Optional[str] = None
    manufacturer: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    weight: Optional[float] = Field(default=None, gt=0)
    categories: Optional[list[str]] = None
    condition: Optional[ProductCondition] = None


class PipelineInput(BaseModel):
    """What the caller provides for one pipeline run."""

    model_config = ConfigDict(alias_generator=to_camel)

    images: list[PipelineImage] = Field(default_factory=list)
    user_hint: Optional[str] = None
    raw_data: RawProductData = Field(default_factory=RawProductData)


class ProgressEvent(BaseModel):
    stage: PipelineStage
    status: StageStatus
    message: Optional[str] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)


ProgressCallback = Callable[[ProgressEvent], Any]


class PipelineOptions(BaseModel):
    """Per-run switches; every field has a safe default."""

    skip_vision: bool = False
    skip_content: bool = False
    language: Optional[Language] = None
    use_marketplace_format: bool = False
    vision_model: Optional[str] = None
    content_model: Optional[str] = None
    vision_system_prompt: Optional[str] = None
    content_system_prompt: Optional[str] = None
    on_progress: Optional[ProgressCallback] = Field(default=None, exclude=True, repr=False)


# =============================================================================
# Pipeline Results
# =============================================================================

DataT = TypeVar("DataT")


class StageResult(BaseModel, Generic[DataT]):
    """Outcome of one stage; written once when the stage finishes."""

    model_config = ConfigDict(frozen=True)

    status: StageStatus = Field(default=StageStatus.PENDING, validate_default=True)
    data: Optional[DataT] = None
    error: Optional[str] = None
    duration_ms: int = 0
    provider_id: Optional[str] = Field(default=None, description="Provider that served the stage")

    @property
    def succeeded(self) -> bool:
        """Completed and carrying data."""
        return self.status == StageStatus.COMPLETED and self.data is not None


class ValidationReport(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class PipelineOutput(BaseModel):
    """Everything a caller learns from one run, whatever the outcome."""

    run_id: str = Field(default_factory=lambda: str(uuid4()))
    vision_analysis: StageResult[VisionAnalysis] = Field(default_factory=StageResult[VisionAnalysis])
    content_generation: StageResult[ContentGeneration] = Field(default_factory=StageResult[ContentGeneration])
    validation: StageResult[ValidationReport] = Field(default_factory=StageResult[ValidationReport])
    product: Optional[UnifiedProduct] = None
    status: PipelineStatus = Field(default=PipelineStatus.FAILED, validate_default=True)
    total_duration_ms: int = 0
    errors: list[str] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=_utcnow)

    @property
    def warnings(self) -> list[str]:
        report = self.validation.data
        return list(report.warnings) if report else []


__all__ = [
    "BaseModel",
    "ModelOutput",
    "Language",
    "Capability",
    "ProductCondition",
    "Availability",
    "StageStatus",
    "PipelineStage",
    "PipelineStatus",
    "validate_url",
    "coerce_string_list",
    "coerce_optional_text",
    "ProviderConfig",
    "ImagePayload",
    "CompletionRequest",
    "VisionCompletionRequest",
    "TokenUsage",
    "CompletionResult",
    "ConnectionTestResult",
    "ProviderStatusInfo",
    "DEFAULT_PRODUCT_TYPE",
    "DEFAULT_CONFIDENCE",
    "VisionAnalysis",
    "NAME_MAX_LENGTH",
    "SHORT_DESCRIPTION_MAX_LENGTH",
    "SEO_TITLE_MAX_LENGTH",
    "SEO_DESCRIPTION_MAX_LENGTH",
    "ContentGeneration",
    "ProductDescription",
    "ProductSEO",
    "ProductPricing",
    "ProductImage",
    "ProductIdentifiers",
    "ProductStock",
    "ProductDimensions",
    "UnifiedProduct",
    "PipelineImage",
    "RawProductData",
    "PipelineInput",
    "ProgressEvent",
    "ProgressCallback",
    "PipelineOptions",
    "StageResult",
    "ValidationReport",
    "PipelineOutput",
]
