"""Data models module for Product AI Creator."""

from product_creator.models.schemas import (
    # Base Models
    BaseModel,
    ModelOutput,

    # Enums
    Language,
    Capability,
    ProductCondition,
    Availability,
    StageStatus,
    PipelineStage,
    PipelineStatus,

    # Provider Models
    ProviderConfig,
    ImagePayload,
    CompletionRequest,
    VisionCompletionRequest,
    TokenUsage,
    CompletionResult,
    ConnectionTestResult,
    ProviderStatusInfo,

    # Stage Models
    VisionAnalysis,
    ContentGeneration,

    # Product Models
    ProductDescription,
    ProductSEO,
    ProductPricing,
    ProductImage,
    ProductIdentifiers,
    ProductStock,
    ProductDimensions,
    UnifiedProduct,

    # Pipeline Models
    PipelineImage,
    RawProductData,
    PipelineInput,
    ProgressEvent,
    PipelineOptions,
    StageResult,
    ValidationReport,
    PipelineOutput,
)

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
    "ProviderConfig",
    "ImagePayload",
    "CompletionRequest",
    "VisionCompletionRequest",
    "TokenUsage",
    "CompletionResult",
    "ConnectionTestResult",
    "ProviderStatusInfo",
    "VisionAnalysis",
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
    "PipelineOptions",
    "StageResult",
    "ValidationReport",
    "PipelineOutput",
]
