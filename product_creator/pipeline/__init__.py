"""Pipeline module for Product AI Creator."""

from product_creator.pipeline.orchestrator import (
    STAGE_PROGRESS,
    PipelineStateDict,
    ProductPipeline,
    ProgressReporter,
    determine_status,
    run_pipeline,
)
from product_creator.utils.errors import PipelineError

__all__ = [
    "ProductPipeline",
    "PipelineError",
    "PipelineStateDict",
    "ProgressReporter",
    "STAGE_PROGRESS",
    "determine_status",
    "run_pipeline",
]
