"""
Pipeline orchestrator using LangGraph.

Sequences the three generation stages over a compiled StateGraph:

    vision -> content -> validation -> finalize -> END
       |         |
       +---------+----> finalize   (prerequisite data missing)

A stage runs only when the previous one completed with data; a stage
failure never raises out of the pipeline. ``finalize`` marks unrun stages
as skipped and derives the overall status, so ``run`` always returns a
PipelineOutput the caller can inspect.

Features:
    - Stateful execution with LangGraph StateGraph
    - Conditional edges that short-circuit on missing prerequisite data
    - Fire-and-forget progress reporting (sync or async observers)
    - Per-run structured logging context (``run_id``)
"""

from __future__ import annotations

import asyncio
import inspect
import operator
import time
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Annotated, Any, Awaitable, Callable, Literal, Optional, TypedDict
from uuid import uuid4

from langgraph.graph import END, StateGraph
from pydantic import ValidationError as PydanticValidationError

from product_creator.config.settings import Settings, get_settings
from product_creator.extractors.vision_analyzer import VisionAnalyzer
from product_creator.generators.content_generator import ContentGenerator
from product_creator.generators.marketplace_generator import MarketplaceContentGenerator
from product_creator.models.schemas import (
    ContentGeneration,
    Language,
    PipelineInput,
    PipelineOptions,
    PipelineOutput,
    PipelineStage,
    PipelineStatus,
    ProgressCallback,
    ProgressEvent,
    StageResult,
    StageStatus,
    UnifiedProduct,
    ValidationReport,
    VisionAnalysis,
)
from product_creator.providers.registry import ProviderRegistry
from product_creator.services.failover import FailoverOrchestrator
from product_creator.services.image_service import ImageFetcher
from product_creator.services.validation_service import ValidationService
from product_creator.utils.errors import PipelineError
from product_creator.utils.logger import LogContext, get_logger

logger = get_logger(__name__)


# =============================================================================
# Constants and Configuration
# =============================================================================

@dataclass(frozen=True)
class StageProgress:
    """Progress points emitted when a stage starts and when it finishes."""
    started: int
    finished: int
    running_message: str
    done_message: str


STAGE_PROGRESS = {
    PipelineStage.VISION: StageProgress(10, 33, "Analyzing images...", "Image analysis complete"),
    PipelineStage.CONTENT: StageProgress(40, 66, "Generating product content...", "Content generation complete"),
    PipelineStage.VALIDATION: StageProgress(80, 100, "Validating product data...", "Validation complete"),
}

MARKETPLACE_RUNNING_MESSAGE = "Generating marketplace content..."


# =============================================================================
# Pipeline State Definition (TypedDict for LangGraph)
# =============================================================================

class PipelineStateDict(TypedDict, total=False):
    """
    TypedDict-based pipeline state for LangGraph.

    Uses Annotated with operator.add for error accumulation.
    """
    # Identifiers
    run_id: str

    # Input
    pipeline_input: PipelineInput
    options: PipelineOptions
    language: str
    reporter: "ProgressReporter"

    # Stage outputs
    vision_result: StageResult[VisionAnalysis]
    content_result: StageResult[ContentGeneration]
    validation_result: StageResult[ValidationReport]
    product: Optional[UnifiedProduct]

    # Status tracking
    status: str
    errors: Annotated[list[str], operator.add]
    step_timings: Annotated[dict[str, int], operator.or_]


# =============================================================================
# Progress Reporting
# =============================================================================

class ProgressReporter:
    """
    Delivers progress events to an optional observer without blocking.

    Sync observers are called inline and their exceptions are logged and
    dropped. Async observers are scheduled as tasks and never awaited; a
    failing task is logged when it finishes.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.events: list[ProgressEvent] = []
        self._tasks: set[asyncio.Future] = set()

    def emit(
        self,
        stage: PipelineStage,
        status: StageStatus,
        message: Optional[str] = None,
        progress: Optional[int] = None,
    ) -> ProgressEvent:
        event = ProgressEvent(stage=stage, status=status, message=message, progress=progress)
        self.events.append(event)
        if self.callback is None:
            return event

        try:
            outcome = self.callback(event)
        except Exception as e:
            logger.warning("Progress callback failed", stage=event.stage, error=str(e))
            return event

        if inspect.isawaitable(outcome):
            task = asyncio.ensure_future(outcome)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)
        return event

    def _task_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Async progress callback failed", error=str(error))

    @property
    def pending(self) -> int:
        """Async observer calls still in flight."""
        return len(self._tasks)


# =============================================================================
# Status Rules
# =============================================================================

def determine_status(
    vision: StageResult,
    content: StageResult,
    validation: StageResult,
    product: Optional[UnifiedProduct],
) -> PipelineStatus:
    """
    Overall pipeline status.

    completed: validation completed and produced a product.
    partial: vision or content completed, but the run did not fully complete.
    failed: anything else.
    """
    if product is not None and validation.status == StageStatus.COMPLETED:
        return PipelineStatus.COMPLETED
    if StageStatus.COMPLETED in (vision.status, content.status):
        return PipelineStatus.PARTIAL
    return PipelineStatus.FAILED


STAGE_DATA_TYPES: dict[PipelineStage, type] = {
    PipelineStage.VISION: VisionAnalysis,
    PipelineStage.CONTENT: ContentGeneration,
    PipelineStage.VALIDATION: ValidationReport,
}


def _has_run(result: Optional[StageResult]) -> bool:
    return result is not None and result.status not in (StageStatus.PENDING, StageStatus.RUNNING)


# =============================================================================
# Pipeline
# =============================================================================

StageRunner = Callable[[], Awaitable[tuple[StageResult, dict[str, Any]]]]


class ProductPipeline:
    """
    LangGraph-based pipeline turning product photos into a UnifiedProduct.

    The registry (and with it every provider adapter) is shared by all runs
    of one pipeline instance; everything else is per-run state.

    Example:
        >>> async with ProductPipeline() as pipeline:
        ...     output = await pipeline.run(PipelineInput(images=[PipelineImage(url=url)]))
        ...     print(output.status, output.product.name)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[ProviderRegistry] = None,
        vision_analyzer: Optional[VisionAnalyzer] = None,
        content_generator: Optional[ContentGenerator] = None,
        marketplace_generator: Optional[MarketplaceContentGenerator] = None,
        validator: Optional[ValidationService] = None,
        image_fetcher: Optional[ImageFetcher] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            settings: Application settings (uses defaults if not provided)
            registry: Provider registry (built from settings if not provided)
            vision_analyzer: Pre-configured vision stage
            content_generator: Pre-configured content stage
            marketplace_generator: Pre-configured marketplace content stage
            validator: Pre-configured validation stage
            image_fetcher: Image loader used by the default vision stage
        """
        self.settings = settings or get_settings()
        self._owns_registry = registry is None
        self.registry = registry or ProviderRegistry(self.settings)
        self.failover = FailoverOrchestrator(self.registry)

        self._owns_image_fetcher = image_fetcher is None
        self.image_fetcher = image_fetcher or ImageFetcher(self.settings)
        self.vision_analyzer = vision_analyzer or VisionAnalyzer(
            self.failover, self.settings, image_fetcher=self.image_fetcher
        )
        self.content_generator = content_generator or ContentGenerator(self.failover, self.settings)
        self.marketplace_generator = marketplace_generator or MarketplaceContentGenerator(
            self.failover, self.settings
        )
        self.validator = validator or ValidationService(self.settings)

        self._graph = self._build_graph()

    async def __aenter__(self) -> "ProductPipeline":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _build_graph(self):
        """
        Build the LangGraph state machine with all nodes and edges.

        Graph structure:
            vision --(vision data)--> content --(content data)--> validation
              |                         |                            |
              +-----------+-------------+                            |
                          v                                          |
                       finalize <------------------------------------+
                          |
                          v
                         END
        """
        graph = StateGraph(PipelineStateDict)

        graph.add_node("vision", self._vision_node)
        graph.add_node("content", self._content_node)
        graph.add_node("validation", self._validation_node)
        graph.add_node("finalize", self._finalize_node)

        graph.set_entry_point("vision")

        graph.add_conditional_edges(
            "vision",
            self._route_after_vision,
            {"content": "content", "finalize": "finalize"},
        )
        graph.add_conditional_edges(
            "content",
            self._route_after_content,
            {"validation": "validation", "finalize": "finalize"},
        )
        graph.add_edge("validation", "finalize")
        graph.add_edge("finalize", END)

        return graph.compile()

    # =========================================================================
    # Routing
    # =========================================================================

    def _route_after_vision(self, state: PipelineStateDict) -> Literal["content", "finalize"]:
        vision = state.get("vision_result")
        if vision is not None and vision.succeeded and not state["options"].skip_content:
            return "content"
        return "finalize"

    def _route_after_content(self, state: PipelineStateDict) -> Literal["validation", "finalize"]:
        vision, content = state.get("vision_result"), state.get("content_result")
        if vision is not None and vision.succeeded and content is not None and content.succeeded:
            return "validation"
        return "finalize"

    # =========================================================================
    # Node Implementations
    # =========================================================================

    async def _execute_stage(
        self,
        state: PipelineStateDict,
        stage: PipelineStage,
        runner: StageRunner,
        running_message: Optional[str] = None,
    ) -> dict[str, Any]:
        """Run one stage with progress events, timing and failure capture."""
        progress = STAGE_PROGRESS[stage]
        reporter = state["reporter"]
        reporter.emit(stage, StageStatus.RUNNING, running_message or progress.running_message, progress.started)

        logger.info("Starting stage", stage=stage.value)
        start = time.perf_counter()
        extra: dict[str, Any] = {}
        try:
            result, extra = await runner()
        except Exception as e:
            logger.exception("Stage raised unexpectedly", stage=stage.value)
            result = StageResult[STAGE_DATA_TYPES[stage]](
                status=StageStatus.FAILED,
                error=f"{stage.value.capitalize()} stage error: {e}",
                duration_ms=int((time.perf_counter() - start) * 1000),
            )

        duration_ms = int((time.perf_counter() - start) * 1000)
        update: dict[str, Any] = {
            f"{stage.value}_result": result,
            "step_timings": {stage.value: duration_ms},
            **extra,
        }
        if result.status == StageStatus.FAILED:
            update["errors"] = [result.error or f"{stage.value.capitalize()} stage failed"]

        completed = result.status == StageStatus.COMPLETED
        reporter.emit(
            stage,
            StageStatus(result.status),
            progress.done_message if completed else result.error,
            progress.finished,
        )
        logger.info(
            "Completed stage",
            stage=stage.value,
            status=StageStatus(result.status).value,
            provider=result.provider_id,
            duration_ms=duration_ms,
        )
        return update

    async def _vision_node(self, state: PipelineStateDict) -> dict[str, Any]:
        """Node 1: analyze product images (unless skipped)."""
        options = state["options"]
        if options.skip_vision:
            logger.info("Vision stage skipped by options")
            state["reporter"].emit(
                PipelineStage.VISION,
                StageStatus.SKIPPED,
                "Vision stage skipped",
                STAGE_PROGRESS[PipelineStage.VISION].finished,
            )
            return {"vision_result": StageResult[VisionAnalysis](status=StageStatus.SKIPPED)}

        pipeline_input = state["pipeline_input"]

        async def run() -> tuple[StageResult, dict[str, Any]]:
            result = await self.vision_analyzer.analyze_images(
                pipeline_input.images,
                user_hint=pipeline_input.user_hint,
                language=state["language"],
                model=options.vision_model,
                system_prompt=options.vision_system_prompt,
            )
            return result, {}

        return await self._execute_stage(state, PipelineStage.VISION, run)

    async def _content_node(self, state: PipelineStateDict) -> dict[str, Any]:
        """Node 2: generate marketing content from the vision analysis."""
        options = state["options"]
        pipeline_input = state["pipeline_input"]
        language = Language(state["language"])
        vision = state["vision_result"].data

        generator = self.content_generator
        running_message = None
        if options.use_marketplace_format:
            if self.marketplace_generator.supports(language):
                generator = self.marketplace_generator
                running_message = MARKETPLACE_RUNNING_MESSAGE
            else:
                logger.info("Marketplace format unavailable for language, using standard content", language=language.value)

        async def run() -> tuple[StageResult, dict[str, Any]]:
            result = await generator.generate(
                vision,
                language=language,
                user_hint=pipeline_input.user_hint,
                raw_data=pipeline_input.raw_data,
                image_count=len(pipeline_input.images),
                model=options.content_model,
                system_prompt=options.content_system_prompt,
            )
            return result, {}

        return await self._execute_stage(state, PipelineStage.CONTENT, run, running_message)

    async def _validation_node(self, state: PipelineStateDict) -> dict[str, Any]:
        """Node 3: merge everything into a validated UnifiedProduct."""
        vision_result = state["vision_result"]
        content_result = state["content_result"]

        async def run() -> tuple[StageResult, dict[str, Any]]:
            outcome = self.validator.validate(
                state["pipeline_input"],
                vision_result.data,
                content_result.data,
                metadata={
                    "run_id": state["run_id"],
                    "providers": {
                        PipelineStage.VISION.value: vision_result.provider_id,
                        PipelineStage.CONTENT.value: content_result.provider_id,
                    },
                },
            )
            return outcome.result, {"product": outcome.product}

        return await self._execute_stage(state, PipelineStage.VALIDATION, run)

    async def _finalize_node(self, state: PipelineStateDict) -> dict[str, Any]:
        """Node 4: mark unrun stages skipped and derive the overall status."""
        reporter = state["reporter"]
        results: dict[PipelineStage, StageResult] = {}
        for stage, data_type in STAGE_DATA_TYPES.items():
            result = state.get(f"{stage.value}_result")
            if not _has_run(result):
                result = StageResult[data_type](status=StageStatus.SKIPPED)
                reporter.emit(stage, StageStatus.SKIPPED, f"{stage.value.capitalize()} stage skipped",
                              STAGE_PROGRESS[stage].finished)
            results[stage] = result

        status = determine_status(
            results[PipelineStage.VISION],
            results[PipelineStage.CONTENT],
            results[PipelineStage.VALIDATION],
            state.get("product"),
        )
        update: dict[str, Any] = {f"{stage.value}_result": result for stage, result in results.items()}
        update["status"] = status.value
        return update

    # =========================================================================
    # Public API
    # =========================================================================

    async def run(
        self,
        pipeline_input: PipelineInput | dict[str, Any],
        options: Optional[PipelineOptions] = None,
        run_id: Optional[str] = None,
    ) -> PipelineOutput:
        """
        Execute the pipeline for one product.

        Args:
            pipeline_input: Images, optional hint and seller raw data
            options: Per-run switches (skips, language, observer, overrides)
            run_id: Optional run ID for log correlation

        Returns:
            PipelineOutput describing every stage, whatever the outcome.

        Raises:
            PipelineError: If ``pipeline_input`` is not a valid input record.
        """
        if not isinstance(pipeline_input, PipelineInput):
            try:
                pipeline_input = PipelineInput.model_validate(pipeline_input)
            except PydanticValidationError as e:
                raise PipelineError(f"Invalid pipeline input: {e}") from e

        options = options or PipelineOptions()
        run_id = run_id or str(uuid4())
        language = Language(options.language or self.settings.default_language)
        started_at = datetime.now(timezone.utc)
        start = time.perf_counter()

        initial_state: PipelineStateDict = {
            "run_id": run_id,
            "pipeline_input": pipeline_input,
            "options": options,
            "language": language.value,
            "reporter": ProgressReporter(options.on_progress),
            "product": None,
            "status": PipelineStatus.FAILED.value,
            "errors": [],
            "step_timings": {},
        }

        with LogContext(run_id=run_id):
            logger.info(
                "Starting pipeline run",
                images=len(pipeline_input.images),
                language=language.value,
                skip_vision=options.skip_vision,
                skip_content=options.skip_content,
            )
            final_state = await self._graph.ainvoke(initial_state)

            output = PipelineOutput(
                run_id=run_id,
                vision_analysis=final_state["vision_result"],
                content_generation=final_state["content_result"],
                validation=final_state["validation_result"],
                product=final_state.get("product"),
                status=final_state["status"],
                total_duration_ms=int((time.perf_counter() - start) * 1000),
                errors=list(final_state.get("errors", [])),
                started_at=started_at,
            )
            logger.info(
                "Pipeline run finished",
                status=output.status,
                duration_ms=output.total_duration_ms,
                step_timings=final_state.get("step_timings", {}),
            )
        return output

    async def close(self) -> None:
        """Release the HTTP clients this pipeline created."""
        if self._owns_image_fetcher:
            await self.image_fetcher.aclose()
        if self._owns_registry:
            await self.registry.aclose()


# =============================================================================
# Convenience Functions
# =============================================================================

async def run_pipeline(
    pipeline_input: PipelineInput | dict[str, Any],
    options: Optional[PipelineOptions] = None,
    settings: Optional[Settings] = None,
    registry: Optional[ProviderRegistry] = None,
) -> PipelineOutput:
    """
    Convenience function to run the pipeline once.

    Example:
        >>> output = await run_pipeline({"images": [{"url": "https://example.com/mat.jpg"}]})
        >>> output.status
        'completed'
    """
    async with ProductPipeline(settings=settings, registry=registry) as pipeline:
        return await pipeline.run(pipeline_input, options)


__all__ = [
    "STAGE_PROGRESS",
    "PipelineStateDict",
    "ProgressReporter",
    "determine_status",
    "ProductPipeline",
    "run_pipeline",
]
