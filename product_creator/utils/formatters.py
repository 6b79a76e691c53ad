"""
Report formatting utilities.

Renders a PipelineOutput as a Markdown run report or JSON and writes it to
the configured output directory.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from product_creator.config.settings import get_settings
from product_creator.models.schemas import PipelineOutput, StageResult, UnifiedProduct
from product_creator.utils.logger import get_logger
from product_creator.utils.text import slugify, strip_html

logger = get_logger(__name__)

REPORT_FORMATS = ("markdown", "json")

STATUS_ICONS = {
    "completed": "✅",
    "partial": "⚠️",
    "failed": "❌",
    "skipped": "⏭️",
    "pending": "…",
    "running": "…",
}


def _cell(value: object) -> str:
    return str(value).replace("|", "-") if value not in (None, "") else "-"


def format_stage_table(output: PipelineOutput) -> str:
    """
    Create formatted markdown table for the stage outcomes.

    | Stage | Status | Provider | Duration |
    |-------|--------|----------|----------|
    | Vision | ✅ completed | groq | 1,234 ms |
    """
    stages: list[tuple[str, StageResult]] = [
        ("Vision", output.vision_analysis),
        ("Content", output.content_generation),
        ("Validation", output.validation),
    ]
    header = "| Stage | Status | Provider | Duration |\n|-------|--------|----------|----------|"
    rows = [
        f"| {label} | {STATUS_ICONS.get(result.status, '')} {result.status} "
        f"| {_cell(result.provider_id)} | {result.duration_ms:,} ms |"
        for label, result in stages
    ]
    return header + "\n" + "\n".join(rows)


def format_product_table(product: UnifiedProduct) -> str:
    """Key commercial fields of the product as a two-column table."""
    rows = [
        ("Name", product.name),
        ("Brand", product.brand),
        ("Condition", product.condition),
        ("Price (gross)", f"{product.pricing.gross:.2f} {product.pricing.currency}"),
        ("Price (net)", f"{product.pricing.net:.2f} {product.pricing.currency}"),
        ("VAT", f"{product.pricing.vat_rate:g}%"),
        ("Categories", ", ".join(product.categories)),
        ("EAN", product.identifiers.ean),
        ("SKU", product.identifiers.sku),
        ("Stock", f"{product.stock.quantity} ({product.stock.availability})"),
        ("Images", len(product.images)),
    ]
    header = "| Field | Value |\n|-------|-------|"
    return header + "\n" + "\n".join(f"| {label} | {_cell(value)} |" for label, value in rows)


def generate_run_report(output: PipelineOutput) -> str:
    """
    Generate the Markdown report for one pipeline run.

    Structure:
    # Product Report: {name or run id}
    ## Pipeline
    ## Product
    ## Description
    ## SEO
    ## Attributes
    ## Warnings / Errors
    """
    product = output.product
    title = product.name if product else f"run {output.run_id}"
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")

    sections = [
        f"# Product Report: {title}",
        f"**Status:** {STATUS_ICONS.get(output.status, '')} {output.status}  \n"
        f"**Run:** `{output.run_id}`  \n"
        f"**Duration:** {output.total_duration_ms:,} ms",
        "## Pipeline\n" + format_stage_table(output),
    ]

    if product:
        sections.append("## Product\n" + format_product_table(product))
        sections.append(
            "## Description\n"
            f"{strip_html(product.description.short)}\n\n"
            f"{strip_html(product.description.long)}"
        )
        keywords = ", ".join(product.seo.keywords) or "-"
        sections.append(
            "## SEO\n"
            f"**Title:** {product.seo.title}\n\n"
            f"**Description:** {product.seo.description}\n\n"
            f"**Keywords:** {keywords}"
        )
        if product.attributes:
            sections.append(
                "## Attributes\n" + "\n".join(f"- **{key}:** {value}" for key, value in product.attributes.items())
            )

    if output.warnings:
        sections.append("## Warnings\n" + "\n".join(f"- {warning}" for warning in output.warnings))
    if output.errors:
        sections.append("## Errors\n" + "\n".join(f"- {error}" for error in output.errors))

    sections.append(f"---\nGenerated on: {timestamp}")
    return "\n\n".join(sections) + "\n"


def save_report(output: PipelineOutput, output_path: Path, format: str = "json") -> Path:
    """
    Save a run report to file.

    Args:
        output: Pipeline run to render
        output_path: Destination path (the suffix is replaced)
        format: 'json' or 'markdown'

    Raises:
        ValueError: If ``format`` is not supported.
    """
    if format not in REPORT_FORMATS:
        raise ValueError(f"Unsupported format: {format}")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    base_path = output_path.with_suffix("")

    if format == "json":
        file_path = base_path.with_suffix(".json")
        file_path.write_text(output.to_json(), encoding="utf-8")
    else:
        file_path = base_path.with_suffix(".md")
        file_path.write_text(generate_run_report(output), encoding="utf-8")

    logger.info("Saved report", path=str(file_path), format=format)
    return file_path


class ReportFormatter:
    """Writes run reports into the output directory with timestamped names."""

    def __init__(self, output_dir: Optional[Path] = None):
        self.output_dir = output_dir or get_settings().output_dir
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def report_name(self, output: PipelineOutput) -> str:
        timestamp = output.started_at.strftime("%Y%m%d_%H%M%S")
        stem = slugify(output.product.name) if output.product else ""
        return f"{stem or output.run_id}_{timestamp}"

    def save(self, output: PipelineOutput, format: str = "json") -> Path:
        return save_report(output, self.output_dir / self.report_name(output), format)


__all__ = [
    "REPORT_FORMATS",
    "format_stage_table",
    "format_product_table",
    "generate_run_report",
    "save_report",
    "ReportFormatter",
]
