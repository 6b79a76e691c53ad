"""
Product AI Creator - CLI Entry Point.
Production-grade CLI using Click and Rich.
"""

import sys
import asyncio
from pathlib import Path
from functools import wraps
from typing import Optional

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.panel import Panel
from rich.table import Table

from product_creator import __version__
from product_creator.config.settings import get_settings, Settings
from product_creator.models.schemas import (
    Capability,
    Language,
    PipelineImage,
    PipelineInput,
    PipelineOptions,
    PipelineOutput,
    PipelineStatus,
    ProgressEvent,
    RawProductData,
)
from product_creator.pipeline.orchestrator import ProductPipeline
from product_creator.providers.registry import ProviderRegistry
from product_creator.utils.errors import AppError
from product_creator.utils.formatters import REPORT_FORMATS, ReportFormatter, save_report
from product_creator.utils.logger import setup_logging

# Initialize Rich Console
console = Console()

STATUS_STYLES = {
    PipelineStatus.COMPLETED.value: "green",
    PipelineStatus.PARTIAL.value: "yellow",
    PipelineStatus.FAILED.value: "red",
}

# =============================================================================
# Helper Functions
# =============================================================================

def async_command(f):
    """Decorator to run async click commands."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))
    return wrapper


def setup_logger(verbose: bool, settings: Optional[Settings] = None):
    """Configure logging based on verbosity."""
    settings = settings or get_settings()
    setup_logging(level="DEBUG" if verbose else "WARNING", json_format=settings.log_json)


def create_registry(settings: Settings) -> ProviderRegistry:
    return ProviderRegistry(settings)


def image_from_argument(value: str) -> PipelineImage:
    """Accept URLs as-is; local paths become file:// URLs."""
    if value.startswith(("http://", "https://", "file://", "data:")):
        return PipelineImage(url=value)
    path = Path(value).expanduser()
    if not path.is_file():
        raise click.BadParameter(f"Image not found: {value}", param_hint="IMAGES")
    return PipelineImage(url=path.resolve().as_uri(), filename=path.name)


def print_summary(output: PipelineOutput) -> None:
    style = STATUS_STYLES.get(output.status, "white")

    stages = Table(title="Pipeline Stages")
    stages.add_column("Stage")
    stages.add_column("Status")
    stages.add_column("Provider")
    stages.add_column("Duration", justify="right")
    for label, result in (
        ("Vision", output.vision_analysis),
        ("Content", output.content_generation),
        ("Validation", output.validation),
    ):
        stages.add_row(label, result.status, result.provider_id or "-", f"{result.duration_ms} ms")
    console.print(stages)

    if output.product:
        product = output.product
        table = Table(title="Product", show_header=False)
        table.add_row("Name", product.name)
        table.add_row("Brand", product.brand or "-")
        table.add_row("Price", f"{product.pricing.gross:.2f} {product.pricing.currency}")
        table.add_row("Categories", ", ".join(product.categories) or "-")
        table.add_row("Keywords", ", ".join(product.seo.keywords) or "-")
        console.print(table)

    for warning in output.warnings:
        console.print(f"[yellow]! {warning}[/yellow]")
    for error in output.errors:
        console.print(f"[red]✗ {error}[/red]")

    console.print(
        f"[{style}]Status: {output.status}[/{style}] "
        f"({output.total_duration_ms / 1000:.2f}s, run {output.run_id})"
    )

# =============================================================================
# CLI Group
# =============================================================================

@click.group()
@click.version_option(version=__version__)
def cli():
    """Product AI Creator"""
    pass

# =============================================================================
# Commands
# =============================================================================

@cli.command()
@click.argument('images', nargs=-1, required=True)
@click.option('--hint', default=None, help='Seller note passed to the models')
@click.option('--language', type=click.Choice([lang.value for lang in Language]), default=None,
              help='Content language (defaults to DEFAULT_LANGUAGE)')
@click.option('--ean', default=None, help='EAN barcode')
@click.option('--sku', default=None, help='Seller SKU')
@click.option('--brand', default=None, help='Brand, overrides the detected one')
@click.option('--price', type=float, default=None, help='Gross price')
@click.option('--vat', type=float, default=None, help='VAT rate in percent')
@click.option('--skip-content', is_flag=True, help='Stop after the vision stage')
@click.option('--marketplace-format', is_flag=True, help='Marketplace listing format (de/pl)')
@click.option('--format', 'report_format', type=click.Choice(REPORT_FORMATS), default='json',
              help='Report format')
@click.option('--output', type=click.Path(dir_okay=False, path_type=Path), default=None,
              help='Report path (defaults to OUTPUT_DIR)')
@click.option('--verbose', is_flag=True, help='Detailed logging')
@async_command
async def run(
    images: tuple[str, ...],
    hint: Optional[str],
    language: Optional[str],
    ean: Optional[str],
    sku: Optional[str],
    brand: Optional[str],
    price: Optional[float],
    vat: Optional[float],
    skip_content: bool,
    marketplace_format: bool,
    report_format: str,
    output: Optional[Path],
    verbose: bool,
):
    """
    Create a product from photos.

    IMAGES: Image URLs or local file paths
    """
    settings = get_settings()
    setup_logger(verbose, settings)

    pipeline_images = [image_from_argument(value) for value in images]
    console.print(Panel.fit(
        f"[bold blue]Product AI Creator[/bold blue]\nImages: [cyan]{len(pipeline_images)}[/cyan]"
    ))

    try:
        pipeline_input = PipelineInput(
            images=pipeline_images,
            user_hint=hint,
            raw_data=RawProductData(ean=ean, sku=sku, brand=brand, price_gross=price, vat_rate=vat),
        )
    except ValueError as e:
        console.print(f"[bold red]Invalid input:[/bold red] {e}")
        sys.exit(2)

    try:
        async with create_registry(settings) as registry, ProductPipeline(settings=settings, registry=registry) as pipeline:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                console=console,
            ) as progress:
                task = progress.add_task("[cyan]Running pipeline...", total=100)

                def update_progress(event: ProgressEvent):
                    progress.update(
                        task,
                        completed=event.progress or 0,
                        description=f"[cyan]{event.message or event.stage}",
                    )

                options = PipelineOptions(
                    skip_content=skip_content,
                    language=language,
                    use_marketplace_format=marketplace_format,
                    on_progress=update_progress,
                )
                result = await pipeline.run(pipeline_input, options)
                progress.update(task, completed=100, description="[green]Pipeline finished")

        print_summary(result)

        if output:
            report_path = save_report(result, output, report_format)
        else:
            report_path = ReportFormatter(settings.output_dir).save(result, report_format)
        console.print(f"[green]✓[/green] Report saved to {report_path}")

    except AppError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        if verbose:
            console.print_exception()
        sys.exit(1)

    if result.status == PipelineStatus.FAILED:
        sys.exit(1)


@cli.command()
def providers():
    """List known providers in failover order."""
    settings = get_settings()
    setup_logger(False, settings)
    registry = create_registry(settings)

    table = Table(title="Providers", show_header=True, header_style="bold magenta")
    table.add_column("Priority", justify="right")
    table.add_column("Provider")
    table.add_column("Configured")
    table.add_column("Vision")
    table.add_column("Model")

    for row in registry.status():
        table.add_row(
            str(row.priority),
            f"{row.display_name} ({row.provider_id})",
            "[green]yes[/green]" if row.configured else "[dim]no[/dim]",
            "yes" if row.supports_vision else "-",
            (row.vision_model or row.default_model) if row.supports_vision else row.default_model,
        )
    console.print(table)


@cli.command()
@async_command
async def test_providers():
    """Send a minimal request to every configured provider."""
    settings = get_settings()
    setup_logger(False, settings)

    async with create_registry(settings) as registry:
        if not registry.available():
            console.print("[yellow]No providers configured.[/yellow]")
            sys.exit(1)

        console.print("[dim]Testing provider connections...[/dim]", style="italic")
        results = await registry.test_connections()

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Provider")
    table.add_column("Status")
    table.add_column("Latency", justify="right")
    table.add_column("Details")
    for provider_id, result in results.items():
        table.add_row(
            provider_id,
            "[green]Pass[/green]" if result.ok else "[red]Fail[/red]",
            f"{result.latency_ms} ms" if result.latency_ms is not None else "-",
            result.error or "",
        )
    console.print(table)

    if not all(result.ok for result in results.values()):
        sys.exit(1)


@cli.command()
def validate_setup():
    """Check provider keys and environment configuration."""
    console.print("[bold]Validating Setup...[/bold]")

    try:
        settings = get_settings()
        registry = create_registry(settings)

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Check")
        table.add_column("Status")
        table.add_column("Details")

        text_providers = registry.available_for_capability(Capability.TEXT)
        status = "[green]Pass[/green]" if text_providers else "[red]Fail[/red]"
        table.add_row("Text Providers", status, ", ".join(a.provider_id for a in text_providers) or "None")

        vision_providers = registry.available_for_capability(Capability.VISION)
        status = "[green]Pass[/green]" if vision_providers else "[red]Fail[/red]"
        table.add_row("Vision Providers", status, ", ".join(a.provider_id for a in vision_providers) or "None")

        table.add_row("Language", "[blue]Info[/blue]", settings.default_language)
        table.add_row("Currency / VAT", "[blue]Info[/blue]", f"{settings.default_currency} / {settings.default_vat_rate:g}%")
        table.add_row("Output Dir", "[green]Pass[/green]", str(settings.output_dir))
        table.add_row("Environment", "[blue]Info[/blue]", settings.app_env)

        console.print(table)

        if not vision_providers:
            console.print("\n[yellow]Warning: No vision-capable provider configured. The pipeline cannot analyze images.[/yellow]")
            sys.exit(1)

    except ValueError as e:
        console.print(f"[bold red]Configuration Error:[/bold red] {e}")
        sys.exit(1)

if __name__ == "__main__":
    cli()
