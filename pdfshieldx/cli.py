"""
Command-line interface for pdfshieldx.
"""

import json
import os
import re
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeRemainingColumn
from rich.table import Table

from pdfshieldx import __version__
from pdfshieldx.config import (
    DEFAULT_DPI,
    DEFAULT_OPACITY,
    DEFAULT_SCALE,
    PipelineConfig,
    ReencodeSettings,
    StageLayout,
    WatermarkSettings,
)
from pdfshieldx.exceptions import PDFShieldXError, RasterizationError
from pdfshieldx.pipeline import Pipeline
from pdfshieldx.rasterizer import Rasterizer
from pdfshieldx.reassembler import reassemble
from pdfshieldx.rename import PRESETS, rename_pdfs
from pdfshieldx.utils import configure_logging, format_file_size
from pdfshieldx.watermark import watermark_pdf

console = Console()


def _print_error(exc: Exception) -> None:
    console.print(f"\n[bold red]✗ Error:[/bold red] {exc}")
    hint = getattr(exc, "hint", None)
    if hint:
        console.print(f"[yellow]Hint:[/yellow] {hint}")


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose):
    """
    pdfshieldx - Watermark PDFs and turn them into rasterized copies.
    """
    configure_logging(verbose)


@cli.command(name="run")
@click.argument('base_dir', type=click.Path(file_okay=False), default='.')
@click.option('--input-dir', type=click.Path(file_okay=False), help='Input PDFs (default: BASE_DIR/1-pdfs)')
@click.option('--watermarks-dir', type=click.Path(file_okay=False), help='Watermarked PDFs (default: BASE_DIR/2-watermarks)')
@click.option('--images-dir', type=click.Path(file_okay=False), help='Page images (default: BASE_DIR/3-pdf-to-images)')
@click.option('--export-dir', type=click.Path(file_okay=False), help='Final PDFs (default: BASE_DIR/4-export)')
@click.option('--watermark', '-w', type=click.Path(dir_okay=False), help='Watermark image (default: BASE_DIR/watermark.png)')
@click.option('--dpi', default=DEFAULT_DPI, show_default=True, type=click.IntRange(min=1), help='Rasterization resolution')
@click.option('--opacity', default=DEFAULT_OPACITY, show_default=True, type=click.FloatRange(0, 1, min_open=True), help='Watermark opacity')
@click.option('--scale', default=DEFAULT_SCALE, show_default=True, type=click.FloatRange(0, min_open=True), help='Watermark scale relative to its pixel size')
@click.option('--reencode/--no-reencode', default=False, show_default=True, help='Recompress page images before reassembly')
@click.option('--jpeg-quality', default=30, show_default=True, type=click.IntRange(1, 95), help='JPEG quality used by --reencode')
@click.option('--png', is_flag=True, help='Store re-encoded pages as maximally compressed PNG')
@click.option('--physical-size', is_flag=True, help='Size output pages from DPI instead of 1pt per pixel')
@click.option('--timeout', type=click.FloatRange(0, min_open=True), help='Seconds allowed for each pdftoppm call')
@click.option('--report', type=click.Path(dir_okay=False), help='Write a JSON batch report to this path')
def run(base_dir, input_dir, watermarks_dir, images_dir, export_dir, watermark, dpi, opacity,
        scale, reencode, jpeg_quality, png, physical_size, timeout, report):
    """
    Run the full pipeline: watermark, rasterize, reassemble.

    Examples:

        pdfshieldx run ./invoices

        pdfshieldx run . --dpi 100 --reencode --report report.json
    """
    defaults = StageLayout.under(base_dir)
    try:
        layout = StageLayout(
            input_dir=input_dir or defaults.input_dir,
            watermarked_dir=watermarks_dir or defaults.watermarked_dir,
            rasterized_dir=images_dir or defaults.rasterized_dir,
            export_dir=export_dir or defaults.export_dir,
        )
    except ValueError as e:
        raise click.UsageError(str(e))
    config = PipelineConfig(
        layout=layout,
        watermark=WatermarkSettings(
            path=watermark or Path(base_dir) / "watermark.png",
            opacity=opacity,
            scale=scale,
        ),
        dpi=dpi,
        reencode=ReencodeSettings(enabled=reencode, jpeg_quality=jpeg_quality, png=png),
        physical_page_size=physical_size,
        timeout_seconds=timeout,
    )

    console.print(f"\n[bold cyan]Scanning directory:[/bold cyan] {layout.input_dir}")
    try:
        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeRemainingColumn(),
            console=console
        ) as progress:
            task = progress.add_task("Processing PDFs", total=None)

            def update_progress(doc_id, stage, current, total):
                progress.update(task, total=total, completed=current - 1,
                                description=f"{stage.value.capitalize()}: {doc_id}")

            batch = Pipeline(config, progress_callback=update_progress).run()
    except PDFShieldXError as e:
        _print_error(e)
        sys.exit(1)

    if batch.total == 0:
        console.print(f"\n[bold yellow]⚠ No PDF files found in {layout.input_dir}[/bold yellow]")
        sys.exit(0)

    summary_table = Table(title="Batch Processing Summary", show_header=False)
    summary_table.add_column("Metric", style="cyan")
    summary_table.add_column("Value", style="green")
    summary_table.add_row("Total Files", str(batch.total))
    summary_table.add_row("✓ Exported", f"[green]{batch.success}[/green]")
    summary_table.add_row("✗ Failed", f"[red]{batch.failure}[/red]")
    summary_table.add_row("Export Directory", str(layout.export_dir))
    console.print()
    console.print(summary_table)

    if batch.failure:
        console.print("\n[bold red]Failed Files:[/bold red]")
        for result in batch.failures:
            console.print(
                f"  ✗ {result.doc_id} [dim]({result.failed_stage.value})[/dim]: "
                f"{result.error_type}: {result.error}"
            )
            if result.hint:
                console.print(f"    [yellow]Hint:[/yellow] {result.hint}")

    if report:
        report_path = Path(report)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(json.dumps(batch.to_dict(), indent=2))
        console.print(f"[dim]Report written to {os.path.abspath(report)}[/dim]")

    console.print()
    sys.exit(batch.exit_code)


@cli.command(name="watermark")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@click.argument('output_pdf', type=click.Path(dir_okay=False))
@click.option('--watermark', '-w', required=True, type=click.Path(dir_okay=False), help='Watermark image')
@click.option('--opacity', default=DEFAULT_OPACITY, show_default=True, type=click.FloatRange(0, 1, min_open=True))
@click.option('--scale', default=DEFAULT_SCALE, show_default=True, type=click.FloatRange(0, min_open=True))
def watermark_command(input_pdf, output_pdf, watermark, opacity, scale):
    """
    Draw a translucent watermark image on every page of a PDF.

    Example:

        pdfshieldx watermark invoice.pdf out.pdf -w watermark.png
    """
    try:
        destination = watermark_pdf(input_pdf, output_pdf, watermark, opacity=opacity, scale=scale)
    except PDFShieldXError as e:
        _print_error(e)
        sys.exit(1)
    console.print(f"\n[bold green]✓ Successfully created:[/bold green] {destination}")
    console.print(f"[dim]Output size: {format_file_size(destination.stat().st_size)}[/dim]\n")


@cli.command(name="rasterize")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@click.argument('output_dir', type=click.Path(file_okay=False))
@click.option('--dpi', default=DEFAULT_DPI, show_default=True, type=click.IntRange(min=1))
@click.option('--timeout', type=click.FloatRange(0, min_open=True), help='Seconds allowed for pdftoppm')
def rasterize_command(input_pdf, output_dir, dpi, timeout):
    """
    Render every page of a PDF to page_<n>.jpg.

    Example:

        pdfshieldx rasterize invoice.pdf invoice_images --dpi 100
    """
    try:
        pages = Rasterizer(dpi=dpi, timeout_seconds=timeout).rasterize(input_pdf, output_dir)
    except RasterizationError as e:
        _print_error(e)
        sys.exit(1)
    console.print(f"\n[bold green]✓ Rendered {len(pages)} page(s)[/bold green]")
    console.print(f"[dim]Output directory: {os.path.abspath(output_dir)}[/dim]\n")


@cli.command(name="reassemble")
@click.argument('images_dir', type=click.Path(exists=True, file_okay=False))
@click.argument('output_pdf', type=click.Path(dir_okay=False))
@click.option('--dpi', type=click.IntRange(min=1), help='Size pages physically for this DPI')
def reassemble_command(images_dir, output_pdf, dpi):
    """
    Build a PDF from page_<n>.jpg images, one page per image.

    Example:

        pdfshieldx reassemble invoice_images invoice.pdf
    """
    try:
        count = reassemble(images_dir, output_pdf, dpi=dpi)
    except PDFShieldXError as e:
        _print_error(e)
        sys.exit(1)
    console.print(f"\n[bold green]✓ Successfully created:[/bold green] {output_pdf} ({count} page(s))\n")


@cli.command(name="rename")
@click.argument('directory', type=click.Path(exists=True, file_okay=False))
@click.option('--preset', type=click.Choice(sorted(PRESETS)), help='Built-in filename pattern')
@click.option('--pattern', type=str, help='Custom regular expression; capture groups form the new name')
@click.option('--dry-run', is_flag=True, help='Show the renames without applying them')
def rename_command(directory, preset, pattern, dry_run):
    """
    Rename PDFs to an identifier extracted from their filename.

    Examples:

        pdfshieldx rename ./factures --preset invoices

        pdfshieldx rename ./frais --pattern '(FR\\d+-\\d+)' --dry-run
    """
    if (preset is None) == (pattern is None):
        console.print("\n[bold red]✗ Error:[/bold red] Use exactly one of --preset or --pattern")
        sys.exit(2)

    try:
        outcomes = rename_pdfs(directory, pattern, preset=preset, dry_run=dry_run)
    except re.error as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] Invalid pattern: {e}")
        sys.exit(2)

    table = Table(title="Renamed Files" if not dry_run else "Planned Renames")
    table.add_column("File", style="cyan")
    table.add_column("New Name", style="green")
    table.add_column("Status")
    for outcome in outcomes:
        table.add_row(
            outcome.source.name,
            outcome.target.name if outcome.target else "-",
            outcome.status,
        )
    console.print()
    console.print(table)
    console.print()


if __name__ == '__main__':
    cli()
