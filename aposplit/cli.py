"""
CLI Interface
=============
Command-line interface for the splitter engine.

Usage:
    aposplit split <pdf_path> [options]
    aposplit inspect <pdf_path> [options]
    aposplit info <pdf_path>
"""

from __future__ import annotations

import json
import os
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from . import __version__
from .engine import SplitterConfig, SplitterEngine
from .page_source import PyMuPDFPageSource

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="aposplit")
def cli():
    """aposplit: split grade transcript and certificate batches per student."""
    pass


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output", "-o",
    default=None,
    help="Base directory for grade report output (defaults to the PDF's folder)",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.option(
    "--log-file",
    default=None,
    help="Path to log file",
)
@click.option(
    "--no-compress",
    is_flag=True,
    default=False,
    help="Save output PDFs without garbage collection and deflate",
)
@click.option(
    "--no-verify-certificates",
    is_flag=True,
    default=False,
    help="Split certificate batches even if no page looks like a certificate",
)
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Output only JSON result to stdout (for programmatic use)",
)
def split(
    pdf_path: str,
    output: str,
    log_level: str,
    log_file: str,
    no_compress: bool,
    no_verify_certificates: bool,
    json_output: bool,
):
    """Split a batch PDF into one file per student."""

    if json_output:
        # Suppress console output for JSON mode
        log_level = "ERROR"

    config = SplitterConfig(
        compress=not no_compress,
        verify_certificates=not no_verify_certificates,
        log_level=log_level,
        log_file=log_file,
    )

    if not json_output:
        console.print()
        console.print(
            Panel.fit(
                f"[bold cyan]aposplit v{__version__}[/]\n"
                f"[dim]Splitting: {os.path.basename(pdf_path)}[/]",
                border_style="cyan",
            )
        )
        console.print()

    try:
        engine = SplitterEngine(config)

        if not json_output:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=console,
            ) as progress:
                task = progress.add_task("Splitting PDF...", total=None)

                def on_page(done: int, total: int):
                    progress.update(task, completed=done, total=total)

                result = engine.split(pdf_path, output, progress_callback=on_page)

            try:
                _display_result(result)
            except UnicodeEncodeError:
                # Windows console may not support special chars
                print(f"Split complete: {result.files_written} files written")
                print(f"Output directory: {result.output_dir}")
        else:
            result = engine.split(pdf_path, output)
            print(json.dumps(
                result.model_dump(),
                indent=2,
                ensure_ascii=False,
                default=str,
            ))

    except (ValueError, FileNotFoundError, RuntimeError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/] {e}")
        if log_level == "DEBUG":
            console.print_exception()
        sys.exit(1)

    if result.failed:
        sys.exit(1)


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output", "-o",
    default=None,
    help="Base directory for grade report output (defaults to the PDF's folder)",
)
@click.option(
    "--no-verify-certificates",
    is_flag=True,
    default=False,
    help="Plan certificate batches even if no page looks like a certificate",
)
def inspect(pdf_path: str, output: str, no_verify_certificates: bool):
    """Show the files a split would write, without writing them."""

    config = SplitterConfig(
        verify_certificates=not no_verify_certificates,
        log_level="WARNING",
    )

    try:
        plan = SplitterEngine(config).plan(pdf_path, output)
    except (ValueError, FileNotFoundError, RuntimeError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Split Plan[/]\n"
            f"[dim]{os.path.basename(pdf_path)} → {plan.document_type.value}[/]\n"
            f"[dim]Output: {plan.output_dir}[/]",
            border_style="cyan",
        )
    )

    table = Table(title="Planned Files", border_style="cyan")
    table.add_column("File", style="bold")
    table.add_column("Pages", justify="right")
    table.add_column("Name")
    table.add_column("Number")

    for planned in plan.outputs:
        table.add_row(
            planned.filename,
            _format_pages(planned.source_pages),
            planned.name or "[yellow]?[/]",
            planned.key or "[yellow]?[/]",
        )

    console.print(table)
    console.print(
        f"[bold]Total:[/] {len(plan.outputs)} files from "
        f"{plan.total_pages} pages"
    )
    console.print()


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True, dir_okay=False))
def info(pdf_path: str):
    """Display PDF file information and the detected batch type."""

    try:
        with PyMuPDFPageSource(pdf_path) as source:
            engine = SplitterEngine(SplitterConfig(log_level="WARNING"))
            document_type = engine.classify(source)
            page_count = source.page_count()
            metadata = source.metadata
    except RuntimeError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    console.print()
    table = Table(title="PDF Information", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")

    table.add_row("File", os.path.basename(pdf_path))
    table.add_row("Pages", str(page_count))
    table.add_row(
        "File Size",
        f"{os.path.getsize(pdf_path) / 1024 / 1024:.2f} MB",
    )
    table.add_row("Batch Type", document_type.value)

    for key in ["title", "author", "subject", "creator", "producer"]:
        val = metadata.get(key, "")
        if val:
            table.add_row(key.title(), val)

    console.print(table)
    console.print()


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _format_pages(pages: list[int]) -> str:
    """Zero-based indices to a 1-based label: [1, 2, 3] -> "2-4"."""
    if not pages:
        return "-"
    first, last = pages[0] + 1, pages[-1] + 1
    if first == last:
        return str(first)
    if last - first + 1 == len(pages):
        return f"{first}-{last}"
    return ", ".join(str(p + 1) for p in pages)


def _display_result(result):
    """Display split results in formatted tables."""
    console.print()

    table = Table(title="Written Files", border_style="cyan")
    table.add_column("File", style="bold")
    table.add_column("Pages", justify="right")
    table.add_column("Status", justify="center")

    for output in result.written:
        table.add_row(
            os.path.basename(output.path),
            _format_pages(output.source_pages),
            "[green]✓[/]",
        )
    for failure in result.failed:
        table.add_row(
            os.path.basename(failure.path),
            _format_pages(failure.source_pages),
            "[red]✗ FAILED[/]",
        )

    console.print(table)
    console.print()

    _display_report_table(result.report.model_dump())

    console.print(
        f"[bold]Total:[/] {result.files_written} files written to "
        f"{result.output_dir}, {result.files_failed} failures"
    )
    console.print()


def _display_report_table(report: dict):
    """Display the split report as a rich table."""
    table = Table(title="Split Report", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status", justify="center")

    def status_icon(count, threshold=0):
        if count <= threshold:
            return "[green]✓[/]"
        return "[yellow]⚠[/]"

    total = report.get("total_outputs", 0)
    written = report.get("written", 0)
    rate = report.get("success_rate", 0)

    table.add_row(
        "Files Written",
        f"{written}/{total} ({rate}%)",
        "[green]✓[/]" if total and written == total else "[red]✗[/]",
    )

    for label, field in [
        ("Runs Missing Name", "runs_missing_name"),
        ("Runs Missing Student Number", "runs_missing_key"),
        ("Duplicate Student Numbers", "duplicate_keys"),
        ("Placeholder Certificates", "placeholder_certificates"),
    ]:
        count = len(report.get(field, []))
        table.add_row(label, str(count), status_icon(count))

    console.print(table)
    console.print()

    breakdown = report.get("anomaly_breakdown", {})
    if breakdown:
        anomaly_table = Table(
            title="Anomaly Breakdown",
            border_style="yellow",
        )
        anomaly_table.add_column("Type", style="bold")
        anomaly_table.add_column("Count", justify="right")

        for atype, count in sorted(breakdown.items()):
            anomaly_table.add_row(atype, str(count))

        console.print(anomaly_table)
        console.print()


# ─── Entry point (for python -m aposplit.cli) ─────────────────────────────────


if __name__ == "__main__":
    cli()
