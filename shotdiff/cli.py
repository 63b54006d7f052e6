"""CLI entry point for shotdiff."""

from __future__ import annotations

import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from shotdiff.errors import PathAvailabilityError
from shotdiff.models.config import DiffConfig
from shotdiff.models.report import DiffReport
from shotdiff.orchestrator import Orchestrator
from shotdiff.progress import RichProgress
from shotdiff.reporter.json_report import load_report

console = Console()


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def render_report(report: DiffReport) -> None:
    table = Table(title="Screenshot Diff Summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Screenshots", str(report.total_screenshots_count))
    table.add_row("Unchanged", f"[green]{report.unchanged_count}[/green]")
    table.add_row("Changed", f"[yellow]{len(report.screenshots_changed)}[/yellow]")
    table.add_row("Added", f"[cyan]{len(report.screenshots_added)}[/cyan]")
    table.add_row("Removed", f"[red]{len(report.screenshots_removed)}[/red]")
    console.print(table)


def render_differences(report: DiffReport) -> None:
    report = report.sorted()
    if not report.found_differences:
        console.print("[green]No differences recorded[/green]")
        return
    table = Table(title="Differences")
    table.add_column("Screenshot", style="bold")
    table.add_column("Status")
    table.add_column("Mismatched pixels", justify="right")
    for entry in report.screenshots_changed:
        table.add_row(entry.image_name, "[yellow]changed[/yellow]", str(entry.mismatched_pixels))
    for name in report.screenshots_added:
        table.add_row(name, "[cyan]added[/cyan]", "")
    for name in report.screenshots_removed:
        table.add_row(name, "[red]removed[/red]", "")
    console.print(table)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Visual regression diff between two directories of screenshots"""
    setup_logging(verbose)


@cli.command()
@click.argument("baseline_dir")
@click.argument("candidate_dir")
@click.argument("diff_dir")
@click.option("--threshold", "-t", type=float, default=None, help="Mismatch threshold in [0, 1]")
@click.option("--single-thread", is_flag=True, help="Diff in-process, one image at a time")
@click.option("--workers", "-w", type=click.IntRange(min=1), default=None, help="Number of workers")
@click.option("--mode", type=click.Choice(["process", "thread"]), default=None, help="Worker isolation")
@click.option("--config", "-c", default=None, help="Optional JSON config file")
def run(
    baseline_dir: str,
    candidate_dir: str,
    diff_dir: str,
    threshold: float | None,
    single_thread: bool,
    workers: int | None,
    mode: str | None,
    config: str | None,
) -> None:
    """Diff BASELINE_DIR against CANDIDATE_DIR, writing diff images and the report to DIFF_DIR."""
    overrides = {
        "baseline_dir": baseline_dir,
        "candidate_dir": candidate_dir,
        "diff_dir": diff_dir,
        "threshold": threshold,
        "single_thread": single_thread or None,
        "workers": workers,
        "worker_mode": mode,
    }
    try:
        if config:
            cfg = DiffConfig.load(config, **overrides)
        else:
            cfg = DiffConfig(**{k: v for k, v in overrides.items() if v is not None})
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {config}[/red]")
        sys.exit(1)

    orchestrator = Orchestrator(cfg, progress=RichProgress(console))
    try:
        report = orchestrator.run()
    except PathAvailabilityError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    render_report(report)
    console.print(f"  JSON report: [blue]{cfg.report_path}[/blue]")


@cli.command()
@click.argument("report_path")
def show(report_path: str) -> None:
    """Show the differences recorded in a saved report."""
    try:
        report = load_report(report_path)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    console.print(report.message)
    render_report(report)
    render_differences(report)


if __name__ == "__main__":
    cli()
