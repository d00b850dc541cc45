"""CLI entry point for vitality."""

import logging
from pathlib import Path
from typing import NoReturn

# Load .env file if it exists
from dotenv import load_dotenv
load_dotenv()

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from vitality.analyzers.longevity import EpochPolicy
from vitality.analyzers.pipeline import ActivityPipeline
from vitality.analyzers.ranges import DEFAULT_RANGES_FILE, load_ranges
from vitality.config import Settings
from vitality.exceptions import VitalityError
from vitality.models.schemas import VitalityReport
from vitality.monitoring import MetricsCollector
from vitality.reports import write_html, write_json

app = typer.Typer(help="Repository vitality scoring from commit and release activity.")

console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Repository vitality scoring from commit and release activity."""
    try:
        settings = Settings.from_env()
    except VitalityError as e:
        _fail(e)
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level)
    logging.basicConfig(level=level, format="%(levelname)s:%(name)s:%(message)s")


def _fail(error: VitalityError) -> NoReturn:
    console.print(f"[red]Error in {error.stage} stage: {escape(error.message)}[/red]")
    raise typer.Exit(1)


def _build_pipeline(settings: Settings, metrics: MetricsCollector | None) -> ActivityPipeline:
    return ActivityPipeline(
        ranges_file=settings.ranges_file,
        tz=settings.tzinfo,
        epoch_policy=settings.epoch_policy,
        workers=settings.workers,
        git_timeout=settings.git_timeout,
        metrics=metrics,
    )


def _epoch_policy(strict_epoch: bool | None) -> EpochPolicy | None:
    if strict_epoch is None:
        return None
    return EpochPolicy.ABORT if strict_epoch else EpochPolicy.WARN


def _score_color(score: float, best: float) -> str:
    if best <= 0:
        return "white"
    ratio = score / best
    return "green" if ratio >= 0.66 else "yellow" if ratio >= 0.33 else "red"


@app.command()
def score(
    repository: Path = typer.Argument(..., help="Path of the local git clone"),
    days: int | None = typer.Option(None, "--days", "-d", help="Number of days to score (default 60)"),
    ranges: Path | None = typer.Option(None, "--ranges", "-r", help="YAML scoring ranges file"),
    tz: str | None = typer.Option(None, "--tz", help="Time zone defining calendar days (default UTC)"),
    workers: int | None = typer.Option(None, "--workers", "-w", help="Threads used to score days"),
    strict_epoch: bool | None = typer.Option(
        None,
        "--strict-epoch/--warn-epoch",
        help="Abort, instead of warning, when the history predates 2005",
    ),
    json_output: Path | None = typer.Option(None, "--json", help="Write the report as JSON"),
    html_output: Path | None = typer.Option(None, "--html", help="Write an HTML chart"),
    labels: str = typer.Option("offset", "--labels", help="Report labels: offset or date"),
    show_days: int = typer.Option(7, "--show-days", help="Days shown in the breakdown table"),
    metrics_file: Path | None = typer.Option(None, "--metrics-file", help="Write run metrics as JSON"),
) -> None:
    """Score the vitality of a repository for each of the last N days."""
    try:
        settings = Settings.from_env().with_overrides(
            days=days,
            ranges_file=ranges,
            timezone=tz,
            workers=workers,
            epoch_policy=_epoch_policy(strict_epoch),
            metrics_file=metrics_file,
        )
    except VitalityError as e:
        _fail(e)

    metrics = MetricsCollector(settings.metrics_file)
    pipeline = _build_pipeline(settings, metrics)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task(f"Scoring {repository}...", total=None)
            report = pipeline.analyze_repository(repository, settings.days)

        _print_report(report, show_days)

        if json_output:
            write_json(report, json_output, label_style=labels)
            console.print(f"[green]Saved JSON to {json_output}[/green]")
        if html_output:
            write_html(report, html_output, label_style=labels)
            console.print(f"[green]Saved chart to {html_output}[/green]")
    except VitalityError as e:
        _fail(e)
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)
    finally:
        metrics.save()


def _print_report(report: VitalityReport, show_days: int) -> None:
    """Display the current score and the most recent days."""
    best = max(score for _, score in report.series.items())
    color = _score_color(report.current_score, best)
    longevity = f"{report.longevity_days} days" if report.longevity_days is not None else "not scored"

    console.print()
    console.print(
        Panel(
            f"[bold][{color}]{report.current_score:g}[/{color}][/bold]  "
            f"(best {best:g} over {report.days} days)\n"
            f"[dim]Repository age: {longevity}[/dim]",
            title=f"Vitality: {escape(report.repository or '-')}",
            expand=False,
        )
    )

    for warning in report.warnings:
        console.print(f"[yellow]![/yellow] {escape(warning)}")

    if show_days <= 0:
        return

    table = Table(title="Recent Days", show_header=True)
    table.add_column("Offset", justify="right", style="dim")
    table.add_column("Date")
    table.add_column("Authors", justify="right")
    table.add_column("Activity", justify="right")
    table.add_column("Releases", justify="right")
    table.add_column("Points (U/C/R/L)", justify="right", style="dim")
    table.add_column("Score", justify="right", style="bold")

    for day in report.series.daily[:show_days]:
        table.add_row(
            str(day.offset),
            day.day.isoformat(),
            str(day.contributors),
            str(day.activity),
            str(day.releases),
            f"{day.user_community_points:g}/{day.code_activity_points:g}/"
            f"{day.release_history_points:g}/{day.longevity_points:g}",
            f"{day.score:g}",
        )

    console.print(table)


@app.command()
def rank(
    repositories: list[Path] = typer.Argument(..., help="Paths of local git clones"),
    days: int | None = typer.Option(None, "--days", "-d", help="Number of days to score (default 60)"),
    ranges: Path | None = typer.Option(None, "--ranges", "-r", help="YAML scoring ranges file"),
    tz: str | None = typer.Option(None, "--tz", help="Time zone defining calendar days (default UTC)"),
    workers: int | None = typer.Option(None, "--workers", "-w", help="Threads used to score days"),
    strict_epoch: bool | None = typer.Option(
        None,
        "--strict-epoch/--warn-epoch",
        help="Fail a repository, instead of warning, when its history predates 2005",
    ),
    metrics_file: Path | None = typer.Option(None, "--metrics-file", help="Write run metrics as JSON"),
) -> None:
    """Rank several repositories by their current vitality."""
    try:
        settings = Settings.from_env().with_overrides(
            days=days,
            ranges_file=ranges,
            timezone=tz,
            workers=workers,
            epoch_policy=_epoch_policy(strict_epoch),
            metrics_file=metrics_file,
        )
    except VitalityError as e:
        _fail(e)

    metrics = MetricsCollector(settings.metrics_file)
    pipeline = _build_pipeline(settings, metrics)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Scoring...", total=len(repositories))

            def on_progress(current: int, total: int, path: str) -> None:
                progress.update(task, description=f"Scoring {path}...", completed=current - 1)

            results = pipeline.rank_repositories(repositories, settings.days, progress_callback=on_progress)
            progress.update(task, completed=len(repositories))
    except VitalityError as e:
        _fail(e)
    finally:
        metrics.save()

    table = Table(title=f"Vitality Ranking ({settings.days} days)")
    table.add_column("Rank", style="dim", width=6)
    table.add_column("Repository", style="cyan")
    table.add_column("Score", justify="right", style="bold")
    table.add_column("Age (days)", justify="right")
    table.add_column("Status")

    position = 0
    for result in results:
        if result.report is not None:
            position += 1
            status = "[yellow]warning[/yellow]" if result.report.warnings else "[green]ok[/green]"
            age = result.report.longevity_days
            table.add_row(
                str(position),
                escape(result.repository),
                f"{result.report.current_score:g}",
                str(age) if age is not None else "-",
                status,
            )
        else:
            table.add_row(
                "-",
                escape(result.repository),
                "-",
                "-",
                f"[red]{result.stage}: {escape(result.error or '')}[/red]",
            )

    console.print(table)

    failed = [r for r in results if r.report is None]
    if failed and len(failed) == len(results):
        raise typer.Exit(1)


@app.command(name="ranges")
def show_ranges(
    file: Path | None = typer.Argument(None, help="YAML ranges file (default: packaged ranges)"),
) -> None:
    """Show the scoring range tables."""
    try:
        path = file or Settings.from_env().ranges_file or DEFAULT_RANGES_FILE
        table_set = load_ranges(path)
    except VitalityError as e:
        _fail(e)

    console.print(f"[dim]{escape(str(path))}[/dim]")
    for name, scoring_table in table_set.tables.items():
        table = Table(title=name.value, show_header=True)
        table.add_column("Min", justify="right")
        table.add_column("Max", justify="right")
        table.add_column("Points", justify="right", style="green")
        for r in scoring_table.ranges:
            table.add_row(f"{r.min:g}", f"{r.max:g}", f"{r.points:g}")
        console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from vitality import __version__

    console.print(f"vitality v{__version__}")


if __name__ == "__main__":
    app()
