"""CLI entry point for project-wrapped.

Commands:
- collect: Fetch activity, build the summary and store it
- import: Validate a hand-authored summary document and store it
- validate: Check a summary document against the schema
- show: Render a stored summary, or the bundled sample
- list: List stored summaries
- test-connection: Check access to the configured source
"""

import asyncio
import json
import traceback
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.table import Table

from project_wrapped import __version__
from project_wrapped.config import load_config
from project_wrapped.logging import setup_logging
from project_wrapped.orchestrator import check_connection, collect_summary
from project_wrapped.schema import ProjectSummary, SummaryValidationError, validate_summary
from project_wrapped.storage import DocumentTooLargeError, SummaryStore, read_document

console = Console()

DEFAULT_STORAGE = Path("./data")


def _fail(ctx: click.Context, message: str, error: Exception) -> NoReturn:
    """Print an error, the traceback when verbose, and abort."""
    console.print(f"\n[bold red]{message}:[/bold red] {error}")
    if ctx.obj.get("verbose"):
        console.print("\n[dim]Traceback:[/dim]")
        console.print(traceback.format_exc())
    raise click.Abort() from error


@click.group()
@click.version_option(version=__version__, prog_name="project-wrapped")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable verbose output")
@click.option("--json-logs", is_flag=True, default=False, help="Emit logs as JSON lines")
@click.pass_context
def main(ctx: click.Context, verbose: bool, json_logs: bool) -> None:
    """Project Wrapped: a year-in-review summary of a software project.

    \b
    Quick Start:
        1. Collect and store a summary: project-wrapped collect --config config.yaml
        2. Show it: project-wrapped show <id>
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose=verbose, json_format=json_logs)


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Path to config.yaml file",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write the summary document to this file",
)
@click.option("--no-save", is_flag=True, default=False, help="Do not store the summary")
@click.pass_context
def collect(ctx: click.Context, config: Path, output: Path | None, no_save: bool) -> None:
    """Fetch activity from the configured source and build the summary."""
    try:
        cfg = load_config(config)
    except Exception as e:
        _fail(ctx, "Invalid configuration", e)

    console.print(f"[bold]Collecting {cfg.source.kind} activity for {cfg.source.project_name}[/bold]")

    try:
        summary = asyncio.run(collect_summary(cfg))
    except KeyboardInterrupt:
        console.print("\n[yellow]Collection interrupted by user[/yellow]")
        raise click.Abort() from None
    except Exception as e:
        _fail(ctx, "Error", e)

    console.print(
        f"  {summary.stats.total_commits} commits, "
        f"{summary.stats.total_pull_requests} pull requests, "
        f"{len(summary.contributors)} contributors"
    )

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        with output.open("w") as f:
            json.dump(summary.to_document(), f, indent=2)
        console.print(f"  Written to {output}")

    if not no_save:
        summary_id = SummaryStore(cfg.storage.root).save(summary)
        console.print(f"\n[bold green]Summary saved:[/bold green] {summary_id}")


@main.command(name="import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--storage",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_STORAGE,
    show_default=True,
    help="Storage root directory",
)
@click.pass_context
def import_document(ctx: click.Context, file: Path, storage: Path) -> None:
    """Validate a hand-authored summary document and store it."""
    try:
        raw = read_document(file)
    except DocumentTooLargeError as e:
        _fail(ctx, "Document too large", e)
    except (OSError, json.JSONDecodeError) as e:
        _fail(ctx, "Cannot read document", e)

    try:
        summary_id = SummaryStore(storage).save(raw)
    except SummaryValidationError as e:
        console.print("[bold red]Invalid data structure:[/bold red]")
        for issue in e.issues:
            console.print(f"  - {issue}")
        raise click.Abort() from e

    console.print(f"[bold green]Summary imported:[/bold green] {summary_id}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def validate(ctx: click.Context, file: Path) -> None:
    """Check a summary document against the schema."""
    try:
        raw = read_document(file)
    except DocumentTooLargeError as e:
        _fail(ctx, "Document too large", e)
    except (OSError, json.JSONDecodeError) as e:
        _fail(ctx, "Cannot read document", e)

    issues = validate_summary(raw)
    if issues:
        console.print(f"[bold red]{len(issues)} problem(s) found:[/bold red]")
        for issue in issues:
            console.print(f"  - {issue.path or '<root>'}: {issue.message}")
        ctx.exit(1)

    console.print("[bold green]Document is valid[/bold green]")


def _render_summary(summary: ProjectSummary) -> None:
    stats = summary.stats
    console.print(f"[bold]{summary.project_name}[/bold]")
    console.print(f"{summary.date_range.start} to {summary.date_range.end}\n")

    totals = Table(title="Stats")
    totals.add_column("Metric")
    totals.add_column("Value", justify="right")
    for label, value in (
        ("Commits", stats.total_commits),
        ("Pull requests", stats.total_pull_requests),
        ("Reviews", stats.total_reviews),
        ("Comments", stats.total_comments),
        ("Bugs fixed", stats.total_bugs_fixed),
        ("Story points", stats.total_story_points_done),
        ("Sprints", stats.sprints_completed),
    ):
        totals.add_row(label, str(value))
    console.print(totals)

    people = Table(title="Contributors")
    for column in ("Name", "Commits", "PRs opened", "PRs reviewed", "Comments"):
        people.add_column(column, justify="left" if column == "Name" else "right")
    for c in summary.contributors:
        people.add_row(
            c.name,
            str(c.commits),
            str(c.pull_requests_opened),
            str(c.pull_requests_reviewed),
            str(c.comments_written),
        )
    console.print(people)

    if summary.top5.busiest_days_by_commits:
        days = Table(title="Busiest days")
        days.add_column("Date")
        days.add_column("Commits", justify="right")
        for day in summary.top5.busiest_days_by_commits:
            days.add_row(day.date, str(day.commits))
        console.print(days)

    if summary.highlights:
        console.print("\n[bold]Highlights[/bold]")
        for line in summary.highlights:
            console.print(f"  * {line}")

    if summary.fun_facts:
        console.print("\n[bold]Fun facts[/bold]")
        for line in summary.fun_facts:
            console.print(f"  * {line}")

    if summary.milestones:
        console.print("\n[bold]Milestones[/bold]")
        for m in summary.milestones:
            console.print(f"  {m.date}  {m.title}: {m.description}")


@main.command()
@click.argument("summary_id")
@click.option(
    "--storage",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_STORAGE,
    show_default=True,
    help="Storage root directory",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the raw document")
def show(summary_id: str, storage: Path, as_json: bool) -> None:
    """Render a stored summary.

    Use SUMMARY_ID "sample" to show the demonstration document shipped with
    the package.
    """
    summary = SummaryStore(storage).load(summary_id)
    if summary is None:
        console.print(f"[bold red]Summary not found:[/bold red] {summary_id}")
        raise click.Abort()

    if as_json:
        click.echo(json.dumps(summary.to_document(), indent=2))
        return

    _render_summary(summary)


@main.command(name="list")
@click.option(
    "--storage",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_STORAGE,
    show_default=True,
    help="Storage root directory",
)
def list_summaries(storage: Path) -> None:
    """List stored summaries, newest first."""
    entries = SummaryStore(storage).list()
    if not entries:
        console.print("[yellow]No stored summaries[/yellow]")
        return

    table = Table(title="Stored summaries")
    table.add_column("ID")
    table.add_column("Project")
    table.add_column("Created")
    for entry in entries:
        table.add_row(entry.id, entry.project_name, entry.created_at)
    console.print(table)


@main.command(name="test-connection")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Path to config.yaml file",
)
@click.pass_context
def test_connection(ctx: click.Context, config: Path) -> None:
    """Check that the configured source is reachable."""
    try:
        cfg = load_config(config)
        result = asyncio.run(check_connection(cfg))
    except Exception as e:
        _fail(ctx, "Connection test failed", e)

    if not result.success:
        console.print(f"[bold red]Connection failed:[/bold red] {result.message}")
        ctx.exit(1)

    console.print(f"[bold green]{result.message}[/bold green]")
    for key, value in result.details.items():
        console.print(f"  {key}: {value}")


if __name__ == "__main__":
    main()
