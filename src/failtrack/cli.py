"""
failtrack Command Line Interface.

Processes test results files against the issue tracker and inspects the
mapping database.
"""

import asyncio
import logging
import sys
from typing import Any

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from failtrack.config.loader import ConfigurationError, load_config
from failtrack.config.models import FailtrackConfig, TrackerType
from failtrack.lifecycle.manager import BatchSummary
from failtrack.reporter.results_file import ResultsFileError, load_results
from failtrack.reporter.session import build_session
from failtrack.storage.mapping_store import MappingStore
from failtrack.tracker.factory import create_tracker
from failtrack.utils.identity import identify
from failtrack.version import __version__

console = Console()


def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.run(coro)


def configure_logging(config: FailtrackConfig, verbose: bool = False) -> None:
    """Configure root logging from the logging section.

    Args:
        config: Resolved configuration
        verbose: Force INFO level (or lower if configured)
    """
    level = getattr(logging, config.logging.level.value)
    if verbose:
        level = min(level, logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.logging.file:
        handlers.append(logging.FileHandler(config.logging.file, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )
    logging.getLogger("failtrack").setLevel(level)


def _load_config(ctx: click.Context, overrides: dict[str, Any] | None = None) -> FailtrackConfig:
    """Resolve configuration for a command, exiting on errors."""
    try:
        cfg = load_config(ctx.obj.get("config_path"), overrides)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)
    configure_logging(cfg, ctx.obj.get("verbose", False))
    return cfg


@click.group()
@click.version_option(version=__version__, prog_name="failtrack")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to configuration file",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """failtrack: tracker issues that follow your failing tests.

    Opens an issue when a test starts failing, closes it when the test
    passes again, and reopens it if the test regresses.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


@main.command()
@click.argument("results_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--generate-issues/--no-generate-issues",
    default=None,
    help="Create issues for failing tests",
)
@click.option(
    "--track-issues/--no-track-issues",
    default=None,
    help="Close issues for tests that pass again",
)
@click.option(
    "--database",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path of the mapping database",
)
@click.option(
    "--tracker",
    type=click.Choice([t.value for t in TrackerType]),
    default=None,
    help="Tracker backend",
)
@click.pass_context
def process(
    ctx: click.Context,
    results_file: str,
    generate_issues: bool | None,
    track_issues: bool | None,
    database: str | None,
    tracker: str | None,
) -> None:
    """Process a results file (JUnit XML, JSON, or Jest --json).

    Tracker failures are reported but never change the exit status.
    """
    cfg = _load_config(
        ctx,
        {
            "lifecycle.generate_issues": generate_issues,
            "lifecycle.track_issues": track_issues,
            "storage.database_path": database,
            "tracker.type": tracker,
        },
    )

    try:
        results = load_results(results_file)
    except ResultsFileError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    console.print(f"Loaded [bold]{len(results)}[/bold] test results from {results_file}")
    if not cfg.lifecycle.enabled:
        console.print(
            "[yellow]Neither --generate-issues nor --track-issues is enabled; "
            "nothing to do.[/yellow]"
        )
        return

    session = build_session(cfg)
    for result in results:
        session.on_test_result(result)

    async def run() -> BatchSummary:
        await session.on_run_start()
        return await session.on_run_complete()

    summary = run_async(run())
    _display_summary(summary)


def _display_summary(summary: BatchSummary) -> None:
    """Print a batch summary."""
    if not summary.processed:
        console.print(f"[yellow]Issue tracking skipped: {summary.skipped_reason.value}[/yellow]")
        return

    changed = [o for o in summary.outcomes if o.action.value in ("create", "close", "reopen")]
    if changed:
        table = Table(title="Issue Transitions", show_header=True)
        table.add_column("Action", style="cyan")
        table.add_column("Issue", justify="right")
        table.add_column("Test")
        table.add_column("Result")
        for outcome in changed:
            table.add_row(
                outcome.action.value,
                f"#{outcome.issue_number}" if outcome.issue_number else "-",
                outcome.test_name,
                "[green]ok[/green]" if outcome.success else f"[red]{outcome.error}[/red]",
            )
        console.print(table)

    summary_table = Table(title="Summary", show_header=False, box=None)
    summary_table.add_column("Metric", style="bold")
    summary_table.add_column("Value", justify="right")
    summary_table.add_row("Tests processed", str(len(summary.outcomes)))
    summary_table.add_row("Issues created", str(summary.created))
    summary_table.add_row("Issues closed", str(summary.closed))
    summary_table.add_row("Issues reopened", str(summary.reopened))
    summary_table.add_row("Failures", str(summary.failed))
    summary_table.add_row("Database saved", "yes" if summary.saved else "no")
    console.print(summary_table)


@main.command()
@click.option("--open-only", is_flag=True, help="Show only open issues")
@click.option(
    "--database",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path of the mapping database",
)
@click.pass_context
def status(ctx: click.Context, open_only: bool, database: str | None) -> None:
    """Show stored test → issue mappings."""
    cfg = _load_config(ctx, {"storage.database_path": database})
    store = MappingStore(cfg.storage.database_path)

    entries = [
        (identity, mapping)
        for identity, mapping in store.all_entries()
        if mapping.is_open or not open_only
    ]
    if not entries:
        console.print("[dim]No issue mappings found.[/dim]")
        return

    table = Table(title=f"Issue Mappings ({store.path})", show_header=True)
    table.add_column("Issue", justify="right", style="cyan")
    table.add_column("Status")
    table.add_column("Test")
    table.add_column("Last Failure")
    table.add_column("Fixed By")
    for identity, mapping in entries:
        status_text = "[red]open[/red]" if mapping.is_open else "[green]closed[/green]"
        table.add_row(
            f"#{mapping.issue_number}",
            status_text,
            mapping.test_name or identity[:12],
            mapping.last_failure.isoformat(timespec="seconds") if mapping.last_failure else "-",
            mapping.fixed_by or "-",
        )
    console.print(table)


@main.command()
@click.option(
    "--tracker",
    type=click.Choice([t.value for t in TrackerType]),
    default=None,
    help="Tracker backend",
)
@click.pass_context
def check(ctx: click.Context, tracker: str | None) -> None:
    """Check whether the configured tracker is available."""
    cfg = _load_config(ctx, {"tracker.type": tracker})
    client = create_tracker(cfg.tracker)

    async def check_available() -> bool:
        async with client:
            return await client.is_available()

    available = run_async(check_available())
    if available:
        console.print(f"[green]✓[/green] Tracker '{client.name}' is available")
    else:
        console.print(f"[red]✗[/red] Tracker '{client.name}' is not available")
        sys.exit(1)


@main.command(name="identify")
@click.argument("test_file_path")
@click.argument("test_name")
def identify_command(test_file_path: str, test_name: str) -> None:
    """Print the identity of a test."""
    click.echo(identify(test_file_path, test_name))


@main.command(name="config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Display the resolved configuration."""
    cfg = _load_config(ctx)
    console.print(
        Panel(
            "[bold blue]failtrack Configuration[/bold blue]",
            title="Configuration",
        )
    )

    console.print("[bold]Lifecycle[/bold]")
    console.print(f"  Generate Issues: {cfg.lifecycle.generate_issues}")
    console.print(f"  Track Issues: {cfg.lifecycle.track_issues}")
    console.print(f"  Reopen Gate: {cfg.lifecycle.reopen_gate.value}")
    console.print(f"  Max Concurrency: {cfg.lifecycle.max_concurrency}")
    console.print()

    console.print("[bold]Storage[/bold]")
    console.print(f"  Database: {cfg.storage.database_path}")
    console.print()

    console.print("[bold]Tracker[/bold]")
    console.print(f"  Type: {cfg.tracker.type.value}")
    console.print(f"  Repository: {cfg.tracker.repo or '(gh default)'}")
    if cfg.tracker.type == TrackerType.FILE:
        console.print(f"  Issues Directory: {cfg.tracker.issues_dir}")


if __name__ == "__main__":
    main()
