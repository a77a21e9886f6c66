"""Main CLI entry point for Reviewflow.

This module provides the main Typer application with commands for running
the periodic scheduler and for triggering single passes by hand.

Usage:
    reviewflow run
    reviewflow assign
    reviewflow notify
    reviewflow --config reviewflow.toml init-db
"""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from reviewflow.assignment import (
    AssignmentOrchestrator,
    ReviewerSelector,
    SynchronizedRandom,
    WeightedSelector,
)
from reviewflow.config import ReviewflowConfig, load_config
from reviewflow.database.connection import create_schema, get_engine, get_session_factory
from reviewflow.integrations import ChatBotClient, GitLabClient
from reviewflow.logging import setup_logging
from reviewflow.notifications import NotificationDedupEngine
from reviewflow.scheduler import PeriodicScheduler

app = typer.Typer(
    name="reviewflow",
    help="Reviewflow: GitLab reviewer assignment and review notifications",
    no_args_is_help=True,
)

console = Console()


class AppContext:
    """Application context shared across CLI commands.

    Attributes:
        config: Loaded Reviewflow configuration
        engine: Async SQLAlchemy engine
        session_factory: Factory for creating database sessions
        gitlab: GitLab API client
        chat: Chat bot client
        random_source: Process-wide random source for reviewer selection
        orchestrator: Reviewer assignment pass
        dedup_engine: Notification dedup engine
    """

    def __init__(self, config: ReviewflowConfig):
        self.config = config
        self.engine = get_engine(config.database)
        self.session_factory = get_session_factory(self.engine)
        self.gitlab = GitLabClient(config.gitlab)
        self.chat = ChatBotClient(config.chat)
        self.random_source = SynchronizedRandom()

        selector = ReviewerSelector(
            WeightedSelector(self.random_source),
            workload_window_days=config.assignment.workload_window_days,
        )
        self.orchestrator = AssignmentOrchestrator(
            session_factory=self.session_factory,
            selector=selector,
            code_review=self.gitlab,
            chat=self.chat,
            config=config.assignment,
        )
        self.dedup_engine = NotificationDedupEngine(
            session_factory=self.session_factory,
            chat=self.chat,
            config=config.notifications,
        )

    def build_scheduler(self) -> PeriodicScheduler:
        return PeriodicScheduler.from_components(
            self.config, self.orchestrator, self.dedup_engine
        )

    async def aclose(self) -> None:
        """Close HTTP clients and dispose of the engine."""
        await self.gitlab.close()
        await self.chat.close()
        await self.engine.dispose()


# Global context holder
_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Get the shared application context.

    Raises:
        RuntimeError: If context has not been initialized
    """
    if _app_context is None:
        raise RuntimeError("Application context not initialized. Call initialize_context first.")
    return _app_context


def initialize_context(config: ReviewflowConfig) -> AppContext:
    """Initialize the global application context."""
    global _app_context
    _app_context = AppContext(config)
    return _app_context


def _report_table(title: str, counters: dict[str, int]) -> Table:
    table = Table(title=title, show_header=False)
    table.add_column("Counter", style="bold cyan")
    table.add_column("Value", justify="right")
    for name, value in counters.items():
        table.add_row(name.replace("_", " "), str(value))
    return table


@app.command()
def run() -> None:
    """Run assignment and notification passes periodically until Ctrl+C."""
    ctx = get_app_context()
    scheduler = ctx.build_scheduler()

    console.print(
        Panel(
            f"[bold cyan]Reviewflow[/bold cyan]\n\n"
            f"[bold]Assignment interval:[/bold] {ctx.config.assignment.poll_interval_seconds}s\n"
            f"[bold]Notification interval:[/bold] {ctx.config.notifications.poll_interval_seconds}s\n"
            f"[bold]Assigning MRs created after:[/bold] {ctx.orchestrator.start_time.isoformat()}",
            title="Starting Scheduler",
            border_style="cyan",
        )
    )

    async def run_scheduler() -> None:
        shutdown_event = asyncio.Event()
        loop = asyncio.get_running_loop()

        def signal_handler(sig, frame):
            console.print()
            console.print("[yellow]Shutdown signal received. Finishing current passes...[/yellow]")
            loop.call_soon_threadsafe(shutdown_event.set)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        try:
            await scheduler.start()
            console.print("[bold green]Scheduler running[/bold green]")
            console.print("[dim]Press Ctrl+C to stop[/dim]")
            await shutdown_event.wait()
        finally:
            await scheduler.stop()
            await ctx.aclose()
            console.print("[green]Scheduler stopped[/green]")

    try:
        asyncio.run(run_scheduler())
    except Exception as e:
        console.print(f"[red]Fatal error:[/red] {e}")
        raise typer.Exit(code=1)


@app.command()
def assign() -> None:
    """Run a single reviewer assignment pass."""
    ctx = get_app_context()

    async def run_once():
        try:
            return await ctx.orchestrator.run_assignment_pass()
        finally:
            await ctx.aclose()

    try:
        report = asyncio.run(run_once())
    except Exception as e:
        console.print(f"[red]Assignment pass failed:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(_report_table("Assignment Pass", report.model_dump()))


@app.command()
def notify() -> None:
    """Run a single notification pass."""
    ctx = get_app_context()

    async def run_once():
        try:
            return await ctx.dedup_engine.run_notification_pass()
        finally:
            await ctx.aclose()

    try:
        report = asyncio.run(run_once())
    except Exception as e:
        console.print(f"[red]Notification pass failed:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(_report_table("State Changes", report.state_changes.model_dump()))
    console.print(_report_table("Single-Shot Actions", report.single_shot.model_dump()))
    console.print(f"[bold]Stale actions swept:[/bold] {report.stale_swept}")


@app.command("init-db")
def init_db() -> None:
    """Create all database tables that do not exist yet."""
    ctx = get_app_context()

    async def create():
        try:
            await create_schema(ctx.engine)
        finally:
            await ctx.aclose()

    try:
        asyncio.run(create())
    except Exception as e:
        console.print(f"[red]Schema creation failed:[/red] {e}")
        raise typer.Exit(code=1)

    console.print("[green]Database schema created[/green]")


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure global options and initialize application context."""
    try:
        config = load_config(config_path)
    except Exception as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1)

    if verbose:
        config.logging.level = "DEBUG"
    setup_logging(config.logging)

    try:
        initialize_context(config)
    except Exception as e:
        console.print(f"[red]Error initializing application:[/red] {e}")
        raise typer.Exit(code=1)

    if verbose:
        console.print("[dim]Debug logging enabled[/dim]")


if __name__ == "__main__":
    app()
