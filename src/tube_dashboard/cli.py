"""Command-line entry points for the video dashboard."""

import asyncio
import logging
from datetime import datetime
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import get_settings
from .dashboard import DashboardView, LoadState
from .errors import DashboardError
from .models import SearchOptions
from .notifications import Notifier, Toast
from .webhooks import GenerationClient

app = typer.Typer(help="Browse and manage the video table behind the dashboard.")

_TOAST_STYLES = {"success": "green", "info": "cyan", "error": "red"}


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _print_toasts(toasts: list[Toast]) -> None:
    for toast in toasts:
        style = _TOAST_STYLES.get(toast.level, "white")
        rprint(f"[{style}]{toast.message}[/{style}]")


def _load_dashboard(notifier: Notifier) -> DashboardView:
    view = DashboardView.from_settings(get_settings(), notifier, thumbnail_regeneration=False)
    state = asyncio.run(view.load())
    if state is LoadState.LOAD_ERROR:
        rprint(f"[red]Could not load the table: {view.load_error}[/red]")
        raise typer.Exit(code=1)
    return view


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to LOG_LEVEL from the environment, then INFO).",
    ),
):
    """
    Configure logging for every subcommand.
    """
    _configure_logging(log_level or get_settings().log_level)


@app.command("serve")
def serve_command(
    host: Optional[str] = typer.Option(None, help="Bind address (defaults to DASHBOARD_HOST)."),
    port: Optional[int] = typer.Option(None, help="Port (defaults to DASHBOARD_PORT)."),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
):
    """
    Run the dashboard web server.
    """
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "tube_dashboard.server:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@app.command("rows")
def rows_command():
    """
    Print the video table the way the dashboard shows it.
    """
    notifier = Notifier()
    view = _load_dashboard(notifier)

    table = Table(title=f"{len(view.fields)} columns, {len(view.rows)} rows")
    table.add_column("id", justify="right")
    for name, field_type in view.header():
        table.add_column(f"{name} ({field_type})")
    for item in view.rendered_rows():
        table.add_row(str(item.row.id), *(cell.text for cell in item.cells))
    Console().print(table)

    stats = view.stats.formatted()
    rprint(
        f"[cyan]Videos: {stats['videos']}  Views: {stats['views']}  "
        f"Likes: {stats['likes']}  Comments: {stats['comments']}[/cyan]"
    )


@app.command("clear")
def clear_command(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
):
    """
    Delete every row of the video table.
    """
    notifier = Notifier()
    view = _load_dashboard(notifier)
    cleared = asyncio.run(
        view.clear_all(confirm=lambda prompt: yes or typer.confirm(prompt, default=False))
    )
    _print_toasts(notifier.drain())
    if not cleared:
        raise typer.Exit(code=1)


@app.command("search")
def search_command(
    query: str = typer.Argument(..., help="Search query."),
    region_code: str = typer.Option("", "--region-code", help="ISO 3166-1 alpha-2 region."),
    relevance_language: str = typer.Option("", "--language", help="ISO 639-1 language."),
    video_duration: str = typer.Option("any", "--duration", help="any, short, medium or long."),
    published_after: Optional[datetime] = typer.Option(None, "--after"),
    published_before: Optional[datetime] = typer.Option(None, "--before"),
    order: str = typer.Option("relevance", "--order"),
    max_results: int = typer.Option(25, "--max-results", help="5, 10, 25 or 50."),
):
    """
    Send a search to the search workflow, which fills the video table.
    """
    try:
        options = SearchOptions(
            region_code=region_code,
            relevance_language=relevance_language,
            video_duration=video_duration,
            published_after=published_after,
            published_before=published_before,
            order=order,
            max_results=max_results,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    client = GenerationClient(get_settings())
    try:
        asyncio.run(client.search(query, options))
    except DashboardError as exc:
        rprint(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)
    rprint("[green]Search completed successfully![/green]")


def main():
    app()


if __name__ == "__main__":
    main()
