"""Terminal front end for browsing the artwork feed."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import get_settings
from .feed import ArtFeed
from .http import build_http_client
from .logging import configure_logging
from .models import Filters, PeriodPreset, SourceSelection
from .sources import default_sources

console = Console()
app = typer.Typer(help="Browse public-domain artwork from several museums.")
PROMPT = "[dim](n)ext, (p)revious, (q)uit> [/dim]"


def _render(feed: ArtFeed) -> None:
    record = feed.current
    if record is None:
        console.print("[yellow]Nothing to show.[/yellow]")
        return

    image = feed.current_image
    subtitle = f"{image.width}x{image.height} {image.format or ''}".strip() if image else "image unavailable"
    position = f"{feed.history.cursor + 1}/{len(feed.history)}"
    console.print(
        Panel(
            record.debug_text,
            title=f"[bold]{record.title}[/bold] ({position})",
            subtitle=subtitle,
            expand=False,
        )
    )


async def _browse(filters: Filters, selection: SourceSelection) -> int:
    settings = get_settings()
    async with ArtFeed.create(settings) as feed:
        with console.status("Loading artwork..."):
            started = await feed.apply_filters(filters, selection)
        if not started:
            console.print(f"[red]{feed.error_message}[/red]")
            return 1

        _render(feed)
        while True:
            answer = await asyncio.to_thread(console.input, PROMPT)
            command = answer.strip().lower()
            if command in {"q", "quit", "exit"}:
                return 0
            if command in {"", "n", "next"}:
                with console.status("Fetching next..."):
                    moved = await feed.swipe_next()
                if not moved:
                    console.print(f"[red]{feed.error_message or 'Busy, try again.'}[/red]")
                    continue
            elif command in {"p", "prev", "previous"}:
                if not await feed.swipe_previous():
                    console.print("[yellow]Already at the oldest artwork in history.[/yellow]")
                    continue
            else:
                console.print(f"[yellow]Unknown command: {command}[/yellow]")
                continue
            _render(feed)


@app.command()
def browse(
    museum: SourceSelection = typer.Option(SourceSelection.MIXED, help="Restrict to one museum."),
    medium: Optional[str] = typer.Option(None, help="Medium filter, e.g. Paintings."),
    geo: Optional[str] = typer.Option(None, help="Geography filter, e.g. France."),
    period: PeriodPreset = typer.Option(PeriodPreset.ANY, help="Period preset."),
    query: Optional[str] = typer.Option(None, help="Free-text query (default from settings)."),
    log_level: Optional[str] = typer.Option(None, help="Override ARTFEED_LOG_LEVEL."),
    log_file: Optional[str] = typer.Option(None, help="Write JSON logs to this file (overrides ARTFEED_LOG_FILE)."),
) -> None:
    """Interactively swipe through artwork."""
    settings = get_settings()
    configure_logging(
        log_level or settings.log_level,
        log_file=log_file or settings.log_file,
        force=True,
    )

    filters = Filters(
        query=query or settings.default_query,
        medium=medium,
        geo=geo,
        period=period,
    )
    raise typer.Exit(code=asyncio.run(_browse(filters, museum)))


@app.command()
def sources() -> None:
    """List the bundled museum sources."""

    async def _collect() -> Table:
        client = build_http_client(get_settings())
        try:
            table = Table(title="Museum sources")
            table.add_column("Tag", style="cyan")
            table.add_column("Museum")
            for source in default_sources(client):
                table.add_row(source.tag, source.source_name)
            return table
        finally:
            await client.aclose()

    console.print(asyncio.run(_collect()))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
