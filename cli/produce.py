"""Produce command - Main entry point for movie production"""

import asyncio
import json
import logging
from typing import Optional

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import get_settings
from core.providers import create_providers
from cli.theme import get_theme, set_theme, get_default_theme_name, list_themes

console = Console()
# Logs go to stderr so --json output stays machine-readable
log_console = Console(stderr=True)


def setup_logging(verbose: bool) -> None:
    """Route pipeline logging through rich"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=log_console, show_time=False, show_path=verbose, markup=False)],
        force=True,
    )
    # Third-party clients are chatty at DEBUG
    for noisy in ("anthropic", "httpx", "httpcore", "strands"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def print_header(title: str, genre: str, minutes: float, mode: str):
    t = get_theme()
    header = Text()
    header.append("🎬 ", style="bold")
    header.append(title, style=t.header)
    header.append(f"  ({genre}, {minutes:g} min)", style=t.dimmed)
    header.append("\n   Providers: ", style=t.dimmed)
    header.append(mode, style=t.highlight)
    console.print(Panel(header, border_style=t.panel_border, box=box.DOUBLE, padding=(0, 2)))
    console.print()


def print_result(result):
    t = get_theme()

    table = Table(title="Scenes", box=box.ROUNDED)
    table.add_column("#", style=t.label, justify="right")
    table.add_column("Status")
    table.add_column("Continues")
    table.add_column("Reference")
    table.add_column("Video", overflow="fold")

    for video in result.videos:
        status_style = t.for_status(video.status)
        source = video.reference_source.value if video.reference_source else None
        source_style = t.for_source(source)
        table.add_row(
            str(video.scene_number),
            f"[{status_style}]{video.status}[/{status_style}]",
            "yes" if video.is_continuation else "",
            f"[{source_style}]{source or '—'}[/{source_style}]",
            video.video_url or (video.error or "")[:60],
        )
    console.print(table)

    voiced = sum(1 for a in result.audio if not a.skipped)
    summary = Text()
    summary.append("Status: ", style=t.label)
    summary.append(f"{result.status}\n", style=t.for_status(result.status))
    summary.append("Scenes: ", style=t.label)
    summary.append(f"{len(result.completed_scenes)}/{len(result.videos)} completed\n")
    summary.append("Dialogue: ", style=t.label)
    summary.append(
        f"{voiced}/{len(result.audio)} lines voiced\n",
        style=t.skipped if voiced < len(result.audio) else None
    )
    summary.append("Assembly: ", style=t.label)
    summary.append(f"{result.assembly_status or '—'}\n", style=t.for_status(result.assembly_status))
    summary.append("Movie: ", style=t.label)
    summary.append(f"{result.final_video_url or '—'}", style=t.highlight)
    if result.error:
        summary.append(f"\nError: {result.error}", style=t.error)

    console.print(Panel(summary, title=result.movie_id, border_style=t.panel_border))


@click.command()
@click.option("--title", required=True, help="Movie title")
@click.option("--brief", "-b", required=True, help="What the movie is about")
@click.option("--genre", "-g", default="drama", show_default=True, help="Genre")
@click.option("--minutes", "-m", type=float, default=1.0, show_default=True, help="Target runtime in minutes")
@click.option("--mock/--live", "use_mock", default=None, help="Mock or live providers (default from settings)")
@click.option("--lipsync", is_flag=True, help="Lip-sync dialogue onto scene videos")
@click.option("--movie-id", help="Custom movie ID (default: auto-generated)")
@click.option("--json", "as_json", is_flag=True, help="Output results as JSON")
@click.option("--verbose", "-V", is_flag=True, help="Debug logging")
@click.option("--theme", "-t", default=None, help=f"Color theme ({', '.join(list_themes())})")
def produce_cmd(
    title: str,
    brief: str,
    genre: str,
    minutes: float,
    use_mock: Optional[bool],
    lipsync: bool,
    movie_id: Optional[str],
    as_json: bool,
    verbose: bool,
    theme: Optional[str]
):
    """
    Produce a movie from a brief.

    Examples:

        # Offline run with mock providers
        continuity-studio produce --title "Wet Streets" -g noir -m 2 \\
            -b "A detective investigates a murder in a rainy city" --mock

        # Live run with lip-sync
        continuity-studio produce --title "Wet Streets" -b "..." --live --lipsync
    """
    from workflows.orchestrator import MovieOrchestrator

    try:
        set_theme(theme or get_default_theme_name())
    except ValueError as e:
        console.print(f"[yellow]Warning: {e}. Using default theme.[/yellow]")

    setup_logging(verbose)

    settings = get_settings()
    overrides = {}
    if use_mock is not None:
        overrides["provider_mode"] = "mock" if use_mock else "live"
    if lipsync:
        overrides["enable_lipsync"] = True
    if overrides:
        settings = settings.model_copy(update=overrides)

    if not as_json:
        print_header(title, genre, minutes, settings.provider_mode)

    async def run():
        providers = create_providers(settings)
        try:
            orchestrator = MovieOrchestrator(providers, settings=settings)
            return await orchestrator.produce(title, brief, genre, minutes, movie_id=movie_id)
        finally:
            await providers.close()

    result = asyncio.run(run())

    if as_json:
        click.echo(json.dumps({
            "movie_id": result.movie_id,
            "status": result.status,
            "final_video_url": result.final_video_url,
            "assembly_status": result.assembly_status,
            "cover_url": result.cover_url,
            "failed_scenes": result.failed_scenes,
            "completed_scenes": [v.scene_number for v in result.completed_scenes],
            "error": result.error,
        }, indent=2))
    else:
        print_result(result)

    if result.status != "completed":
        raise SystemExit(1)
