"""Movie status command"""

import json
import os

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from core.config import get_settings
from core.ledger import MovieLedger, STEP_WEIGHTS


console = Console()


def get_ledger() -> MovieLedger:
    settings = get_settings()
    return MovieLedger(os.path.join(settings.artifact_dir, "ledger", "movies.json"))


@click.command()
@click.argument("movie_id", required=False)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def status_cmd(movie_id: str, as_json: bool):
    """Show the ledger record of a movie (or list all movies)"""
    ledger = get_ledger()

    if not movie_id:
        movies = ledger.list_movies()
        if as_json:
            click.echo(json.dumps(movies, indent=2))
            return

        table = Table(title="Movies", box=box.ROUNDED)
        table.add_column("Movie", style="cyan")
        table.add_column("Title")
        table.add_column("Status")
        table.add_column("Progress", justify="right")
        table.add_column("Updated", style="dim")
        for movie in movies:
            table.add_row(
                movie.get("movie_id", ""),
                movie.get("title", ""),
                movie.get("status", ""),
                f"{movie.get('progress', 0):.0f}%",
                movie.get("updated_at", "")[:19],
            )
        console.print(table)
        return

    record = ledger.get(movie_id)
    if record is None:
        raise click.ClickException(f"Unknown movie: {movie_id}")

    if as_json:
        click.echo(json.dumps(record, indent=2))
        return

    metadata = record.get("metadata", {})
    console.print(Panel.fit(
        f"[bold blue]{record.get('title', movie_id)}[/bold blue]\n"
        f"Status: {record.get('status')}  Progress: {record.get('progress', 0):.0f}%\n"
        f"Movie: {record.get('final_video_url') or '—'}\n"
        f"Assembly: {metadata.get('assembly_status', '—')}",
        border_style="blue"
    ))

    steps = record.get("steps", {})
    step_table = Table(title="Steps", box=box.ROUNDED)
    step_table.add_column("Step", style="cyan")
    step_table.add_column("Status")
    step_table.add_column("Progress", justify="right")
    step_table.add_column("Detail", style="dim")
    for name in STEP_WEIGHTS:
        step = steps.get(name, {})
        step_table.add_row(
            name,
            step.get("status", "pending"),
            f"{step.get('progress', 0):.0f}%",
            step.get("detail", ""),
        )
    console.print(step_table)

    scenes = record.get("scenes", {})
    if scenes:
        scene_table = Table(title="Scenes", box=box.ROUNDED)
        scene_table.add_column("#", justify="right", style="cyan")
        scene_table.add_column("Status")
        scene_table.add_column("Reference")
        scene_table.add_column("Error", style="red")
        for key in sorted(scenes, key=int):
            scene = scenes[key]
            scene_table.add_row(
                key,
                scene.get("status", ""),
                scene.get("reference_source") or "—",
                (scene.get("error") or "")[:60],
            )
        console.print(scene_table)
