"""Location image cache commands"""

import json
import os

import click
from rich import box
from rich.console import Console
from rich.table import Table

from core.config import get_settings
from core.location_cache import LocationImageCache

console = Console()


@click.command()
@click.option("--location", "-l", help="Only entries whose slug contains this text")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def cache_cmd(location: str, as_json: bool):
    """List cached location reference images"""
    settings = get_settings()
    cache = LocationImageCache(os.path.join(settings.artifact_dir, "cache", "location_images.json"))

    entries = sorted(cache.list_entries(), key=lambda e: (-e.times_used, e.location_slug))
    if location:
        needle = location.lower()
        entries = [e for e in entries if needle in e.location_slug]

    if as_json:
        click.echo(json.dumps([e.to_dict() for e in entries], indent=2))
        return

    table = Table(title=f"Location images ({len(entries)})", box=box.ROUNDED)
    table.add_column("Location", style="cyan")
    table.add_column("Time")
    table.add_column("Weather")
    table.add_column("Used", justify="right")
    table.add_column("Image", overflow="fold", style="dim")

    for entry in entries:
        table.add_row(
            entry.location_name,
            entry.time_of_day,
            entry.weather,
            str(entry.times_used),
            entry.image_url,
        )

    console.print(table)
