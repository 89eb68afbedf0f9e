"""Provider commands"""

import json

import click
from rich import box
from rich.console import Console
from rich.table import Table

from core.providers import PROVIDER_REGISTRY, get_all_providers

console = Console()


@click.group()
def providers_cmd():
    """Provider information"""
    pass


@providers_cmd.command(name="list")
@click.option("--category", "-c", help="Filter by category (video, image, voice, lipsync, render, storage)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_providers(category: str, as_json: bool):
    """List all providers with their status"""
    providers = get_all_providers()
    if category:
        providers = [p for p in providers if p["category"] == category]

    if as_json:
        click.echo(json.dumps(providers, indent=2))
        return

    table = Table(title="Providers", box=box.ROUNDED)
    table.add_column("Name", style="cyan")
    table.add_column("Category")
    table.add_column("Status")
    table.add_column("API Key")

    for p in providers:
        status_style = "green" if p["status"] == "implemented" else "yellow"
        key_status = "[green]✓[/green]" if p["api_key_set"] else "[dim]—[/dim]"
        table.add_row(
            p["name"],
            p["category"],
            f"[{status_style}]{p['status']}[/{status_style}]",
            key_status
        )

    console.print(table)


@providers_cmd.command()
@click.argument("name")
def check(name: str):
    """Show details of a specific provider"""
    if name not in PROVIDER_REGISTRY:
        raise click.ClickException(f"Provider '{name}' not found")

    info = next(p for p in get_all_providers() if p["name"] == name)

    console.print(f"\n[bold cyan]{info['name']}[/bold cyan]")
    console.print(f"Category: {info['category']}")
    console.print(f"Status: {info['status']}")
    console.print(f"API Key Env: {info['api_key_env'] or '—'}")
    console.print(f"API Key Set: {'Yes' if info['api_key_set'] else 'No'}")

    if info.get("features"):
        console.print("\nFeatures:")
        for feature in info["features"]:
            console.print(f"  • {feature}")
