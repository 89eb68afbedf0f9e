"""
CLI commands for secure API key management.

Usage:
    continuity-studio secrets list          # Show configured keys
    continuity-studio secrets set KEY       # Store a key securely
    continuity-studio secrets delete KEY    # Remove a key
    continuity-studio secrets check         # Keys needed for a live run
"""

from typing import List

import click
from rich.console import Console
from rich.table import Table

from core.config import get_settings
from core.secrets import KNOWN_KEYS, delete_api_key, list_api_keys, set_api_key

console = Console()


def normalize_key_name(key_name: str) -> str:
    """RUNWAY -> RUNWAY_API_KEY; known and *_KEY names pass through"""
    key_name = key_name.upper()
    if key_name not in KNOWN_KEYS and not key_name.endswith("_KEY"):
        key_name = f"{key_name}_API_KEY"
    return key_name


@click.group(name="secrets")
def secrets_cli():
    """Manage API keys securely using OS keychain."""
    pass


@secrets_cli.command(name="list")
def list_keys():
    """List all API keys and their status."""
    status = list_api_keys()

    table = Table(title="API Key Status")
    table.add_column("Key", style="cyan")
    table.add_column("Description", style="dim")
    table.add_column("Status", style="bold")

    for key_name, description in KNOWN_KEYS.items():
        key_status = status.get(key_name, "not_set")

        if key_status == "keychain":
            status_display = "[green]Keychain[/green]"
        elif key_status == "env":
            status_display = "[yellow]Env var[/yellow]"
        else:
            status_display = "[red]Not set[/red]"

        table.add_row(key_name, description, status_display)

    console.print(table)
    console.print()
    console.print("[green]Keychain[/green] = Stored securely in OS credential manager")
    console.print("[yellow]Env var[/yellow] = Available via environment variable (less secure)")
    console.print("[red]Not set[/red] = Not configured")


@secrets_cli.command(name="set")
@click.argument("key_name")
@click.option("--value", "-v", help="API key value (will prompt if not provided)")
def set_key(key_name: str, value: str = None):
    """Store an API key in the secure keychain."""
    key_name = normalize_key_name(key_name)

    if key_name not in KNOWN_KEYS:
        console.print(f"[yellow]Warning:[/yellow] {key_name} is not a recognized key name.")
        if not click.confirm("Store anyway?"):
            return

    if not value:
        value = click.prompt(f"Enter value for {key_name}", hide_input=True)

    if set_api_key(key_name, value):
        console.print(f"[green]Success:[/green] Stored {key_name} in secure keychain")
    else:
        console.print(f"[red]Error:[/red] Failed to store {key_name}")


@secrets_cli.command(name="delete")
@click.argument("key_name")
@click.option("--force", "-f", is_flag=True, help="Don't ask for confirmation")
def delete_key(key_name: str, force: bool = False):
    """Delete an API key from the keychain."""
    key_name = normalize_key_name(key_name)

    if not force and not click.confirm(f"Delete {key_name} from keychain?"):
        return

    if delete_api_key(key_name):
        console.print(f"[green]Success:[/green] Deleted {key_name} from keychain")
    else:
        console.print(f"[yellow]Warning:[/yellow] {key_name} not found in keychain")


def required_keys(lipsync: bool) -> List[str]:
    """Settings fields a live run needs, in pipeline order"""
    keys = ["anthropic_api_key", "fal_api_key", "runway_api_key", "elevenlabs_api_key", "render_api_key"]
    if lipsync:
        keys.insert(4, "sync_api_key")
    return keys


@secrets_cli.command(name="check")
@click.option("--lipsync", is_flag=True, help="Also require the lip-sync key")
def check_keys(lipsync: bool):
    """Verify every key a live production run needs is available."""
    settings = get_settings()
    missing = []

    for name in required_keys(lipsync or settings.enable_lipsync):
        if settings.resolve_key(name):
            console.print(f"[green]✓[/green] {name.upper()}")
        else:
            console.print(f"[red]✗[/red] {name.upper()}")
            missing.append(name.upper())

    if missing:
        raise click.ClickException(
            f"Missing {', '.join(missing)}. Use 'continuity-studio secrets set KEY' or --mock"
        )
    console.print("[green]Ready for a live run[/green]")
