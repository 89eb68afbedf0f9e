"""Agent commands"""

import json

import click
from rich import box
from rich.console import Console
from rich.table import Table

console = Console()


@click.group()
def agents_cmd():
    """Pipeline agent information"""
    pass


@agents_cmd.command(name="list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_agents(as_json: bool):
    """List the pipeline agents in execution order"""
    from agents import get_all_agents

    agents = get_all_agents()

    if as_json:
        click.echo(json.dumps(agents, indent=2))
        return

    table = Table(title="Agents", box=box.ROUNDED)
    table.add_column("Name", style="cyan")
    table.add_column("Status")
    table.add_column("Description")

    for agent in agents:
        status_style = "green" if agent["status"] == "implemented" else "yellow"
        description = agent["description"]
        table.add_row(
            agent["name"],
            f"[{status_style}]{agent['status']}[/{status_style}]",
            description[:60] + "..." if len(description) > 60 else description
        )

    console.print(table)


@agents_cmd.command()
@click.argument("name")
def schema(name: str):
    """Show the inputs and outputs of one agent"""
    from agents import get_agent_schema

    info = get_agent_schema(name)
    if not info:
        raise click.ClickException(f"Agent '{name}' not found")

    console.print(f"\n[bold cyan]{name}[/bold cyan] ({info['module']}.{info['class']})")
    console.print(f"{info['description']}\n")

    console.print("[bold]Inputs:[/bold]")
    for input_name, input_info in info["inputs"].items():
        console.print(f"  {input_name}: {input_info}")

    console.print("\n[bold]Outputs:[/bold]")
    console.print(f"  {info['outputs']}")
