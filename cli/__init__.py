"""Continuity Studio CLI"""

import click
from dotenv import load_dotenv
from .produce import produce_cmd
from .agents import agents_cmd
from .status import status_cmd
from .cache import cache_cmd
from .providers import providers_cmd
from .secrets import secrets_cli

# Load .env file at CLI startup
load_dotenv()


@click.group()
@click.version_option(version="0.1.0")
def main():
    """Continuity Studio - brief-to-movie production pipeline

    \b
    Quick Start:
      continuity-studio produce --title "Wet Streets" -b "A detective..." --mock
      continuity-studio produce --title "Wet Streets" -b "A detective..." --live

    \b
    Commands:
      produce    Run the full movie pipeline
      status     Show a movie's ledger record
      cache      List cached location images
      providers  List providers
      agents     List pipeline agents
      secrets    Manage API keys
    """
    pass


main.add_command(produce_cmd, name="produce")
main.add_command(status_cmd, name="status")
main.add_command(cache_cmd, name="cache")
main.add_command(providers_cmd, name="providers")
main.add_command(agents_cmd, name="agents")
main.add_command(secrets_cli, name="secrets")


if __name__ == "__main__":
    main()
