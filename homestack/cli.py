#!/usr/bin/env python3
"""homestack CLI - Idempotent provisioning for single-host homelabs."""

import typer
from rich.console import Console

from homestack.cli_provision_commands import register_provision_commands
from homestack.cli_render_commands import register_render_commands
from homestack.cli_utility_commands import register_utility_commands

app = typer.Typer(
    name="homestack",
    help="""homestack - Idempotent provisioning for single-host homelabs

Docker + Compose stack + firewall + boot unit, safe to re-run.

Quick start:
  homestack plan        # See what would change
  sudo homestack up     # Make it happen
  homestack links       # Where everything lives

More commands: homestack --help
""",
    add_completion=False,
)

console = Console()

# Attach modular subcommands
register_provision_commands(app, console)
register_render_commands(app, console)
register_utility_commands(app, console)

if __name__ == "__main__":
    app()
