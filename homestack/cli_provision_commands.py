"""Provisioning CLI commands - up, plan."""
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from homestack.cli_support import get_runner
from homestack.core.errors import StepFailure
from homestack.core.sequencer import ProvisioningSequencer
from homestack.provisioning.steps import HomelabSteps

# Module-level console instance (will be set by register function)
console: Console = Console()


def up(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Path to log file"),
):
    """Provision this host and bring the stack up.

    Every step is skipped when its work is already in place, so re-running
    after a failure resumes where the last run stopped.
    """
    from homestack.cli_support import (
        handle_cli_error,
        load_config_or_exit,
        print_info,
        print_success,
        print_warning,
        setup_file_logging,
    )
    from homestack.cli_utility_commands import print_links

    setup_file_logging(log_file=log_file, verbose=verbose)
    cfg = load_config_or_exit(config, console)

    builder = HomelabSteps(cfg, runner=get_runner())
    sequencer = ProvisioningSequencer(builder.build())

    try:
        report = sequencer.run()
    except StepFailure as e:
        handle_cli_error(e, console, verbose, exit_code=1)

    for name in report.warnings:
        print_warning(console, f"Step '{name}' reported a warning (see log above)")

    print_success(console, f"Homelab is deploying ({report.summary()})")
    print_links(console, builder.services)
    print_info(console, f"Secrets and settings are in: {cfg.env_file} (edit and restart the service if needed)")
    print_info(console, f"Manage stack:  sudo systemctl {{start|stop|restart|status}} {cfg.stack_name}")
    if cfg.install_vpn:
        print_info(console, "Run 'sudo tailscale up' to authenticate your device to your tailnet.")


def plan(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Show which steps would run without changing anything."""
    from homestack.cli_support import load_config_or_exit

    cfg = load_config_or_exit(config, console)
    builder = HomelabSteps(cfg, runner=get_runner())
    steps = builder.build()
    results = dict(ProvisioningSequencer(steps).plan())

    table = Table(title="Provisioning plan", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim")
    table.add_column("Step", style="bold")
    table.add_column("Status")
    table.add_column("Checks")

    styles = {"skip": "[green]in place[/green]", "run": "[yellow]would run[/yellow]"}
    for index, step in enumerate(steps, 1):
        status = results[step.name]
        rendered = styles.get(status, f"[red]{status}[/red]")
        if not step.required:
            rendered += " [dim](advisory)[/dim]"
        table.add_row(str(index), step.name, rendered, step.description)

    console.print(table)
    console.print(
        "\n[dim]Steps that depend on earlier ones may show 'would run' "
        "until those have run.[/dim]"
    )


def register_provision_commands(app: typer.Typer, shared_console: Console):
    """Register provisioning commands with the main Typer app.

    Args:
        app: Main Typer application
        shared_console: Shared Rich console instance
    """
    global console
    console = shared_console

    app.command()(up)
    app.command()(plan)
