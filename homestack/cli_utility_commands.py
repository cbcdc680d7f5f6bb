"""Utility CLI commands - links, doctor, version."""
from typing import Optional, Sequence

import psutil
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from homestack import __version__
from homestack.stack.catalog import ServiceSpec, default_services, quick_links

# Module-level console instance (will be set by register function)
console: Console = Console()


def print_links(shared_console: Console, services: Sequence[ServiceSpec], host: str = "localhost") -> None:
    """Print the quick-links table for the stack's web UIs."""
    table = Table(title="Quick links", show_header=True, header_style="bold cyan")
    table.add_column("Service", style="bold")
    table.add_column("URL")
    for link in quick_links(services, host=host):
        table.add_row(link["title"], link["url"])
    shared_console.print(table)


def links(
    host: str = typer.Option("localhost", "--host", help="Hostname used in the URLs"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Show URLs of the stack's web interfaces."""
    from homestack.cli_support import load_config_or_exit

    cfg = load_config_or_exit(config, console)
    print_links(console, default_services(puid=cfg.puid, pgid=cfg.pgid), host=host)
    console.print(f"\n[dim]Admin passwords are in {cfg.env_file}[/dim]")


def doctor(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Show host facts relevant to provisioning.

    Reports OS release, privileges, tool availability, memory and free disk
    space at the install root.
    """
    from homestack.cli_support import get_runner, load_config_or_exit
    from homestack.services.host import is_root, os_matches, read_os_release
    from homestack.services.systemd import SystemdManager

    cfg = load_config_or_exit(config, console)
    runner = get_runner()

    console.print("\n[bold cyan]🔍 Host check[/bold cyan]\n")

    info = read_os_release(cfg.os_release_path)
    supported = os_matches(info, cfg.expected_os_version)
    os_color = "green" if supported else "yellow"
    console.print(Panel(
        f"[bold]OS:[/bold] [{os_color}]{info.get('PRETTY_NAME', 'unknown')}[/{os_color}]\n"
        f"[bold]Codename:[/bold] {info.get('VERSION_CODENAME', 'unknown')}\n"
        f"[bold]Root:[/bold] {'yes' if is_root() else 'no (sudo required for up)'}",
        title="🐧 Operating System",
        border_style="blue"
    ))

    tools = Table(title="🔧 Tools", show_header=True)
    tools.add_column("Binary", style="cyan")
    tools.add_column("Path")
    for binary in ("docker", "tailscale", "ufw", "systemctl"):
        path = runner.which(binary)
        tools.add_row(binary, path or "[red]missing[/red]")
    console.print(tools)

    memory = psutil.virtual_memory()
    probe_path = cfg.root if cfg.root.exists() else cfg.root.anchor
    disk = psutil.disk_usage(str(probe_path))
    console.print(Panel(
        f"[bold]Memory:[/bold] {memory.total / 1024 ** 3:.1f} GB total, "
        f"{memory.available / 1024 ** 3:.1f} GB available\n"
        f"[bold]Disk at {probe_path}:[/bold] {disk.free / 1024 ** 3:.1f} GB free of "
        f"{disk.total / 1024 ** 3:.1f} GB",
        title="💾 Resources",
        border_style="magenta"
    ))

    if runner.which("systemctl"):
        systemd = SystemdManager(runner)
        enabled = systemd.is_enabled(cfg.unit_name)
        active = systemd.is_active(cfg.unit_name)
        console.print(Panel(
            f"[bold]Unit:[/bold] {cfg.unit_name}\n"
            f"[bold]Enabled:[/bold] {'yes' if enabled else 'no'}\n"
            f"[bold]Active:[/bold] {'yes' if active else 'no'}",
            title="⚙ Stack",
            border_style="cyan"
        ))

    console.print()


def version():
    """Show homestack version."""
    console.print(f"homestack v{__version__}")


def register_utility_commands(app: typer.Typer, shared_console: Console):
    """Register utility commands with the main Typer app.

    Args:
        app: Main Typer application
        shared_console: Shared Rich console instance
    """
    global console
    console = shared_console

    app.command()(links)
    app.command()(doctor)
    app.command()(version)
