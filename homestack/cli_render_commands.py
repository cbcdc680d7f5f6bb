"""Render CLI commands - print generated artifacts without touching disk."""
from typing import Optional

import typer
from rich.console import Console

from homestack.stack.artifacts import render_dashboard_config, render_prometheus_config
from homestack.stack.catalog import SSH_FIREWALL_RULE, default_services, firewall_rules
from homestack.stack.consistency import check_stack
from homestack.stack.env_file import ENV_KEYS, SECRET_LENGTHS
from homestack.stack.manifest import render_manifest
from homestack.stack.unit import render_unit

# Module-level console instance (will be set by register function)
console: Console = Console()
render_app = typer.Typer(help="Print generated artifacts to stdout")

ConfigOption = typer.Option(None, "--config", "-c", help="Config file path")


def _services(config: Optional[str]):
    from homestack.cli_support import load_config_or_exit

    cfg = load_config_or_exit(config, console)
    return cfg, default_services(puid=cfg.puid, pgid=cfg.pgid)


@render_app.command("manifest")
def render_manifest_cmd(config: Optional[str] = ConfigOption):
    """Print docker-compose.yml."""
    _, services = _services(config)
    typer.echo(render_manifest(services), nl=False)


@render_app.command("env-keys")
def render_env_keys():
    """List the keys written to .env (values are never shown)."""
    for key in ENV_KEYS:
        if key in SECRET_LENGTHS:
            typer.echo(f"{key}  (generated, {SECRET_LENGTHS[key]} random bytes)")
        else:
            typer.echo(key)


@render_app.command("firewall")
def render_firewall(
    config: Optional[str] = ConfigOption,
    ssh_rule: str = typer.Option(
        SSH_FIREWALL_RULE, "--ssh-rule",
        help="SSH rule to allow (use 22/tcp on hosts without the OpenSSH ufw profile)",
    ),
):
    """List the ufw allow rules."""
    _, services = _services(config)
    for rule in firewall_rules(services, ssh_rule=ssh_rule):
        typer.echo(rule)


@render_app.command("unit")
def render_unit_cmd(config: Optional[str] = ConfigOption):
    """Print the systemd boot unit."""
    cfg, _ = _services(config)
    typer.echo(render_unit(cfg), nl=False)


@render_app.command("prometheus")
def render_prometheus(config: Optional[str] = ConfigOption):
    """Print the Prometheus starter config."""
    _, services = _services(config)
    typer.echo(render_prometheus_config(services), nl=False)


@render_app.command("dashboard")
def render_dashboard(config: Optional[str] = ConfigOption):
    """Print the Dashy starter config."""
    cfg, services = _services(config)
    typer.echo(render_dashboard_config(services, cfg.dashboard_title), nl=False)


def check(config: Optional[str] = ConfigOption):
    """Verify firewall rules, manifest ports and secrets agree."""
    from homestack.cli_support import print_error, print_success

    _, services = _services(config)
    problems = check_stack(services)
    if problems:
        for problem in problems:
            print_error(console, problem)
        raise typer.Exit(1)
    print_success(console, f"Stack is consistent ({len(services)} services)")


def register_render_commands(app: typer.Typer, shared_console: Console):
    """Register render and check commands with the main Typer app.

    Args:
        app: Main Typer application
        shared_console: Shared Rich console instance
    """
    global console
    console = shared_console

    app.add_typer(render_app, name="render")
    app.command()(check)
