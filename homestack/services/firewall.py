"""UFW firewall management."""
import re
from dataclasses import dataclass, field
from typing import Sequence, Set

from homestack.core.logger import get_logger
from homestack.core.shell import CommandRunner
from homestack.stack.catalog import SSH_FIREWALL_RULE

logger = get_logger(__name__)

# Used when the OpenSSH application profile is not installed
SSH_PORT_RULE = "22/tcp"


@dataclass
class FirewallStatus:
    active: bool = False
    allowed: Set[str] = field(default_factory=set)


def parse_status(output: str) -> FirewallStatus:
    """Parse `ufw status` output.

    Example:
        Status: active

        To                         Action      From
        --                         ------      ----
        OpenSSH                    ALLOW       Anywhere
        8080                       ALLOW       Anywhere
        8080 (v6)                  ALLOW       Anywhere (v6)
    """
    status = FirewallStatus()
    in_rules = False

    for line in output.splitlines():
        stripped = line.strip()
        if stripped.lower().startswith("status:"):
            status.active = stripped.split(":", 1)[1].strip().lower() == "active"
            continue
        if stripped.startswith("--"):
            in_rules = True
            continue
        if not in_rules or not stripped:
            continue

        parts = re.split(r'\s{2,}', stripped)
        if len(parts) < 2 or not parts[1].startswith("ALLOW"):
            continue
        target = parts[0].replace("(v6)", "").strip()
        status.allowed.add(target)

    return status


class UfwFirewall:
    """Opens ports with ufw and enables the firewall."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def status(self) -> FirewallStatus:
        return parse_status(self.runner.run(["ufw", "status"]).stdout)

    def ssh_rule(self) -> str:
        """OpenSSH profile when available, otherwise the bare SSH port."""
        result = self.runner.run(["ufw", "app", "list"], check=False)
        if result.returncode == 0 and SSH_FIREWALL_RULE in result.stdout:
            return SSH_FIREWALL_RULE
        return SSH_PORT_RULE

    def is_configured(self, rules: Sequence[str]) -> bool:
        status = self.status()
        return status.active and all(rule in status.allowed for rule in rules)

    def apply(self, rules: Sequence[str]) -> None:
        logger.info("Configuring UFW...")
        for rule in rules:
            self.runner.run(["ufw", "allow", rule])
        self.runner.run(["ufw", "--force", "enable"])
