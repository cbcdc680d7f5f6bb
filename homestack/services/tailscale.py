"""Tailscale VPN client installation."""
from homestack.core.logger import get_logger
from homestack.core.shell import CommandRunner

logger = get_logger(__name__)

TAILSCALE_INSTALL_URL = "https://tailscale.com/install.sh"


class TailscaleClient:
    """Installs the Tailscale client with the official install script."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def is_installed(self) -> bool:
        return self.runner.which("tailscale") is not None

    def install(self) -> None:
        logger.info("Installing Tailscale...")
        script = self.runner.run(["curl", "-fsSL", TAILSCALE_INSTALL_URL]).stdout
        self.runner.run(["sh"], input=script)
        logger.info("Tailscale installed. After the run completes: sudo tailscale up")
