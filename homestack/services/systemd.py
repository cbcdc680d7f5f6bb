"""systemd unit registration."""
from homestack.core.logger import get_logger
from homestack.core.shell import CommandRunner

logger = get_logger(__name__)


class SystemdManager:
    """Thin wrapper over systemctl."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def is_enabled(self, unit: str) -> bool:
        result = self.runner.run(["systemctl", "is-enabled", unit], check=False)
        return result.returncode == 0 and result.stdout.strip() == "enabled"

    def is_active(self, unit: str) -> bool:
        result = self.runner.run(["systemctl", "is-active", unit], check=False)
        return result.returncode == 0 and result.stdout.strip() == "active"

    def register(self, unit: str) -> None:
        """Reload unit files and enable the unit for boot."""
        logger.info(f"Registering {unit} for start at boot...")
        self.runner.run(["systemctl", "daemon-reload"])
        self.runner.run(["systemctl", "enable", unit])
