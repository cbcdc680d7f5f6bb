"""apt package management."""
from typing import List, Sequence

from homestack.core.logger import get_logger
from homestack.core.shell import CommandRunner

logger = get_logger(__name__)

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class AptManager:
    """Installs and inspects Debian packages."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def is_installed(self, package: str) -> bool:
        result = self.runner.run(
            ["dpkg-query", "-W", "-f=${Status}", package],
            check=False,
        )
        return result.returncode == 0 and "install ok installed" in result.stdout

    def missing_packages(self, packages: Sequence[str]) -> List[str]:
        return [pkg for pkg in packages if not self.is_installed(pkg)]

    def update(self) -> None:
        logger.info("Updating apt package index...")
        self.runner.run(["apt-get", "update", "-y"], env=APT_ENV)

    def upgrade(self) -> None:
        logger.info("Upgrading installed packages...")
        self.runner.run(["apt-get", "upgrade", "-y"], env=APT_ENV)

    def install(self, packages: Sequence[str]) -> None:
        logger.info(f"Installing packages: {', '.join(packages)}")
        self.runner.run(["apt-get", "install", "-y", *packages], env=APT_ENV)
