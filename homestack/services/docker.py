"""Docker Engine installation and Compose operations."""
from pathlib import Path
from typing import Set

from homestack.core.config import HomelabConfig
from homestack.core.logger import get_logger
from homestack.core.shell import CommandRunner
from homestack.services.apt import AptManager
from homestack.stack.catalog import DOCKER_PACKAGES

logger = get_logger(__name__)

DOCKER_GPG_URL = "https://download.docker.com/linux/ubuntu/gpg"
DOCKER_REPO_URL = "https://download.docker.com/linux/ubuntu"
DOCKER_GROUP = "docker"


class DockerEngine:
    """Manages the Docker Engine on the host and the stack's Compose project."""

    def __init__(self, runner: CommandRunner, config: HomelabConfig):
        self.runner = runner
        self.config = config
        self.apt = AptManager(runner)

    @property
    def keyring(self) -> Path:
        return self.config.apt_keyrings_dir / "docker.gpg"

    @property
    def source_list(self) -> Path:
        return self.config.apt_sources_dir / "docker.list"

    def is_installed(self) -> bool:
        return self.runner.which("docker") is not None

    def install(self, codename: str) -> None:
        """Install Engine, CLI and the Compose plugin from Docker's apt repository.

        Args:
            codename: Ubuntu release codename (VERSION_CODENAME)
        """
        logger.info("Installing Docker (Engine + CLI + Compose plugin)...")

        self.config.apt_keyrings_dir.mkdir(parents=True, exist_ok=True)
        self.config.apt_keyrings_dir.chmod(0o755)

        key = self.runner.run(["curl", "-fsSL", DOCKER_GPG_URL]).stdout
        self.runner.run(["gpg", "--dearmor", "--yes", "-o", str(self.keyring)], input=key)
        self.keyring.chmod(0o644)

        arch = self.runner.run(["dpkg", "--print-architecture"]).stdout.strip()
        self.source_list.parent.mkdir(parents=True, exist_ok=True)
        self.source_list.write_text(
            f"deb [arch={arch} signed-by={self.keyring}] {DOCKER_REPO_URL} {codename} stable\n"
        )

        self.apt.update()
        self.apt.install(DOCKER_PACKAGES)
        self.runner.run(["systemctl", "enable", "--now", "docker"])

    def user_in_group(self, user: str) -> bool:
        result = self.runner.run(["id", "-nG", user], check=False)
        return result.returncode == 0 and DOCKER_GROUP in result.stdout.split()

    def add_user_to_group(self, user: str) -> None:
        logger.info(f"Adding {user} to {DOCKER_GROUP} group (takes effect next login)...")
        self.runner.run(["usermod", "-aG", DOCKER_GROUP, user])

    def compose(self, *args: str):
        return self.runner.run(
            ["docker", "compose", *args],
            cwd=str(self.config.root),
            env={"COMPOSE_PROJECT_NAME": self.config.stack_name},
        )

    def running_services(self) -> Set[str]:
        """Names of Compose services currently running in the stack."""
        result = self.compose("ps", "--services", "--status", "running")
        return {line.strip() for line in result.stdout.splitlines() if line.strip()}

    def bring_up(self) -> None:
        logger.info("Bringing the stack up with docker compose...")
        self.compose("pull")
        self.compose("up", "-d")
