"""The ordered provisioning plan for a homelab host.

Order follows dependencies: privileges and OS check, base packages, container
engine, optional VPN client, firewall, directory layout, generated artifacts,
manifest, boot unit, activation.

Preconditions use one of two probes:
- capability: ask the host directly (binary on PATH, package installed,
  unit enabled, services running)
- artifact: the file exists; content is never compared
"""
from typing import List, Optional, Sequence

from homestack.core.config import HomelabConfig
from homestack.core.errors import ActionFailure
from homestack.core.logger import get_logger
from homestack.core.sequencer import Step
from homestack.core.shell import CommandRunner
from homestack.services.apt import AptManager
from homestack.services.docker import DockerEngine
from homestack.services.firewall import UfwFirewall
from homestack.services.host import os_matches, read_os_release, require_root
from homestack.services.systemd import SystemdManager
from homestack.services.tailscale import TailscaleClient
from homestack.stack.artifacts import (
    render_dashboard_config,
    render_prometheus_config,
    write_always,
    write_once,
)
from homestack.stack.catalog import (
    BASE_PACKAGES,
    DIRECTORIES,
    ServiceSpec,
    default_services,
    firewall_ports,
    firewall_rules,
)
from homestack.stack.env_file import generate_secrets, render_env_file
from homestack.stack.manifest import render_manifest
from homestack.stack.unit import render_unit

logger = get_logger(__name__)

SECRETS_MODE = 0o600


class HomelabSteps:
    """Builds the Step list for one configuration.

    Args:
        config: Immutable run configuration
        runner: Command runner (replaced by a fake host in tests)
        services: Service catalog (defaults to the standard stack)
    """

    def __init__(
        self,
        config: HomelabConfig,
        runner: Optional[CommandRunner] = None,
        services: Optional[Sequence[ServiceSpec]] = None,
    ):
        self.config = config
        self.runner = runner or CommandRunner()
        self.services = list(services) if services is not None else default_services(
            puid=config.puid, pgid=config.pgid
        )
        self.apt = AptManager(self.runner)
        self.docker = DockerEngine(self.runner, config)
        self.tailscale = TailscaleClient(self.runner)
        self.firewall = UfwFirewall(self.runner)
        self.systemd = SystemdManager(self.runner)

    def build(self) -> List[Step]:
        steps = [
            self.privileges(),
            self.os_release(),
            self.base_packages(),
            self.docker_engine(),
            self.docker_group(),
        ]
        if self.config.install_vpn:
            steps.append(self.tailscale_client())
        steps.extend([
            self.ufw_rules(),
            self.directories(),
            self.secrets_file(),
            self.prometheus_config(),
            self.dashboard_config(),
            self.compose_manifest(),
            self.boot_unit_file(),
            self.boot_unit_enabled(),
            self.stack_active(),
        ])
        return steps

    # ------------------------------------------------------------------
    # Host checks
    # ------------------------------------------------------------------

    def privileges(self) -> Step:
        def action() -> None:
            raise ActionFailure("root privileges are required")

        return Step(
            name="privileges",
            precondition=require_root,
            action=action,
            description="Running as root",
        )

    def os_release(self) -> Step:
        expected = self.config.expected_os_version

        def matches() -> bool:
            return os_matches(read_os_release(self.config.os_release_path), expected)

        def action() -> None:
            info = read_os_release(self.config.os_release_path)
            detected = f"{info.get('NAME', 'unknown')} {info.get('VERSION_ID', 'unknown')}"
            raise ActionFailure(f"Not Ubuntu {expected}. Detected: {detected}")

        return Step(
            name="os-release",
            precondition=matches,
            action=action,
            required=False,
            description=f"Ubuntu {expected} host",
        )

    # ------------------------------------------------------------------
    # Packages and runtimes (capability probes)
    # ------------------------------------------------------------------

    def base_packages(self) -> Step:
        def installed() -> bool:
            return not self.apt.missing_packages(BASE_PACKAGES)

        def action() -> None:
            self.apt.update()
            if self.config.upgrade_packages:
                self.apt.upgrade()
            self.apt.install(BASE_PACKAGES)

        return Step(
            name="base-packages",
            precondition=installed,
            action=action,
            description=f"{len(BASE_PACKAGES)} base packages installed",
        )

    def docker_engine(self) -> Step:
        def action() -> None:
            codename = read_os_release(self.config.os_release_path).get("VERSION_CODENAME")
            if not codename:
                raise ActionFailure(
                    f"VERSION_CODENAME missing from {self.config.os_release_path}"
                )
            self.docker.install(codename)

        return Step(
            name="docker-engine",
            precondition=self.docker.is_installed,
            action=action,
            description="docker on PATH",
        )

    def docker_group(self) -> Step:
        user = self.config.operator_user

        def member() -> bool:
            return user == "root" or self.docker.user_in_group(user)

        return Step(
            name="docker-group",
            precondition=member,
            action=lambda: self.docker.add_user_to_group(user),
            required=False,
            description=f"{user} in docker group",
        )

    def tailscale_client(self) -> Step:
        return Step(
            name="tailscale",
            precondition=self.tailscale.is_installed,
            action=self.tailscale.install,
            description="tailscale on PATH",
        )

    def ufw_rules(self) -> Step:
        ports = firewall_ports(self.services)

        def rules() -> List[str]:
            return firewall_rules(self.services, ssh_rule=self.firewall.ssh_rule())

        return Step(
            name="firewall",
            precondition=lambda: self.firewall.is_configured(rules()),
            action=lambda: self.firewall.apply(rules()),
            description=f"ufw active, SSH + {len(ports)} ports allowed",
        )

    # ------------------------------------------------------------------
    # Filesystem (artifact probes)
    # ------------------------------------------------------------------

    def directories(self) -> Step:
        root = self.config.root
        user = self.config.operator_user

        def present() -> bool:
            return all((root / d).is_dir() for d in DIRECTORIES)

        def action() -> None:
            logger.info(f"Creating homelab directories at {root}...")
            for d in DIRECTORIES:
                (root / d).mkdir(parents=True, exist_ok=True)
            if user != "root":
                self.runner.run(["chown", "-R", f"{user}:{user}", str(root)])

        return Step(
            name="directories",
            precondition=present,
            action=action,
            description=f"{len(DIRECTORIES)} directories under {root}",
        )

    def secrets_file(self) -> Step:
        path = self.config.env_file

        def action() -> None:
            content = render_env_file(self.config.timezone, generate_secrets())
            write_once(path, content, mode=SECRETS_MODE)

        return Step(
            name="secrets-file",
            precondition=path.exists,
            action=action,
            description=str(path),
        )

    def prometheus_config(self) -> Step:
        path = self.config.root / "monitoring" / "prometheus" / "prometheus.yml"
        return Step(
            name="prometheus-config",
            precondition=path.exists,
            action=lambda: write_once(path, render_prometheus_config(self.services)),
            description=str(path),
        )

    def dashboard_config(self) -> Step:
        path = self.config.root / "dashy" / "conf.yml"
        return Step(
            name="dashboard-config",
            precondition=path.exists,
            action=lambda: write_once(
                path, render_dashboard_config(self.services, self.config.dashboard_title)
            ),
            description=str(path),
        )

    def compose_manifest(self) -> Step:
        # Owned by homestack: never skipped, always rewritten
        path = self.config.compose_file
        return Step(
            name="compose-manifest",
            precondition=lambda: False,
            action=lambda: write_always(path, render_manifest(self.services)),
            postcondition=path.exists,
            description=f"{path} (rewritten every run)",
        )

    # ------------------------------------------------------------------
    # Boot registration and activation
    # ------------------------------------------------------------------

    def boot_unit_file(self) -> Step:
        path = self.config.unit_file
        return Step(
            name="boot-unit-file",
            precondition=path.exists,
            action=lambda: write_once(path, render_unit(self.config)),
            description=str(path),
        )

    def boot_unit_enabled(self) -> Step:
        unit = self.config.unit_name
        return Step(
            name="boot-unit-enabled",
            precondition=lambda: self.systemd.is_enabled(unit),
            action=lambda: self.systemd.register(unit),
            description=f"{unit} enabled",
        )

    def stack_active(self) -> Step:
        declared = {service.name for service in self.services}

        def running() -> bool:
            if not self.docker.is_installed() or not self.config.compose_file.exists():
                return False
            return self.docker.running_services() >= declared

        return Step(
            name="stack-active",
            precondition=running,
            action=self.docker.bring_up,
            description=f"{len(declared)} services running",
        )


def build_steps(
    config: HomelabConfig,
    runner: Optional[CommandRunner] = None,
    services: Optional[Sequence[ServiceSpec]] = None,
) -> List[Step]:
    """Build the ordered Step list for a configuration."""
    return HomelabSteps(config, runner=runner, services=services).build()
