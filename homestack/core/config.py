"""Run configuration for homestack.

The configuration is resolved once at process start (defaults, then an
optional YAML file, then environment overrides) and handed to every step
builder as an immutable value.
"""
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from homestack.core.errors import ConfigError

# Default config search paths (ordered by proximity to current run)
CONFIG_PATHS = [
    "./homestack.yml",
    str(Path.home() / ".config" / "homestack" / "homestack.yml"),
    "/etc/homestack/homestack.yml",
]

# Environment variable -> config field
ENV_OVERRIDES = {
    "HOMESTACK_ROOT": "root",
    "HOMESTACK_STACK_NAME": "stack_name",
    "HOMESTACK_TZ": "timezone",
    "HOMESTACK_INSTALL_VPN": "install_vpn",
    "HOMESTACK_UPGRADE_PACKAGES": "upgrade_packages",
    "HOMESTACK_OPERATOR_USER": "operator_user",
}

STACK_NAME_PATTERN = re.compile(r'^[a-z0-9][a-z0-9_-]*$')


def default_operator_user() -> str:
    """Return the account that invoked the run (the sudo caller if any)."""
    return os.environ.get("SUDO_USER") or os.environ.get("USER") or "root"


class HomelabConfig(BaseModel):
    """Immutable configuration for one provisioning run.

    Attributes:
        root: Install root holding service directories, .env and the manifest
        stack_name: Compose project name and systemd unit name
        timezone: TZ value written to the secrets file
        install_vpn: Install the Tailscale client
        upgrade_packages: Run apt-get upgrade during the base packages step
        operator_user: Non-root account that owns the install root
        puid / pgid: Ids passed to linuxserver.io images
        dashboard_title: Title shown in the Dashy header
        systemd_dir: Directory receiving the boot unit
        apt_keyrings_dir / apt_sources_dir: apt repository locations
        os_release_path: File probed by the OS version check
        expected_os_version: VERSION_ID prefix the stack is tested against
    """

    model_config = ConfigDict(frozen=True, extra='forbid')

    root: Path = Path("/opt/homelab")
    stack_name: str = "laptop-homelab"
    timezone: str = "America/New_York"
    install_vpn: bool = True
    upgrade_packages: bool = True
    operator_user: str = "root"
    puid: int = 1000
    pgid: int = 1000
    dashboard_title: str = "Laptop Homelab"
    systemd_dir: Path = Path("/etc/systemd/system")
    apt_keyrings_dir: Path = Path("/etc/apt/keyrings")
    apt_sources_dir: Path = Path("/etc/apt/sources.list.d")
    os_release_path: Path = Path("/etc/os-release")
    expected_os_version: str = "24.04"

    @field_validator('root', 'systemd_dir', 'apt_keyrings_dir', 'apt_sources_dir')
    @classmethod
    def validate_absolute(cls, v: Path) -> Path:
        """Managed locations must be absolute paths."""
        if not v.is_absolute():
            raise ValueError(f"Path must be absolute. Got: {v}")
        return v

    @field_validator('stack_name')
    @classmethod
    def validate_stack_name(cls, v: str) -> str:
        """Stack name doubles as a unit name and compose project name."""
        if not STACK_NAME_PATTERN.match(v):
            raise ValueError(
                f"Stack name '{v}' must be lowercase letters, digits, '-' or '_'"
            )
        return v

    @property
    def env_file(self) -> Path:
        return self.root / ".env"

    @property
    def compose_file(self) -> Path:
        return self.root / "docker-compose.yml"

    @property
    def unit_name(self) -> str:
        return f"{self.stack_name}.service"

    @property
    def unit_file(self) -> Path:
        return self.systemd_dir / self.unit_name


def find_config(config_path: Optional[str] = None) -> Optional[Path]:
    """Locate the configuration file, or None when running on defaults."""
    if config_path:
        return Path(config_path)

    if env_config := os.environ.get("HOMESTACK_CONFIG"):
        return Path(env_config)

    for path in CONFIG_PATHS:
        if Path(path).exists():
            return Path(path)

    return None


def _read_file(path: Path) -> Dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def load_config(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> HomelabConfig:
    """Resolve the run configuration.

    Precedence: defaults < YAML file < environment variables.

    Args:
        config_path: Explicit config file (--config)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated, frozen HomelabConfig

    Raises:
        ConfigError: If the file is unreadable or values fail validation
    """
    environ = os.environ if environ is None else environ

    values: Dict[str, Any] = {"operator_user": default_operator_user()}

    path = find_config(config_path)
    if path is not None:
        values.update(_read_file(path))

    for env_name, field_name in ENV_OVERRIDES.items():
        if env_name in environ:
            values[field_name] = environ[env_name]

    try:
        return HomelabConfig(**values)
    except ValidationError as e:
        source = f" ({path})" if path else ""
        raise ConfigError(f"Invalid configuration{source}:\n{e}")
