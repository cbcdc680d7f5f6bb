"""Host facts: privileges and OS release."""
import os
from pathlib import Path
from typing import Dict

from homestack.core.errors import PreconditionProbeFailure


def is_root() -> bool:
    return os.geteuid() == 0


def require_root() -> bool:
    """Privilege probe: True when running as root.

    Raises:
        PreconditionProbeFailure: When not root, since no later probe can be trusted
    """
    if not is_root():
        raise PreconditionProbeFailure("Run as root: sudo homestack up")
    return True


def read_os_release(path: Path = Path("/etc/os-release")) -> Dict[str, str]:
    """Parse an os-release file into a dict (quotes stripped)."""
    info = {}
    try:
        text = Path(path).read_text()
    except FileNotFoundError:
        return info

    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        info[key] = value.strip().strip('"').strip("'")
    return info


def os_matches(info: Dict[str, str], expected_version: str) -> bool:
    """True for Ubuntu hosts whose VERSION_ID starts with expected_version."""
    return info.get("ID") == "ubuntu" and info.get("VERSION_ID", "").startswith(expected_version)
