"""Secrets file (.env) generation.

Values come from the operating system's CSPRNG via the secrets module and are
hex encoded. Database credentials get more random bytes than admin passwords.
"""
import secrets
from typing import Dict, List, Tuple

from homestack.core.errors import SecretGenerationError

# Secret key -> random byte length (hex value is twice as long)
SECRET_LENGTHS = {
    "NEXTCLOUD_ADMIN_PASSWORD": 12,
    "MYSQL_ROOT_PASSWORD": 16,
    "MYSQL_PASSWORD": 16,
    "GRAFANA_ADMIN_PASSWORD": 12,
}

# (section comment, [(key, value or None for a generated secret)])
ENV_LAYOUT: List[Tuple[str, List[Tuple[str, object]]]] = [
    ("", [("TZ", None)]),
    ("Nextcloud + MariaDB", [
        ("NEXTCLOUD_ADMIN_USER", "admin"),
        ("NEXTCLOUD_ADMIN_PASSWORD", None),
        ("MYSQL_ROOT_PASSWORD", None),
        ("MYSQL_DATABASE", "nextcloud"),
        ("MYSQL_USER", "nextcloud"),
        ("MYSQL_PASSWORD", None),
    ]),
    ("Grafana", [
        ("GRAFANA_ADMIN_USER", "admin"),
        ("GRAFANA_ADMIN_PASSWORD", None),
    ]),
]

ENV_KEYS = [key for _, entries in ENV_LAYOUT for key, _ in entries]


def generate_secrets() -> Dict[str, str]:
    """Generate every secret value.

    Raises:
        SecretGenerationError: If the OS random source is unavailable
    """
    try:
        return {key: secrets.token_hex(nbytes) for key, nbytes in SECRET_LENGTHS.items()}
    except (NotImplementedError, OSError) as e:
        raise SecretGenerationError(f"No cryptographically strong random source available: {e}")


def render_env_file(timezone: str, generated: Dict[str, str]) -> str:
    """Render the .env file as KEY=value lines with section comments."""
    lines = []
    for section, entries in ENV_LAYOUT:
        if section:
            lines.append("")
            lines.append(f"# {section}")
        for key, value in entries:
            if key == "TZ":
                value = timezone
            elif value is None:
                value = generated[key]
            lines.append(f"{key}={value}")
    return "\n".join(lines) + "\n"


def parse_env_file(text: str) -> Dict[str, str]:
    """Parse KEY=value lines, ignoring blanks and comments."""
    values = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        values[key.strip()] = value
    return values
