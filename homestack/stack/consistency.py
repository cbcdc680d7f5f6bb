"""Cross-artifact consistency checks.

The firewall allow-list, the manifest and the secrets file are generated
separately; these checks confirm they still agree:

- every firewall port is listened on by some service, and every port a
  service listens on is opened
- every ${VAR} the manifest references is defined in the secrets file
"""
from typing import List, Sequence

import yaml

from homestack.stack.catalog import ServiceSpec, firewall_rules
from homestack.stack.env_file import ENV_KEYS
from homestack.stack.manifest import (
    host_networked_services,
    published_ports,
    referenced_variables,
    render_manifest,
)


def check_stack(services: Sequence[ServiceSpec]) -> List[str]:
    """Return a list of problems; empty means consistent."""
    problems = []
    manifest_text = render_manifest(services)
    manifest = yaml.safe_load(manifest_text)

    # First rule is SSH
    opened = {int(rule) for rule in firewall_rules(services)[1:]}

    listening = set()
    for ports in published_ports(manifest).values():
        listening.update(ports)
    host_networked = host_networked_services(manifest)
    for service in services:
        if service.name in host_networked:
            listening.update(service.host_ports)

    for port in sorted(opened - listening):
        problems.append(f"Firewall opens port {port} but no service listens on it")
    for port in sorted(listening - opened):
        problems.append(f"Port {port} is published but not opened in the firewall")

    defined = set(ENV_KEYS)
    for name in sorted(referenced_variables(manifest_text) - defined):
        problems.append(f"Manifest references ${{{name}}} which the secrets file does not define")

    return problems
