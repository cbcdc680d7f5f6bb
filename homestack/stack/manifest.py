"""Compose manifest authoring.

The manifest is generated from the service catalog and owned by homestack:
it is rewritten on every run, unlike the operator-editable artifacts.
"""
import re
from typing import Any, Dict, List, Sequence, Set

import yaml

from homestack.stack.catalog import NETWORK_NAME, ServiceSpec

HEADER = "# Generated by homestack. Rewritten on every run; edit homestack.yml instead.\n"

VARIABLE_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)(?::?[-?][^}]*)?\}')


def _service_entry(service: ServiceSpec) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "image": service.image,
        "container_name": service.container_name or service.name,
    }
    if service.command:
        entry["command"] = service.command
    if service.depends_on:
        entry["depends_on"] = list(service.depends_on)
    if service.pid:
        entry["pid"] = service.pid
    if service.network_mode:
        entry["network_mode"] = service.network_mode
    if service.cap_add:
        entry["cap_add"] = list(service.cap_add)
    if service.security_opt:
        entry["security_opt"] = list(service.security_opt)
    if service.environment:
        entry["environment"] = [f"{k}={v}" for k, v in service.environment.items()]
    if service.volumes:
        entry["volumes"] = list(service.volumes)
    if service.ports and not service.host_networked:
        entry["ports"] = [str(p) for p in service.ports]
    if service.devices:
        entry["devices"] = list(service.devices)
    if service.extra_hosts:
        entry["extra_hosts"] = list(service.extra_hosts)
    entry["restart"] = service.restart
    if not service.host_networked:
        entry["networks"] = [NETWORK_NAME]
    return entry


def build_manifest(services: Sequence[ServiceSpec]) -> Dict[str, Any]:
    """Build the manifest as a plain mapping."""
    return {
        "services": {service.name: _service_entry(service) for service in services},
        "networks": {
            NETWORK_NAME: {"name": NETWORK_NAME, "driver": "bridge"},
        },
    }


def render_manifest(services: Sequence[ServiceSpec]) -> str:
    """Render the manifest as YAML text."""
    body = yaml.safe_dump(build_manifest(services), sort_keys=False, default_flow_style=False)
    return HEADER + body


def published_ports(manifest: Dict[str, Any]) -> Dict[str, List[int]]:
    """Service name -> host ports published through `ports:` entries."""
    result = {}
    for name, entry in manifest.get("services", {}).items():
        ports = []
        for mapping in entry.get("ports", []):
            host_side = str(mapping).split(":")[-2] if ":" in str(mapping) else str(mapping)
            ports.append(int(host_side))
        result[name] = ports
    return result


def host_networked_services(manifest: Dict[str, Any]) -> Set[str]:
    return {
        name for name, entry in manifest.get("services", {}).items()
        if entry.get("network_mode") == "host"
    }


def referenced_variables(text: str) -> Set[str]:
    """Names of every ${VAR} substitution in a manifest."""
    return set(VARIABLE_PATTERN.findall(text))
