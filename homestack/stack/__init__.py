"""Stack content: service catalog and the artifacts generated from it."""
from .catalog import ServiceSpec, PortMapping, default_services
from .manifest import render_manifest
from .consistency import check_stack

__all__ = [
    "ServiceSpec",
    "PortMapping",
    "default_services",
    "render_manifest",
    "check_stack",
]
