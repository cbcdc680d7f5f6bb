"""Provisioning plan for a homelab host."""
from .steps import HomelabSteps, build_steps

__all__ = ["HomelabSteps", "build_steps"]
