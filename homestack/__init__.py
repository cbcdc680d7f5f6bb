"""homestack - idempotent provisioning for single-host homelabs."""

__version__ = "0.1.0"
