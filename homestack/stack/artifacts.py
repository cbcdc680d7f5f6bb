"""Generated configuration artifacts and how they land on disk.

Two write policies exist:
- write_once: the file is created if missing and never touched again, so
  operator edits survive re-runs
- write_always: the file is owned by homestack and rewritten every run
"""
import os
import tempfile
from pathlib import Path
from typing import Optional, Sequence

import yaml

from homestack.core.logger import get_logger
from homestack.stack.catalog import ServiceSpec, quick_links, scrape_targets

logger = get_logger(__name__)

SCRAPE_INTERVAL = "15s"
DEFAULT_MODE = 0o644
DASHBOARD_THEME = "nord-frost"


def render_prometheus_config(services: Sequence[ServiceSpec]) -> str:
    """Prometheus starter config with one static job per scrape target."""
    config = {
        "global": {"scrape_interval": SCRAPE_INTERVAL},
        "scrape_configs": [
            {"job_name": name, "static_configs": [{"targets": [target]}]}
            for name, target in scrape_targets(services).items()
        ],
    }
    return yaml.safe_dump(config, sort_keys=False)


def render_dashboard_config(services: Sequence[ServiceSpec], title: str) -> str:
    """Dashy starter config linking every other service."""
    items = [link for link in quick_links(services) if link["title"] != "Dashy"]
    config = {
        "appConfig": {"title": title, "theme": DASHBOARD_THEME, "layout": "auto"},
        "sections": [{"name": "Core", "items": items}],
    }
    return yaml.safe_dump(config, sort_keys=False)


def _write(path: Path, content: str, mode: Optional[int]) -> None:
    """Write content to path atomically.

    Content goes to a temp file in the same directory (created 0600) which
    is renamed over path once complete. An interrupted write leaves path
    either absent or as it was, never truncated.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, DEFAULT_MODE if mode is None else mode)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def write_once(path: Path, content: str, mode: Optional[int] = None) -> bool:
    """Create an artifact unless it already exists.

    Returns:
        True if the file was written, False if an existing file was kept
    """
    if path.exists():
        logger.debug(f"Keeping existing {path}")
        return False
    _write(path, content, mode)
    logger.info(f"Wrote {path}")
    return True


def write_always(path: Path, content: str, mode: Optional[int] = None) -> None:
    """Write an artifact, replacing any previous version."""
    _write(path, content, mode)
    logger.info(f"Wrote {path}")
