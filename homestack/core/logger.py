"""Unified logging for homestack with console and file output."""
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

console = Console()

# Log file configuration
LOG_DIR = Path("/var/log/homestack")
LOG_FILE = LOG_DIR / "homestack.log"
FALLBACK_LOG_FILE = Path("/tmp/homestack.log")

# Track if file logging has been set up
_file_logging_configured = False


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> Optional[Path]:
    """Set up file logging for a provisioning run.

    Args:
        log_file: Path to log file (defaults to /var/log/homestack/homestack.log)
        verbose: Enable debug-level logging

    Returns:
        Path of the log file in use, or None when logging is console-only

    Note:
        Falls back to /tmp if the requested location is not writable, and to
        console-only logging if /tmp is not writable either.
    """
    global _file_logging_configured

    target_log_file = Path(log_file) if log_file else LOG_FILE
    root_logger = logging.getLogger("homestack")

    if _file_logging_configured:
        return target_log_file

    try:
        target_log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(target_log_file)
    except OSError:
        try:
            file_handler = logging.FileHandler(FALLBACK_LOG_FILE)
        except OSError as e:
            root_logger.warning(f"File logging disabled, console only: {e}")
            return None
        target_log_file = FALLBACK_LOG_FILE

    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root_logger.addHandler(file_handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    _file_logging_configured = True
    root_logger.info(f"homestack logging initialized: {target_log_file}")
    return target_log_file


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance with console output.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger with Rich console handler
    """
    logger = logging.getLogger(name)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger
