"""External command execution.

Every process homestack spawns goes through CommandRunner, so tests can
substitute a fake host by passing a different runner.
"""
import os
import shutil
import subprocess
from typing import Dict, List, Optional

from homestack.core.errors import ActionFailure
from homestack.core.logger import get_logger

logger = get_logger(__name__)

# apt and image pulls can take a while on a slow link
DEFAULT_TIMEOUT = 1800


class CommandRunner:
    """Runs host commands and resolves binaries on PATH."""

    def __init__(self, timeout: int = DEFAULT_TIMEOUT):
        self.timeout = timeout

    def run(
        self,
        command: List[str],
        check: bool = True,
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        input: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        """Run a command and capture its output.

        Args:
            command: Argument vector
            check: Raise ActionFailure on non-zero exit
            cwd: Working directory
            env: Extra environment variables layered over the current environment
            input: Text fed to stdin

        Returns:
            CompletedProcess with text stdout/stderr

        Raises:
            ActionFailure: If check is set and the command fails or cannot start
        """
        logger.debug(f"Running: {' '.join(command)}")

        full_env = None
        if env:
            full_env = {**os.environ, **env}

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                cwd=cwd,
                env=full_env,
                input=input,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            if not check:
                return subprocess.CompletedProcess(command, 127, "", str(e))
            raise ActionFailure(f"Command not found: {command[0]}", command=command, returncode=127)
        except subprocess.TimeoutExpired:
            raise ActionFailure(
                f"Command timed out after {self.timeout}s: {' '.join(command)}",
                command=command,
            )

        if result.stdout:
            logger.debug(f"Command output: {result.stdout.rstrip()}")

        if check and result.returncode != 0:
            raise ActionFailure(
                f"Command failed with exit code {result.returncode}: {' '.join(command)}",
                command=command,
                returncode=result.returncode,
                stderr=result.stderr or "",
            )
        return result

    def which(self, name: str) -> Optional[str]:
        """Return the resolved path of a binary, or None."""
        return shutil.which(name)
