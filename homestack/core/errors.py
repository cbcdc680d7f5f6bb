"""Error taxonomy for provisioning runs."""
from typing import Optional, Sequence


class HomestackError(Exception):
    """Base class for all homestack errors."""
    pass


class ConfigError(HomestackError):
    """Raised when the run configuration cannot be loaded or is invalid."""
    pass


class PreconditionProbeFailure(HomestackError):
    """Raised when the current host state could not even be checked."""
    pass


class ActionFailure(HomestackError):
    """Raised when a side-effecting action fails.

    Attributes:
        command: Command that was executed (if the failure came from a process)
        returncode: Process exit status
        stderr: Captured standard error, surfaced verbatim
    """

    def __init__(
        self,
        message: str,
        command: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        self.command = list(command) if command else None
        self.returncode = returncode
        self.stderr = stderr
        if stderr:
            message = f"{message}\n{stderr.rstrip()}"
        super().__init__(message)


class SecretGenerationError(ActionFailure):
    """Raised when no cryptographically strong random source is available."""
    pass


class PostconditionViolation(HomestackError):
    """Raised when an action reported success but the expected state is absent."""
    pass


class StepFailure(HomestackError):
    """A required step failed; the run stops here.

    Attributes:
        step_name: Name of the failing step
        cause: Underlying error
    """

    def __init__(self, step_name: str, cause: Exception):
        self.step_name = step_name
        self.cause = cause
        super().__init__(f"Step '{step_name}' failed: {cause}")
