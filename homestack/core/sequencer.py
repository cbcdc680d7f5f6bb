"""Idempotent provisioning sequencer.

A run is an ordered list of Steps. Each step is checked before it acts:

- precondition holds  -> the step is skipped
- precondition fails  -> the action runs, then the postcondition is verified

A failure in a required step stops the run with StepFailure; nothing after
it executes and nothing before it is rolled back. Re-running the whole
sequence after fixing the cause resumes where the host left off.
Non-required steps downgrade failures to warnings.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from homestack.core.errors import (
    PostconditionViolation,
    PreconditionProbeFailure,
    StepFailure,
)
from homestack.core.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Step:
    """One idempotent unit of provisioning work.

    Attributes:
        name: Step identifier shown in logs and errors
        precondition: Cheap probe; True means the work is already done
        action: Side-effecting operation, only run when precondition is False
        postcondition: Check run after the action (defaults to precondition)
        required: Failure aborts the whole run when True
        description: Human readable summary for plan output
    """
    name: str
    precondition: Callable[[], bool]
    action: Callable[[], None]
    postcondition: Optional[Callable[[], bool]] = None
    required: bool = True
    description: str = ""

    def verify(self) -> bool:
        check = self.postcondition or self.precondition
        return check()


class StepOutcome(Enum):
    """What happened to a step during a run."""
    SKIPPED = "skipped"
    APPLIED = "applied"
    WARNED = "warned"


@dataclass
class StepRecord:
    name: str
    outcome: StepOutcome
    detail: str = ""


@dataclass
class RunReport:
    """Ordered record of every step the sequencer processed."""
    records: List[StepRecord] = field(default_factory=list)

    def add(self, record: StepRecord) -> None:
        self.records.append(record)

    def _names(self, outcome: StepOutcome) -> List[str]:
        return [r.name for r in self.records if r.outcome is outcome]

    @property
    def applied(self) -> List[str]:
        return self._names(StepOutcome.APPLIED)

    @property
    def skipped(self) -> List[str]:
        return self._names(StepOutcome.SKIPPED)

    @property
    def warnings(self) -> List[str]:
        return self._names(StepOutcome.WARNED)

    def summary(self) -> str:
        return (
            f"applied={len(self.applied)} skipped={len(self.skipped)} "
            f"warnings={len(self.warnings)}"
        )


class ProvisioningSequencer:
    """Runs steps strictly in order with fail-fast semantics."""

    def __init__(self, steps: Sequence[Step]):
        names = [step.name for step in steps]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate step names: {sorted(duplicates)}")
        self.steps = list(steps)

    def run(self) -> RunReport:
        """Execute every step.

        Returns:
            RunReport describing each processed step

        Raises:
            StepFailure: On the first failure of a required step
        """
        report = RunReport()

        for step in self.steps:
            try:
                record = self._run_step(step)
            except Exception as e:
                if step.required:
                    logger.error(f"✗ {step.name}: {e}")
                    raise StepFailure(step.name, e) from e
                logger.warning(f"⚠ {step.name}: {e} (continuing)")
                record = StepRecord(step.name, StepOutcome.WARNED, str(e))
            report.add(record)

        logger.info(f"Run complete: {report.summary()}")
        return report

    def _run_step(self, step: Step) -> StepRecord:
        if self._probe(step):
            logger.info(f"skip {step.name} (already in place)")
            return StepRecord(step.name, StepOutcome.SKIPPED)

        logger.info(f"→ {step.name}")
        step.action()

        if not step.verify():
            raise PostconditionViolation(
                "action completed but expected state is still absent"
            )

        logger.info(f"✓ {step.name}")
        return StepRecord(step.name, StepOutcome.APPLIED)

    @staticmethod
    def _probe(step: Step) -> bool:
        try:
            return bool(step.precondition())
        except PreconditionProbeFailure:
            raise
        except Exception as e:
            raise PreconditionProbeFailure(f"could not check state: {e}") from e

    def plan(self) -> List[Tuple[str, str]]:
        """Evaluate preconditions only, without running any action.

        Returns:
            List of (step name, status) where status is "skip", "run" or
            "error: <cause>"
        """
        results = []
        for step in self.steps:
            try:
                status = "skip" if self._probe(step) else "run"
            except PreconditionProbeFailure as e:
                status = f"error: {e}"
            results.append((step.name, status))
        return results
