"""
Run state for a single migration attempt.

``RunOutcome`` is threaded through the step loop explicitly. It replaces a
process-wide "stop processing" flag: once ``failure`` is set, every later
step in the same attempt is skipped. Nothing here is persisted. Each attempt
rebuilds its view from the checkpoint store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from moderation_migrator.exceptions import StepFailedError


class StepStatus(str, Enum):
    """Per-attempt status of a step."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    SKIPPED = "skipped"
    FAILED = "failed"


class RunStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class StepProgress:
    """Returned by a domain action that processed only a slice of its work."""

    finished: bool = True
    processed: int = 0
    message: Optional[str] = None


@dataclass(frozen=True)
class StepFailure:
    step: str
    error: BaseException

    @property
    def message(self) -> str:
        return f"{self.step}: {type(self.error).__name__}: {self.error}"


@dataclass
class RunOutcome:
    """Holds the mutable tracking state for one run attempt."""

    step_statuses: dict[str, StepStatus] = field(default_factory=dict)
    messages: list[str] = field(default_factory=list)
    failure: Optional[StepFailure] = None
    ticks: int = 0

    @property
    def stopped(self) -> bool:
        """True once any step in this attempt has failed."""
        return self.failure is not None

    def status_of(self, step: str) -> StepStatus:
        return self.step_statuses.get(step, StepStatus.PENDING)

    def is_done(self, step_names: list[str]) -> bool:
        """Return True if every named step completed or was skipped as done."""
        if self.stopped:
            return False
        return all(
            self.status_of(name) in (StepStatus.COMPLETE, StepStatus.SKIPPED)
            for name in step_names
        )

    def status(self, step_names: list[str]) -> RunStatus:
        if self.stopped:
            return RunStatus.FAILED
        if self.is_done(step_names):
            return RunStatus.COMPLETED
        return RunStatus.IN_PROGRESS

    @property
    def completed_steps(self) -> list[str]:
        return [
            name
            for name, status in self.step_statuses.items()
            if status is StepStatus.COMPLETE
        ]

    def raise_for_failure(self) -> None:
        """Raise StepFailedError if a step failed during this attempt."""
        if self.failure is not None:
            raise StepFailedError(
                self.failure.step, self.failure.error
            ) from self.failure.error
