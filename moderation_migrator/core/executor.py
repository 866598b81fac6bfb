"""
Step executor for the checkpointed migration pipeline.

Steps run in a fixed order. For each step the executor decides, from the
run outcome and the checkpoint store, whether to skip or run it; a step is
only checkpointed after its action returns successfully. A failing step stops
the attempt: it is not checkpointed, every later step is skipped, and the
next attempt resumes at the same step.

The executor is meant to be driven in ticks (one step, or one slice of a
step, per call) by a batch driver, but ``run`` can also drive a whole attempt
in one call.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Callable, Optional

from moderation_migrator.core.checkpoint import CheckpointTracker
from moderation_migrator.core.staging import StagingRepository
from moderation_migrator.core.state import (
    RunOutcome,
    StepFailure,
    StepProgress,
    StepStatus,
)
from moderation_migrator.core.steps import StepDescriptor
from moderation_migrator.providers.base import DataProvider
from moderation_migrator.utils.logging import log_with_context

# (step name, message)
ProgressSink = Callable[[str, str], None]


def log_progress(step: str, message: str) -> None:
    """Default progress sink: write step messages to the migration log."""
    log_with_context(logging.INFO, message, step=step)


class StepExecutor:
    """Runs an ordered list of steps against persisted checkpoints."""

    def __init__(
        self,
        steps: Sequence[StepDescriptor],
        provider: DataProvider,
        staging: StagingRepository,
        checkpoints: CheckpointTracker,
        progress: Optional[ProgressSink] = None,
    ) -> None:
        names = [step.name for step in steps]
        if len(set(names)) != len(names):
            raise ValueError(f"Step names must be unique: {names}")
        self.steps = list(steps)
        self.provider = provider
        self.staging = staging
        self.checkpoints = checkpoints
        self.progress = progress or log_progress

    @property
    def step_names(self) -> list[str]:
        return [step.name for step in self.steps]

    def is_step_done(self, step: StepDescriptor, outcome: RunOutcome) -> bool:
        if outcome.status_of(step.name) is StepStatus.COMPLETE:
            return True
        return step.checkpointed and self.checkpoints.is_step_complete(step.name)

    def execute_step(self, step: StepDescriptor, outcome: RunOutcome) -> StepStatus:
        """Skip or run a single step, recording the result on ``outcome``."""
        if outcome.stopped:
            status = StepStatus.SKIPPED
            log_with_context(
                logging.DEBUG,
                f"Skipping {step.name}: an earlier step failed",
                step=step.name,
            )
        elif self.is_step_done(step, outcome):
            status = StepStatus.SKIPPED
            log_with_context(
                logging.DEBUG, f"Skipping {step.name}: already complete", step=step.name
            )
        else:
            status = self._run_action(step, outcome)

        # A step that completed or failed earlier in this attempt keeps its status
        previous = outcome.status_of(step.name)
        if not (
            status is StepStatus.SKIPPED
            and previous in (StepStatus.COMPLETE, StepStatus.FAILED)
        ):
            outcome.step_statuses[step.name] = status
        return status

    def _run_action(self, step: StepDescriptor, outcome: RunOutcome) -> StepStatus:
        outcome.step_statuses[step.name] = StepStatus.RUNNING
        log_with_context(logging.DEBUG, f"Running {step.name}", step=step.name)
        try:
            progress = step.action(self.provider, self.staging)
        except Exception as e:
            outcome.failure = StepFailure(step.name, e)
            log_with_context(
                logging.ERROR,
                f"Step {step.name} failed: {e}",
                step=step.name,
                exc_info=True,
            )
            return StepStatus.FAILED

        if isinstance(progress, StepProgress) and not progress.finished:
            message = progress.message or step.message
            outcome.messages.append(message)
            self.progress(step.name, message)
            return StepStatus.RUNNING

        if step.checkpointed:
            self.checkpoints.set_step_complete(step.name)
        outcome.messages.append(step.message)
        self.progress(step.name, step.message)
        return StepStatus.COMPLETE

    def tick(self, outcome: Optional[RunOutcome] = None) -> RunOutcome:
        """Advance the run by one step or one slice of a step.

        Steps that are already done are skipped on the way. Once a step
        fails, all remaining steps are marked skipped in the same tick.
        """
        outcome = outcome if outcome is not None else RunOutcome()
        outcome.ticks += 1
        for step in self.steps:
            status = self.execute_step(step, outcome)
            if status in (StepStatus.COMPLETE, StepStatus.RUNNING):
                break

        # Also covers an attempt interrupted between the last checkpoint and this flag
        if outcome.is_done(self.step_names) and not self.checkpoints.is_finished():
            self.checkpoints.set_finished()
            log_with_context(logging.INFO, "Migration finished.")
        return outcome

    def run(
        self, outcome: Optional[RunOutcome] = None, max_ticks: Optional[int] = None
    ) -> RunOutcome:
        """Tick until every step is done, a step fails, or ``max_ticks`` runs out."""
        outcome = outcome if outcome is not None else RunOutcome()
        ticks = 0
        while not outcome.stopped and not outcome.is_done(self.step_names):
            if max_ticks is not None and ticks >= max_ticks:
                break
            self.tick(outcome)
            ticks += 1
        return outcome
