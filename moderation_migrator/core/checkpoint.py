"""Per-step checkpoint persistence for resumable migrations."""

from __future__ import annotations

import logging

from moderation_migrator.core.keyvalue import KeyValueStore
from moderation_migrator.types import CheckpointStatus
from moderation_migrator.utils.logging import log_with_context

FINISHED_KEY = "finished"


class CheckpointTracker:
    """Records which steps are complete and whether the run has finished.

    A step with no record is incomplete.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def step_status(self, step: str) -> CheckpointStatus:
        value = self.store.get(step)
        if value == CheckpointStatus.COMPLETE.value:
            return CheckpointStatus.COMPLETE
        return CheckpointStatus.INCOMPLETE

    def is_step_complete(self, step: str) -> bool:
        return self.step_status(step) is CheckpointStatus.COMPLETE

    def set_step_complete(self, step: str) -> None:
        self.store.set(step, CheckpointStatus.COMPLETE.value)

    def set_step_incomplete(self, step: str) -> None:
        self.store.set(step, CheckpointStatus.INCOMPLETE.value)

    def reset_step(self, step: str) -> None:
        """Mark a step incomplete so the next run attempt re-runs it.

        Resetting a step also clears the finished flag, since the run can no
        longer be considered finished.
        """
        self.set_step_incomplete(step)
        self.store.delete(FINISHED_KEY)
        log_with_context(logging.WARNING, f"Checkpoint for {step} reset", step=step)

    def is_finished(self) -> bool:
        return self.store.get(FINISHED_KEY) is True

    def set_finished(self) -> None:
        self.store.set(FINISHED_KEY, True)

    def purge_all(self) -> None:
        """Remove every checkpoint; only used when tearing the migration down."""
        self.store.delete_all()
