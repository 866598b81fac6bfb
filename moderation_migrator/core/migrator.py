"""
Migration controller for the source to target moderation migration.

The migration has these recovery points, one per step:

1. States and transitions are stored in staging
2. Entity state maps are stored in staging
3. Source moderation is uninstalled
4. Workflows is installed
5. Target moderation is installed
6. States and transitions are migrated (i.e. the workflow entity is created)
7. Entity state maps are migrated
8. Staged definitions are cleaned up, leaving only the checkpoints and the
   "finished" flag, which are removed when the migration is purged

Each recovery point means a later attempt either skips the step, because it
is complete, or re-tries it.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Optional

from moderation_migrator.core.actions import MigrationActions
from moderation_migrator.core.checkpoint import CheckpointTracker
from moderation_migrator.core.config import MigrationConfig
from moderation_migrator.core.executor import ProgressSink, StepExecutor
from moderation_migrator.core.keyvalue import KeyValueFactory
from moderation_migrator.core.staging import StagingRepository
from moderation_migrator.core.state import RunOutcome, RunStatus
from moderation_migrator.core.steps import StepDescriptor, build_default_steps
from moderation_migrator.core.workflow import split_from_states
from moderation_migrator.exceptions import PreconditionError
from moderation_migrator.providers.base import DataProvider
from moderation_migrator.types import CheckpointStatus
from moderation_migrator.utils.logging import log_with_context

SUCCESS_MESSAGE = "Migration complete. You can now uninstall the migration tool."
FAILURE_MESSAGE = "Migration finished with an error."
PAUSED_MESSAGE = "Migration paused. Run it again to continue."


class ModerationMigrator:
    """Validates, runs and tears down a moderation migration."""

    def __init__(
        self,
        provider: DataProvider,
        factory: KeyValueFactory,
        config: Optional[MigrationConfig] = None,
        progress: Optional[ProgressSink] = None,
        steps: Optional[list[StepDescriptor]] = None,
    ) -> None:
        self.provider = provider
        self.config = config or MigrationConfig()
        checkpoint_store = factory.get(self.config.checkpoint_namespace)
        self.checkpoints = CheckpointTracker(checkpoint_store)
        self.staging = StagingRepository(
            checkpoint_store, factory.get(self.config.state_map_namespace)
        )
        self.actions = MigrationActions(self.config)
        self.steps = steps if steps is not None else build_default_steps(self.actions)
        self.executor = StepExecutor(
            self.steps, provider, self.staging, self.checkpoints, progress
        )

    # -- validation --------------------------------------------------------

    def validate(self) -> list[tuple[str, str]]:
        """Return ``(message_id, message)`` pairs for problems blocking a run."""
        messages: list[tuple[str, str]] = []
        if self.has_started():
            # The source configuration has been staged or removed by now
            return messages

        config = self.config
        if not self.provider.is_module_installed(config.source_module):
            messages.append(
                (
                    "source_module_missing",
                    f"The {config.source_module} module is not installed.",
                )
            )

        states = [
            self.provider.get_config(name)
            for name in self.provider.list_config(config.state_config_prefix)
        ]
        state_ids = {state.get("id") for state in states}
        if not states:
            messages.append(("no_states", "No source moderation states are defined."))
        else:
            for required in config.required_states:
                if required not in state_ids:
                    messages.append(
                        (
                            f"missing_state_{required}",
                            f"The required moderation state '{required}' is not defined.",
                        )
                    )

        pairs: Counter[tuple[str, str]] = Counter()
        for name in self.provider.list_config(config.transition_config_prefix):
            transition = self.provider.get_config(name)
            for from_state in split_from_states(transition.get("stateFrom")):
                pairs[(from_state, transition.get("stateTo", ""))] += 1
        for (from_state, to_state), count in sorted(pairs.items()):
            if count > 1:
                messages.append(
                    (
                        f"duplicate_transition_{from_state}_{to_state}",
                        f"{count} transitions move from '{from_state}' to '{to_state}'; "
                        "the target workflow allows only one.",
                    )
                )
        return messages

    def is_valid(self) -> bool:
        return not self.validate()

    # -- progress predicates -----------------------------------------------

    def has_started(self) -> bool:
        return any(
            self.checkpoints.is_step_complete(step.name) for step in self.steps
        )

    def is_finished(self) -> bool:
        return self.checkpoints.is_finished()

    def remaining_state_map_entries(self) -> int:
        return self.staging.count_remaining_state_map_entries()

    def is_complete(self) -> bool:
        """True once every step ran and no state-map record is left over."""
        return self.is_finished() and self.remaining_state_map_entries() == 0

    def step_report(self) -> list[tuple[str, str, CheckpointStatus]]:
        return [
            (step.name, step.description, self.checkpoints.step_status(step.name))
            for step in self.steps
        ]

    # -- running -----------------------------------------------------------

    def _check_preconditions(self) -> None:
        messages = self.validate()
        if messages:
            for message_id, message in messages:
                log_with_context(logging.ERROR, f"[{message_id}] {message}")
            raise PreconditionError(messages)

    def tick(self, outcome: Optional[RunOutcome] = None) -> RunOutcome:
        """Advance the migration by one unit of work."""
        if outcome is None:
            self._check_preconditions()
        return self.executor.tick(outcome)

    def run(
        self, outcome: Optional[RunOutcome] = None, max_ticks: Optional[int] = None
    ) -> RunOutcome:
        """Run an attempt until it completes, fails or uses up ``max_ticks``.

        Raises:
            PreconditionError: If a fresh run does not pass validation.
        """
        if outcome is None:
            self._check_preconditions()
        return self.executor.run(outcome, max_ticks=max_ticks)

    def finished_message(self, outcome: RunOutcome) -> tuple[bool, str]:
        """Return the terminal ``(success, message)`` for a run attempt."""
        status = outcome.status(self.executor.step_names)
        if status is RunStatus.FAILED:
            return False, FAILURE_MESSAGE
        if status is RunStatus.COMPLETED and self.is_complete():
            return True, SUCCESS_MESSAGE
        if status is RunStatus.COMPLETED:
            return False, (
                f"All steps ran but {self.remaining_state_map_entries()} "
                "staged moderation states were not applied."
            )
        return True, PAUSED_MESSAGE

    # -- cleanup -----------------------------------------------------------

    def cleanup(self) -> None:
        """Delete staged definitions; un-migrated state-map records are kept."""
        self.staging.clear_all_definitions()

    def purge_all(self) -> None:
        """Delete every checkpoint and all staged data. Only for uninstall."""
        self.staging.purge_all()
        self.checkpoints.purge_all()
        log_with_context(logging.WARNING, "Purged all migration checkpoints")
