"""Step descriptors and the default migration pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from moderation_migrator.core.actions import MigrationActions
from moderation_migrator.core.staging import StagingRepository
from moderation_migrator.core.state import StepProgress
from moderation_migrator.providers.base import DataProvider

StepAction = Callable[[DataProvider, StagingRepository], Optional[StepProgress]]


@dataclass(frozen=True)
class StepDescriptor:
    """One named, ordered unit of the pipeline.

    ``checkpointed`` steps are recorded in the checkpoint store once they
    succeed and skipped by later attempts; other steps run once per attempt.
    """

    name: str
    action: StepAction
    message: str
    description: str = ""
    checkpointed: bool = True


def build_default_steps(actions: MigrationActions) -> list[StepDescriptor]:
    """Return the eight migration steps in execution order."""
    return [
        StepDescriptor(
            "step1",
            actions.gather_definitions,
            "Saving source moderation states and transitions to staging.",
            "States and transitions are staged",
        ),
        StepDescriptor(
            "step2",
            actions.extract_state_map,
            "Saving source moderation entity states to staging.",
            "Entity state maps are staged",
        ),
        StepDescriptor(
            "step3",
            actions.uninstall_source,
            "Uninstalling the source moderation module.",
            "Source moderation uninstalled",
        ),
        StepDescriptor(
            "step4",
            actions.install_workflows,
            "Installing the workflows module.",
            "Workflows installed",
        ),
        StepDescriptor(
            "step5",
            actions.install_target,
            "Installing the target moderation module.",
            "Target moderation installed",
        ),
        StepDescriptor(
            "step6",
            actions.create_workflow,
            "Importing states and transitions from staging into a workflow.",
            "Workflow created from staged states and transitions",
        ),
        StepDescriptor(
            "step7",
            actions.apply_state_map,
            "Importing entity moderation states from staging to target moderation.",
            "Entity state maps are applied",
        ),
        StepDescriptor(
            "step8",
            actions.cleanup_definitions,
            "Cleaning up staged definitions.",
            "Staged definitions cleaned up",
        ),
    ]
