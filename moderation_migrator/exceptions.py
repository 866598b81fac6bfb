"""Custom exception hierarchy for the moderation migration tool."""

from __future__ import annotations


class MigratorError(Exception):
    """Base exception for all migration-related errors."""


class ConfigError(MigratorError):
    """Raised when configuration is invalid or missing."""


class StorageError(MigratorError):
    """Raised when checkpoint or staging storage cannot be read or written."""


class StagingError(MigratorError):
    """Raised when staged migration data a step depends on is missing."""


class PreconditionError(MigratorError):
    """Raised when pre-flight validation blocks a run from starting."""

    def __init__(self, messages: list[tuple[str, str]]) -> None:
        self.messages = messages
        summary = "; ".join(message for _, message in messages)
        super().__init__(f"Migration is not ready to run: {summary}")


class BundleLookupError(MigratorError):
    """Raised when a moderated bundle cannot be resolved to its entity type."""


class ProviderError(MigratorError):
    """Raised when the host platform refuses or fails a data operation."""


class WorkflowDefinitionError(MigratorError):
    """Raised when a target workflow cannot be built from staged definitions."""


class StepFailedError(MigratorError):
    """Raised when a migration step fails and the run attempt is stopped."""

    def __init__(self, step: str, cause: BaseException) -> None:
        self.step = step
        self.cause = cause
        super().__init__(f"Step {step} failed: {cause}")
