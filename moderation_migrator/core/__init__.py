"""Core migration logic: checkpoints, staging, steps and orchestration."""

__all__ = [
    "actions",
    "checkpoint",
    "config",
    "executor",
    "keyvalue",
    "migrator",
    "staging",
    "state",
    "steps",
    "workflow",
]
