"""
Configuration module for the moderation migration tool.

This module provides functions for loading configuration settings from YAML
files and creating a default configuration. Every setting has a default that
matches a stock Workbench Moderation to Content Moderation migration, so a
missing config file is not an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from moderation_migrator.exceptions import ConfigError
from moderation_migrator.utils.logging import log_with_context


@dataclass
class WorkflowConfig:
    """Identity of the target workflow entity created by the migration."""

    id: str = "content_moderation_workflow"
    label: str = "Content Moderation Workflow"
    type: str = "content_moderation"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> WorkflowConfig:
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(
                f"workflow must be a mapping, got {type(data).__name__}"
            )
        return cls(
            id=data.get("id", cls.id),
            label=data.get("label", cls.label),
            type=data.get("type", cls.type),
        )


@dataclass
class MigrationConfig:
    """Typed configuration for the migration tool."""

    # Storage
    storage_dir: str = ".moderation_migration"
    checkpoint_namespace: str = "migration"
    state_map_namespace: str = "migration.state_map"

    # Modules
    source_module: str = "workbench_moderation"
    workflow_module: str = "workflows"
    target_module: str = "content_moderation"

    # Source data location
    state_config_prefix: str = "workbench_moderation.moderation_state."
    transition_config_prefix: str = (
        "workbench_moderation.moderation_state_transition."
    )

    # Validation
    required_states: list[str] = field(
        default_factory=lambda: ["draft", "published"]
    )

    # Revisions written per batch tick in the entity sweeps; 0 means unlimited
    batch_size: int = 0

    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)

    def __post_init__(self) -> None:
        if self.batch_size < 0:
            raise ConfigError(
                f"batch_size must be non-negative, got {self.batch_size}"
            )
        if self.checkpoint_namespace == self.state_map_namespace:
            raise ConfigError(
                "checkpoint_namespace and state_map_namespace must differ"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MigrationConfig:
        """Create a MigrationConfig from a raw config dictionary."""
        defaults = cls()
        required_states = data.get("required_states")
        return cls(
            storage_dir=data.get("storage_dir", defaults.storage_dir),
            checkpoint_namespace=data.get(
                "checkpoint_namespace", defaults.checkpoint_namespace
            ),
            state_map_namespace=data.get(
                "state_map_namespace", defaults.state_map_namespace
            ),
            source_module=data.get("source_module", defaults.source_module),
            workflow_module=data.get("workflow_module", defaults.workflow_module),
            target_module=data.get("target_module", defaults.target_module),
            state_config_prefix=data.get(
                "state_config_prefix", defaults.state_config_prefix
            ),
            transition_config_prefix=data.get(
                "transition_config_prefix", defaults.transition_config_prefix
            ),
            required_states=(
                list(required_states)
                if required_states is not None
                else defaults.required_states
            ),
            batch_size=int(data.get("batch_size", defaults.batch_size)),
            workflow=WorkflowConfig.from_dict(data.get("workflow")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the configuration as a plain dict suitable for YAML."""
        return {
            "storage_dir": self.storage_dir,
            "checkpoint_namespace": self.checkpoint_namespace,
            "state_map_namespace": self.state_map_namespace,
            "source_module": self.source_module,
            "workflow_module": self.workflow_module,
            "target_module": self.target_module,
            "state_config_prefix": self.state_config_prefix,
            "transition_config_prefix": self.transition_config_prefix,
            "required_states": list(self.required_states),
            "batch_size": self.batch_size,
            "workflow": {
                "id": self.workflow.id,
                "label": self.workflow.label,
                "type": self.workflow.type,
            },
        }


def load_config(config_path: Path) -> MigrationConfig:
    """
    Load configuration from YAML file and apply default values.

    If the file doesn't exist or cannot be parsed, a warning is logged and
    default settings are used. Values that parse but are invalid (for example
    a negative batch size) raise ConfigError.

    Args:
        config_path: Path to the config YAML file

    Returns:
        MigrationConfig with all necessary defaults applied
    """
    raw: dict[str, Any] = {}

    if config_path.exists():
        try:
            with open(config_path) as f:
                loaded_config = yaml.safe_load(f)
                # Handle None result from empty file
                if loaded_config is not None:
                    raw = loaded_config
            log_with_context(logging.INFO, f"Loaded configuration from {config_path}")
        except (yaml.YAMLError, OSError) as e:
            log_with_context(
                logging.WARNING, f"Failed to load config file {config_path}: {e}"
            )
    else:
        log_with_context(
            logging.WARNING,
            f"Config file {config_path} not found, using default settings",
        )

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    try:
        return MigrationConfig.from_dict(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e


def create_default_config(output_path: Path) -> bool:
    """
    Create a default configuration file with the stock settings.

    The function will not overwrite an existing configuration file.

    Args:
        output_path: Path where the default config should be saved

    Returns:
        True if the config file was created successfully, False otherwise
    """
    if output_path.exists():
        log_with_context(
            logging.WARNING,
            f"Config file {output_path} already exists, not overwriting",
        )
        return False

    try:
        with open(output_path, "w") as f:
            yaml.safe_dump(MigrationConfig().to_dict(), f, default_flow_style=False)
        log_with_context(logging.INFO, f"Created default config file at {output_path}")
        return True
    except OSError as e:
        log_with_context(logging.ERROR, f"Failed to create default config file: {e}")
        return False
