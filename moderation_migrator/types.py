"""Shared type definitions for the moderation migration tool.

Provides TypedDicts for the configuration payloads copied out of the source
moderation module and the enums shared by the checkpoint store and executor.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, TypedDict, Union

# ---------------------------------------------------------------------------
# Source moderation configuration payloads
# ---------------------------------------------------------------------------


class SourceState(TypedDict, total=False):
    """A moderation state configuration object from the source module."""

    id: str
    label: str
    published: bool
    default_revision: bool


class SourceTransition(TypedDict, total=False):
    """A moderation transition configuration object from the source module.

    ``stateFrom`` is either a comma-separated string or a list of state ids.
    """

    id: str
    label: str
    stateFrom: Union[str, list[str]]
    stateTo: str


# entity_type_id -> sorted bundle ids
EnabledBundles = dict[str, list[str]]

ConfigData = dict[str, Any]


# ---------------------------------------------------------------------------
# Checkpoint and staging enums
# ---------------------------------------------------------------------------


class CheckpointStatus(str, Enum):
    """Persisted completion marker for a single step."""

    COMPLETE = "complete"
    INCOMPLETE = "incomplete"


class DefinitionKind(str, Enum):
    """Fixed keys of the staged definition sets."""

    STATES = "states"
    TRANSITIONS = "transitions"
    ENABLED_BUNDLES = "enabled_bundles"
