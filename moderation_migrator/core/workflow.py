"""Structured builder for the target workflow entity.

The target workflow holds every migrated state and transition plus the
entity type/bundle pairs that were moderated on the source side. All bundles
end up in a single workflow.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from moderation_migrator.exceptions import WorkflowDefinitionError
from moderation_migrator.types import SourceState, SourceTransition


@dataclass(frozen=True)
class WorkflowState:
    id: str
    label: str
    published: bool = False
    default_revision: bool = False


@dataclass(frozen=True)
class WorkflowTransition:
    id: str
    label: str
    from_states: tuple[str, ...]
    to_state: str


@dataclass(frozen=True)
class WorkflowDefinition:
    """A validated workflow, ready to be persisted by a data provider."""

    id: str
    label: str
    type: str
    states: tuple[WorkflowState, ...]
    transitions: tuple[WorkflowTransition, ...]
    entity_types: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def to_config(self) -> dict[str, Any]:
        """Return the nested configuration mapping stored by the host."""
        return {
            "id": self.id,
            "label": self.label,
            "type": self.type,
            "type_settings": {
                "states": {
                    state.id: {
                        "label": state.label,
                        "published": state.published,
                        "default_revision": state.default_revision,
                    }
                    for state in self.states
                },
                "transitions": {
                    transition.id: {
                        "label": transition.label,
                        "to": transition.to_state,
                        "from": list(transition.from_states),
                    }
                    for transition in self.transitions
                },
                "entity_types": {
                    entity_type: list(bundles)
                    for entity_type, bundles in self.entity_types.items()
                },
            },
        }


def split_from_states(value: Union[str, Sequence[str], None]) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(part) for part in value]


class WorkflowBuilder:
    """Accumulates states, transitions and bundles, validating as it goes."""

    def __init__(self, workflow_id: str, label: str, workflow_type: str) -> None:
        if not workflow_id:
            raise WorkflowDefinitionError("Workflow id must not be empty")
        self.workflow_id = workflow_id
        self.label = label
        self.workflow_type = workflow_type
        self._states: dict[str, WorkflowState] = {}
        self._transitions: dict[str, WorkflowTransition] = {}
        self._entity_types: dict[str, list[str]] = {}

    def add_state(
        self,
        state_id: str,
        label: str,
        published: bool = False,
        default_revision: bool = False,
    ) -> WorkflowBuilder:
        if not state_id:
            raise WorkflowDefinitionError("State id must not be empty")
        if state_id in self._states:
            raise WorkflowDefinitionError(f"Duplicate state: {state_id}")
        self._states[state_id] = WorkflowState(
            state_id, label or state_id, bool(published), bool(default_revision)
        )
        return self

    def add_transition(
        self,
        transition_id: str,
        label: str,
        from_states: Iterable[str],
        to_state: str,
    ) -> WorkflowBuilder:
        if not transition_id:
            raise WorkflowDefinitionError("Transition id must not be empty")
        if transition_id in self._transitions:
            raise WorkflowDefinitionError(f"Duplicate transition: {transition_id}")
        from_states = tuple(from_states)
        if not from_states:
            raise WorkflowDefinitionError(
                f"Transition {transition_id} has no source states"
            )
        for state_id in (*from_states, to_state):
            if state_id not in self._states:
                raise WorkflowDefinitionError(
                    f"Transition {transition_id} references unknown state: {state_id}"
                )
        # One transition per (from, to) pair
        for existing in self._transitions.values():
            if existing.to_state != to_state:
                continue
            overlap = set(existing.from_states) & set(from_states)
            if overlap:
                raise WorkflowDefinitionError(
                    f"Transitions {existing.id} and {transition_id} both move "
                    f"from {sorted(overlap)[0]} to {to_state}"
                )
        self._transitions[transition_id] = WorkflowTransition(
            transition_id, label or transition_id, from_states, to_state
        )
        return self

    def add_entity_type_bundle(self, entity_type: str, bundle: str) -> WorkflowBuilder:
        bundles = self._entity_types.setdefault(entity_type, [])
        if bundle not in bundles:
            bundles.append(bundle)
        return self

    def build(self) -> WorkflowDefinition:
        if not self._states:
            raise WorkflowDefinitionError(
                f"Workflow {self.workflow_id} must define at least one state"
            )
        return WorkflowDefinition(
            id=self.workflow_id,
            label=self.label,
            type=self.workflow_type,
            states=tuple(self._states.values()),
            transitions=tuple(self._transitions.values()),
            entity_types={
                entity_type: tuple(sorted(bundles))
                for entity_type, bundles in sorted(self._entity_types.items())
            },
        )

    @classmethod
    def from_staged(
        cls,
        workflow_id: str,
        label: str,
        workflow_type: str,
        states: Sequence[SourceState],
        transitions: Sequence[SourceTransition],
        enabled_bundles: Mapping[str, Sequence[str]],
    ) -> WorkflowBuilder:
        """Populate a builder from the staged source definitions."""
        builder = cls(workflow_id, label, workflow_type)
        for state in states:
            try:
                builder.add_state(
                    state["id"],
                    state.get("label", state["id"]),
                    state.get("published", False),
                    state.get("default_revision", False),
                )
            except KeyError as e:
                raise WorkflowDefinitionError(
                    f"Staged state is missing {e}: {state!r}"
                ) from e
        for transition in transitions:
            try:
                builder.add_transition(
                    transition["id"],
                    transition.get("label", transition["id"]),
                    split_from_states(transition.get("stateFrom")),
                    transition["stateTo"],
                )
            except KeyError as e:
                raise WorkflowDefinitionError(
                    f"Staged transition is missing {e}: {transition!r}"
                ) from e
        for entity_type, bundles in enabled_bundles.items():
            for bundle in bundles:
                builder.add_entity_type_bundle(entity_type, bundle)
        return builder
