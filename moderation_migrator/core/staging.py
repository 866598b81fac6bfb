"""
Staging repository for data carried between migration steps.

Two kinds of record are staged:

* definition sets (``states``, ``transitions``, ``enabled_bundles``), written
  once by the gather/extract steps and read by the workflow step;
* state-map records, one per entity revision (and per translation), each
  holding the source moderation state that still has to be re-applied on the
  target side.

A state-map record exists exactly as long as its revision still has
un-migrated source state, so the number of remaining records is the
migration's resume point.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any, Optional, Union

from moderation_migrator.core.keyvalue import KeyValueStore
from moderation_migrator.types import DefinitionKind
from moderation_migrator.utils.logging import log_with_context


def state_map_key(
    entity_type: str,
    bundle: str,
    revision_id: Union[int, str],
    language_id: Optional[str] = None,
) -> str:
    """Format a state-map key as ``entity_type.bundle.revision_id[.language_id]``."""
    parts = [entity_type, bundle, str(revision_id)]
    if language_id:
        parts.append(language_id)
    for part in parts:
        if not part or "." in part:
            raise ValueError(f"Invalid state-map key component: {part!r}")
    return ".".join(parts)


class StagingRepository:
    """Structured access to staged definitions and state-map records."""

    def __init__(self, definitions: KeyValueStore, state_map: KeyValueStore) -> None:
        if definitions is state_map:
            raise ValueError("definitions and state map need separate namespaces")
        self.definitions = definitions
        self.state_map = state_map

    # -- definition sets ---------------------------------------------------

    def put_definitions(self, kind: Union[DefinitionKind, str], value: Any) -> None:
        kind = DefinitionKind(kind)
        self.definitions.set(kind.value, value)

    def get_definitions(self, kind: Union[DefinitionKind, str]) -> Any:
        """Return the staged set for ``kind``, or None if it was never staged."""
        kind = DefinitionKind(kind)
        return self.definitions.get(kind.value)

    def has_definitions(self, kind: Union[DefinitionKind, str]) -> bool:
        kind = DefinitionKind(kind)
        return self.definitions.has(kind.value)

    def clear_all_definitions(self) -> None:
        """Delete the staged definition sets, leaving state-map records alone."""
        for kind in DefinitionKind:
            self.definitions.delete(kind.value)
        log_with_context(logging.DEBUG, "Cleared staged definitions")

    # -- state map ---------------------------------------------------------

    def put_state_map_entry(
        self,
        entity_type: str,
        bundle: str,
        revision_id: Union[int, str],
        language_id: Optional[str],
        state_id: str,
    ) -> None:
        key = state_map_key(entity_type, bundle, revision_id, language_id)
        self.state_map.set(key, state_id)

    def get_state_map_entry(
        self,
        entity_type: str,
        bundle: str,
        revision_id: Union[int, str],
        language_id: Optional[str] = None,
    ) -> Optional[str]:
        key = state_map_key(entity_type, bundle, revision_id, language_id)
        return self.state_map.get(key)

    def has_state_map_entry(
        self,
        entity_type: str,
        bundle: str,
        revision_id: Union[int, str],
        language_id: Optional[str] = None,
    ) -> bool:
        key = state_map_key(entity_type, bundle, revision_id, language_id)
        return self.state_map.has(key)

    def delete_state_map_entry(
        self,
        entity_type: str,
        bundle: str,
        revision_id: Union[int, str],
        language_id: Optional[str] = None,
    ) -> None:
        key = state_map_key(entity_type, bundle, revision_id, language_id)
        self.state_map.delete(key)

    def iter_state_map_keys(self) -> Iterator[str]:
        return self.state_map.keys()

    def count_remaining_state_map_entries(self) -> int:
        return self.state_map.count()

    # -- teardown ----------------------------------------------------------

    def purge_all(self) -> None:
        """Delete all staged data, including un-migrated state-map records.

        Only for uninstall; never call this while a migration is in progress.
        """
        self.definitions.delete_all()
        self.state_map.delete_all()
        log_with_context(logging.WARNING, "Purged all staged migration data")
