"""Data provider interface between the migration and its host platform.

The migration never touches the host's storage directly. Everything it reads
or writes (configuration objects, entity revisions, module state, the target
workflow) goes through a ``DataProvider``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Optional

from moderation_migrator.types import ConfigData


@dataclass(frozen=True)
class EntityTypeDefinition:
    """Metadata of a host entity type.

    ``bundle_of`` is set on bundle (config) entity types and names the content
    entity type whose bundles they define.
    """

    id: str
    provider: str
    config_prefix: Optional[str] = None
    bundle_of: Optional[str] = None


@dataclass
class Entity:
    """A loaded entity revision.

    ``moderation`` holds the moderation field value per language code; the
    default language is ``langcode`` and ``translations`` lists the other
    languages the revision exists in.
    """

    entity_type: str
    id: int
    revision_id: int
    bundle: str
    langcode: str = "en"
    translations: list[str] = field(default_factory=list)
    moderation: dict[str, Optional[str]] = field(default_factory=dict)
    fields: dict[str, Any] = field(default_factory=dict)


class DataProvider(ABC):
    """Host platform operations consumed by the migration steps."""

    # -- configuration objects -------------------------------------------

    @abstractmethod
    def list_config(self, prefix: str = "") -> list[str]:
        """Return the names of all configuration objects starting with ``prefix``."""

    @abstractmethod
    def get_config(self, name: str) -> ConfigData:
        """Return a copy of a configuration object's data ({} if absent)."""

    @abstractmethod
    def set_config(self, name: str, data: ConfigData) -> None: ...

    # -- entity types and revisions --------------------------------------

    @abstractmethod
    def get_entity_type_definitions(self) -> list[EntityTypeDefinition]: ...

    @abstractmethod
    def query_revision_ids(self, entity_type: str, bundle: str) -> list[int]:
        """Return every revision id of every entity in ``bundle``, ascending."""

    @abstractmethod
    def load_revision(self, entity_type: str, revision_id: int) -> Entity: ...

    @abstractmethod
    def get_languages(self, entity: Entity) -> list[str]:
        """Return the entity's languages, default language first."""

    @abstractmethod
    def get_moderation_state(self, entity: Entity, language: str) -> Optional[str]: ...

    @abstractmethod
    def set_moderation_state(self, entity: Entity, language: str, state: str) -> None: ...

    @abstractmethod
    def clear_moderation_state(self, entity: Entity, language: str) -> None: ...

    @abstractmethod
    def save_revision(self, entity: Entity) -> None:
        """Persist a revision in place, without creating a new revision."""

    # -- modules -----------------------------------------------------------

    @abstractmethod
    def is_module_installed(self, name: str) -> bool: ...

    @abstractmethod
    def install_modules(self, names: Iterable[str]) -> None: ...

    @abstractmethod
    def uninstall_modules(
        self, names: Iterable[str], uninstall_dependents: bool = False
    ) -> None: ...

    # -- workflows ---------------------------------------------------------

    @abstractmethod
    def save_workflow(self, config: ConfigData) -> None: ...

    @abstractmethod
    def load_workflow(self, workflow_id: str) -> Optional[ConfigData]: ...
