"""In-memory data provider.

Models the parts of the host platform the migration touches as plain dicts.
Used directly by tests and dry runs, and as the base of the file-backed
snapshot provider.

Two host rules the migration order depends on are enforced:

* uninstalling a module strips its ``third_party_settings`` from every
  configuration object;
* a module that owns the moderation field cannot be uninstalled while any
  revision still holds a value in that field.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable
from typing import Any, Optional

from moderation_migrator.exceptions import ProviderError
from moderation_migrator.providers.base import DataProvider, Entity, EntityTypeDefinition
from moderation_migrator.types import ConfigData
from moderation_migrator.utils.logging import log_with_context


class InMemoryDataProvider(DataProvider):
    """Dict-backed host platform."""

    def __init__(
        self,
        modules: Iterable[str] = (),
        config: Optional[dict[str, ConfigData]] = None,
        entity_types: Iterable[EntityTypeDefinition] = (),
        field_owners: Iterable[str] = ("workbench_moderation",),
    ) -> None:
        self.modules: set[str] = set(modules)
        self.config: dict[str, ConfigData] = copy.deepcopy(config or {})
        self.entity_types: list[EntityTypeDefinition] = list(entity_types)
        self.field_owners: set[str] = set(field_owners)
        # entity_type -> revision_id -> revision record
        self.revisions: dict[str, dict[int, dict[str, Any]]] = {}
        self.workflows: dict[str, ConfigData] = {}
        # (entity_type, revision_id) of every save, in order
        self.saved_revisions: list[tuple[str, int]] = []

    # -- seeding -----------------------------------------------------------

    def add_revision(
        self,
        entity_type: str,
        entity_id: int,
        revision_id: int,
        bundle: str,
        moderation_state: Optional[str] = None,
        langcode: str = "en",
        translations: Optional[dict[str, Optional[str]]] = None,
    ) -> None:
        """Add an entity revision, optionally with translated moderation states."""
        translations = translations or {}
        moderation: dict[str, Optional[str]] = {langcode: moderation_state}
        moderation.update(translations)
        self.revisions.setdefault(entity_type, {})[revision_id] = {
            "id": entity_id,
            "bundle": bundle,
            "langcode": langcode,
            "translations": list(translations),
            "moderation": moderation,
            "fields": {},
        }

    # -- configuration objects -------------------------------------------

    def list_config(self, prefix: str = "") -> list[str]:
        return sorted(name for name in self.config if name.startswith(prefix))

    def get_config(self, name: str) -> ConfigData:
        return copy.deepcopy(self.config.get(name, {}))

    def set_config(self, name: str, data: ConfigData) -> None:
        self.config[name] = copy.deepcopy(data)
        self._changed()

    # -- entity types and revisions --------------------------------------

    def get_entity_type_definitions(self) -> list[EntityTypeDefinition]:
        return list(self.entity_types)

    def query_revision_ids(self, entity_type: str, bundle: str) -> list[int]:
        revisions = self.revisions.get(entity_type, {})
        return sorted(
            revision_id
            for revision_id, record in revisions.items()
            if record["bundle"] == bundle
        )

    def load_revision(self, entity_type: str, revision_id: int) -> Entity:
        try:
            record = self.revisions[entity_type][revision_id]
        except KeyError:
            raise ProviderError(
                f"Revision {revision_id} of {entity_type} does not exist"
            ) from None
        return Entity(
            entity_type=entity_type,
            id=record["id"],
            revision_id=revision_id,
            bundle=record["bundle"],
            langcode=record["langcode"],
            translations=list(record["translations"]),
            moderation=dict(record["moderation"]),
            fields=copy.deepcopy(record["fields"]),
        )

    def get_languages(self, entity: Entity) -> list[str]:
        return [entity.langcode, *[lang for lang in entity.translations if lang != entity.langcode]]

    def _check_language(self, entity: Entity, language: str) -> None:
        if language not in self.get_languages(entity):
            raise ProviderError(
                f"{entity.entity_type} revision {entity.revision_id} has no {language} translation"
            )

    def get_moderation_state(self, entity: Entity, language: str) -> Optional[str]:
        self._check_language(entity, language)
        return entity.moderation.get(language)

    def set_moderation_state(self, entity: Entity, language: str, state: str) -> None:
        self._check_language(entity, language)
        entity.moderation[language] = state

    def clear_moderation_state(self, entity: Entity, language: str) -> None:
        self._check_language(entity, language)
        entity.moderation[language] = None

    def save_revision(self, entity: Entity) -> None:
        revisions = self.revisions.get(entity.entity_type, {})
        if entity.revision_id not in revisions:
            raise ProviderError(
                f"Cannot save unknown revision {entity.revision_id} of {entity.entity_type}"
            )
        record = revisions[entity.revision_id]
        record["moderation"] = dict(entity.moderation)
        record["fields"] = copy.deepcopy(entity.fields)
        self.saved_revisions.append((entity.entity_type, entity.revision_id))
        self._changed()

    # -- modules -----------------------------------------------------------

    def is_module_installed(self, name: str) -> bool:
        return name in self.modules

    def install_modules(self, names: Iterable[str]) -> None:
        names = list(names)
        self.modules.update(names)
        self._changed()
        log_with_context(logging.DEBUG, f"Installed modules: {', '.join(names)}")

    def uninstall_modules(
        self, names: Iterable[str], uninstall_dependents: bool = False
    ) -> None:
        names = list(names)
        for name in names:
            if name in self.field_owners and self._has_moderation_data():
                raise ProviderError(
                    f"Cannot uninstall {name}: moderation field data is still present"
                )
        for name in names:
            self.modules.discard(name)
            for data in self.config.values():
                settings = data.get("third_party_settings")
                if isinstance(settings, dict):
                    settings.pop(name, None)
                    if not settings:
                        del data["third_party_settings"]
        self._changed()
        log_with_context(logging.DEBUG, f"Uninstalled modules: {', '.join(names)}")

    def _has_moderation_data(self) -> bool:
        return any(
            value is not None
            for revisions in self.revisions.values()
            for record in revisions.values()
            for value in record["moderation"].values()
        )

    # -- workflows ---------------------------------------------------------

    def save_workflow(self, config: ConfigData) -> None:
        workflow_id = config.get("id")
        if not workflow_id:
            raise ProviderError("Workflow configuration has no id")
        self.workflows[workflow_id] = copy.deepcopy(config)
        self._changed()

    def load_workflow(self, workflow_id: str) -> Optional[ConfigData]:
        workflow = self.workflows.get(workflow_id)
        return copy.deepcopy(workflow) if workflow is not None else None

    # -- serialization -----------------------------------------------------

    def _changed(self) -> None:
        """Hook called after every mutation; subclasses persist here."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "modules": sorted(self.modules),
            "field_owners": sorted(self.field_owners),
            "config": copy.deepcopy(self.config),
            "entity_types": [
                {
                    "id": definition.id,
                    "provider": definition.provider,
                    "config_prefix": definition.config_prefix,
                    "bundle_of": definition.bundle_of,
                }
                for definition in self.entity_types
            ],
            "entities": {
                entity_type: [
                    {"revision_id": revision_id, **copy.deepcopy(record)}
                    for revision_id, record in sorted(revisions.items())
                ]
                for entity_type, revisions in sorted(self.revisions.items())
            },
            "workflows": copy.deepcopy(self.workflows),
        }

    def load_dict(self, data: dict[str, Any]) -> None:
        """Replace the provider's contents with a ``to_dict`` style mapping."""
        self.modules = set(data.get("modules") or [])
        if "field_owners" in data:
            self.field_owners = set(data["field_owners"] or [])
        self.config = copy.deepcopy(data.get("config") or {})
        self.entity_types = [
            EntityTypeDefinition(
                id=item["id"],
                provider=item["provider"],
                config_prefix=item.get("config_prefix"),
                bundle_of=item.get("bundle_of"),
            )
            for item in data.get("entity_types") or []
        ]
        self.revisions = {}
        for entity_type, records in (data.get("entities") or {}).items():
            for item in records:
                langcode = item.get("langcode", "en")
                translations = list(item.get("translations") or [])
                moderation = dict(item.get("moderation") or {})
                for language in (langcode, *translations):
                    moderation.setdefault(language, None)
                self.revisions.setdefault(entity_type, {})[int(item["revision_id"])] = {
                    "id": int(item["id"]),
                    "bundle": item["bundle"],
                    "langcode": langcode,
                    "translations": translations,
                    "moderation": moderation,
                    "fields": dict(item.get("fields") or {}),
                }
        self.workflows = copy.deepcopy(data.get("workflows") or {})
