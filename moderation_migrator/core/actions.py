"""
Domain actions of the moderation migration.

Each action takes the data provider and the staging repository and is safe to
re-invoke after an interruption. The entity sweeps check the staging
repository per revision and per translation, so a resumed step never redoes
an entity write that already happened.
"""

from __future__ import annotations

import logging
from typing import Optional

from moderation_migrator.core.config import MigrationConfig
from moderation_migrator.core.staging import StagingRepository
from moderation_migrator.core.state import StepProgress
from moderation_migrator.core.workflow import WorkflowBuilder
from moderation_migrator.exceptions import BundleLookupError, StagingError
from moderation_migrator.providers.base import DataProvider, EntityTypeDefinition
from moderation_migrator.types import DefinitionKind, EnabledBundles
from moderation_migrator.utils.logging import log_with_context


def resolve_bundle_entity_type(
    bundle_config_id: str, definitions: list[EntityTypeDefinition]
) -> Optional[str]:
    """Return the content entity type whose bundles ``bundle_config_id`` defines.

    Bundle configuration objects are named ``provider.config_prefix.bundle``,
    e.g. ``node.type.article``.
    """
    entity_provider, config_prefix, _ = bundle_config_id.split(".", 2)
    for definition in definitions:
        if (
            definition.provider == entity_provider
            and definition.config_prefix == config_prefix
        ):
            return definition.bundle_of
    return None


class MigrationActions:
    """The eight domain actions, bound to one configuration."""

    def __init__(self, config: MigrationConfig) -> None:
        self.config = config

    # -- step 1 ------------------------------------------------------------

    def gather_definitions(
        self, provider: DataProvider, staging: StagingRepository
    ) -> None:
        """Copy the source moderation states and transitions into staging."""
        states = [
            provider.get_config(name)
            for name in provider.list_config(self.config.state_config_prefix)
        ]
        log_with_context(
            logging.INFO,
            f"Found source moderation states: {', '.join(s.get('id', '?') for s in states)}",
        )
        staging.put_definitions(DefinitionKind.STATES, states)

        transitions = [
            provider.get_config(name)
            for name in provider.list_config(self.config.transition_config_prefix)
        ]
        log_with_context(
            logging.INFO,
            f"Found source moderation transitions: {', '.join(t.get('id', '?') for t in transitions)}",
        )
        staging.put_definitions(DefinitionKind.TRANSITIONS, transitions)

    # -- step 2 ------------------------------------------------------------

    def discover_enabled_bundles(self, provider: DataProvider) -> EnabledBundles:
        """Find every bundle moderated by the source module, keyed by entity type."""
        source = self.config.source_module
        definitions = provider.get_entity_type_definitions()
        enabled: dict[str, set[str]] = {}

        for bundle_config_id in provider.list_config():
            third_party_settings = provider.get_config(bundle_config_id).get(
                "third_party_settings"
            )
            if not third_party_settings or source not in third_party_settings:
                continue
            if bundle_config_id.count(".") != 2:
                log_with_context(
                    logging.WARNING,
                    f"Skipping moderated config object with unexpected name: {bundle_config_id}",
                )
                continue

            entity_type = resolve_bundle_entity_type(bundle_config_id, definitions)
            if not entity_type:
                raise BundleLookupError(
                    f"Cannot resolve the entity type of moderated bundle {bundle_config_id}"
                )
            bundle = bundle_config_id.rsplit(".", 1)[1]
            log_with_context(
                logging.DEBUG,
                f"Found moderated bundle: {bundle_config_id}",
                entity_type=entity_type,
            )
            enabled.setdefault(entity_type, set()).add(bundle)

        return {
            entity_type: sorted(bundles)
            for entity_type, bundles in sorted(enabled.items())
        }

    def extract_state_map(
        self, provider: DataProvider, staging: StagingRepository
    ) -> StepProgress:
        """Move source moderation state from every revision into staging."""
        if staging.has_definitions(DefinitionKind.ENABLED_BUNDLES):
            enabled = staging.get_definitions(DefinitionKind.ENABLED_BUNDLES)
        else:
            enabled = self.discover_enabled_bundles(provider)
            staging.put_definitions(DefinitionKind.ENABLED_BUNDLES, enabled)

        batch_size = self.config.batch_size
        written = 0
        for entity_type, bundles in enabled.items():
            for bundle in bundles:
                log_with_context(
                    logging.DEBUG, f"Querying for all {bundle} revisions..."
                )
                for revision_id in provider.query_revision_ids(entity_type, bundle):
                    if batch_size and written >= batch_size:
                        return StepProgress(
                            finished=False,
                            processed=written,
                            message=f"Extracted moderation state from {written} revisions",
                        )
                    if self._extract_revision(
                        provider, staging, entity_type, bundle, revision_id
                    ):
                        written += 1

        log_with_context(
            logging.INFO,
            "Source moderation states have been removed from all entities and "
            "stored in staging.",
        )
        return StepProgress(finished=True, processed=written)

    def _extract_revision(
        self,
        provider: DataProvider,
        staging: StagingRepository,
        entity_type: str,
        bundle: str,
        revision_id: int,
    ) -> bool:
        entity = provider.load_revision(entity_type, revision_id)
        changed = False
        for index, language in enumerate(provider.get_languages(entity)):
            language_id = None if index == 0 else language
            state = provider.get_moderation_state(entity, language)
            if staging.has_state_map_entry(entity_type, bundle, revision_id, language_id):
                # Recorded by an interrupted attempt; the field may not be cleared yet
                if state is not None:
                    provider.clear_moderation_state(entity, language)
                    changed = True
                continue
            if state is None:
                continue
            # Stage first: clearing the live field is the externally visible write
            staging.put_state_map_entry(entity_type, bundle, revision_id, language_id, state)
            provider.clear_moderation_state(entity, language)
            changed = True
            log_with_context(
                logging.DEBUG,
                f"Cleared moderation state on id:{entity.id}, revision:{revision_id}, "
                f"language:{language} (was {state})",
                entity_type=entity_type,
            )
        if changed:
            provider.save_revision(entity)
        return changed

    # -- steps 3-5 ---------------------------------------------------------

    def uninstall_source(self, provider: DataProvider, staging: StagingRepository) -> None:
        module = self.config.source_module
        if not provider.is_module_installed(module):
            log_with_context(logging.INFO, f"Module {module} is already uninstalled.")
            return
        # Uninstall the source module, but not its dependencies
        provider.uninstall_modules([module], uninstall_dependents=False)
        log_with_context(logging.INFO, f"Module {module} is uninstalled.")

    def install_workflows(self, provider: DataProvider, staging: StagingRepository) -> None:
        self._install(provider, self.config.workflow_module)

    def install_target(self, provider: DataProvider, staging: StagingRepository) -> None:
        self._install(provider, self.config.target_module)

    def _install(self, provider: DataProvider, module: str) -> None:
        if provider.is_module_installed(module):
            log_with_context(logging.INFO, f"Module {module} is already installed.")
            return
        provider.install_modules([module])
        log_with_context(logging.INFO, f"Module {module} is installed.")

    # -- step 6 ------------------------------------------------------------

    def create_workflow(self, provider: DataProvider, staging: StagingRepository) -> None:
        """Build and save the target workflow from the staged definitions."""
        staged = {
            kind: staging.get_definitions(kind)
            for kind in DefinitionKind
        }
        missing = [kind.value for kind, value in staged.items() if value is None]
        if missing:
            raise StagingError(
                f"Cannot create workflow, staged definitions missing: {', '.join(missing)}"
            )

        workflow = self.config.workflow
        definition = WorkflowBuilder.from_staged(
            workflow.id,
            workflow.label,
            workflow.type,
            staged[DefinitionKind.STATES],
            staged[DefinitionKind.TRANSITIONS],
            staged[DefinitionKind.ENABLED_BUNDLES],
        ).build()

        for entity_type, bundles in definition.entity_types.items():
            for bundle in bundles:
                log_with_context(
                    logging.INFO,
                    f"Enabling target moderation on {bundle}",
                    entity_type=entity_type,
                )
        provider.save_workflow(definition.to_config())
        log_with_context(logging.INFO, f"Workflow {definition.id} created.")

    # -- step 7 ------------------------------------------------------------

    def apply_state_map(
        self, provider: DataProvider, staging: StagingRepository
    ) -> StepProgress:
        """Re-apply staged states on the target side, consuming each record."""
        enabled = staging.get_definitions(DefinitionKind.ENABLED_BUNDLES)
        if enabled is None:
            raise StagingError("Cannot apply moderation states, enabled bundles were never staged")

        batch_size = self.config.batch_size
        applied = 0
        for entity_type, bundles in enabled.items():
            for bundle in bundles:
                log_with_context(
                    logging.DEBUG, f"Setting target moderation states on {bundle} entities"
                )
                for revision_id in provider.query_revision_ids(entity_type, bundle):
                    if staging.count_remaining_state_map_entries() == 0:
                        return StepProgress(finished=True, processed=applied)
                    if batch_size and applied >= batch_size:
                        return StepProgress(
                            finished=False,
                            processed=applied,
                            message=f"Applied moderation state to {applied} revisions",
                        )
                    if self._apply_revision(provider, staging, entity_type, bundle, revision_id):
                        applied += 1

        remaining = staging.count_remaining_state_map_entries()
        if remaining:
            log_with_context(
                logging.WARNING,
                f"{remaining} staged moderation states did not match any revision",
            )
        return StepProgress(finished=True, processed=applied)

    def _apply_revision(
        self,
        provider: DataProvider,
        staging: StagingRepository,
        entity_type: str,
        bundle: str,
        revision_id: int,
    ) -> bool:
        entity = provider.load_revision(entity_type, revision_id)
        applied = False
        for index, language in enumerate(provider.get_languages(entity)):
            language_id = None if index == 0 else language
            state = staging.get_state_map_entry(entity_type, bundle, revision_id, language_id)
            if state is None:
                log_with_context(
                    logging.DEBUG,
                    f"No staged moderation state for revision:{revision_id}, language:{language}",
                    entity_type=entity_type,
                )
                continue
            provider.set_moderation_state(entity, language, state)
            provider.save_revision(entity)
            staging.delete_state_map_entry(entity_type, bundle, revision_id, language_id)
            applied = True
            log_with_context(
                logging.DEBUG,
                f"Set moderation state on id:{entity.id}, revision:{revision_id}, "
                f"language:{language} to {state}",
                entity_type=entity_type,
            )
        return applied

    # -- step 8 ------------------------------------------------------------

    def cleanup_definitions(
        self, provider: DataProvider, staging: StagingRepository
    ) -> None:
        staging.clear_all_definitions()
        log_with_context(logging.INFO, "Staged definitions cleaned up.")
