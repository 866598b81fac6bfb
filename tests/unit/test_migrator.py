"""Unit tests for the ModerationMigrator controller, including full runs."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from moderation_migrator.core.keyvalue import KeyValueFactory
from moderation_migrator.core.migrator import (
    FAILURE_MESSAGE,
    PAUSED_MESSAGE,
    SUCCESS_MESSAGE,
    ModerationMigrator,
)
from moderation_migrator.core.state import RunStatus, StepStatus
from moderation_migrator.exceptions import PreconditionError, ProviderError
from moderation_migrator.types import CheckpointStatus

STEP_NAMES = [f"step{i}" for i in range(1, 9)]


class TestValidate:
    def test_valid_site(self, site, make_migrator):
        migrator = make_migrator(site)
        assert migrator.validate() == []
        assert migrator.is_valid()

    def test_source_module_missing(self, site, make_migrator):
        site.modules.discard("workbench_moderation")
        ids = [message_id for message_id, _ in make_migrator(site).validate()]
        assert ids == ["source_module_missing"]

    def test_no_states(self, site_factory, make_migrator):
        provider = site_factory(states=[], transitions=[])
        ids = [message_id for message_id, _ in make_migrator(provider).validate()]
        assert ids == ["no_states"]

    def test_missing_required_state(self, site_factory, make_migrator):
        provider = site_factory(
            states=[{"id": "draft", "label": "Draft"}],
            transitions=[],
        )
        ids = [message_id for message_id, _ in make_migrator(provider).validate()]
        assert ids == ["missing_state_published"]

    def test_configured_required_states(self, site, make_migrator):
        migrator = make_migrator(site, required_states=["draft", "archived"])
        ids = [message_id for message_id, _ in migrator.validate()]
        assert ids == ["missing_state_archived"]

    def test_duplicate_transition(self, site_factory, make_migrator):
        provider = site_factory(
            transitions=[
                {"id": "publish", "label": "Publish", "stateFrom": "draft", "stateTo": "published"},
                {
                    "id": "publish_now",
                    "label": "Publish now",
                    "stateFrom": "draft,published",
                    "stateTo": "published",
                },
            ]
        )
        ids = [message_id for message_id, _ in make_migrator(provider).validate()]
        assert ids == ["duplicate_transition_draft_published"]

    def test_skipped_once_started(self, site, make_migrator):
        migrator = make_migrator(site)
        migrator.checkpoints.set_step_complete("step1")
        site.modules.discard("workbench_moderation")
        assert migrator.validate() == []

    def test_run_refuses_invalid_site(self, site, make_migrator):
        site.modules.discard("workbench_moderation")
        migrator = make_migrator(site)
        with pytest.raises(PreconditionError) as exc_info:
            migrator.run()
        assert exc_info.value.messages[0][0] == "source_module_missing"
        assert migrator.has_started() is False


class TestFullMigration:
    def test_end_to_end(self, site, make_migrator):
        migrator = make_migrator(site)

        outcome = migrator.run()

        assert outcome.status(STEP_NAMES) is RunStatus.COMPLETED
        assert outcome.completed_steps == STEP_NAMES
        assert migrator.remaining_state_map_entries() == 0
        assert migrator.is_finished()
        assert migrator.is_complete()
        assert migrator.finished_message(outcome) == (True, SUCCESS_MESSAGE)

        assert not site.is_module_installed("workbench_moderation")
        assert site.is_module_installed("workflows")
        assert site.is_module_installed("content_moderation")
        for revision_id in (1, 2, 3):
            assert site.revisions["node"][revision_id]["moderation"] == {"en": "draft"}

        workflow = site.load_workflow("content_moderation_workflow")
        assert set(workflow["type_settings"]["states"]) == {"draft", "published"}
        assert list(workflow["type_settings"]["transitions"]) == ["draft_published"]
        assert workflow["type_settings"]["entity_types"] == {"node": ["article"]}

    def test_definitions_are_cleaned_up(self, site, make_migrator):
        migrator = make_migrator(site)
        migrator.run()
        keys = set(migrator.staging.definitions.keys())
        assert keys == {*STEP_NAMES, "finished"}

    def test_translations(self, translated_site, make_migrator):
        migrator = make_migrator(translated_site)
        migrator.run()
        assert translated_site.revisions["node"][10]["moderation"] == {
            "en": "draft",
            "fr": "published",
            "de": "draft",
        }
        assert migrator.is_complete()

    def test_bundle_with_disabled_flag_is_migrated(self, site, make_migrator):
        site.config["node.type.page"]["third_party_settings"] = {
            "workbench_moderation": {"enabled": False}
        }
        site.add_revision("node", 9, 9, "page", "published")
        migrator = make_migrator(site)

        outcome = migrator.run()

        assert outcome.failure is None
        assert migrator.is_complete()
        assert site.revisions["node"][9]["moderation"] == {"en": "published"}
        workflow = site.load_workflow("content_moderation_workflow")
        assert workflow["type_settings"]["entity_types"] == {"node": ["article", "page"]}

    def test_second_run_is_noop(self, site, make_migrator):
        migrator = make_migrator(site)
        migrator.run()
        site.saved_revisions.clear()

        outcome = migrator.run()

        assert outcome.completed_steps == []
        assert all(
            outcome.status_of(name) is StepStatus.SKIPPED for name in STEP_NAMES
        )
        assert site.saved_revisions == []
        assert migrator.finished_message(outcome) == (True, SUCCESS_MESSAGE)

    def test_batched_run(self, site, make_migrator):
        migrator = make_migrator(site, batch_size=1)

        outcome = migrator.run()

        assert migrator.is_complete()
        # step2 and step7 take one tick per revision
        assert outcome.ticks > len(STEP_NAMES)

    def test_tick_by_tick_with_fresh_attempts(self, site, make_migrator):
        factory = KeyValueFactory.memory()
        for _ in range(8):
            make_migrator(site, factory).tick()
        migrator = make_migrator(site, factory)
        assert migrator.is_finished()
        assert migrator.is_complete()

    def test_paused_run(self, site, make_migrator):
        migrator = make_migrator(site)
        outcome = migrator.run(max_ticks=3)
        assert outcome.status(STEP_NAMES) is RunStatus.IN_PROGRESS
        assert migrator.finished_message(outcome) == (True, PAUSED_MESSAGE)
        assert migrator.has_started()
        assert not migrator.is_finished()


class TestFailureAndResume:
    def test_failure_stops_the_attempt(self, site, make_migrator):
        migrator = make_migrator(site)
        site.install_modules = MagicMock(side_effect=ProviderError("install failed"))

        outcome = migrator.run()

        assert outcome.stopped
        assert outcome.failure.step == "step4"
        assert outcome.status_of("step5") is StepStatus.SKIPPED
        assert outcome.status_of("step8") is StepStatus.SKIPPED
        assert migrator.checkpoints.is_step_complete("step3")
        assert not migrator.checkpoints.is_step_complete("step4")
        assert not migrator.is_finished()
        assert migrator.finished_message(outcome) == (False, FAILURE_MESSAGE)

    def test_resume_after_failure(self, site, make_migrator):
        factory = KeyValueFactory.memory()
        original_install = site.install_modules
        site.install_modules = MagicMock(side_effect=ProviderError("install failed"))
        make_migrator(site, factory).run()
        site.install_modules = original_install
        site.saved_revisions.clear()

        migrator = make_migrator(site, factory)
        outcome = migrator.run()

        assert outcome.completed_steps == STEP_NAMES[3:]
        assert migrator.is_complete()
        # Extraction did not run again: only step7 saved revisions
        assert site.saved_revisions == [("node", 1), ("node", 2), ("node", 3)]

    def test_finished_but_records_left_is_not_complete(self, site, make_migrator):
        migrator = make_migrator(site)
        migrator.run()
        migrator.staging.put_state_map_entry("node", "article", 1, None, "draft")

        assert migrator.is_finished()
        assert migrator.is_complete() is False
        success, message = migrator.finished_message(migrator.run())
        assert success is False
        assert "1 staged moderation states were not applied" in message


class TestReporting:
    def test_step_report(self, site, make_migrator):
        migrator = make_migrator(site)
        migrator.run(max_ticks=1)

        report = migrator.step_report()

        assert [name for name, _, _ in report] == STEP_NAMES
        assert report[0][2] is CheckpointStatus.COMPLETE
        assert report[1][2] is CheckpointStatus.INCOMPLETE
        assert report[0][1] == "States and transitions are staged"

    def test_reset_step_reruns_it(self, site, make_migrator):
        migrator = make_migrator(site)
        migrator.run()
        migrator.checkpoints.reset_step("step6")
        assert not migrator.is_finished()

        outcome = migrator.run()

        # Definitions were cleaned up by step8, so recreating the workflow fails
        assert outcome.failure.step == "step6"


class TestCleanup:
    def test_cleanup_keeps_records(self, site, make_migrator):
        migrator = make_migrator(site)
        migrator.run(max_ticks=2)
        migrator.cleanup()
        assert migrator.remaining_state_map_entries() == 3
        assert migrator.staging.get_definitions("states") is None
        assert migrator.checkpoints.is_step_complete("step1")

    def test_purge_all(self, site, make_migrator, tmp_path: Path):
        factory = KeyValueFactory.json_files(tmp_path)
        migrator = make_migrator(site, factory)
        migrator.run(max_ticks=2)

        migrator.purge_all()

        assert migrator.remaining_state_map_entries() == 0
        assert not migrator.has_started()
        assert list(tmp_path.glob("*.json")) == []

    def test_checkpoints_share_namespace_with_definitions(self, site):
        factory = KeyValueFactory.memory()
        migrator = ModerationMigrator(site, factory)
        assert migrator.checkpoints.store is factory.get("migration")
        assert migrator.staging.definitions is factory.get("migration")
        assert migrator.staging.state_map is factory.get("migration.state_map")
