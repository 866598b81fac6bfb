"""Unit tests for the step checkpoint tracker."""

from __future__ import annotations

from pathlib import Path

from moderation_migrator.core.checkpoint import FINISHED_KEY, CheckpointTracker
from moderation_migrator.core.keyvalue import JsonFileKeyValueStore, MemoryKeyValueStore
from moderation_migrator.types import CheckpointStatus


def _tracker() -> CheckpointTracker:
    return CheckpointTracker(MemoryKeyValueStore("migration"))


class TestStepStatus:
    def test_missing_record_is_incomplete(self):
        tracker = _tracker()
        assert tracker.step_status("step1") is CheckpointStatus.INCOMPLETE
        assert tracker.is_step_complete("step1") is False

    def test_set_complete(self):
        tracker = _tracker()
        tracker.set_step_complete("step1")
        assert tracker.step_status("step1") is CheckpointStatus.COMPLETE
        assert tracker.store.get("step1") == "complete"

    def test_set_incomplete(self):
        tracker = _tracker()
        tracker.set_step_complete("step1")
        tracker.set_step_incomplete("step1")
        assert tracker.is_step_complete("step1") is False
        assert tracker.store.get("step1") == "incomplete"

    def test_unexpected_value_is_incomplete(self):
        tracker = _tracker()
        tracker.store.set("step1", "maybe")
        assert tracker.step_status("step1") is CheckpointStatus.INCOMPLETE


class TestFinishedFlag:
    def test_not_finished_by_default(self):
        assert _tracker().is_finished() is False

    def test_set_finished(self):
        tracker = _tracker()
        tracker.set_finished()
        assert tracker.is_finished() is True
        assert tracker.store.get(FINISHED_KEY) is True

    def test_reset_step_clears_finished(self):
        tracker = _tracker()
        tracker.set_step_complete("step6")
        tracker.set_finished()

        tracker.reset_step("step6")

        assert tracker.is_step_complete("step6") is False
        assert tracker.is_finished() is False


class TestPersistence:
    def test_checkpoints_survive_reopen(self, tmp_path: Path):
        path = tmp_path / "migration.json"
        tracker = CheckpointTracker(JsonFileKeyValueStore("migration", path))
        tracker.set_step_complete("step1")
        tracker.set_step_complete("step2")

        reopened = CheckpointTracker(JsonFileKeyValueStore("migration", path))
        assert reopened.is_step_complete("step1")
        assert reopened.is_step_complete("step2")
        assert reopened.is_step_complete("step3") is False

    def test_purge_all(self):
        tracker = _tracker()
        tracker.set_step_complete("step1")
        tracker.set_finished()
        tracker.purge_all()
        assert tracker.store.count() == 0
