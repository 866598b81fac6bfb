"""Unit tests for the per-attempt run state."""

import pytest

from moderation_migrator.core.state import (
    RunOutcome,
    RunStatus,
    StepFailure,
    StepStatus,
)
from moderation_migrator.exceptions import StepFailedError

STEPS = ["step1", "step2", "step3"]


class TestRunOutcome:
    def test_defaults(self):
        outcome = RunOutcome()
        assert outcome.step_statuses == {}
        assert outcome.messages == []
        assert outcome.failure is None
        assert outcome.stopped is False
        assert outcome.status_of("step1") is StepStatus.PENDING

    def test_is_done_requires_every_step(self):
        outcome = RunOutcome()
        outcome.step_statuses["step1"] = StepStatus.COMPLETE
        outcome.step_statuses["step2"] = StepStatus.SKIPPED
        assert outcome.is_done(STEPS) is False

        outcome.step_statuses["step3"] = StepStatus.COMPLETE
        assert outcome.is_done(STEPS) is True
        assert outcome.status(STEPS) is RunStatus.COMPLETED

    def test_running_step_is_not_done(self):
        outcome = RunOutcome(
            step_statuses={name: StepStatus.COMPLETE for name in STEPS}
        )
        outcome.step_statuses["step2"] = StepStatus.RUNNING
        assert outcome.status(STEPS) is RunStatus.IN_PROGRESS

    def test_failure_stops_run(self):
        outcome = RunOutcome(
            step_statuses={name: StepStatus.SKIPPED for name in STEPS}
        )
        outcome.failure = StepFailure("step2", RuntimeError("boom"))
        assert outcome.stopped is True
        assert outcome.is_done(STEPS) is False
        assert outcome.status(STEPS) is RunStatus.FAILED

    def test_completed_steps(self):
        outcome = RunOutcome()
        outcome.step_statuses["step1"] = StepStatus.SKIPPED
        outcome.step_statuses["step2"] = StepStatus.COMPLETE
        assert outcome.completed_steps == ["step2"]


class TestStepFailure:
    def test_message(self):
        failure = StepFailure("step3", ValueError("bad value"))
        assert failure.message == "step3: ValueError: bad value"

    def test_raise_for_failure(self):
        cause = RuntimeError("boom")
        outcome = RunOutcome(failure=StepFailure("step4", cause))
        with pytest.raises(StepFailedError) as exc_info:
            outcome.raise_for_failure()
        assert exc_info.value.step == "step4"
        assert exc_info.value.__cause__ is cause

    def test_raise_for_failure_noop(self):
        RunOutcome().raise_for_failure()
