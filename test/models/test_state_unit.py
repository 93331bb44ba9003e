"""Unit tests for RunState transitions."""

from datetime import datetime, timedelta, timezone

import pytest

from fresher.models.iteration import IterationOutcome, TerminationVerdict
from fresher.models.state import FinishType, LoopMode, RunState


def _outcome(**kwargs) -> IterationOutcome:
    values = {"exit_code": 0, "duration_seconds": 12.7}
    values.update(kwargs)
    return IterationOutcome(**values)


class TestStartIteration:
    def test_increments_counter_and_records_sha(self):
        state = RunState(mode=LoopMode.BUILDING)
        state.start_iteration("abc123")
        assert state.iteration == 1
        assert state.iteration_sha == "abc123"
        assert state.last_commit_sha == "abc123"

    def test_keeps_first_known_commit_sha(self):
        state = RunState()
        state.start_iteration("first")
        state.start_iteration("second")
        assert state.iteration == 2
        assert state.iteration_sha == "second"
        assert state.last_commit_sha == "first"

    def test_refuses_finished_run(self):
        state = RunState()
        state.set_finish(FinishType.MANUAL)
        with pytest.raises(RuntimeError, match="finished run"):
            state.start_iteration("abc")
        assert state.iteration == 0


class TestCompleteIteration:
    def test_accumulates_commits(self):
        state = RunState()
        state.start_iteration("a")
        state.complete_iteration(_outcome(commits=2, work_happened=True), "b")
        state.start_iteration("b")
        state.complete_iteration(_outcome(commits=3, work_happened=True), "c")

        assert state.total_commits == 5
        assert state.last_commits == 3
        assert state.last_commit_sha == "c"
        assert state.last_duration_seconds == 12

    def test_no_work_keeps_last_commit_sha(self):
        state = RunState()
        state.start_iteration("a")
        state.complete_iteration(_outcome(exit_code=1), "a")
        assert state.last_exit_code == 1
        assert state.last_commit_sha == "a"
        assert state.total_commits == 0


class TestSetFinish:
    def test_first_reason_wins(self):
        state = RunState()
        assert state.set_finish(FinishType.HOOK_ABORT) is True
        assert state.set_finish(FinishType.ERROR) is False
        assert state.finish_type == FinishType.HOOK_ABORT
        assert state.is_finished

    def test_updates_duration(self):
        state = RunState(started_at=datetime.now(timezone.utc) - timedelta(seconds=90))
        state.set_finish(FinishType.COMPLETE)
        assert state.duration_seconds >= 90


class TestFinishTypeDescribe:
    def test_messages(self):
        assert FinishType.MANUAL.describe() == "Loop stopped by user (Ctrl+C)"
        assert FinishType.MAX_ITERATIONS.describe(max_iterations=3) == "Reached maximum iterations (3)"
        assert FinishType.ERROR.describe(last_exit_code=2) == "Claude Code exited with error (code: 2)"
        assert FinishType.HOOK_ABORT.describe() == "Loop aborted by hook"

    def test_values_are_wire_names(self):
        assert [f.value for f in FinishType] == [
            "manual",
            "error",
            "max_iterations",
            "complete",
            "no_changes",
            "hook_abort",
        ]


class TestSerialization:
    def test_json_round_trip_preserves_fields(self):
        state = RunState(mode=LoopMode.BUILDING)
        state.start_iteration("abc")
        state.set_finish(FinishType.NO_CHANGES)

        restored = RunState.model_validate_json(state.model_dump_json())
        assert restored == state
        assert restored.finish_type is FinishType.NO_CHANGES


class TestTerminationVerdict:
    def test_keep_going(self):
        verdict = TerminationVerdict.keep_going()
        assert verdict.should_stop is False
        assert verdict.finish_type is None

    def test_stop(self):
        verdict = TerminationVerdict.stop(FinishType.COMPLETE, "done")
        assert verdict.should_stop is True
        assert verdict.finish_type == FinishType.COMPLETE
        assert verdict.message == "done"
