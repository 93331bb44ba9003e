"""Unit tests for the termination decision."""

import pytest

from fresher.config import Config
from fresher.models.iteration import IterationOutcome
from fresher.models.state import FinishType, LoopMode, RunState
from fresher.services.termination_service import evaluate


def _state(iteration: int) -> RunState:
    return RunState(mode=LoopMode.BUILDING, iteration=iteration)


def _outcome(work_happened: bool = True) -> IterationOutcome:
    return IterationOutcome(exit_code=0, duration_seconds=1.0, work_happened=work_happened)


def _config(max_iterations: int = 0, smart_termination: bool = True) -> Config:
    config = Config()
    config.fresher.max_iterations = max_iterations
    config.fresher.smart_termination = smart_termination
    return config


@pytest.fixture
def plan(tmp_path):
    path = tmp_path / "IMPLEMENTATION_PLAN.md"
    path.write_text("- [x] done\n- [ ] todo\n", encoding="utf-8")
    return path


class TestEvaluate:
    def test_pending_work_continues(self, plan):
        verdict = evaluate(_state(1), _outcome(), _config(), False, plan)
        assert verdict.should_stop is False
        assert verdict.finish_type is None

    def test_all_completed_is_complete(self, plan):
        plan.write_text("- [x] done\n- [x] also done\n", encoding="utf-8")
        verdict = evaluate(_state(1), _outcome(), _config(), False, plan)
        assert verdict.finish_type == FinishType.COMPLETE
        assert verdict.message == "All tasks in implementation plan completed!"

    def test_empty_plan_is_not_complete(self, plan):
        plan.write_text("# Plan\n", encoding="utf-8")
        verdict = evaluate(_state(1), _outcome(), _config(), False, plan)
        assert verdict.should_stop is False

    def test_manual_beats_max_iterations(self, plan):
        verdict = evaluate(_state(3), _outcome(), _config(max_iterations=3), True, plan)
        assert verdict.finish_type == FinishType.MANUAL

    def test_max_iterations_beats_complete(self, plan):
        plan.write_text("- [x] done\n", encoding="utf-8")
        verdict = evaluate(_state(3), _outcome(), _config(max_iterations=3), False, plan)
        assert verdict.finish_type == FinishType.MAX_ITERATIONS
        assert verdict.message == "Reached maximum iterations (3)"

    def test_below_max_iterations_continues(self, plan):
        verdict = evaluate(_state(2), _outcome(), _config(max_iterations=3), False, plan)
        assert verdict.should_stop is False

    def test_zero_max_iterations_is_unlimited(self, plan):
        verdict = evaluate(_state(1000), _outcome(), _config(max_iterations=0), False, plan)
        assert verdict.should_stop is False

    def test_no_changes_after_first_iteration(self, plan):
        verdict = evaluate(_state(2), _outcome(work_happened=False), _config(), False, plan)
        assert verdict.finish_type == FinishType.NO_CHANGES

    def test_no_changes_never_on_first_iteration(self, plan):
        verdict = evaluate(_state(1), _outcome(work_happened=False), _config(), False, plan)
        assert verdict.should_stop is False

    def test_smart_termination_disabled(self, plan):
        plan.write_text("- [x] done\n", encoding="utf-8")
        config = _config(smart_termination=False)
        assert evaluate(_state(5), _outcome(work_happened=False), config, False, plan).should_stop is False

    def test_hierarchical_plan(self, plan, tmp_path):
        impl = tmp_path / "impl"
        impl.mkdir()
        (impl / "README.md").write_text("# Index\n", encoding="utf-8")
        (impl / "core.md").write_text("- [x] P1.1\n", encoding="utf-8")
        verdict = evaluate(_state(1), _outcome(), _config(), False, plan, impl)
        assert verdict.finish_type == FinishType.COMPLETE
