"""Unit tests for state persistence."""

import json
from unittest.mock import patch

import pytest

from fresher.clients.state_store import StateStore
from fresher.exceptions import StateError
from fresher.models.state import FinishType, LoopMode, RunState


@pytest.fixture
def store(tmp_path):
    return StateStore(tmp_path / ".fresher" / ".state")


class TestLoadSave:
    def test_missing_file(self, store):
        assert store.load() is None

    def test_round_trip(self, store):
        state = RunState(mode=LoopMode.BUILDING)
        state.start_iteration("abc")
        store.save(state)

        loaded = store.load()
        assert loaded == state

    def test_file_layout(self, store):
        store.save(RunState(mode=LoopMode.PLANNING, iteration=4, total_commits=2))
        data = json.loads(store.path.read_text())
        assert data["mode"] == "planning"
        assert data["iteration"] == 4
        assert data["total_commits"] == 2
        assert data["finish_type"] is None
        assert {"started_at", "last_commit_sha", "iteration_sha", "duration_seconds"} <= data.keys()

    def test_save_leaves_no_temp_files(self, store):
        store.save(RunState())
        store.save(RunState(iteration=1))
        assert [p.name for p in store.path.parent.iterdir()] == [".state"]

    def test_failed_write_keeps_previous_state(self, store):
        store.save(RunState(iteration=1))
        with patch("fresher.clients.state_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError, match="disk full"):
                store.save(RunState(iteration=2))
        assert store.load().iteration == 1
        assert [p.name for p in store.path.parent.iterdir()] == [".state"]

    def test_corrupt_file(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json")
        with pytest.raises(StateError, match="Failed to read state file"):
            store.load()

    def test_clear(self, store):
        store.save(RunState())
        store.clear()
        assert store.load() is None
        store.clear()


class TestLoadOrCreate:
    def test_new_run_without_resume(self, store):
        old = RunState(mode=LoopMode.BUILDING, iteration=5)
        store.save(old)
        state = store.load_or_create(LoopMode.BUILDING)
        assert state.iteration == 0

    def test_resume_unfinished_same_mode(self, store):
        store.save(RunState(mode=LoopMode.BUILDING, iteration=5, total_commits=3))
        state = store.load_or_create(LoopMode.BUILDING, resume=True)
        assert state.iteration == 5
        assert state.total_commits == 3

    def test_resume_ignores_finished_run(self, store):
        old = RunState(mode=LoopMode.BUILDING, iteration=5)
        old.set_finish(FinishType.COMPLETE)
        store.save(old)
        assert store.load_or_create(LoopMode.BUILDING, resume=True).iteration == 0

    def test_resume_ignores_other_mode(self, store):
        store.save(RunState(mode=LoopMode.PLANNING, iteration=5))
        assert store.load_or_create(LoopMode.BUILDING, resume=True).iteration == 0

    def test_resume_without_state(self, store):
        state = store.load_or_create(LoopMode.PLANNING, resume=True)
        assert state.mode == LoopMode.PLANNING
        assert state.iteration == 0
