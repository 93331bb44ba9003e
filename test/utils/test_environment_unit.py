"""Unit tests for pre-flight environment validation."""

from unittest.mock import patch

import pytest

from fresher.config import Config
from fresher.exceptions import EnvironmentValidationError
from fresher.models.state import LoopMode
from fresher.utils.environment import (
    enforce_container_isolation,
    is_inside_container,
    validate_environment,
)


@pytest.fixture(autouse=True)
def _no_container_markers(monkeypatch):
    monkeypatch.delenv("FRESHER_IN_DOCKER", raising=False)
    monkeypatch.delenv("DEVCONTAINER", raising=False)


class TestContainerIsolation:
    def test_marker_detection(self, monkeypatch):
        assert not is_inside_container()
        monkeypatch.setenv("DEVCONTAINER", "true")
        assert is_inside_container()

    def test_marker_must_be_truthy(self, monkeypatch):
        monkeypatch.setenv("FRESHER_IN_DOCKER", "0")
        assert not is_inside_container()

    def test_required_but_on_host(self):
        config = Config()
        config.docker.use_docker = True
        with pytest.raises(EnvironmentValidationError, match="not running inside a container"):
            enforce_container_isolation(config)

    def test_required_and_inside(self, monkeypatch):
        monkeypatch.setenv("FRESHER_IN_DOCKER", "1")
        config = Config()
        config.docker.use_docker = True
        enforce_container_isolation(config)


@patch("fresher.utils.environment.shutil.which", return_value="/usr/bin/claude")
class TestValidateEnvironment:
    def test_missing_claude(self, mock_which, tmp_path):
        mock_which.return_value = None
        (tmp_path / "specs").mkdir()
        with pytest.raises(EnvironmentValidationError, match="claude command not found"):
            validate_environment(LoopMode.PLANNING, Config(), tmp_path)

    def test_planning_needs_spec_dir(self, mock_which, tmp_path):
        with pytest.raises(EnvironmentValidationError, match="specs/ not found"):
            validate_environment(LoopMode.PLANNING, Config(), tmp_path)
        (tmp_path / "specs").mkdir()
        validate_environment(LoopMode.PLANNING, Config(), tmp_path)

    def test_building_needs_plan(self, mock_which, tmp_path):
        with pytest.raises(EnvironmentValidationError, match="IMPLEMENTATION_PLAN.md not found"):
            validate_environment(LoopMode.BUILDING, Config(), tmp_path)
        (tmp_path / "IMPLEMENTATION_PLAN.md").write_text("- [ ] task\n")
        validate_environment(LoopMode.BUILDING, Config(), tmp_path)

    def test_building_accepts_hierarchical_plan(self, mock_which, tmp_path):
        (tmp_path / "impl").mkdir()
        (tmp_path / "impl" / "README.md").write_text("# Plan\n")
        validate_environment(LoopMode.BUILDING, Config(), tmp_path)
