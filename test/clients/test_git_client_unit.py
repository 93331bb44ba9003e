"""Unit tests for the git wrapper."""

import shutil
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from fresher.clients.git import GitClient


def _completed(returncode=0, stdout="", stderr=""):
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


class TestGitClient:
    @patch("fresher.clients.git.subprocess.run")
    def test_current_sha(self, mock_run):
        mock_run.return_value = _completed(stdout="abc123\n")
        assert GitClient().get_current_sha("/repo") == "abc123"
        args, kwargs = mock_run.call_args
        assert args[0] == ["git", "rev-parse", "HEAD"]
        assert kwargs["cwd"] == "/repo"

    @patch("fresher.clients.git.subprocess.run")
    def test_current_sha_outside_repo(self, mock_run):
        mock_run.return_value = _completed(returncode=128, stderr="not a git repository")
        assert GitClient().get_current_sha() is None

    @patch("fresher.clients.git.subprocess.run", side_effect=FileNotFoundError("git"))
    def test_git_missing(self, mock_run):
        assert GitClient().get_current_sha() is None
        assert GitClient().count_commits_between("a", "b") == 0

    @patch("fresher.clients.git.subprocess.run")
    def test_count_range(self, mock_run):
        mock_run.return_value = _completed(stdout="3\n")
        assert GitClient().count_commits_between("old", "new") == 3
        assert mock_run.call_args[0][0] == ["git", "rev-list", "--count", "old..new"]

    @patch("fresher.clients.git.subprocess.run")
    def test_count_from_root(self, mock_run):
        mock_run.return_value = _completed(stdout="2\n")
        assert GitClient().count_commits_between(None, "new") == 2
        assert mock_run.call_args[0][0] == ["git", "rev-list", "--count", "new"]

    @patch("fresher.clients.git.subprocess.run")
    def test_count_same_sha_skips_git(self, mock_run):
        assert GitClient().count_commits_between("same", "same") == 0
        assert GitClient().count_commits_between("old", None) == 0
        mock_run.assert_not_called()


@pytest.mark.integration
@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
class TestGitClientIntegration:
    def _git(self, repo, *args):
        subprocess.run(
            ["git", "-c", "user.name=t", "-c", "user.email=t@example.com", *args],
            cwd=repo,
            check=True,
            capture_output=True,
        )

    def test_counts_real_commits(self, tmp_path):
        self._git(tmp_path, "init", "-q")
        client = GitClient()
        assert client.get_current_sha(tmp_path) is None

        (tmp_path / "a.txt").write_text("a")
        self._git(tmp_path, "add", ".")
        self._git(tmp_path, "commit", "-q", "-m", "first")
        first = client.get_current_sha(tmp_path)

        for name in ("b", "c"):
            (tmp_path / f"{name}.txt").write_text(name)
            self._git(tmp_path, "add", ".")
            self._git(tmp_path, "commit", "-q", "-m", name)
        head = client.get_current_sha(tmp_path)

        assert client.count_commits_between(first, head, tmp_path) == 2
        assert client.count_commits_between(None, head, tmp_path) == 3
