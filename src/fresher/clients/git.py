"""Thin wrapper around the git command line."""

import logging
import subprocess
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class GitClient:
    """Version-control queries used to detect whether an iteration did work."""

    def __init__(self, executable: str = "git") -> None:
        self.executable = executable

    def _run(self, args: list[str], cwd: Optional[PathLike]) -> Optional[str]:
        try:
            completed = subprocess.run(
                [self.executable, *args],
                cwd=cwd,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            logger.warning(f"Failed to run git {' '.join(args)}: {e}")
            return None
        if completed.returncode != 0:
            logger.debug(
                f"git {' '.join(args)} exited with {completed.returncode}: "
                f"{completed.stderr.strip()}"
            )
            return None
        return completed.stdout.strip()

    def get_current_sha(self, cwd: Optional[PathLike] = None) -> Optional[str]:
        """Return the HEAD revision, or None outside a repository / before the first commit."""
        sha = self._run(["rev-parse", "HEAD"], cwd)
        return sha or None

    def count_commits_between(
        self, old_sha: Optional[str], new_sha: Optional[str], cwd: Optional[PathLike] = None
    ) -> int:
        """Number of revisions reachable from new_sha but not from old_sha."""
        if not new_sha or old_sha == new_sha:
            return 0
        if not old_sha:
            # First commit(s) of a fresh repository: count everything reachable.
            output = self._run(["rev-list", "--count", new_sha], cwd)
        else:
            output = self._run(["rev-list", "--count", f"{old_sha}..{new_sha}"], cwd)
        if output is None:
            return 0
        try:
            return int(output)
        except ValueError:
            logger.warning(f"Unexpected git rev-list output: {output!r}")
            return 0


git_client = GitClient()
