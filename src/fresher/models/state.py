"""Run state model."""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from fresher.models.iteration import IterationOutcome

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LoopMode(str, Enum):
    """Which prompt the agent runs with."""

    PLANNING = "planning"
    BUILDING = "building"


class FinishType(str, Enum):
    """Why a run stopped."""

    MANUAL = "manual"
    ERROR = "error"
    MAX_ITERATIONS = "max_iterations"
    COMPLETE = "complete"
    NO_CHANGES = "no_changes"
    HOOK_ABORT = "hook_abort"

    def describe(self, max_iterations: int = 0, last_exit_code: int = 0) -> str:
        """Human-readable finish message."""
        if self is FinishType.MANUAL:
            return "Loop stopped by user (Ctrl+C)"
        if self is FinishType.MAX_ITERATIONS:
            return f"Reached maximum iterations ({max_iterations})"
        if self is FinishType.COMPLETE:
            return "All tasks in implementation plan completed!"
        if self is FinishType.NO_CHANGES:
            return "No changes made in last iteration"
        if self is FinishType.ERROR:
            return f"Claude Code exited with error (code: {last_exit_code})"
        return "Loop aborted by hook"


class RunState(BaseModel):
    """One invocation of the loop, persisted after every mutation."""

    mode: LoopMode = LoopMode.PLANNING
    started_at: datetime = Field(default_factory=_utcnow)
    iteration: int = 0
    total_commits: int = 0
    last_exit_code: int = 0
    last_commit_sha: Optional[str] = None
    iteration_sha: Optional[str] = None
    last_duration_seconds: int = 0
    last_commits: int = 0
    duration_seconds: int = 0
    finish_type: Optional[FinishType] = None

    @property
    def is_finished(self) -> bool:
        return self.finish_type is not None

    def start_iteration(self, commit_sha: Optional[str]) -> None:
        """Advance the iteration counter and remember the starting revision."""
        if self.is_finished:
            raise RuntimeError("Cannot start an iteration on a finished run")
        self.iteration += 1
        self.iteration_sha = commit_sha
        if self.last_commit_sha is None:
            self.last_commit_sha = commit_sha

    def complete_iteration(self, outcome: "IterationOutcome", current_sha: Optional[str]) -> None:
        """Fold an iteration outcome into the run totals."""
        self.last_exit_code = outcome.exit_code
        self.last_duration_seconds = int(outcome.duration_seconds)
        self.last_commits = outcome.commits
        self.total_commits += outcome.commits
        if outcome.work_happened and current_sha:
            self.last_commit_sha = current_sha
        self.update_duration()

    def update_duration(self) -> None:
        self.duration_seconds = max(0, int((_utcnow() - self.started_at).total_seconds()))

    def set_finish(self, finish_type: FinishType) -> bool:
        """Record the finish reason. Only the first call has any effect."""
        if self.finish_type is not None:
            logger.debug(
                f"Ignoring finish reason {finish_type.value}, run already "
                f"finished with {self.finish_type.value}"
            )
            return False
        self.finish_type = finish_type
        self.update_duration()
        return True
