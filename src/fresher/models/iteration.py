"""Iteration outcome and termination verdict models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from fresher.models.state import FinishType


class IterationOutcome(BaseModel):
    """Result of one agent subprocess invocation."""

    model_config = ConfigDict(frozen=True)

    exit_code: int
    duration_seconds: float
    result_message: Optional[str] = None
    is_error: bool = False
    num_turns: Optional[int] = None
    cost_usd: Optional[float] = None
    work_happened: bool = False
    commits: int = 0
    log_path: Optional[str] = None


class TerminationVerdict(BaseModel):
    """Decision taken after an iteration."""

    model_config = ConfigDict(frozen=True)

    should_stop: bool
    finish_type: Optional[FinishType] = None
    message: str = ""

    @classmethod
    def keep_going(cls) -> "TerminationVerdict":
        return cls(should_stop=False)

    @classmethod
    def stop(cls, finish_type: FinishType, message: str) -> "TerminationVerdict":
        return cls(should_stop=True, finish_type=finish_type, message=message)
