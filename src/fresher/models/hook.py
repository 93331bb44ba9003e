"""Hook result and verdict models."""

from enum import Enum


class HookResult(str, Enum):
    """What happened when a hook script was run."""

    CONTINUE = "continue"
    SKIP = "skip"
    ABORT = "abort"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    ERROR = "error"


class HookVerdict(str, Enum):
    """What the loop should do after a hook ran."""

    CONTINUE = "continue"
    SKIP = "skip"
    ABORT = "abort"
