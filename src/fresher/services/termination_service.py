"""Decide after each iteration whether the loop should stop.

Checks run in a fixed priority order and the first match wins:

1. an interrupt was received                     -> manual
2. max_iterations is set and has been reached    -> max_iterations
3. smart termination: the plan is complete       -> complete
4. smart termination: no work in this iteration  -> no_changes
   (never on the first iteration)
"""

import logging
from pathlib import Path
from typing import Optional

from fresher.config import Config
from fresher.models.iteration import IterationOutcome, TerminationVerdict
from fresher.models.state import FinishType, RunState
from fresher.utils.plan_parser import has_pending_tasks, is_plan_complete

logger = logging.getLogger(__name__)

__all__ = ["evaluate", "has_pending_tasks"]


def evaluate(
    state: RunState,
    outcome: IterationOutcome,
    config: Config,
    interrupted: bool,
    plan_path: Path,
    impl_dir: Optional[Path] = None,
) -> TerminationVerdict:
    """Return the verdict for the iteration that just finished."""
    max_iterations = config.fresher.max_iterations

    if interrupted:
        return TerminationVerdict.stop(FinishType.MANUAL, FinishType.MANUAL.describe())

    if max_iterations > 0 and state.iteration >= max_iterations:
        return TerminationVerdict.stop(
            FinishType.MAX_ITERATIONS,
            FinishType.MAX_ITERATIONS.describe(max_iterations=max_iterations),
        )

    if config.fresher.smart_termination:
        if is_plan_complete(plan_path, impl_dir):
            return TerminationVerdict.stop(FinishType.COMPLETE, FinishType.COMPLETE.describe())

        if state.iteration > 1 and not outcome.work_happened:
            return TerminationVerdict.stop(
                FinishType.NO_CHANGES, FinishType.NO_CHANGES.describe()
            )

    logger.debug(f"Iteration {state.iteration}: continuing")
    return TerminationVerdict.keep_going()
