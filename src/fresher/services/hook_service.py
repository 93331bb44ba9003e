"""Lifecycle hooks: user scripts in ``.fresher/hooks/`` run at fixed points of a run.

Hook exit codes:
    0  continue
    1  skip this iteration (next_iteration only)
    2  abort the loop
Any other exit code, or a timeout, is logged and the loop carries on.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

from fresher.config import Config
from fresher.constants import (
    ENV_PREFIX,
    HOOK_ABORT,
    HOOK_CONTINUE,
    HOOK_FINISHED,
    HOOK_NEXT_ITERATION,
    HOOK_SKIP,
    HOOK_STARTED,
    HOOKS_DIR,
)
from fresher.models.hook import HookResult, HookVerdict
from fresher.models.iteration import IterationOutcome
from fresher.models.state import RunState

logger = logging.getLogger(__name__)


def hook_path_for(hook_name: str, project_dir: Path) -> Path:
    return Path(project_dir) / HOOKS_DIR / hook_name


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def build_hook_env(
    hook_name: str,
    state: RunState,
    config: Config,
    project_dir: Path,
    last_outcome: Optional[IterationOutcome] = None,
) -> dict[str, str]:
    """Variables exported to a hook, on top of the inherited environment."""
    iteration = state.iteration
    if hook_name == HOOK_NEXT_ITERATION:
        # The iteration this hook is gating has not been counted yet.
        iteration += 1

    env = {
        f"{ENV_PREFIX}ITERATION": str(iteration),
        f"{ENV_PREFIX}MODE": state.mode.value,
        f"{ENV_PREFIX}PROJECT_DIR": str(Path(project_dir).resolve()),
        f"{ENV_PREFIX}MAX_ITERATIONS": str(config.fresher.max_iterations),
        f"{ENV_PREFIX}TOTAL_ITERATIONS": str(state.iteration),
        f"{ENV_PREFIX}TOTAL_COMMITS": str(state.total_commits),
    }
    if state.last_commit_sha:
        env[f"{ENV_PREFIX}LAST_COMMIT_SHA"] = state.last_commit_sha

    if hook_name == HOOK_NEXT_ITERATION:
        if last_outcome is not None:
            exit_code = last_outcome.exit_code
            duration = int(last_outcome.duration_seconds)
            commits = last_outcome.commits
        else:
            exit_code = state.last_exit_code
            duration = state.last_duration_seconds
            commits = state.last_commits
        env[f"{ENV_PREFIX}LAST_EXIT_CODE"] = str(exit_code)
        env[f"{ENV_PREFIX}LAST_DURATION_SECONDS"] = str(duration)
        env[f"{ENV_PREFIX}COMMITS_MADE"] = str(commits)

    if hook_name == HOOK_FINISHED:
        if state.finish_type is not None:
            env[f"{ENV_PREFIX}FINISH_TYPE"] = state.finish_type.value
        env[f"{ENV_PREFIX}DURATION_SECONDS"] = str(state.duration_seconds)

    return env


def run_hook(
    hook_name: str,
    env: dict[str, str],
    project_dir: Path,
    timeout: int,
    enabled: bool = True,
) -> HookResult:
    """Run one hook script and classify its exit status."""
    if not enabled:
        return HookResult.NOT_FOUND

    hook_path = hook_path_for(hook_name, project_dir)
    if not _is_executable(hook_path):
        if hook_path.exists():
            logger.debug(f"Hook {hook_name} is not executable, ignoring")
        return HookResult.NOT_FOUND

    logger.info(f"Running hook: {hook_name}")
    try:
        completed = subprocess.run(
            [str(hook_path)],
            cwd=project_dir,
            env={**os.environ, **env},
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        logger.error(f"Hook {hook_name} timed out after {timeout}s")
        return HookResult.TIMEOUT
    except OSError as e:
        logger.error(f"Failed to run hook {hook_name}: {e}")
        return HookResult.ERROR

    code = completed.returncode
    if code == HOOK_CONTINUE:
        return HookResult.CONTINUE
    if code == HOOK_SKIP:
        return HookResult.SKIP
    if code == HOOK_ABORT:
        return HookResult.ABORT
    logger.error(f"Hook {hook_name} exited with code {code}")
    return HookResult.ERROR


def _run(
    hook_name: str,
    state: RunState,
    config: Config,
    project_dir: Path,
    last_outcome: Optional[IterationOutcome] = None,
) -> HookResult:
    env = build_hook_env(hook_name, state, config, project_dir, last_outcome)
    return run_hook(
        hook_name,
        env,
        project_dir,
        timeout=config.hooks.timeout,
        enabled=config.hooks.enabled,
    )


def _to_verdict(hook_name: str, result: HookResult, allow_skip: bool) -> HookVerdict:
    if result == HookResult.ABORT:
        logger.warning(f"Hook {hook_name} requested abort")
        return HookVerdict.ABORT
    if result == HookResult.SKIP:
        if allow_skip:
            return HookVerdict.SKIP
        logger.warning(f"Hook {hook_name} exited with skip, which only applies to next_iteration")
    return HookVerdict.CONTINUE


def run_started_hook(state: RunState, config: Config, project_dir: Path) -> HookVerdict:
    result = _run(HOOK_STARTED, state, config, project_dir)
    return _to_verdict(HOOK_STARTED, result, allow_skip=False)


def run_next_iteration_hook(
    state: RunState,
    config: Config,
    project_dir: Path,
    last_outcome: Optional[IterationOutcome] = None,
) -> HookVerdict:
    result = _run(HOOK_NEXT_ITERATION, state, config, project_dir, last_outcome)
    return _to_verdict(HOOK_NEXT_ITERATION, result, allow_skip=True)


def run_finished_hook(state: RunState, config: Config, project_dir: Path) -> HookVerdict:
    """Run the finished hook. Its verdict cannot change a run that already ended."""
    result = _run(HOOK_FINISHED, state, config, project_dir)
    return _to_verdict(HOOK_FINISHED, result, allow_skip=False)
