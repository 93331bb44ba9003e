"""The fresh-context loop: run the agent, decide, repeat.

The controller is the only sequencer. Each iteration:

    interrupt? -> next_iteration hook -> count + persist -> agent run
      -> persist outcome -> non-zero exit? -> termination oracle

Everything from the ``started`` hook onwards runs inside ``_run_scope``, which
guarantees that a finish reason is recorded, the state is persisted, the
``finished`` hook runs and the summary is printed, exactly once, however the
loop ends.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import click

from fresher.clients.git import GitClient, git_client
from fresher.clients.state_store import StateStore
from fresher.config import Config
from fresher.constants import STATE_FILE
from fresher.models.hook import HookVerdict
from fresher.models.iteration import IterationOutcome
from fresher.models.state import FinishType, LoopMode, RunState
from fresher.prompts import get_prompt
from fresher.providers.base import BaseProvider
from fresher.providers.claude_code import ClaudeCodeProvider
from fresher.services import termination_service
from fresher.services.hook_service import (
    run_finished_hook,
    run_next_iteration_hook,
    run_started_hook,
)
from fresher.utils.interrupt import InterruptFlag
from fresher.utils.streaming import StreamHandler

logger = logging.getLogger(__name__)


class LoopController:
    """Drives one Run from the first iteration to its finish reason."""

    def __init__(
        self,
        config: Config,
        mode: LoopMode,
        provider: BaseProvider,
        state_store: StateStore,
        interrupt: InterruptFlag,
        project_dir: Path,
        resume: bool = False,
        git: GitClient = git_client,
    ):
        self.config = config
        self.mode = mode
        self.provider = provider
        self.state_store = state_store
        self.interrupt = interrupt
        self.project_dir = Path(project_dir)
        self.resume = resume
        self.git = git

        self.state: Optional[RunState] = None
        self.last_outcome: Optional[IterationOutcome] = None
        self._finalized = False

    # -- paths ---------------------------------------------------------------

    @property
    def plan_path(self) -> Path:
        return self.project_dir / self.config.paths.plan_file

    @property
    def impl_dir(self) -> Path:
        return self.project_dir / self.config.paths.impl_dir

    def iteration_log_path(self, iteration: int) -> Path:
        """Per-iteration transcript: <log_dir>/<run timestamp>/NNN-<mode>.jsonl"""
        run_stamp = self.state.started_at.strftime("%Y%m%d-%H%M%S")
        return (
            self.project_dir
            / self.config.paths.log_dir
            / run_stamp
            / f"{iteration:03d}-{self.mode.value}.jsonl"
        )

    # -- run -----------------------------------------------------------------

    def run(self) -> RunState:
        self.state = self.state_store.load_or_create(self.mode, resume=self.resume)
        self.last_outcome = None
        self._finalized = False

        click.secho(f"Starting Fresher ({self.mode.value.capitalize()} Mode)", bold=True, fg="green")
        click.echo("─" * 40)

        with self._run_scope():
            self.state_store.save(self.state)

            if run_started_hook(self.state, self.config, self.project_dir) == HookVerdict.ABORT:
                self._finish(FinishType.HOOK_ABORT)
                return self.state

            self._loop()

        return self.state

    def _loop(self) -> None:
        state = self.state
        max_iterations = self.config.fresher.max_iterations
        skipped = 0

        while True:
            if self.interrupt.is_set():
                self._finish(FinishType.MANUAL)
                return

            # Skipped passes count toward the limit; a resumed run may already be there
            if max_iterations > 0 and state.iteration + skipped >= max_iterations:
                self._finish(FinishType.MAX_ITERATIONS)
                return

            verdict = run_next_iteration_hook(
                state, self.config, self.project_dir, self.last_outcome
            )
            if verdict == HookVerdict.ABORT:
                self._finish(FinishType.HOOK_ABORT)
                return
            if verdict == HookVerdict.SKIP:
                skipped += 1
                click.secho("Skipping iteration (hook requested)", fg="yellow")
                continue

            state.start_iteration(self.git.get_current_sha(self.project_dir))
            self.state_store.save(state)
            click.echo(
                f"\n{click.style(f'Iteration {state.iteration}', bold=True, fg='cyan')} "
                f"{'─' * 30}"
            )

            prompt = get_prompt(self.mode, self.project_dir, self.config)
            outcome = self.provider.run_iteration(prompt, self.iteration_log_path(state.iteration))
            self.last_outcome = outcome

            state.complete_iteration(outcome, self.git.get_current_sha(self.project_dir))
            self.state_store.save(state)
            self.print_iteration(outcome)

            if outcome.exit_code != 0:
                click.secho(f"\nClaude exited with code {outcome.exit_code}", fg="red", err=True)
                self._finish(FinishType.ERROR)
                return

            verdict = termination_service.evaluate(
                state,
                outcome,
                self.config,
                interrupted=self.interrupt.is_set(),
                plan_path=self.plan_path,
                impl_dir=self.impl_dir,
            )
            if verdict.should_stop:
                click.secho(f"\n{verdict.message}", fg="yellow")
                self._finish(verdict.finish_type)
                return

    def _finish(self, finish_type: FinishType) -> None:
        if self.state.set_finish(finish_type):
            logger.info(f"Run finished: {finish_type.value}")

    # -- cleanup -------------------------------------------------------------

    @contextmanager
    def _run_scope(self) -> Iterator[None]:
        try:
            yield
        except KeyboardInterrupt:
            self._finish(FinishType.MANUAL)
            self._finalize()
            raise
        except BaseException as e:
            logger.error(f"Loop failed: {e}")
            self._finish(FinishType.ERROR)
            self._finalize()
            raise
        else:
            if not self.state.is_finished:
                # Leaving the scope without a reason means the loop was cut short
                self._finish(FinishType.ERROR)
            self._finalize()

    def _finalize(self) -> None:
        if self._finalized:
            return
        self._finalized = True
        state = self.state

        state.update_duration()
        try:
            self.state_store.save(state)
        except Exception as e:
            logger.error(f"Failed to save final state: {e}")

        try:
            run_finished_hook(state, self.config, self.project_dir)
        except Exception as e:
            logger.error(f"Finished hook failed: {e}")
        finally:
            self.print_summary()

    def print_iteration(self, outcome: IterationOutcome) -> None:
        """One line of per-iteration stats under the agent's output."""
        parts = [f"{click.style('Duration:', dim=True)} {outcome.duration_seconds:.0f}s"]
        if outcome.num_turns is not None:
            parts.append(f"{click.style('Turns:', dim=True)} {outcome.num_turns}")
        if outcome.cost_usd is not None:
            parts.append(f"{click.style('Cost:', dim=True)} ${outcome.cost_usd:.4f}")
        if outcome.commits > 0:
            parts.append(
                f"{click.style('Commits:', dim=True)} {click.style(str(outcome.commits), fg='green')}"
            )
        click.echo("  " + "  ".join(parts))

        if outcome.is_error:
            click.secho(
                f"  Agent reported an error: {outcome.result_message or 'no details'}",
                fg="red",
            )
        if outcome.log_path:
            logger.info(f"Iteration {self.state.iteration} log: {outcome.log_path}")

    def print_summary(self) -> None:
        state = self.state
        click.echo()
        click.secho("Summary", bold=True)
        click.echo("─" * 40)
        click.echo(f"  Iterations: {click.style(str(state.iteration), fg='cyan')}")
        click.echo(f"  Commits:    {click.style(str(state.total_commits), fg='cyan')}")
        click.echo(f"  Duration:   {click.style(f'{state.duration_seconds}s', fg='cyan')}")
        if state.finish_type is not None:
            message = state.finish_type.describe(
                max_iterations=self.config.fresher.max_iterations,
                last_exit_code=state.last_exit_code,
            )
            click.echo(
                f"  Finished:   {click.style(state.finish_type.value, fg='yellow')} ({message})"
            )


def run_loop(
    mode: LoopMode,
    config: Config,
    project_dir: Path,
    interrupt: InterruptFlag,
    resume: bool = False,
    verbose: bool = False,
) -> RunState:
    """Wire the default collaborators together and run the loop."""
    project_dir = Path(project_dir)
    provider = ClaudeCodeProvider(config, project_dir, handler=StreamHandler(verbose=verbose))
    controller = LoopController(
        config,
        mode,
        provider,
        StateStore(project_dir / STATE_FILE),
        interrupt,
        project_dir,
        resume=resume,
    )
    return controller.run()
