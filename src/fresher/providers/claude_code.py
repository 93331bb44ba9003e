"""Claude Code provider implementation."""

import logging
import os
import subprocess
import threading
import time
from pathlib import Path
from typing import Optional

from fresher.clients.git import GitClient, git_client
from fresher.config import Config
from fresher.constants import AGENTS_FILE, CLAUDE_COMMAND, READER_JOIN_TIMEOUT
from fresher.exceptions import ProviderError
from fresher.models.iteration import IterationOutcome
from fresher.providers.base import BaseProvider
from fresher.utils.streaming import StreamHandler, StreamSummary, process_stream

logger = logging.getLogger(__name__)

# Seconds to wait for the agent to exit after SIGTERM before killing it
TERMINATE_GRACE_SECONDS = 5.0


class ClaudeCodeProvider(BaseProvider):
    """Runs ``claude -p`` headless with stream-json output, once per iteration."""

    def __init__(
        self,
        config: Config,
        project_dir: Path,
        handler: Optional[StreamHandler] = None,
        git: GitClient = git_client,
    ):
        self.config = config
        self.project_dir = Path(project_dir)
        self.handler = handler or StreamHandler()
        self.git = git

    def build_command(self, prompt: str) -> list[str]:
        """Build the claude invocation.

        --no-session-persistence keeps every iteration in a fresh context;
        nothing from a previous conversation is carried over.
        """
        settings = self.config.fresher
        command = [CLAUDE_COMMAND, "-p", prompt]

        if (self.project_dir / AGENTS_FILE).is_file():
            command.extend(["--append-system-prompt-file", str(AGENTS_FILE)])

        if settings.dangerous_permissions:
            command.append("--dangerously-skip-permissions")

        command.extend(
            [
                "--output-format",
                "stream-json",
                "--max-turns",
                str(settings.max_turns),
                "--no-session-persistence",
                "--model",
                settings.model,
                "--verbose",
            ]
        )
        return command

    def _child_env(self) -> dict[str, str]:
        # Bypass the nested-session guard when fresher itself runs inside Claude Code
        env = dict(os.environ)
        env.pop("CLAUDECODE", None)
        return env

    def _terminate(self, proc: subprocess.Popen) -> None:
        if proc.poll() is not None:
            return
        logger.warning(f"Terminating agent process {proc.pid}")
        proc.terminate()
        try:
            proc.wait(timeout=TERMINATE_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            logger.warning(f"Agent process {proc.pid} ignored SIGTERM, killing it")
            proc.kill()
            proc.wait()

    def run_iteration(self, prompt: str, log_path: Path) -> IterationOutcome:
        start_sha = self.git.get_current_sha(self.project_dir)
        command = self.build_command(prompt)
        log_path = Path(log_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Starting {CLAUDE_COMMAND} (model={self.config.fresher.model}), log: {log_path}")
        started = time.monotonic()
        try:
            # Own session: the terminal's Ctrl+C reaches fresher, not the agent
            proc = subprocess.Popen(
                command,
                cwd=self.project_dir,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                env=self._child_env(),
                start_new_session=True,
            )
        except OSError as e:
            raise ProviderError(f"Failed to start {CLAUDE_COMMAND}: {e}")

        summary_box: list[StreamSummary] = []
        reader_errors: list[BaseException] = []

        def _read() -> None:
            try:
                with log_path.open("a", encoding="utf-8") as log_file:
                    summary_box.append(process_stream(proc.stdout, self.handler, log_file))
            except Exception as e:
                reader_errors.append(e)
                logger.error(f"Stream reader failed: {e}")

        reader = threading.Thread(target=_read, name="agent-stream-reader", daemon=True)
        reader.start()

        try:
            exit_code = proc.wait()
        except KeyboardInterrupt:
            self._terminate(proc)
            reader.join(timeout=READER_JOIN_TIMEOUT)
            raise

        reader.join(timeout=READER_JOIN_TIMEOUT)
        if reader.is_alive():
            logger.warning("Stream reader did not finish in time; output may be incomplete")
        if proc.stdout is not None and not reader.is_alive():
            proc.stdout.close()

        duration = time.monotonic() - started
        summary = summary_box[0] if summary_box else StreamSummary()
        if summary.unparsed_lines:
            logger.info(f"{summary.unparsed_lines} non-JSON line(s) in agent output")
        if not summary.saw_result:
            logger.warning("Agent output contained no result event")

        end_sha = self.git.get_current_sha(self.project_dir)
        work_happened = end_sha is not None and end_sha != start_sha
        commits = self.git.count_commits_between(start_sha, end_sha, self.project_dir) if work_happened else 0

        logger.info(
            f"{CLAUDE_COMMAND} exited with code {exit_code} after {duration:.1f}s "
            f"({commits} commit(s))"
        )
        return IterationOutcome(
            exit_code=exit_code,
            duration_seconds=duration,
            result_message=summary.result_text,
            is_error=summary.is_error,
            num_turns=summary.num_turns,
            cost_usd=summary.cost_usd,
            work_happened=work_happened,
            commits=commits,
            log_path=str(log_path),
        )
