"""Durable storage for the run state."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from fresher.exceptions import StateError
from fresher.models.state import LoopMode, RunState

logger = logging.getLogger(__name__)


class StateStore:
    """Persists a RunState as JSON, replacing the file atomically on every save."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[RunState]:
        """Return the stored state, or None when nothing has been stored yet."""
        if not self.path.is_file():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return RunState.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise StateError(f"Failed to read state file {self.path}: {e}")

    def load_or_create(self, mode: LoopMode, resume: bool = False) -> RunState:
        """Start a new run, or continue the stored one when resuming.

        Only an unfinished run of the same mode can be resumed; in every other
        case a brand-new RunState is returned.
        """
        if resume:
            existing = self.load()
            if existing is not None and not existing.is_finished and existing.mode == mode:
                logger.info(f"Resuming {mode.value} run at iteration {existing.iteration}")
                return existing
            logger.info("No resumable run found, starting a new one")
        return RunState(mode=mode)

    def save(self, state: RunState) -> None:
        """Write state to disk; returns only once the new file is in place."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = state.model_dump_json(indent=2) + "\n"
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
        logger.debug(f"Saved state to {self.path} (iteration={state.iteration})")

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
