"""Base provider class for agent CLI integrations."""

from abc import ABC, abstractmethod
from pathlib import Path

from fresher.models.iteration import IterationOutcome


class BaseProvider(ABC):
    """Runs one fresh-context agent invocation per call."""

    @abstractmethod
    def build_command(self, prompt: str) -> list[str]:
        """Build the argument vector for one invocation."""
        pass

    @abstractmethod
    def run_iteration(self, prompt: str, log_path: Path) -> IterationOutcome:
        """Run the agent to completion with ``prompt`` and report what happened.

        Raises:
            ProviderError: the agent process could not be started.
            KeyboardInterrupt: a hard interrupt arrived while the agent ran.
        """
        pass
