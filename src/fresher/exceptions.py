"""Exception types raised by fresher."""


class FresherError(Exception):
    """Base class for all fresher errors."""

    pass


class ConfigError(FresherError):
    """Raised when the project configuration cannot be loaded or is invalid."""

    pass


class EnvironmentValidationError(FresherError):
    """Raised before the first iteration when the project cannot be run."""

    pass


class ProviderError(FresherError):
    """Raised when the agent subprocess cannot be started at all."""

    pass


class StateError(FresherError):
    """Raised when the persisted run state is unreadable."""

    pass


class EventParseError(FresherError, ValueError):
    """Raised when a stream line is not a JSON object."""

    pass
