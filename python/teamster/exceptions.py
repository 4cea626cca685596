"""Exception hierarchy for the teamster pool supervisor."""


class TeamsterError(Exception):
    """Base class for all errors raised by teamster."""

    pass


class NotFoundError(TeamsterError):
    """Raised when a PID file does not exist."""

    pass


class PidError(TeamsterError):
    """Raised when a PID file holds something that is not a process identifier."""

    pass


class ProcessError(TeamsterError):
    """Raised when a managed process cannot be spawned, signalled, started or stopped."""

    pass


class RunnerError(TeamsterError):
    """Raised for invalid runner configuration."""

    pass


class ConfigurationError(TeamsterError):
    """Exception raised for configuration validation errors."""

    pass
