"""Exception types shared across stepwise."""

from __future__ import annotations


class StepwiseError(Exception):
    """Base class for stepwise errors."""


class ConfigError(StepwiseError):
    """Raised at setup time for unusable configuration.

    Covers invalid limits, a missing model or credentials, and malformed
    custom command definitions. Never raised once a run has started.
    """

    def __init__(self, message: str, source: str | None = None) -> None:
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)


class EngineBusyError(StepwiseError):
    """A second run was requested while the engine is already running."""

    def __init__(self, session_id: str | None = None) -> None:
        self.session_id = session_id
        super().__init__("Engine is already running")


class SessionError(StepwiseError):
    """Session metadata could not be written."""
