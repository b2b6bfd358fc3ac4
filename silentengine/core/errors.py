"""Error taxonomy for the routing engine.

Rate limiting is not represented here: admission is a boolean gate and the
HTTP layer turns a denial into a 429.
"""


class EngineError(Exception):
    """Base class for every error raised by the engine."""


class ConfigurationError(EngineError):
    """Missing or invalid provider mapping or startup configuration. Never retried."""


class ProviderError(EngineError):
    """A single backend call failed."""

    def __init__(self, provider: str, message: str):
        super().__init__(message)
        self.provider = provider


class AggregateFailureError(EngineError):
    """Primary and (when configured) backup provider both failed."""

    def __init__(self, message: str, primary_error: str | None, backup_error: str | None = None):
        super().__init__(message)
        self.primary_error = primary_error
        self.backup_error = backup_error


class JSONValidationError(EngineError):
    """JSON mode ran out of attempts without a parseable answer."""

    hint = "The model failed to generate valid JSON after multiple attempts"

    def __init__(self, attempts: int, last_error: str):
        super().__init__(
            f"Failed to generate valid JSON after {attempts} attempts. Last error: {last_error}"
        )
        self.attempts = attempts
        self.last_error = last_error


class PersistenceError(EngineError):
    """Reading or writing a log partition failed."""
