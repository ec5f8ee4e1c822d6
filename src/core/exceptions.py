class ConfigError(Exception):
    """Raised when config loading or validation fails, or a run is missing required settings."""


class UnmappedStepError(ConfigError):
    """Raised when a plan step type has no registered worker."""

    def __init__(self, step_type: str):
        super().__init__(f"No worker registered for plan step type '{step_type}'")
        self.step_type = step_type


class SchemaValidationError(Exception):
    """Raised when an inference response does not match its typed contract."""

    def __init__(self, message: str, raw: str | None = None):
        super().__init__(message)
        self.raw = raw


class RetrievalError(Exception):
    """Raised when the capture service cannot be reached or returns an error."""


class PersistenceError(Exception):
    """Raised when a record fails the checks required before insert."""


class RunCancelled(Exception):
    """Raised at a suspension point once the run's cancel token has fired."""
