"""Application error types.

Every error raised on purpose by this package derives from AppError and
carries a stable ``code`` so the scheduler can log a classification for
failed cycles without inspecting messages.

Propagation:
    - FetcherError never leaves the aggregator (folded into empty content)
    - SummarizerError never leaves the summarizer (folded into a sentinel)
    - PersistenceError surfaces to the scheduler's per-cycle handler
    - ConfigError is fatal at startup
"""

from pathlib import Path


class AppError(Exception):
    """Base class for application errors."""

    def __init__(self, message: str, code: str = "APP_ERROR"):
        super().__init__(message)
        self.code = code


class ConfigError(AppError):
    """Missing or invalid configuration."""

    def __init__(self, message: str, code: str = "CONFIG_ERROR"):
        super().__init__(message, code)


class FetcherError(AppError):
    """A source adapter failed."""

    def __init__(self, message: str, source: str, code: str = "FETCHER_ERROR"):
        super().__init__(message, code)
        self.source = source


class SummarizerError(AppError):
    """The summarization model call failed."""

    def __init__(self, message: str, model: str | None = None, code: str = "LLM_ERROR"):
        super().__init__(message, code)
        self.model = model


class PersistenceError(AppError):
    """A durable write (CSV, snapshot or markdown) failed."""

    def __init__(
        self,
        message: str,
        path: Path | None = None,
        code: str = "PERSISTENCE_ERROR",
    ):
        super().__init__(message, code)
        self.path = path


def classify_error(exc: BaseException) -> str:
    """Return the error code of an AppError, else the exception class name."""
    if isinstance(exc, AppError):
        return exc.code
    return type(exc).__name__
