"""Exception hierarchy for the evaluation engine.

Everything raised on the remote path derives from :class:`EngineError` so the
orchestrator can catch a single type and fall back to local evaluation.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for all evaluation-engine errors."""


class ConfigError(EngineError):
    """The remote service credential is missing. Never retried."""


class EmptyInputError(EngineError):
    """No target KPIs were given to the remote evaluator."""


class RemoteError(EngineError):
    """A single remote attempt failed in a way that may succeed on retry."""


class RateLimitError(RemoteError):
    """The remote service answered HTTP 429."""


class TransportError(RemoteError):
    """Non-2xx status (other than 429), network failure or timeout."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SchemaError(RemoteError):
    """The response body was not the expected JSON verdict."""


class RetryExhausted(EngineError):
    """All remote attempts failed; :attr:`last_error` holds the final cause."""

    def __init__(self, attempts: int, last_error: Exception | None) -> None:
        super().__init__(f"Remote evaluation failed after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error
