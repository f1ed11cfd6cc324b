# services/errors.py
"""
Error taxonomy for the memory subsystem.

Automated paths (extraction, decay, insight regeneration, maintenance)
catch these at the top of each job and log them. User-initiated memory
actions let them propagate to the API, which maps `status_code` onto
the HTTP response.
"""
from __future__ import annotations


class MemoryServiceError(Exception):
    status_code: int = 500

    def __init__(self, message: str, *, context: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class ProviderError(MemoryServiceError):
    """Completion-service call failed: network, non-2xx, auth or timeout."""

    status_code = 502


class ParseError(MemoryServiceError):
    """Completion text was not the structured output we asked for."""

    status_code = 502


class PersistenceError(MemoryServiceError):
    """The data store rejected a read or a write."""

    status_code = 500


class ValidationError(MemoryServiceError):
    """Bad type/action value, unknown category, or an unrecognized subject reference."""

    status_code = 400


class MemoryNotFound(ValidationError):
    """Unknown memory id, or a memory outside the caller's scope."""

    status_code = 404
