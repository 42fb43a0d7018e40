"""Domain-specific exceptions for Stackpulse.

Every external integration failure should raise one of these exceptions
so that calling code can handle failures at the nearest boundary.
"""

from __future__ import annotations


# =============================================================================
# Database
# =============================================================================


class DatabaseError(Exception):
    """Base exception for all database failures."""


class DatabaseNotInitializedError(DatabaseError):
    """The database handle was used before connect() or after close()."""


class DatabaseUnavailableError(DatabaseError):
    """The database could not be reached or did not answer the probe."""


class PoolExhaustedError(DatabaseError):
    """Too many callers are already waiting for a pooled connection."""

    def __init__(self, message: str = "Connection pool wait queue is full", queue_limit: int = 0) -> None:
        self.queue_limit = queue_limit
        super().__init__(message)


# =============================================================================
# API client
# =============================================================================


class ApiError(Exception):
    """Any failed API call: error status, network failure, or unparseable body."""

    def __init__(self, message: str = "API error", status_code: int = 0) -> None:
        self.status_code = status_code
        super().__init__(message)
