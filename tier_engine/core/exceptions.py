"""
Error taxonomy for the Tier Engine.

Tier movement classification, matrix building and growth insights never raise
these errors; absent tiers and empty populations are ordinary branches there.
The assignment workflow raises them from the mutation guard and converts them
into per-item results at the service boundary.

Hierarchy:
    TierEngineError
    ├── ValidationError       - missing/blank required field (HTTP 400)
    ├── ConcurrencyRejected   - mutation already in flight for the key (HTTP 409)
    ├── NotFound              - explicit lookup found nothing (HTTP 404)
    └── RepositoryError       - storage layer failure, wraps the cause (HTTP 500)
"""

from typing import Optional


class TierEngineError(Exception):
    """
    Base class for all engine errors.

    Attributes:
        code: Stable machine-readable error code used in API results.
        message: Human-readable explanation.
    """

    code: str = "engine_error"
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(TierEngineError):
    """A required field was missing or blank."""

    code = "validation_error"
    status_code = 400

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(message or f"{field} is required")
        self.field = field

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "field": self.field}


class ConcurrencyRejected(TierEngineError):
    """Another mutation for the same customer key is still in flight."""

    code = "concurrency_rejected"
    status_code = 409

    def __init__(self, customer_key: str):
        super().__init__(
            f"An assignment change for {customer_key} is already in progress. "
            f"Retry once it completes."
        )
        self.customer_key = customer_key


class NotFound(TierEngineError):
    """An explicit get-then-act lookup did not find the record."""

    code = "not_found"
    status_code = 404


class RepositoryError(TierEngineError):
    """
    Opaque failure from the storage layer.

    The underlying exception is kept on ``cause`` and is also chained via
    ``raise ... from`` at the raise site.
    """

    code = "repository_error"
    status_code = 500

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
