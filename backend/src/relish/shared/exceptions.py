"""Custom exception hierarchy for Relish."""

from typing import Any
from uuid import UUID


class RelishError(Exception):
    """Base exception for all Relish errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ----- Startup Errors -----


class ConfigurationError(RelishError):
    """Fatal startup configuration problem (e.g. bad master key).

    The process must not serve traffic after this is raised.
    """

    pass


# ----- Crypto Errors -----


class DecryptionError(RelishError):
    """Encrypted payload is malformed, tampered with, or bound to another context."""

    def __init__(self, reason: str, context: str | None = None) -> None:
        super().__init__(
            message="Decryption failed",
            details={"reason": reason, "context": context},
        )
        self.reason = reason
        self.context = context


# ----- Resource Errors -----


class NotFoundError(RelishError):
    """Requested resource was not found for the given tenant."""

    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(
            message=f"{resource} not found",
            details={"resource": resource, "identifier": identifier},
        )


class DuplicateIndexError(RelishError):
    """A uniqueness constraint on a blind-index column was violated.

    Recoverable: callers re-resolve the existing record by index.
    """

    def __init__(self, entity: str, field: str, existing_id: UUID | None = None) -> None:
        super().__init__(
            message=f"{entity} with the same {field} already exists",
            details={
                "entity": entity,
                "field": field,
                "existing_id": str(existing_id) if existing_id else None,
            },
        )
        self.entity = entity
        self.field = field
        self.existing_id = existing_id


# ----- Validation Errors -----


class ValidationError(RelishError):
    """Input validation failed before reaching crypto or storage."""

    pass
