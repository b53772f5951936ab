"""Caller-visible error taxonomy.

Errors raised across service boundaries carry an ``ErrorClass`` so callers
and logs can tell missing entities, rejected input, provider failures, and
conflicting state apart without string matching.
"""

from enum import Enum

from pydantic import ValidationError


ErrorDetails = dict[str, str | int | float | bool | None]


class ErrorClass(str, Enum):
    """Classification of service errors.

    - NOT_FOUND: Referenced user, content, or profile does not exist
    - VALIDATION: Malformed or out-of-range input, rejected before scoring
    - EXTERNAL_PROVIDER: Summarization or upstream fetch failure
    - CONFLICT: Duplicate non-idempotent action
    """

    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    EXTERNAL_PROVIDER = "EXTERNAL_PROVIDER"
    CONFLICT = "CONFLICT"


class LearnfeedError(Exception):
    """Base exception for service errors.

    Provides structured error information for logging and responses.
    """

    def __init__(
        self,
        error_class: ErrorClass,
        message: str,
        details: ErrorDetails | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            error_class: Classification of the error.
            message: Human-readable error message.
            details: Additional structured error details.
        """
        super().__init__(message)
        self.error_class = error_class
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, str | ErrorDetails]:
        """Convert error to dictionary for logging/serialization.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "error_class": self.error_class.value,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(LearnfeedError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: str) -> None:
        """Initialize the error with the missing entity.

        Args:
            entity: Kind of entity (e.g. "note", "interaction").
            entity_id: Identifier that was not found.
        """
        super().__init__(
            ErrorClass.NOT_FOUND,
            f"{entity.capitalize()} not found: {entity_id}",
            {"entity": entity, "entity_id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class ValidationFailedError(LearnfeedError):
    """Raised when caller input is rejected before any computation."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error message.
            field: Name of the offending field, if known.
        """
        super().__init__(ErrorClass.VALIDATION, message, {"field": field})
        self.field = field

    @classmethod
    def from_pydantic(cls, error: ValidationError) -> "ValidationFailedError":
        """Build from a pydantic ValidationError, keeping the first location.

        Args:
            error: The pydantic validation error.

        Returns:
            ValidationFailedError describing the first failing field.
        """
        first = error.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        return cls(f"{location or 'input'}: {first['msg']}", field=location or None)


class ExternalProviderError(LearnfeedError):
    """Raised when an external provider call fails.

    Never propagated past an enrichment boundary; callers fall back to
    unenriched data.
    """

    def __init__(self, provider: str, message: str) -> None:
        """Initialize the error.

        Args:
            provider: Provider name (e.g. "gemini").
            message: Human-readable error message.
        """
        super().__init__(
            ErrorClass.EXTERNAL_PROVIDER,
            f"{provider}: {message}",
            {"provider": provider},
        )
        self.provider = provider


class ConflictError(LearnfeedError):
    """Raised when an action conflicts with existing state."""

    def __init__(self, message: str, details: ErrorDetails | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error message.
            details: Additional structured error details.
        """
        super().__init__(ErrorClass.CONFLICT, message, details)
