"""Domain-specific exceptions — framework-independent.

Every error a caller can act on carries a ``status_code`` and a ``kind`` so
the API layer (and remote clients) can tell the categories apart without
matching on message text.
"""

from typing import Any


class DomainError(Exception):
    """Base class for caller-visible failures of a store operation."""

    status_code: int = 400
    kind: str = "error"

    def to_dict(self) -> dict[str, Any]:
        return {"detail": str(self), "kind": self.kind}


class FieldValidationError(DomainError):
    """Raised when caller-supplied data violates a field constraint.

    ``errors`` holds one ``{"field", "message"}`` entry per violated field.
    """

    status_code = 422
    kind = "validation"

    def __init__(self, entity_type: str, errors: list[dict[str, str]]):
        self.entity_type = entity_type
        self.errors = errors
        fields = ", ".join(e["field"] for e in errors) or "payload"
        super().__init__(f"Invalid {entity_type} data: {fields}")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "errors": self.errors}


class EntityNotFoundError(DomainError):
    """Raised when a requested entity does not exist."""

    status_code = 404
    kind = "not_found"

    def __init__(self, entity_type: str, entity_id: int | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")


class ForbiddenError(DomainError):
    """Raised when the caller's role may not perform an operation."""

    status_code = 403
    kind = "forbidden"

    def __init__(self, action: str, role: str | None):
        self.action = action
        self.role = role
        super().__init__(f"Role '{role or 'anonymous'}' may not {action}")


class ConflictError(DomainError):
    """Raised when an operation clashes with the current state."""

    status_code = 409
    kind = "conflict"


class DuplicateEntityError(ConflictError):
    """Raised when attempting to create a duplicate entity."""

    def __init__(self, entity_type: str, field: str, value: str):
        self.entity_type = entity_type
        self.field = field
        self.value = value
        super().__init__(f"{entity_type} with {field}='{value}' already exists")


class AuthenticationError(DomainError):
    """Raised when a bearer credential is missing, invalid or expired."""

    status_code = 401
    kind = "unauthorized"


class PersistenceWarning(Warning):
    """A snapshot write failed after the in-memory mutation succeeded.

    Never propagated to API callers; the store logs it and carries on.
    """
