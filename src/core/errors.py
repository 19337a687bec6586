# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Closed error taxonomy shared by services and the API boundary.

Every failure a service reports is one of five kinds. Each kind has its
own exception class carrying a structured payload, so callers branch on
``error.kind`` instead of inspecting messages or ad hoc attributes.

Services subclass these variants to name domain failures, e.g.
``EnrollmentNotFoundError(NotFoundError)``. The API boundary maps the
kind to an HTTP status in one place.

Example:
    >>> try:
    ...     await service.create_enrollment(request)
    ... except ServiceError as e:
    ...     status_code = http_status_for(e.kind)
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Discriminator for service errors."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    DEPENDENCY_CONFLICT = "dependency_conflict"
    INTERNAL = "internal"


class ServiceError(Exception):
    """Base exception for every service-level failure.

    Attributes:
        kind: Error discriminator.
        message: Human-readable error description.
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str) -> None:
        """Initialize the service error.

        Args:
            message: Human-readable error description.
        """
        super().__init__(message)
        self.message = message

    def payload(self) -> dict[str, Any]:
        """Return the kind-specific structured payload."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for API responses and logs."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            **self.payload(),
        }


class ValidationError(ServiceError):
    """Missing or malformed required input.

    Attributes:
        problems: One entry per rejected field or rule.
    """

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, problems: list[str] | None = None) -> None:
        super().__init__(message)
        self.problems = problems or [message]

    def payload(self) -> dict[str, Any]:
        return {"problems": list(self.problems)}


class NotFoundError(ServiceError):
    """Referenced entity does not exist.

    Attributes:
        entity: Name of the missing entity type.
        entity_id: Identifier that was looked up.
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, entity_id: str, message: str | None = None) -> None:
        super().__init__(message or f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id

    def payload(self) -> dict[str, Any]:
        return {"entity": self.entity, "entity_id": self.entity_id}


class ConflictError(ServiceError):
    """Uniqueness or state-machine violation.

    Attributes:
        resource: Name of the conflicting resource.
        key: Values identifying the conflict.
    """

    kind = ErrorKind.CONFLICT

    def __init__(self, resource: str, key: dict[str, Any], message: str) -> None:
        super().__init__(message)
        self.resource = resource
        self.key = key

    def payload(self) -> dict[str, Any]:
        return {"resource": self.resource, "key": dict(self.key)}


class DependencyConflictError(ServiceError):
    """Delete blocked by dependent records.

    Attributes:
        entity: Entity that could not be deleted.
        entity_id: Identifier of that entity.
        dependents: Count of blocking records per dependent type.
    """

    kind = ErrorKind.DEPENDENCY_CONFLICT

    def __init__(
        self,
        entity: str,
        entity_id: str,
        dependents: dict[str, int],
        message: str | None = None,
    ) -> None:
        blocking = ", ".join(f"{name}={count}" for name, count in dependents.items())
        super().__init__(
            message or f"{entity} {entity_id} has dependent records ({blocking})"
        )
        self.entity = entity
        self.entity_id = entity_id
        self.dependents = dependents

    def payload(self) -> dict[str, Any]:
        return {
            "entity": self.entity,
            "entity_id": self.entity_id,
            "dependents": dict(self.dependents),
        }


class InternalError(ServiceError):
    """Unexpected storage or runtime failure.

    Attributes:
        operation: Operation that was running.
        original_error: The underlying exception, if any.
    """

    kind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.original_error = original_error

    def payload(self) -> dict[str, Any]:
        return {"operation": self.operation}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


def http_status_for(kind: ErrorKind) -> int:
    """Map an error kind to its HTTP status code.

    Args:
        kind: Error discriminator.

    Returns:
        HTTP status code for the kind.
    """
    match kind:
        case ErrorKind.VALIDATION:
            return 400
        case ErrorKind.NOT_FOUND:
            return 404
        case ErrorKind.CONFLICT | ErrorKind.DEPENDENCY_CONFLICT:
            return 409
        case ErrorKind.INTERNAL:
            return 500
