"""
Exception taxonomy shared by every warehouse app.

Services raise these; the REST layer maps them to HTTP responses in
``core.exception_handler``.
"""

from typing import Dict, Any


class BusinessException(Exception):
    """Base exception for business logic errors."""

    status_code = 400

    def __init__(self, message: str, code: str = "BUSINESS_ERROR", details: Dict[str, Any] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(BusinessException):
    """Raised when request data or a guard on the entity's state fails."""

    status_code = 400

    def __init__(self, message: str, field_errors: Dict[str, Any] = None):
        super().__init__(message, "VALIDATION_ERROR", field_errors or {})


class NotFoundException(BusinessException):
    """Raised when a referenced entity does not exist."""

    status_code = 404

    def __init__(self, resource: str, identifier=None):
        if identifier is None:
            message = f"{resource} not found"
        else:
            message = f"{resource} ({identifier}) not found"
        super().__init__(message, "NOT_FOUND", {"resource": resource, "id": identifier})


class ConflictException(BusinessException):
    """Raised when the current state of an entity forbids the operation."""

    status_code = 409

    def __init__(self, message: str, details: Dict[str, Any] = None, code: str = "CONFLICT"):
        super().__init__(message, code, details)


class InvalidTransitionException(ConflictException):
    """Raised when attempting an invalid workflow transition."""

    def __init__(self, current_status: str, attempted_status: str, entity_type: str = "order"):
        message = f"Invalid transition for {entity_type}: cannot move from {current_status} to {attempted_status}"
        super().__init__(message, {
            "current_status": current_status,
            "attempted_status": attempted_status,
            "entity_type": entity_type
        }, code="INVALID_TRANSITION")


class ForbiddenException(BusinessException):
    """Raised when the authorization policy denies an action."""

    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, "FORBIDDEN")
