"""
Custom exceptions for the freight operations core.
"""

from typing import Dict, Any, Iterable


class BusinessException(Exception):
    """Base exception for business logic errors."""

    http_status = 400

    def __init__(self, message: str, code: str = "BUSINESS_ERROR", details: Dict[str, Any] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class StateConflictException(BusinessException):
    """
    Raised when an operation's precondition on current status does not hold.

    Carries the observed state so the caller can refresh and retry or abort.
    """

    http_status = 409

    def __init__(self, message: str, current_state: Dict[str, Any] = None, code: str = "STATE_CONFLICT"):
        super().__init__(message, code, {"current_state": current_state or {}})

    @property
    def current_state(self) -> Dict[str, Any]:
        return self.details["current_state"]


class InvalidTransitionException(StateConflictException):
    """Raised when attempting a transition outside the allowed table."""

    def __init__(self, current_status: str, attempted_status: str, entity_type: str = "Shipment",
                 field: str = "status", entity_id: str = None):
        message = (
            f"Invalid {field} transition for {entity_type}: "
            f"cannot move from {current_status} to {attempted_status}"
        )
        super().__init__(message, {
            "entity_type": entity_type,
            "entity_id": str(entity_id) if entity_id else None,
            "field": field,
            "current_status": current_status,
            "attempted_status": attempted_status,
        }, code="INVALID_TRANSITION")


class NotFoundException(BusinessException):
    """Raised when referenced records do not exist."""

    http_status = 404

    def __init__(self, entity_type: str, ids: Iterable[Any]):
        missing = sorted(str(i) for i in ids)
        message = f"{entity_type} not found: {', '.join(missing)}"
        super().__init__(message, "NOT_FOUND", {"entity_type": entity_type, "missing_ids": missing})


class ValidationException(BusinessException):
    """Raised when data validation fails."""

    def __init__(self, message: str, field_errors: Dict[str, Any] = None):
        super().__init__(message, "VALIDATION_ERROR", field_errors or {})


class OfficeOwnershipException(BusinessException):
    """Raised when an office-scoped user operates on records another office owns."""

    http_status = 403

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, "OFFICE_FORBIDDEN", details)
