"""
scorekeeper/errors.py
Centralized Error Handling

CORE PRINCIPLES:
- All errors follow consistent structure
- Errors are user-safe (no stack traces)
- Errors are machine-readable
- Every eligibility rejection names the rule and the entity involved

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}

HTTP STATUS CODE DISCIPLINE:
- 400: Invalid input / invalid state transition
- 404: Resource does not exist
- 409: Uniqueness conflict (retry may succeed)
- 422: Eligibility rule rejected the request
- 500: NEVER caused by user input (internal only)
"""

from typing import Optional, Dict, Any
from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel



class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"

    NOT_FOUND = "NOT_FOUND"
    PARTICIPANT_NOT_FOUND = "PARTICIPANT_NOT_FOUND"
    TEAM_NOT_FOUND = "TEAM_NOT_FOUND"
    EDITION_NOT_FOUND = "EDITION_NOT_FOUND"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"

    INVALID_DOCUMENT = "INVALID_DOCUMENT"
    INACTIVE_ENTITY = "INACTIVE_ENTITY"
    TEAM_MISMATCH = "TEAM_MISMATCH"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    LIFECYCLE_VIOLATION = "LIFECYCLE_VIOLATION"
    NO_OPEN_EDITION = "NO_OPEN_EDITION"
    UNREMOVABLE_ENTITY = "UNREMOVABLE_ENTITY"
    STATE_TRANSITION_INVALID = "STATE_TRANSITION_INVALID"

    CONFLICT = "CONFLICT"
    DOCUMENT_IN_USE = "DOCUMENT_IN_USE"
    NAME_IN_USE = "NAME_IN_USE"
    LOGO_IN_USE = "LOGO_IN_USE"
    YEAR_IN_USE = "YEAR_IN_USE"
    DUPLICATE_REGISTRATION = "DUPLICATE_REGISTRATION"
    AMBIGUOUS_CURRENT_EDITION = "AMBIGUOUS_CURRENT_EDITION"
    EDITION_ALREADY_OPEN = "EDITION_ALREADY_OPEN"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Standard error response model"""
    success: bool = False
    error: str
    message: str
    code: str
    details: Optional[Dict[str, Any]] = None


class APIError(Exception):
    """Base API exception with consistent structure"""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_response(self) -> JSONResponse:
        """Convert to FastAPI JSONResponse"""
        return JSONResponse(status_code=self.status_code, content=self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result = {
            "success": False,
            "error": self.error,
            "message": self.message,
            "code": self.code
        }
        if self.details:
            result["details"] = self.details
        return result


class BadRequestError(APIError):
    """400 Bad Request - Invalid input"""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Bad Request",
            message=message,
            code=code,
            details=details
        )


class NotFoundError(APIError):
    """404 Not Found - Resource does not exist"""
    def __init__(self, resource: str, identifier: Any = None, code: str = ErrorCode.NOT_FOUND):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id '{identifier}' not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error="Not Found",
            message=message,
            code=code,
            details={"resource": resource, "id": identifier}
        )


class InvalidStateTransitionError(APIError):
    """400 Bad Request - Invalid lifecycle transition"""
    def __init__(self, resource: str, current: str, target: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Invalid State",
            message=f"{resource} cannot move from {current} to {target}",
            code=ErrorCode.STATE_TRANSITION_INVALID,
            details={"resource": resource, "current": current, "target": target}
        )


# ================= ELIGIBILITY RULE REJECTIONS =================

class RuleViolationError(APIError):
    """422 Unprocessable Entity - an eligibility rule rejected the request"""
    rule: str = "unknown"

    def __init__(self, message: str, code: str, details: Optional[Dict] = None):
        details = {"rule": self.rule, **(details or {})}
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error="Rule Violation",
            message=message,
            code=code,
            details=details
        )


class InvalidDocumentError(RuleViolationError):
    rule = "document_validity"

    def __init__(self, document: Optional[str]):
        super().__init__(
            f"Document '{document}' is not a valid national document id",
            ErrorCode.INVALID_DOCUMENT,
            {"document": document}
        )


class InactiveEntityError(RuleViolationError):
    rule = "active_status"

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        super().__init__(
            f"The {entity} {entity_id} is inactive",
            ErrorCode.INACTIVE_ENTITY,
            {"entity": entity, "id": entity_id}
        )


class TeamMismatchError(RuleViolationError):
    rule = "event_team_consistency"

    def __init__(self, participant_id: Any, team_id: Any, event_id: Any):
        super().__init__(
            f"Participant {participant_id} is not registered for team {team_id} "
            f"in the edition of event {event_id}",
            ErrorCode.TEAM_MISMATCH,
            {"participant_id": participant_id, "team_id": team_id, "event_id": event_id}
        )


class CapacityExceededError(RuleViolationError):
    rule = "event_capacity"

    def __init__(self, team_id: Any, event_id: Any, capacity: int):
        super().__init__(
            f"Team {team_id} already has the maximum of {capacity} participants in event {event_id}",
            ErrorCode.CAPACITY_EXCEEDED,
            {"team_id": team_id, "event_id": event_id, "capacity": capacity}
        )


class LifecycleViolationError(RuleViolationError):
    rule = "lifecycle_gating"

    def __init__(self, message: str, code: str = ErrorCode.LIFECYCLE_VIOLATION, details: Optional[Dict] = None):
        super().__init__(message, code, details)


class UnremovableEntityError(RuleViolationError):
    rule = "removal_gating"

    def __init__(self, entity: str, entity_id: Any, reason: str):
        super().__init__(
            f"The {entity} {entity_id} cannot be removed or deactivated: {reason}",
            ErrorCode.UNREMOVABLE_ENTITY,
            {"entity": entity, "id": entity_id, "reason": reason}
        )


# ================= CONFLICTS =================

class ConflictError(APIError):
    """409 Conflict - uniqueness violated; the caller may retry"""
    def __init__(self, message: str, code: str = ErrorCode.CONFLICT, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error="Conflict",
            message=message,
            code=code,
            details=details
        )


class DocumentInUseError(ConflictError):
    def __init__(self, document: str):
        super().__init__(
            f"Document '{document}' is already in use",
            code=ErrorCode.DOCUMENT_IN_USE,
            details={"document": document}
        )


class DuplicateRegistrationError(ConflictError):
    def __init__(self, participant_id: Any, event_id: Any):
        super().__init__(
            f"Participant {participant_id} is already registered in event {event_id}",
            code=ErrorCode.DUPLICATE_REGISTRATION,
            details={"participant_id": participant_id, "event_id": event_id}
        )

