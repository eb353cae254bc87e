# geoattend/core/errors.py
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    # input / validation
    INVALID_COORDINATES = "INVALID_COORDINATES"
    INVALID_INPUT = "INVALID_INPUT"
    # not found
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    STUDENT_NOT_FOUND = "STUDENT_NOT_FOUND"
    DEVICE_NOT_FOUND = "DEVICE_NOT_FOUND"
    ALERT_NOT_FOUND = "ALERT_NOT_FOUND"
    # state conflicts
    SESSION_CLOSED = "SESSION_CLOSED"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    ALREADY_USED_TOKEN = "ALREADY_USED_TOKEN"
    ALREADY_MARKED = "ALREADY_MARKED"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    REQUIRES_LOCATION = "REQUIRES_LOCATION"
    DEVICE_REQUIRED = "DEVICE_REQUIRED"
    DEVICE_INACTIVE = "DEVICE_INACTIVE"
    # authentication / authorization
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    NOT_SESSION_OWNER = "NOT_SESSION_OWNER"
    NOT_ALERT_OWNER = "NOT_ALERT_OWNER"
    UNAUTHORIZED_DEVICE = "UNAUTHORIZED_DEVICE"
    # security violations
    DEVICE_OWNERSHIP_VIOLATION = "DEVICE_OWNERSHIP_VIOLATION"
    SIMULTANEOUS_DEVICE_USAGE = "SIMULTANEOUS_DEVICE_USAGE"


class AttendanceError(Exception):
    """Base for every verdict the attendance core can hand back.

    None of these are retried: the caller re-initiates the attempt.
    """

    category = "error"
    status_code = 400
    purge_client_state = False

    def __init__(self, kind: ErrorKind, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "detail": self.message,
            "kind": self.kind.value,
            "category": self.category,
        }
        if self.purge_client_state:
            body["purge_client_state"] = True
        body.update(self.extra)
        return body


class InvalidInput(AttendanceError):
    category = "validation"
    status_code = 400


class NotFound(AttendanceError):
    category = "not_found"
    status_code = 404


class StateConflict(AttendanceError):
    category = "state_conflict"
    status_code = 409


class NotAuthenticated(AttendanceError):
    category = "authentication"
    status_code = 401


class NotAuthorized(AttendanceError):
    category = "authorization"
    status_code = 403


class SecurityViolation(AttendanceError):
    category = "security_violation"
    status_code = 403
    # the client must drop its local session/device state and re-authenticate
    purge_client_state = True
