"""Error codes and the exceptions raised by the ledger and the content services.

Every error carries a stable ``code``, a user-safe ``message`` and the HTTP
status the API layer answers with.
"""

from enum import Enum


class ErrorCode(Enum):
    """Error codes exposed in JSON error bodies."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    DUPLICATE_ENROLLMENT = "DUPLICATE_ENROLLMENT"
    SESSION_FULL = "SESSION_FULL"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    SESSION_NOT_OPEN = "SESSION_NOT_OPEN"
    SESSION_NOT_AVAILABLE = "SESSION_NOT_AVAILABLE"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    ENROLLMENT_NOT_FOUND = "ENROLLMENT_NOT_FOUND"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    STORAGE_CONFLICT = "STORAGE_CONFLICT"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    EVENT_FULL = "EVENT_FULL"
    REGISTRATION_CLOSED = "REGISTRATION_CLOSED"
    DUPLICATE_REGISTRATION = "DUPLICATE_REGISTRATION"
    DUPLICATE_SLUG = "DUPLICATE_SLUG"
    NOT_FOUND = "NOT_FOUND"


class LedgerError(Exception):
    """Base error with code, message and HTTP status."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 400
    retryable = False

    def __init__(self, message: str, details=None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.message, "code": self.code.value}
        if self.details:
            body["details"] = self.details
        if self.retryable:
            body["retryable"] = True
        return body


class ValidationError(LedgerError):
    """Malformed or missing input, rejected before any write."""


class DuplicateEnrollment(LedgerError):
    code = ErrorCode.DUPLICATE_ENROLLMENT

    def __init__(self, session_id: int, email: str) -> None:
        super().__init__("You are already enrolled in this session")
        self.session_id = session_id
        self.email = email


class SessionFull(LedgerError):
    code = ErrorCode.SESSION_FULL

    def __init__(self, session_id: int) -> None:
        super().__init__("Session is fully booked")
        self.session_id = session_id


class CapacityExceeded(LedgerError):
    code = ErrorCode.CAPACITY_EXCEEDED

    def __init__(self, session_id: int, message: str = "No seats left in this session") -> None:
        super().__init__(message)
        self.session_id = session_id


class SessionNotOpen(LedgerError):
    code = ErrorCode.SESSION_NOT_OPEN

    def __init__(self, session_id: int) -> None:
        super().__init__("Session is not yet open")
        self.session_id = session_id


class SessionNotAvailable(LedgerError):
    code = ErrorCode.SESSION_NOT_AVAILABLE

    def __init__(self, session_id: int) -> None:
        super().__init__("Session is not available for enrollment")
        self.session_id = session_id


class InvalidTransition(LedgerError):
    code = ErrorCode.INVALID_TRANSITION

    def __init__(self, current, target) -> None:
        super().__init__(
            f"Cannot change enrollment status from {current.value} to {target.value}"
        )
        self.current = current
        self.target = target


class EnrollmentNotFound(LedgerError):
    code = ErrorCode.ENROLLMENT_NOT_FOUND
    status_code = 404

    def __init__(self, enrollment_id: str) -> None:
        super().__init__("Enrollment not found")
        self.enrollment_id = enrollment_id


class SessionNotFound(LedgerError):
    code = ErrorCode.SESSION_NOT_FOUND
    status_code = 404

    def __init__(self, session_id) -> None:
        super().__init__("Session not found")
        self.session_id = session_id


class StorageConflict(LedgerError):
    """Concurrent writers could not be serialized; safe to retry."""

    code = ErrorCode.STORAGE_CONFLICT
    status_code = 409
    retryable = True

    def __init__(self, attempts: int) -> None:
        super().__init__("The request conflicted with a concurrent update, please retry")
        self.attempts = attempts


class ResourceNotFound(LedgerError):
    code = ErrorCode.NOT_FOUND
    status_code = 404

    def __init__(self, resource: str, key=None) -> None:
        super().__init__(f"{resource} not found")
        self.resource = resource
        self.key = key


class DuplicateSlug(LedgerError):
    code = ErrorCode.DUPLICATE_SLUG

    def __init__(self, resource: str, slug: str) -> None:
        super().__init__(f"{resource} with this slug already exists")
        self.resource = resource
        self.slug = slug


# ---------- Events ----------
class EventNotFound(LedgerError):
    code = ErrorCode.EVENT_NOT_FOUND
    status_code = 404

    def __init__(self, event_id) -> None:
        super().__init__("Event not found")
        self.event_id = event_id


class EventFull(LedgerError):
    code = ErrorCode.EVENT_FULL

    def __init__(self, event_id: int) -> None:
        super().__init__("Event is fully booked")
        self.event_id = event_id


class EventRegistrationClosed(LedgerError):
    """The event already started or is not published."""

    code = ErrorCode.REGISTRATION_CLOSED

    def __init__(self, event_id: int) -> None:
        super().__init__("Event registration is closed")
        self.event_id = event_id


class DuplicateRegistration(LedgerError):
    code = ErrorCode.DUPLICATE_REGISTRATION

    def __init__(self, event_id: int, email: str) -> None:
        super().__init__("You are already registered for this event")
        self.event_id = event_id
        self.email = email
