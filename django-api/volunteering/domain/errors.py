"""Domain error codes for the volunteering module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    NOTIFICATION_NOT_FOUND = "NOTIFICATION_NOT_FOUND"
    INVALID_ID = "INVALID_ID"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_STATE = "INVALID_STATE"
    CONFLICT = "CONFLICT"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(DomainError):
    """Base for unknown entity ids."""


class EventNotFoundError(NotFoundError):
    """Raised when an event is not found (or not visible to the caller)."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message="Event not found",
        )
        self.event_id = event_id


class RegistrationNotFoundError(NotFoundError):
    """Raised when a registration is not found."""

    def __init__(self, registration_id: str) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_NOT_FOUND,
            message="Registration not found",
        )
        self.registration_id = registration_id


class NotificationNotFoundError(NotFoundError):
    """Raised when a notification is not found for its recipient."""

    def __init__(self, notification_id: str) -> None:
        super().__init__(
            code=ErrorCode.NOTIFICATION_NOT_FOUND,
            message="Notification not found",
        )
        self.notification_id = notification_id


class InvalidIdError(DomainError):
    """Raised when an entity ID is not a valid UUID."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_ID,
            message="Invalid ID format",
        )


class ValidationError(DomainError):
    """Raised when input values break a domain rule."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.VALIDATION_ERROR, message=message)


class InvalidStateError(DomainError):
    """Raised when an operation is illegal for the current lifecycle state."""

    def __init__(self, message: str, current: str | None = None) -> None:
        super().__init__(code=ErrorCode.INVALID_STATE, message=message)
        self.current = current


class ConflictError(DomainError):
    """Base for uniqueness and optimistic-version violations."""


class ConcurrentModificationError(ConflictError):
    """Raised when a row changed between read and conditional write."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(
            code=ErrorCode.CONFLICT,
            message=f"The {entity} was modified concurrently, retry the request",
        )
        self.entity = entity
        self.entity_id = entity_id


class DuplicateRegistrationError(ConflictError):
    """Raised when the user already holds an active registration for the event."""

    def __init__(self, event_id: str, user_id: int) -> None:
        super().__init__(
            code=ErrorCode.CONFLICT,
            message="User is already registered for this event",
        )
        self.event_id = event_id
        self.user_id = user_id


class CapacityExceededError(DomainError):
    """Raised when an event has no capacity headroom left."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.CAPACITY_EXCEEDED,
            message="Event is at maximum capacity",
        )
        self.event_id = event_id


class UnauthorizedError(DomainError):
    """Raised when the actor lacks the role or ownership for an operation."""

    def __init__(self, message: str = "You do not have permission to perform this action") -> None:
        super().__init__(code=ErrorCode.UNAUTHORIZED, message=message)


class InvariantViolationError(DomainError):
    """Raised when an operation would break a storage invariant.

    Always indicates a bug upstream; the operation fails closed.
    """

    def __init__(self, detail: str) -> None:
        super().__init__(
            code=ErrorCode.INVARIANT_VIOLATION,
            message="Internal consistency check failed",
        )
        self.detail = detail
