"""Error taxonomy for the time-session lifecycle."""
from enum import Enum


class ErrorCode(str, Enum):
    """Distinguishable error kinds surfaced to callers."""

    INVALID_STATE_TRANSITION = "InvalidStateTransition"
    ALREADY_TERMINAL = "AlreadyTerminal"
    NOT_CONVERTIBLE = "NotConvertible"
    UNAUTHORIZED = "Unauthorized"
    NOT_FOUND = "NotFound"
    INVALID_METADATA = "InvalidMetadata"
    STORAGE_ERROR = "StorageError"


class TimeTrackingError(Exception):
    """Base class for every error raised by the services."""

    code: ErrorCode
    retryable: bool = False

    def __init__(self, message: str = ""):
        super().__init__(message or self.code.value)
        self.message = message or self.code.value


class InvalidStateTransition(TimeTrackingError):
    """Requested edge does not exist for the session's current state."""

    code = ErrorCode.INVALID_STATE_TRANSITION


class AlreadyTerminal(TimeTrackingError):
    """Stop, cancel or edit attempted on a COMPLETED/CANCELLED session."""

    code = ErrorCode.ALREADY_TERMINAL


class NotConvertible(TimeTrackingError):
    code = ErrorCode.NOT_CONVERTIBLE


class Unauthorized(TimeTrackingError):
    code = ErrorCode.UNAUTHORIZED


class NotFound(TimeTrackingError):
    code = ErrorCode.NOT_FOUND


class InvalidMetadata(TimeTrackingError):
    """A category value is not offered by the project's catalog."""

    code = ErrorCode.INVALID_METADATA


class StorageError(TimeTrackingError):
    """Persistence failed. The only kind a caller may retry."""

    code = ErrorCode.STORAGE_ERROR
    retryable = True


class ConcurrentModification(StorageError):
    """Optimistic version check kept losing against concurrent writers."""


class CorruptRecord(StorageError):
    """A stored document could not be read back into a model."""

    retryable = False
