"""Mapping of service errors to HTTP responses."""
from fastapi import HTTPException, status

from worktrack.errors import ErrorCode, TimeTrackingError

STATUS_CODES = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorCode.INVALID_STATE_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_TERMINAL: status.HTTP_409_CONFLICT,
    ErrorCode.NOT_CONVERTIBLE: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_METADATA: status.HTTP_400_BAD_REQUEST,
    ErrorCode.STORAGE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def http_error(error: TimeTrackingError) -> HTTPException:
    """Build an HTTPException whose detail names the error kind."""
    return HTTPException(
        status_code=STATUS_CODES[error.code],
        detail={"code": error.code.value, "message": error.message},
    )
