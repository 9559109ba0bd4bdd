from fastapi import HTTPException, status

from signdesk.core.errors import (
    Conflict,
    CorruptSource,
    Forbidden,
    InvalidPayload,
    InvalidStatus,
    NotFound,
    PageOutOfRange,
    PersistenceFailure,
    SignDeskError,
    UnsupportedFormat,
)

# Most specific classes first; MissingField is caught through InvalidPayload.
ERROR_STATUS: tuple[tuple[type[SignDeskError], int], ...] = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Forbidden, status.HTTP_403_FORBIDDEN),
    (InvalidPayload, status.HTTP_400_BAD_REQUEST),
    (UnsupportedFormat, status.HTTP_415_UNSUPPORTED_MEDIA_TYPE),
    (PageOutOfRange, status.HTTP_400_BAD_REQUEST),
    (InvalidStatus, status.HTTP_409_CONFLICT),
    (Conflict, status.HTTP_409_CONFLICT),
    (CorruptSource, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (PersistenceFailure, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(exc: SignDeskError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def to_http(exc: SignDeskError) -> HTTPException:
    return HTTPException(status_code=status_for(exc), detail=exc.detail)
