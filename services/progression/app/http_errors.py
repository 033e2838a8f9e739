"""Translate domain exceptions into ``HTTPException`` with a structured detail.

Controllers call :func:`to_http_exception` in their ``except DomainError``
branch. The detail is always ``{"code", "message", ...}``; storage
failures never leak their underlying cause.
"""

from fastapi import HTTPException, status

from app.exceptions import (
    ConflictError,
    DomainError,
    InternalError,
    InvalidFormatError,
    InvalidOperationError,
    NotCourseOwnerError,
    NotEnrolledError,
    NotFoundError,
    PrerequisitesNotMetError,
    ServiceUnavailableError,
)

# Checked in order; the first matching family wins.
_STATUS_BY_FAMILY: list[tuple[type[DomainError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (PrerequisitesNotMetError, 422),
    (NotCourseOwnerError, status.HTTP_403_FORBIDDEN),
    (NotEnrolledError, status.HTTP_403_FORBIDDEN),
    (InvalidOperationError, status.HTTP_400_BAD_REQUEST),
    (InvalidFormatError, status.HTTP_400_BAD_REQUEST),
    (ServiceUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def to_http_exception(exc: DomainError) -> HTTPException:
    if isinstance(exc, InternalError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"code": exc.code, "message": "An unexpected error occurred"},
        )

    status_code = next(
        (code for family, code in _STATUS_BY_FAMILY if isinstance(exc, family)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    detail: dict = {"code": exc.code, "message": exc.message}
    if isinstance(exc, PrerequisitesNotMetError):
        detail["missing_course_ids"] = [str(cid) for cid in exc.missing]

    headers = {"Retry-After": "1"} if status_code == status.HTTP_503_SERVICE_UNAVAILABLE else None
    return HTTPException(status_code=status_code, detail=detail, headers=headers)
