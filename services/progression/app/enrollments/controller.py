"""Enrollment controller — maps service results to HTTP responses, catches domain exceptions."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.database import storage_guard
from app.enrollments import service
from app.enrollments.schemas import EnrollmentResponse
from app.exceptions import DomainError
from app.http_errors import to_http_exception
from app.lms import service as lms_service
from app.pagination import OffsetPage
from shared.constants import Role
from shared.models.user import CurrentUser


def _page(items, total: int, limit: int, offset: int) -> OffsetPage[EnrollmentResponse]:
    return OffsetPage[EnrollmentResponse](
        items=[EnrollmentResponse.model_validate(e) for e in items],
        total=total,
        limit=limit,
        offset=offset,
    )


async def enroll(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    settings: Settings,
) -> EnrollmentResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            enrollment = await service.enroll(db, user.id, course_id)
            await db.commit()
        return EnrollmentResponse.model_validate(enrollment)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def unenroll(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    settings: Settings,
) -> None:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            await service.unenroll(db, user.id, course_id)
            await db.commit()
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def get_my_enrollment(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    settings: Settings,
) -> EnrollmentResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            enrollment = await service.get_enrollment(db, user.id, course_id)
        return EnrollmentResponse.model_validate(enrollment)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def list_my_enrollments(
    db: AsyncSession,
    user: CurrentUser,
    settings: Settings,
    *,
    limit: int,
    offset: int,
) -> OffsetPage[EnrollmentResponse]:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            items, total = await service.list_by_user(db, user.id, limit=limit, offset=offset)
        return _page(items, total, limit, offset)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def list_course_enrollments(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    settings: Settings,
    *,
    limit: int,
    offset: int,
) -> OffsetPage[EnrollmentResponse]:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            await lms_service.ensure_course_owner(
                db, course_id, user.id, is_admin=user.has_role(Role.ADMIN)
            )
            items, total = await service.list_by_course(
                db, course_id, limit=limit, offset=offset
            )
        return _page(items, total, limit, offset)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
