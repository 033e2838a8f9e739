"""Enrollment ledger — pure business logic, no FastAPI imports.

One live enrollment per (user, course). Creation is gated by course
status and by the prerequisite graph; the check and the insert run in
the caller's transaction, and the composite primary key settles any
concurrent duplicate.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    AlreadyEnrolledError,
    CourseNotFoundError,
    CourseNotPublishedError,
    EnrollmentNotFoundError,
    PrerequisitesNotMetError,
)
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.enums import CourseStatus
from app.prerequisites import service as prerequisites

logger = logging.getLogger(__name__)


async def is_enrolled(db: AsyncSession, user_id: UUID, course_id: UUID) -> bool:
    return await db.get(Enrollment, (user_id, course_id)) is not None


def _locking_select(user_id: UUID, course_id: UUID):
    return (
        select(Enrollment)
        .where(Enrollment.user_id == user_id, Enrollment.course_id == course_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


async def lock_enrollment(db: AsyncSession, user_id: UUID, course_id: UUID) -> Enrollment | None:
    """Row-lock the enrollment until the caller's transaction ends.

    Serialises progress writes of one learner in one course, so the last of
    two concurrent lesson completions sees both records.
    """
    result = await db.execute(_locking_select(user_id, course_id))
    return result.scalar_one_or_none()


async def enroll(db: AsyncSession, user_id: UUID, course_id: UUID) -> Enrollment:
    course = await db.get(Course, course_id)
    if course is None:
        raise CourseNotFoundError(course_id)
    if course.status != CourseStatus.PUBLISHED:
        raise CourseNotPublishedError()

    satisfied, missing = await prerequisites.is_satisfied(db, user_id, course_id)
    if not satisfied:
        raise PrerequisitesNotMetError(missing)

    if await is_enrolled(db, user_id, course_id):
        raise AlreadyEnrolledError()

    enrollment = Enrollment(user_id=user_id, course_id=course_id)
    try:
        async with db.begin_nested():
            db.add(enrollment)
    except IntegrityError as exc:
        raise AlreadyEnrolledError() from exc

    logger.info("User %s enrolled in course %s", user_id, course_id)
    return enrollment


async def get_enrollment(db: AsyncSession, user_id: UUID, course_id: UUID) -> Enrollment:
    enrollment = await db.get(Enrollment, (user_id, course_id))
    if enrollment is None:
        raise EnrollmentNotFoundError(f"{user_id}/{course_id}")
    return enrollment


async def unenroll(db: AsyncSession, user_id: UUID, course_id: UUID) -> None:
    """Remove the enrollment only; progress, completions and certificates stay."""
    enrollment = await get_enrollment(db, user_id, course_id)
    await db.delete(enrollment)
    await db.flush()
    logger.info("User %s unenrolled from course %s", user_id, course_id)


async def _paginate(
    db: AsyncSession,
    where,
    *,
    limit: int,
    offset: int,
) -> tuple[list[Enrollment], int]:
    total = await db.scalar(select(func.count()).select_from(Enrollment).where(where)) or 0
    stmt = (
        select(Enrollment)
        .where(where)
        .order_by(Enrollment.enrolled_at.desc(), Enrollment.user_id, Enrollment.course_id)
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all()), total


async def list_by_user(
    db: AsyncSession,
    user_id: UUID,
    *,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Enrollment], int]:
    return await _paginate(db, Enrollment.user_id == user_id, limit=limit, offset=offset)


async def list_by_course(
    db: AsyncSession,
    course_id: UUID,
    *,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Enrollment], int]:
    if await db.get(Course, course_id) is None:
        raise CourseNotFoundError(course_id)
    return await _paginate(db, Enrollment.course_id == course_id, limit=limit, offset=offset)
