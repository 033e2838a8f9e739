"""LMS catalogue service — pure business logic, no FastAPI imports.

Handles course CRUD, status transitions and lesson ordering. Every
mutation is restricted to the course instructor or an admin.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    CourseNotFoundError,
    InvalidLessonOrderError,
    InvalidStatusTransitionError,
    LessonNotFoundError,
    NotCourseOwnerError,
)
from app.models.course import Course
from app.models.enums import CourseStatus
from app.models.lesson import Lesson

logger = logging.getLogger(__name__)


def _ensure_owner(course: Course, actor_id: UUID, is_admin: bool) -> None:
    if not is_admin and course.instructor_id != actor_id:
        raise NotCourseOwnerError()


async def ensure_course_owner(
    db: AsyncSession,
    course_id: UUID,
    actor_id: UUID,
    *,
    is_admin: bool = False,
) -> Course:
    """Load a course and check the actor may manage it."""
    course = await get_course_by_id(db, course_id)
    _ensure_owner(course, actor_id, is_admin)
    return course


# ---------------------------------------------------------------------------
# Course CRUD
# ---------------------------------------------------------------------------


async def create_course(
    db: AsyncSession,
    instructor_id: UUID,
    *,
    title: str,
    description: str | None,
    instructor_name: str,
) -> Course:
    course = Course(
        title=title,
        description=description,
        instructor_id=instructor_id,
        instructor_name=instructor_name,
        status=CourseStatus.DRAFT,
    )
    db.add(course)
    await db.flush()
    await db.refresh(course)
    logger.info("Course %s created by %s", course.course_id, instructor_id)
    return course


async def get_course_by_id(db: AsyncSession, course_id: UUID) -> Course:
    course = await db.get(Course, course_id)
    if course is None:
        raise CourseNotFoundError(course_id)
    return course


async def list_lessons(db: AsyncSession, course_id: UUID) -> list[Lesson]:
    stmt = (
        select(Lesson)
        .where(Lesson.course_id == course_id)
        .order_by(Lesson.order_number)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_course_detail(db: AsyncSession, course_id: UUID) -> tuple[Course, list[Lesson]]:
    course = await get_course_by_id(db, course_id)
    lessons = await list_lessons(db, course_id)
    return course, lessons


async def list_courses(
    db: AsyncSession,
    *,
    status: CourseStatus | None = None,
    instructor_id: UUID | None = None,
    query: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Course], int]:
    """List courses in one status (PUBLISHED by default).

    ``query`` matches case-insensitively anywhere in the title or description.
    """
    base = select(Course)
    count_base = select(func.count()).select_from(Course)

    filters = [Course.status == (status or CourseStatus.PUBLISHED)]
    if instructor_id is not None:
        filters.append(Course.instructor_id == instructor_id)
    if query and query.strip():
        term = f"%{query.strip().lower()}%"
        filters.append(
            or_(
                func.lower(Course.title).like(term),
                func.lower(Course.description).like(term),
            )
        )

    for f in filters:
        base = base.where(f)
        count_base = count_base.where(f)

    total = await db.scalar(count_base) or 0
    stmt = (
        base.order_by(Course.created_at.desc(), Course.course_id)
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all()), total


async def update_course(
    db: AsyncSession,
    course_id: UUID,
    actor_id: UUID,
    *,
    is_admin: bool = False,
    **fields: object,
) -> Course:
    course = await get_course_by_id(db, course_id)
    _ensure_owner(course, actor_id, is_admin)
    for key, value in fields.items():
        if value is not None:
            setattr(course, key, value)
    await db.flush()
    await db.refresh(course)
    return course


async def publish_course(
    db: AsyncSession,
    course_id: UUID,
    actor_id: UUID,
    *,
    is_admin: bool = False,
) -> Course:
    course = await get_course_by_id(db, course_id)
    _ensure_owner(course, actor_id, is_admin)
    if course.status != CourseStatus.DRAFT:
        raise InvalidStatusTransitionError(course.status.value, CourseStatus.PUBLISHED.value)
    course.status = CourseStatus.PUBLISHED
    await db.flush()
    await db.refresh(course)
    logger.info("Course %s published", course_id)
    return course


async def archive_course(
    db: AsyncSession,
    course_id: UUID,
    actor_id: UUID,
    *,
    is_admin: bool = False,
) -> Course:
    course = await get_course_by_id(db, course_id)
    _ensure_owner(course, actor_id, is_admin)
    if course.status not in (CourseStatus.PUBLISHED, CourseStatus.DRAFT):
        raise InvalidStatusTransitionError(course.status.value, CourseStatus.ARCHIVED.value)
    course.status = CourseStatus.ARCHIVED
    await db.flush()
    await db.refresh(course)
    logger.info("Course %s archived", course_id)
    return course


async def delete_course(
    db: AsyncSession,
    course_id: UUID,
    actor_id: UUID,
    *,
    is_admin: bool = False,
) -> None:
    course = await get_course_by_id(db, course_id)
    _ensure_owner(course, actor_id, is_admin)
    await db.delete(course)
    await db.flush()
    logger.info("Course %s deleted", course_id)


# ---------------------------------------------------------------------------
# Lessons
# ---------------------------------------------------------------------------


async def _renumber(db: AsyncSession, moves: list[tuple[Lesson, int]]) -> None:
    """Move lessons to new positions without tripping (course_id, order_number).

    Rows first park on distinct negative numbers, then take their final
    positions, so no intermediate state holds a duplicate.
    """
    if not moves:
        return
    for parked, (lesson, _) in enumerate(moves, start=1):
        lesson.order_number = -parked
    await db.flush()
    for lesson, position in moves:
        lesson.order_number = position
    await db.flush()


async def create_lesson(
    db: AsyncSession,
    course_id: UUID,
    actor_id: UUID,
    *,
    title: str,
    content: str | None,
    duration_mins: int | None,
    order_number: int | None = None,
    is_admin: bool = False,
) -> Lesson:
    """Append a lesson, or insert it at ``order_number`` shifting later lessons down."""
    course = await get_course_by_id(db, course_id)
    _ensure_owner(course, actor_id, is_admin)

    lessons = await list_lessons(db, course_id)
    if order_number is None:
        order_number = len(lessons) + 1
    elif not 1 <= order_number <= len(lessons) + 1:
        raise InvalidLessonOrderError(
            f"order_number must be between 1 and {len(lessons) + 1}"
        )

    await _renumber(
        db,
        [(lesson, lesson.order_number + 1) for lesson in lessons if lesson.order_number >= order_number],
    )

    lesson = Lesson(
        course_id=course_id,
        title=title,
        content=content,
        duration_mins=duration_mins,
        order_number=order_number,
    )
    db.add(lesson)
    await db.flush()
    await db.refresh(lesson)
    return lesson


async def get_lesson_by_id(db: AsyncSession, lesson_id: UUID) -> Lesson:
    lesson = await db.get(Lesson, lesson_id)
    if lesson is None:
        raise LessonNotFoundError(lesson_id)
    return lesson


async def update_lesson(
    db: AsyncSession,
    lesson_id: UUID,
    actor_id: UUID,
    *,
    is_admin: bool = False,
    **fields: object,
) -> Lesson:
    lesson = await get_lesson_by_id(db, lesson_id)
    course = await get_course_by_id(db, lesson.course_id)
    _ensure_owner(course, actor_id, is_admin)
    for key, value in fields.items():
        if value is not None:
            setattr(lesson, key, value)
    await db.flush()
    await db.refresh(lesson)
    return lesson


async def delete_lesson(
    db: AsyncSession,
    lesson_id: UUID,
    actor_id: UUID,
    *,
    is_admin: bool = False,
) -> None:
    """Delete a lesson and close the gap it leaves in the numbering."""
    lesson = await get_lesson_by_id(db, lesson_id)
    course = await get_course_by_id(db, lesson.course_id)
    _ensure_owner(course, actor_id, is_admin)

    await db.delete(lesson)
    await db.flush()

    remaining = await list_lessons(db, course.course_id)
    await _renumber(
        db,
        [
            (other, position)
            for position, other in enumerate(remaining, start=1)
            if other.order_number != position
        ],
    )


async def reorder_lessons(
    db: AsyncSession,
    course_id: UUID,
    actor_id: UUID,
    *,
    lesson_ids: list[UUID],
    is_admin: bool = False,
) -> list[Lesson]:
    """Re-issue positions 1..n in the order given by ``lesson_ids``.

    The list must name every lesson of the course exactly once.
    """
    course = await get_course_by_id(db, course_id)
    _ensure_owner(course, actor_id, is_admin)

    lessons = {lesson.lesson_id: lesson for lesson in await list_lessons(db, course_id)}
    if len(set(lesson_ids)) != len(lesson_ids):
        raise InvalidLessonOrderError("lesson_ids contains duplicates")
    if set(lesson_ids) != set(lessons):
        raise InvalidLessonOrderError(
            "lesson_ids must list every lesson of the course exactly once"
        )

    await _renumber(
        db,
        [
            (lessons[lid], position)
            for position, lid in enumerate(lesson_ids, start=1)
            if lessons[lid].order_number != position
        ],
    )
    return [lessons[lid] for lid in lesson_ids]
