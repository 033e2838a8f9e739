"""LMS controller — maps service results to HTTP responses, catches domain exceptions."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.database import storage_guard
from app.exceptions import DomainError
from app.http_errors import to_http_exception
from app.lms import service
from app.lms.schemas import (
    CourseDetailResponse,
    CourseResponse,
    CreateCourseRequest,
    CreateLessonRequest,
    LessonResponse,
    ReorderLessonsRequest,
    UpdateCourseRequest,
    UpdateLessonRequest,
)
from app.models.enums import CourseStatus
from app.pagination import OffsetPage
from shared.constants import Role
from shared.models.user import CurrentUser


# ---------------------------------------------------------------------------
# Course
# ---------------------------------------------------------------------------


async def create_course(
    db: AsyncSession,
    user: CurrentUser,
    body: CreateCourseRequest,
    settings: Settings,
) -> CourseResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            course = await service.create_course(
                db,
                user.id,
                title=body.title,
                description=body.description,
                instructor_name=body.instructor_name or user.display_name,
            )
            await db.commit()
        return CourseResponse.model_validate(course)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def get_course_detail(
    db: AsyncSession,
    course_id: UUID,
    settings: Settings,
) -> CourseDetailResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            course, lessons = await service.get_course_detail(db, course_id)
        return CourseDetailResponse(
            **CourseResponse.model_validate(course).model_dump(),
            lessons=[LessonResponse.model_validate(lesson) for lesson in lessons],
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def list_courses(
    db: AsyncSession,
    settings: Settings,
    *,
    status: CourseStatus | None,
    instructor_id: UUID | None,
    query: str | None,
    limit: int,
    offset: int,
) -> OffsetPage[CourseResponse]:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            courses, total = await service.list_courses(
                db,
                status=status,
                instructor_id=instructor_id,
                query=query,
                limit=limit,
                offset=offset,
            )
        return OffsetPage[CourseResponse](
            items=[CourseResponse.model_validate(c) for c in courses],
            total=total,
            limit=limit,
            offset=offset,
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def update_course(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    body: UpdateCourseRequest,
    settings: Settings,
) -> CourseResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            course = await service.update_course(
                db,
                course_id,
                user.id,
                is_admin=user.has_role(Role.ADMIN),
                **body.model_dump(exclude_unset=True),
            )
            await db.commit()
        return CourseResponse.model_validate(course)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def publish_course(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    settings: Settings,
) -> CourseResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            course = await service.publish_course(
                db, course_id, user.id, is_admin=user.has_role(Role.ADMIN)
            )
            await db.commit()
        return CourseResponse.model_validate(course)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def archive_course(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    settings: Settings,
) -> CourseResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            course = await service.archive_course(
                db, course_id, user.id, is_admin=user.has_role(Role.ADMIN)
            )
            await db.commit()
        return CourseResponse.model_validate(course)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def delete_course(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    settings: Settings,
) -> None:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            await service.delete_course(
                db, course_id, user.id, is_admin=user.has_role(Role.ADMIN)
            )
            await db.commit()
    except DomainError as exc:
        raise to_http_exception(exc) from exc


# ---------------------------------------------------------------------------
# Lessons
# ---------------------------------------------------------------------------


async def create_lesson(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    body: CreateLessonRequest,
    settings: Settings,
) -> LessonResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            lesson = await service.create_lesson(
                db,
                course_id,
                user.id,
                title=body.title,
                content=body.content,
                duration_mins=body.duration_mins,
                order_number=body.order_number,
                is_admin=user.has_role(Role.ADMIN),
            )
            await db.commit()
        return LessonResponse.model_validate(lesson)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def get_lesson(db: AsyncSession, lesson_id: UUID, settings: Settings) -> LessonResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            lesson = await service.get_lesson_by_id(db, lesson_id)
        return LessonResponse.model_validate(lesson)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def update_lesson(
    db: AsyncSession,
    lesson_id: UUID,
    user: CurrentUser,
    body: UpdateLessonRequest,
    settings: Settings,
) -> LessonResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            lesson = await service.update_lesson(
                db,
                lesson_id,
                user.id,
                is_admin=user.has_role(Role.ADMIN),
                **body.model_dump(exclude_unset=True),
            )
            await db.commit()
        return LessonResponse.model_validate(lesson)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def delete_lesson(
    db: AsyncSession,
    lesson_id: UUID,
    user: CurrentUser,
    settings: Settings,
) -> None:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            await service.delete_lesson(
                db, lesson_id, user.id, is_admin=user.has_role(Role.ADMIN)
            )
            await db.commit()
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def reorder_lessons(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    body: ReorderLessonsRequest,
    settings: Settings,
) -> list[LessonResponse]:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            lessons = await service.reorder_lessons(
                db,
                course_id,
                user.id,
                lesson_ids=body.lesson_ids,
                is_admin=user.has_role(Role.ADMIN),
            )
            await db.commit()
        return [LessonResponse.model_validate(lesson) for lesson in lessons]
    except DomainError as exc:
        raise to_http_exception(exc) from exc
