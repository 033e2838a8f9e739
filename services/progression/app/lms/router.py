"""LMS router — HTTP layer only.

Course catalogue and lesson management. Delegates to the controller.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.database import get_db
from app.dependencies import get_settings, require_instructor
from app.lms import controller
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
from shared.models.user import CurrentUser

router = APIRouter(prefix="/lms", tags=["LMS"])


# ======================================================================
# Course endpoints
# ======================================================================


@router.post(
    "/courses",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new course",
    description="Instructor creates a new course (defaults to DRAFT status).",
)
async def create_course(
    body: CreateCourseRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_instructor),
    settings: Settings = Depends(get_settings),
) -> CourseResponse:
    return await controller.create_course(db, user, body, settings)


@router.get(
    "/courses",
    response_model=OffsetPage[CourseResponse],
    summary="List courses (catalog)",
    description="Public course catalog. Returns only PUBLISHED courses unless a status is given.",
)
async def list_courses(
    status_filter: CourseStatus | None = Query(None, alias="status", description="Filter by course status."),
    instructor_id: UUID | None = Query(None, description="Filter by instructor."),
    q: str | None = Query(None, max_length=200, description="Case-insensitive search in title and description."),
    limit: int = Query(20, ge=1, le=100, description="Items per page."),
    offset: int = Query(0, ge=0, description="Number of items to skip."),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> OffsetPage[CourseResponse]:
    return await controller.list_courses(
        db,
        settings,
        status=status_filter,
        instructor_id=instructor_id,
        query=q,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/courses/{course_id}",
    response_model=CourseDetailResponse,
    summary="Get course with its ordered lessons",
)
async def get_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> CourseDetailResponse:
    return await controller.get_course_detail(db, course_id, settings)


@router.patch(
    "/courses/{course_id}",
    response_model=CourseResponse,
    summary="Update course (instructor only)",
    description="Only the provided fields change. Status moves through publish/archive.",
)
async def update_course(
    course_id: UUID,
    body: UpdateCourseRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_instructor),
    settings: Settings = Depends(get_settings),
) -> CourseResponse:
    return await controller.update_course(db, course_id, user, body, settings)


@router.post(
    "/courses/{course_id}/publish",
    response_model=CourseResponse,
    summary="Publish a course",
    description="DRAFT → PUBLISHED. Only the course instructor or an admin.",
)
async def publish_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_instructor),
    settings: Settings = Depends(get_settings),
) -> CourseResponse:
    return await controller.publish_course(db, course_id, user, settings)


@router.post(
    "/courses/{course_id}/archive",
    response_model=CourseResponse,
    summary="Archive a course",
    description="DRAFT | PUBLISHED → ARCHIVED. Archived courses accept no new enrollments.",
)
async def archive_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_instructor),
    settings: Settings = Depends(get_settings),
) -> CourseResponse:
    return await controller.archive_course(db, course_id, user, settings)


@router.delete(
    "/courses/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a course",
    description="Deletes the course together with its lessons, prerequisite edges, "
    "enrollments, progress, completions and certificates.",
)
async def delete_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_instructor),
    settings: Settings = Depends(get_settings),
) -> Response:
    await controller.delete_course(db, course_id, user, settings)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ======================================================================
# Lesson endpoints
# ======================================================================


@router.post(
    "/courses/{course_id}/lessons",
    response_model=LessonResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a lesson",
    description="Appends by default. With order_number, inserts at that position "
    "and shifts later lessons down so numbering stays 1..n.",
)
async def create_lesson(
    course_id: UUID,
    body: CreateLessonRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_instructor),
    settings: Settings = Depends(get_settings),
) -> LessonResponse:
    return await controller.create_lesson(db, course_id, user, body, settings)


@router.put(
    "/courses/{course_id}/lessons/order",
    response_model=list[LessonResponse],
    summary="Reorder lessons",
    description="Body lists every lesson id of the course in the new order.",
)
async def reorder_lessons(
    course_id: UUID,
    body: ReorderLessonsRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_instructor),
    settings: Settings = Depends(get_settings),
) -> list[LessonResponse]:
    return await controller.reorder_lessons(db, course_id, user, body, settings)


@router.get(
    "/lessons/{lesson_id}",
    response_model=LessonResponse,
    summary="Get lesson by ID",
)
async def get_lesson(
    lesson_id: UUID,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> LessonResponse:
    return await controller.get_lesson(db, lesson_id, settings)


@router.patch(
    "/lessons/{lesson_id}",
    response_model=LessonResponse,
    summary="Update lesson (instructor only)",
    description="Title, content and duration. Use the reorder endpoint to move a lesson.",
)
async def update_lesson(
    lesson_id: UUID,
    body: UpdateLessonRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_instructor),
    settings: Settings = Depends(get_settings),
) -> LessonResponse:
    return await controller.update_lesson(db, lesson_id, user, body, settings)


@router.delete(
    "/lessons/{lesson_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a lesson",
    description="Later lessons move up one position.",
)
async def delete_lesson(
    lesson_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_instructor),
    settings: Settings = Depends(get_settings),
) -> Response:
    await controller.delete_lesson(db, lesson_id, user, settings)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
