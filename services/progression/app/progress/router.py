"""Progress router — lesson completion, course progress and completions."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.database import get_db
from app.dependencies import get_current_user, get_settings, require_instructor
from app.pagination import OffsetPage
from app.progress import controller
from app.progress.schemas import (
    CompleteLessonResponse,
    CourseCompletionResponse,
    CourseProgressResponse,
    EvaluateCourseResponse,
    ProgressRecordResponse,
)
from shared.models.user import CurrentUser

router = APIRouter(prefix="/lms", tags=["Progress"])


@router.post(
    "/lessons/{lesson_id}/complete",
    response_model=CompleteLessonResponse,
    summary="Mark a lesson complete",
    description="Idempotent: the first completion time is kept. When this completes "
    "the course, the course completion is recorded and the certificate issued "
    "in the same request.",
)
async def complete_lesson(
    lesson_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> CompleteLessonResponse:
    return await controller.complete_lesson(db, lesson_id, user, settings)


@router.get(
    "/lessons/{lesson_id}/completions",
    response_model=list[ProgressRecordResponse],
    summary="List learners who completed a lesson",
    description="Course instructor or admin only.",
)
async def list_lesson_completions(
    lesson_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_instructor),
    settings: Settings = Depends(get_settings),
) -> list[ProgressRecordResponse]:
    return await controller.list_lesson_completions(db, lesson_id, user, settings)


@router.get(
    "/progress/me",
    response_model=list[ProgressRecordResponse],
    summary="List my completed lessons",
)
async def list_my_lesson_completions(
    course_id: UUID | None = Query(None, description="Restrict to one course."),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> list[ProgressRecordResponse]:
    return await controller.list_my_lesson_completions(db, user, settings, course_id=course_id)


@router.get(
    "/courses/{course_id}/progress/me",
    response_model=CourseProgressResponse,
    summary="Get my progress in a course",
)
async def get_my_course_progress(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> CourseProgressResponse:
    return await controller.get_my_course_progress(db, course_id, user, settings)


@router.post(
    "/courses/{course_id}/evaluate",
    response_model=EvaluateCourseResponse,
    summary="Re-evaluate my completion of a course",
)
async def evaluate_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> EvaluateCourseResponse:
    return await controller.evaluate_course(db, course_id, user, settings)


@router.get(
    "/completions/me",
    response_model=OffsetPage[CourseCompletionResponse],
    summary="List my completed courses",
)
async def list_my_course_completions(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> OffsetPage[CourseCompletionResponse]:
    return await controller.list_my_course_completions(
        db, user, settings, limit=limit, offset=offset
    )


@router.get(
    "/completions/me/{course_id}",
    response_model=CourseCompletionResponse,
    summary="Get my completion record for a course",
)
async def get_my_course_completion(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> CourseCompletionResponse:
    return await controller.get_my_course_completion(db, course_id, user, settings)
