"""Progress controller — maps service results to HTTP responses, catches domain exceptions."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.certificates.schemas import CertificateResponse
from app.config import Settings
from app.database import storage_guard
from app.exceptions import DomainError
from app.http_errors import to_http_exception
from app.lms import service as lms_service
from app.models.course_completion import CourseCompletion
from app.pagination import OffsetPage
from app.progress import evaluator, service
from app.progress.evaluator import CourseProgress
from app.progress.schemas import (
    CompleteLessonResponse,
    CourseCompletionResponse,
    CourseProgressResponse,
    EvaluateCourseResponse,
    ProgressRecordResponse,
)
from shared.constants import Role
from shared.models.user import CurrentUser


def _progress_response(
    progress: CourseProgress, completion: CourseCompletion | None
) -> CourseProgressResponse:
    return CourseProgressResponse(
        user_id=progress.user_id,
        course_id=progress.course_id,
        completed_lessons=progress.completed,
        total_lessons=progress.total,
        completion_rate=progress.rate,
        is_completed=completion is not None,
        completed_at=completion.completed_at if completion is not None else None,
    )


async def complete_lesson(
    db: AsyncSession,
    lesson_id: UUID,
    user: CurrentUser,
    settings: Settings,
) -> CompleteLessonResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            outcome = await service.complete_lesson(
                db,
                user.id,
                lesson_id,
                recipient_name=user.display_name,
                max_code_attempts=settings.certificate_code_max_attempts,
                verification_base_url=settings.certificate_base_url,
            )
            await db.commit()
        evaluation = outcome.evaluation
        return CompleteLessonResponse(
            record=ProgressRecordResponse.model_validate(outcome.record),
            newly_recorded=outcome.newly_recorded,
            progress=_progress_response(evaluation.progress, evaluation.completion),
            course_completed=evaluation.event is not None,
            certificate=(
                CertificateResponse.model_validate(outcome.certificate)
                if outcome.certificate is not None
                else None
            ),
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def evaluate_course(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    settings: Settings,
) -> EvaluateCourseResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            evaluation, certificate = await service.evaluate_course(
                db,
                user.id,
                course_id,
                recipient_name=user.display_name,
                max_code_attempts=settings.certificate_code_max_attempts,
                verification_base_url=settings.certificate_base_url,
            )
            await db.commit()
        return EvaluateCourseResponse(
            progress=_progress_response(evaluation.progress, evaluation.completion),
            course_completed=evaluation.event is not None,
            certificate=(
                CertificateResponse.model_validate(certificate)
                if certificate is not None
                else None
            ),
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def get_my_course_progress(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    settings: Settings,
) -> CourseProgressResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            progress = await evaluator.compute_progress(db, user.id, course_id)
            completion = await evaluator.find_completion(db, user.id, course_id)
        return _progress_response(progress, completion)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def list_my_lesson_completions(
    db: AsyncSession,
    user: CurrentUser,
    settings: Settings,
    *,
    course_id: UUID | None,
) -> list[ProgressRecordResponse]:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            records = await service.completions_for_user(db, user.id, course_id=course_id)
        return [ProgressRecordResponse.model_validate(r) for r in records]
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def list_lesson_completions(
    db: AsyncSession,
    lesson_id: UUID,
    user: CurrentUser,
    settings: Settings,
) -> list[ProgressRecordResponse]:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            lesson = await lms_service.get_lesson_by_id(db, lesson_id)
            await lms_service.ensure_course_owner(
                db, lesson.course_id, user.id, is_admin=user.has_role(Role.ADMIN)
            )
            records = await service.completions_for_lesson(db, lesson_id)
        return [ProgressRecordResponse.model_validate(r) for r in records]
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def list_my_course_completions(
    db: AsyncSession,
    user: CurrentUser,
    settings: Settings,
    *,
    limit: int,
    offset: int,
) -> OffsetPage[CourseCompletionResponse]:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            items, total = await evaluator.list_completions_for_user(
                db, user.id, limit=limit, offset=offset
            )
        return OffsetPage[CourseCompletionResponse](
            items=[CourseCompletionResponse.model_validate(c) for c in items],
            total=total,
            limit=limit,
            offset=offset,
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def get_my_course_completion(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    settings: Settings,
) -> CourseCompletionResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            completion = await evaluator.get_completion(db, user.id, course_id)
        return CourseCompletionResponse.model_validate(completion)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
