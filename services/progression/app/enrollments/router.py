"""Enrollment router — enroll, unenroll and enrollment listings."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.database import get_db
from app.dependencies import get_current_user, get_settings, require_instructor
from app.enrollments import controller
from app.enrollments.schemas import EnrollmentResponse
from app.pagination import OffsetPage
from shared.models.user import CurrentUser

router = APIRouter(prefix="/lms", tags=["Enrollments"])


@router.post(
    "/courses/{course_id}/enroll",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in a course",
    description="Course must be PUBLISHED and every direct prerequisite completed. "
    "Returns 422 with missing_course_ids when prerequisites are not met, "
    "409 when already enrolled.",
)
async def enroll(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> EnrollmentResponse:
    return await controller.enroll(db, course_id, user, settings)


@router.delete(
    "/courses/{course_id}/enroll",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unenroll from a course",
    description="Progress, completions and certificates are kept.",
)
async def unenroll(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> Response:
    await controller.unenroll(db, course_id, user, settings)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/courses/{course_id}/enrollments/me",
    response_model=EnrollmentResponse,
    summary="Get my enrollment in a course",
)
async def get_my_enrollment(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> EnrollmentResponse:
    return await controller.get_my_enrollment(db, course_id, user, settings)


@router.get(
    "/courses/{course_id}/enrollments",
    response_model=OffsetPage[EnrollmentResponse],
    summary="List enrollments of a course",
    description="Course instructor or admin only. Newest first.",
)
async def list_course_enrollments(
    course_id: UUID,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_instructor),
    settings: Settings = Depends(get_settings),
) -> OffsetPage[EnrollmentResponse]:
    return await controller.list_course_enrollments(
        db, course_id, user, settings, limit=limit, offset=offset
    )


@router.get(
    "/enrollments/me",
    response_model=OffsetPage[EnrollmentResponse],
    summary="List my enrollments",
)
async def list_my_enrollments(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> OffsetPage[EnrollmentResponse]:
    return await controller.list_my_enrollments(
        db, user, settings, limit=limit, offset=offset
    )
