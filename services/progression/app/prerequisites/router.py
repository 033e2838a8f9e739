"""Prerequisite router — course → required-course edges and gating checks."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.database import get_db
from app.dependencies import get_current_user, get_settings, require_instructor
from app.prerequisites import controller
from app.prerequisites.schemas import (
    AddPrerequisiteRequest,
    PrerequisiteCheckResponse,
    PrerequisiteResponse,
)
from shared.models.user import CurrentUser

router = APIRouter(prefix="/lms/courses/{course_id}/prerequisites", tags=["Prerequisites"])


@router.get(
    "",
    response_model=list[PrerequisiteResponse],
    summary="List direct prerequisites of a course",
)
async def list_prerequisites(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> list[PrerequisiteResponse]:
    return await controller.list_prerequisites(db, course_id, settings)


@router.post(
    "",
    response_model=PrerequisiteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a prerequisite",
    description="The course will require completion of required_course_id. "
    "Self-references, duplicates and edges that close a cycle are rejected.",
)
async def add_prerequisite(
    course_id: UUID,
    body: AddPrerequisiteRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_instructor),
    settings: Settings = Depends(get_settings),
) -> PrerequisiteResponse:
    return await controller.add_prerequisite(db, course_id, user, body, settings)


@router.get(
    "/check",
    response_model=PrerequisiteCheckResponse,
    summary="Check whether I meet the prerequisites",
)
async def check_prerequisites(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> PrerequisiteCheckResponse:
    return await controller.check_prerequisites(db, course_id, user, settings)


@router.delete(
    "/{required_course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a prerequisite",
)
async def remove_prerequisite(
    course_id: UUID,
    required_course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_instructor),
    settings: Settings = Depends(get_settings),
) -> Response:
    await controller.remove_prerequisite(db, course_id, required_course_id, user, settings)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
