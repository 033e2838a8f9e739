"""Prerequisite controller — maps service results to HTTP responses, catches domain exceptions."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.database import storage_guard
from app.exceptions import DomainError
from app.http_errors import to_http_exception
from app.lms import service as lms_service
from app.prerequisites import service
from app.prerequisites.schemas import (
    AddPrerequisiteRequest,
    PrerequisiteCheckResponse,
    PrerequisiteResponse,
)
from shared.constants import Role
from shared.models.user import CurrentUser


async def list_prerequisites(
    db: AsyncSession,
    course_id: UUID,
    settings: Settings,
) -> list[PrerequisiteResponse]:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            edges = await service.list_edges(db, course_id)
        return [PrerequisiteResponse.model_validate(e) for e in edges]
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def add_prerequisite(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    body: AddPrerequisiteRequest,
    settings: Settings,
) -> PrerequisiteResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            await lms_service.ensure_course_owner(
                db, course_id, user.id, is_admin=user.has_role(Role.ADMIN)
            )
            edge = await service.add_edge(
                db,
                course_id,
                body.required_course_id,
                reject_cycles=settings.reject_prerequisite_cycles,
            )
            await db.commit()
        return PrerequisiteResponse.model_validate(edge)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def remove_prerequisite(
    db: AsyncSession,
    course_id: UUID,
    required_course_id: UUID,
    user: CurrentUser,
    settings: Settings,
) -> None:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            await lms_service.ensure_course_owner(
                db, course_id, user.id, is_admin=user.has_role(Role.ADMIN)
            )
            await service.remove_edge(db, course_id, required_course_id)
            await db.commit()
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def check_prerequisites(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    settings: Settings,
) -> PrerequisiteCheckResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            await lms_service.get_course_by_id(db, course_id)
            satisfied, missing = await service.is_satisfied(db, user.id, course_id)
        return PrerequisiteCheckResponse(
            course_id=course_id, satisfied=satisfied, missing_course_ids=missing
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc
