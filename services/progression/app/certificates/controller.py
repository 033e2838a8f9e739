"""Certificate controller — maps service results to HTTP responses, catches domain exceptions."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.certificates import service
from app.certificates.schemas import (
    CertificateResponse,
    CertificateVerifyResponse,
    IssueCertificateRequest,
)
from app.config import Settings
from app.database import storage_guard
from app.exceptions import DomainError
from app.http_errors import to_http_exception
from app.pagination import OffsetPage
from shared.constants import Role
from shared.models.user import CurrentUser


async def issue_certificate(
    db: AsyncSession,
    body: IssueCertificateRequest,
    settings: Settings,
) -> CertificateResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            certificate = await service.issue(
                db,
                body.user_id,
                body.course_id,
                recipient_name=body.recipient_name,
                max_attempts=settings.certificate_code_max_attempts,
                verification_base_url=settings.certificate_base_url,
            )
            await db.commit()
        return CertificateResponse.model_validate(certificate)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def get_certificate(
    db: AsyncSession,
    certificate_id: UUID,
    user: CurrentUser,
    settings: Settings,
) -> CertificateResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            certificate = await service.get_certificate(
                db,
                certificate_id,
                viewer_id=user.id,
                is_admin=user.has_role(Role.ADMIN),
            )
        return CertificateResponse.model_validate(certificate)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def list_my_certificates(
    db: AsyncSession,
    user: CurrentUser,
    settings: Settings,
    *,
    limit: int,
    offset: int,
) -> OffsetPage[CertificateResponse]:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            items, total = await service.list_for_user(db, user.id, limit=limit, offset=offset)
        return OffsetPage[CertificateResponse](
            items=[CertificateResponse.model_validate(c) for c in items],
            total=total,
            limit=limit,
            offset=offset,
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def verify_certificate(
    db: AsyncSession,
    code_or_id: str,
    settings: Settings,
) -> CertificateVerifyResponse:
    try:
        async with storage_guard(settings.storage_timeout_secs):
            result = await service.verify(db, code_or_id)
        return CertificateVerifyResponse.model_validate(result)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
