"""Certificate router — retrieval, admin issuance and public verification."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.certificates import controller
from app.certificates.schemas import (
    CertificateResponse,
    CertificateVerifyResponse,
    IssueCertificateRequest,
)
from app.config import Settings
from app.database import get_db
from app.dependencies import get_current_user, get_settings, require_admin
from app.pagination import OffsetPage
from shared.models.user import CurrentUser

router = APIRouter(prefix="/certificates", tags=["Certificates"])


@router.post(
    "",
    response_model=CertificateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a certificate (admin)",
    description="Requires a course completion for the pair. Returns the existing "
    "certificate if one was already issued.",
)
async def issue_certificate(
    body: IssueCertificateRequest,
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(require_admin),
    settings: Settings = Depends(get_settings),
) -> CertificateResponse:
    return await controller.issue_certificate(db, body, settings)


@router.get(
    "/me",
    response_model=OffsetPage[CertificateResponse],
    summary="List my certificates",
    description="Newest first.",
)
async def list_my_certificates(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> OffsetPage[CertificateResponse]:
    return await controller.list_my_certificates(db, user, settings, limit=limit, offset=offset)


@router.get(
    "/verify/{code_or_id}",
    response_model=CertificateVerifyResponse,
    summary="Verify a certificate (public)",
    description="Public endpoint — no authentication required. Accepts a certificate "
    "code (CERT-YYYYMMDD-XXXXXXXXXXXXXXXX) or a certificate id. "
    "Malformed codes return 400; unknown ones return is_valid=false.",
)
async def verify_certificate(
    code_or_id: str,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> CertificateVerifyResponse:
    return await controller.verify_certificate(db, code_or_id, settings)


@router.get(
    "/{certificate_id}",
    response_model=CertificateResponse,
    summary="Get certificate by ID",
)
async def get_certificate(
    certificate_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> CertificateResponse:
    return await controller.get_certificate(db, certificate_id, user, settings)
