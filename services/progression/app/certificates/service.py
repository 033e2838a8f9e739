"""Certificate service — issuance, code allocation and public verification.

Pure business logic, no FastAPI imports.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.certificates.codes import (
    generate_certificate_code,
    normalize_certificate_code,
    parse_certificate_code,
)
from app.exceptions import (
    CertificateCodeExhaustedError,
    CertificateNotFoundError,
    CourseNotCompletedError,
    InvalidCertificateCodeError,
)
from app.models.certificate import Certificate
from app.models.course import Course
from app.models.course_completion import CourseCompletion
from shared.database.types import utcnow
from shared.events.schemas import CourseCompleted

logger = logging.getLogger(__name__)

CodeFactory = Callable[[date], str]

DEFAULT_MAX_ATTEMPTS = 5


@dataclass(frozen=True)
class CertificateVerification:
    is_valid: bool
    certificate_id: UUID | None = None
    certificate_code: str | None = None
    user_id: UUID | None = None
    recipient_name: str | None = None
    course_id: UUID | None = None
    course_title: str | None = None
    issued_at: datetime | None = None
    # Date embedded in the code
    issued_on: date | None = None


async def _find_for_pair(db: AsyncSession, user_id: UUID, course_id: UUID) -> Certificate | None:
    stmt = select(Certificate).where(
        Certificate.user_id == user_id,
        Certificate.course_id == course_id,
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------------


async def issue(
    db: AsyncSession,
    user_id: UUID,
    course_id: UUID,
    *,
    recipient_name: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    verification_base_url: str = "",
    code_factory: CodeFactory = generate_certificate_code,
) -> Certificate:
    """Issue the certificate for a completed course, or return the existing one.

    A unique-constraint failure on insert is either a code collision (retry
    with a fresh code) or another request certifying the same pair first
    (return that certificate). Retries are bounded by ``max_attempts``.
    """
    if await db.get(CourseCompletion, (user_id, course_id)) is None:
        raise CourseNotCompletedError()

    existing = await _find_for_pair(db, user_id, course_id)
    if existing is not None:
        return existing

    course = await db.get(Course, course_id)
    course_title = course.title if course is not None else ""
    base_url = verification_base_url.rstrip("/")

    last_error: IntegrityError | None = None
    for attempt in range(1, max_attempts + 1):
        issued_at = utcnow()
        code = code_factory(issued_at.date())
        certificate = Certificate(
            user_id=user_id,
            course_id=course_id,
            certificate_code=code,
            verification_url=f"{base_url}/verify/{code}" if base_url else "",
            issued_at=issued_at,
            recipient_name=recipient_name,
            course_title=course_title,
        )
        try:
            async with db.begin_nested():
                db.add(certificate)
        except IntegrityError as exc:
            existing = await _find_for_pair(db, user_id, course_id)
            if existing is not None:
                logger.info(
                    "Certificate for user %s / course %s issued by a concurrent request",
                    user_id,
                    course_id,
                )
                return existing
            logger.warning(
                "Certificate code collision (attempt %d/%d)", attempt, max_attempts
            )
            last_error = exc
            continue

        logger.info(
            "Certificate %s issued to user %s for course %s",
            certificate.certificate_code,
            user_id,
            course_id,
        )
        return certificate

    raise CertificateCodeExhaustedError(max_attempts) from last_error


async def handle_course_completed(
    db: AsyncSession,
    event: CourseCompleted,
    *,
    recipient_name: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    verification_base_url: str = "",
    code_factory: CodeFactory = generate_certificate_code,
) -> Certificate:
    return await issue(
        db,
        event.user_id,
        event.course_id,
        recipient_name=recipient_name,
        max_attempts=max_attempts,
        verification_base_url=verification_base_url,
        code_factory=code_factory,
    )


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


async def get_certificate(
    db: AsyncSession,
    certificate_id: UUID,
    *,
    viewer_id: UUID | None = None,
    is_admin: bool = False,
) -> Certificate:
    """Fetch a certificate. With ``viewer_id`` set, other users' certificates read as missing."""
    certificate = await db.get(Certificate, certificate_id)
    if certificate is None:
        raise CertificateNotFoundError(certificate_id)
    if viewer_id is not None and not is_admin and certificate.user_id != viewer_id:
        raise CertificateNotFoundError(certificate_id)
    return certificate


async def list_for_user(
    db: AsyncSession,
    user_id: UUID,
    *,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Certificate], int]:
    total = await db.scalar(
        select(func.count()).select_from(Certificate).where(Certificate.user_id == user_id)
    ) or 0
    stmt = (
        select(Certificate)
        .where(Certificate.user_id == user_id)
        .order_by(Certificate.issued_at.desc(), Certificate.certificate_id)
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all()), total


# ---------------------------------------------------------------------------
# Public verification
# ---------------------------------------------------------------------------


def _as_uuid(value: str) -> UUID | None:
    try:
        return UUID(value.strip())
    except ValueError:
        return None


async def verify(db: AsyncSession, code_or_id: str) -> CertificateVerification:
    """Look a certificate up by id or code and check its embedded issue date.

    Malformed codes raise ``InvalidCertificateCodeError``; unknown but
    well-formed ones come back with ``is_valid=False``.
    """
    certificate_id = _as_uuid(code_or_id)
    if certificate_id is not None:
        certificate = await db.get(Certificate, certificate_id)
    else:
        parse_certificate_code(code_or_id)
        result = await db.execute(
            select(Certificate).where(
                Certificate.certificate_code == normalize_certificate_code(code_or_id)
            )
        )
        certificate = result.scalar_one_or_none()

    if certificate is None:
        return CertificateVerification(is_valid=False)

    try:
        issued_on = parse_certificate_code(certificate.certificate_code)
    except InvalidCertificateCodeError:
        logger.warning("Stored certificate %s has a malformed code", certificate.certificate_id)
        issued_on = None

    return CertificateVerification(
        is_valid=issued_on is not None and issued_on == certificate.issued_at.date(),
        certificate_id=certificate.certificate_id,
        certificate_code=certificate.certificate_code,
        user_id=certificate.user_id,
        recipient_name=certificate.recipient_name,
        course_id=certificate.course_id,
        course_title=certificate.course_title,
        issued_at=certificate.issued_at,
        issued_on=issued_on,
    )
