import re
from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from app.certificates import service
from app.certificates.codes import generate_certificate_code
from app.exceptions import (
    CertificateCodeExhaustedError,
    CertificateNotFoundError,
    CourseNotCompletedError,
    InvalidCertificateCodeError,
    ServiceUnavailableError,
)
from app.models.certificate import Certificate
from app.models.course_completion import CourseCompletion
from shared.database.types import utcnow

CODE_PATTERN = re.compile(r"^CERT-\d{8}-[A-F0-9]{16}$")
TAKEN_CODE = "CERT-20240101-AAAAAAAAAAAAAAAA"


@pytest.fixture
def completed_course(db_session, make_course, user_id):
    async def _make(title: str = "Go101"):
        course, _ = await make_course(title)
        db_session.add(CourseCompletion(user_id=user_id, course_id=course.course_id))
        await db_session.flush()
        return course

    return _make


async def _take_code(db_session, make_course, code: str = TAKEN_CODE) -> None:
    course, _ = await make_course("Other")
    db_session.add(
        Certificate(
            user_id=uuid4(),
            course_id=course.course_id,
            certificate_code=code,
            issued_at=utcnow(),
        )
    )
    await db_session.flush()


@pytest.mark.asyncio
async def test_issue_requires_completion(db_session, make_course, user_id) -> None:
    course, _ = await make_course("Go101")
    with pytest.raises(CourseNotCompletedError):
        await service.issue(db_session, user_id, course.course_id, recipient_name="Ada")


@pytest.mark.asyncio
async def test_issue_snapshots_names_and_code(db_session, completed_course, user_id) -> None:
    course = await completed_course("Go101")

    cert = await service.issue(
        db_session,
        user_id,
        course.course_id,
        recipient_name="Ada Lovelace",
        verification_base_url="https://lms.test/certificates/",
    )

    assert CODE_PATTERN.match(cert.certificate_code)
    assert cert.certificate_code[5:13] == cert.issued_at.strftime("%Y%m%d")
    assert cert.recipient_name == "Ada Lovelace"
    assert cert.course_title == "Go101"
    assert cert.verification_url == (
        f"https://lms.test/certificates/verify/{cert.certificate_code}"
    )


@pytest.mark.asyncio
async def test_issue_is_idempotent(db_session, completed_course, user_id) -> None:
    course = await completed_course()

    first = await service.issue(db_session, user_id, course.course_id, recipient_name="Ada")
    second = await service.issue(db_session, user_id, course.course_id, recipient_name="Bob")

    assert second.certificate_id == first.certificate_id
    assert second.recipient_name == "Ada"
    count = await db_session.scalar(select(func.count()).select_from(Certificate))
    assert count == 1


@pytest.mark.asyncio
async def test_code_collision_is_retried(db_session, make_course, completed_course, user_id) -> None:
    await _take_code(db_session, make_course)
    course = await completed_course()
    produced = []

    def _factory(issued_on: date) -> str:
        code = TAKEN_CODE if not produced else generate_certificate_code(issued_on)
        produced.append(code)
        return code

    cert = await service.issue(
        db_session, user_id, course.course_id, recipient_name="Ada", code_factory=_factory
    )

    assert len(produced) == 2
    assert cert.certificate_code == produced[1]
    assert cert.certificate_code != TAKEN_CODE


@pytest.mark.asyncio
async def test_collision_budget_exhausted(db_session, make_course, completed_course, user_id) -> None:
    await _take_code(db_session, make_course)
    course = await completed_course()
    attempts = []

    def _always_taken(issued_on: date) -> str:
        attempts.append(issued_on)
        return TAKEN_CODE

    with pytest.raises(CertificateCodeExhaustedError) as exc_info:
        await service.issue(
            db_session,
            user_id,
            course.course_id,
            recipient_name="Ada",
            max_attempts=3,
            code_factory=_always_taken,
        )

    assert isinstance(exc_info.value, ServiceUnavailableError)
    assert exc_info.value.__cause__ is not None
    assert len(attempts) == 3
    mine = await db_session.scalar(
        select(func.count()).select_from(Certificate).where(Certificate.user_id == user_id)
    )
    assert mine == 0


@pytest.mark.asyncio
async def test_concurrent_issue_returns_existing(
    db_session, session_factory, completed_course, user_id, monkeypatch
) -> None:
    course = await completed_course()
    await db_session.commit()

    winner_code = generate_certificate_code(utcnow().date())
    async with session_factory() as other:
        other.add(
            Certificate(
                user_id=user_id,
                course_id=course.course_id,
                certificate_code=winner_code,
                issued_at=utcnow(),
            )
        )
        await other.commit()

    real_find = service._find_for_pair
    calls = 0

    async def _miss_first(db, uid, cid):
        nonlocal calls
        calls += 1
        if calls == 1:
            return None
        return await real_find(db, uid, cid)

    monkeypatch.setattr(service, "_find_for_pair", _miss_first)

    cert = await service.issue(db_session, user_id, course.course_id, recipient_name="Ada")

    assert cert.certificate_code == winner_code
    count = await db_session.scalar(select(func.count()).select_from(Certificate))
    assert count == 1


@pytest.mark.asyncio
async def test_verify_by_code_and_id(db_session, completed_course, user_id) -> None:
    course = await completed_course("Go101")
    cert = await service.issue(db_session, user_id, course.course_id, recipient_name="Ada")

    by_code = await service.verify(db_session, cert.certificate_code)
    by_id = await service.verify(db_session, str(cert.certificate_id))
    lowercase = await service.verify(db_session, cert.certificate_code.lower())

    for result in (by_code, by_id, lowercase):
        assert result.is_valid
        assert result.certificate_id == cert.certificate_id
        assert result.course_title == "Go101"
        assert result.recipient_name == "Ada"
        assert result.issued_on == cert.issued_at.date()


@pytest.mark.asyncio
async def test_verify_unknown_code(db_session) -> None:
    result = await service.verify(db_session, "CERT-20240101-0123456789ABCDEF")
    assert not result.is_valid
    assert result.certificate_id is None

    result = await service.verify(db_session, str(uuid4()))
    assert not result.is_valid


@pytest.mark.asyncio
async def test_verify_malformed_code(db_session) -> None:
    with pytest.raises(InvalidCertificateCodeError):
        await service.verify(db_session, "not-a-certificate")


@pytest.mark.asyncio
async def test_verify_rejects_date_mismatch(db_session, make_course, user_id) -> None:
    course, _ = await make_course("Go101")
    cert = Certificate(
        user_id=user_id,
        course_id=course.course_id,
        certificate_code="CERT-19990101-0123456789ABCDEF",
        issued_at=utcnow(),
    )
    db_session.add(cert)
    await db_session.flush()

    result = await service.verify(db_session, cert.certificate_code)

    assert not result.is_valid
    assert result.certificate_id == cert.certificate_id
    assert result.issued_on == date(1999, 1, 1)


@pytest.mark.asyncio
async def test_get_certificate_hides_other_users(db_session, completed_course, user_id) -> None:
    course = await completed_course()
    cert = await service.issue(db_session, user_id, course.course_id, recipient_name="Ada")

    assert await service.get_certificate(db_session, cert.certificate_id, viewer_id=user_id) is cert
    with pytest.raises(CertificateNotFoundError):
        await service.get_certificate(db_session, cert.certificate_id, viewer_id=uuid4())
    admin_view = await service.get_certificate(
        db_session, cert.certificate_id, viewer_id=uuid4(), is_admin=True
    )
    assert admin_view is cert

    items, total = await service.list_for_user(db_session, user_id)
    assert total == 1
    assert items == [cert]
