"""End-to-end progression through the service layer: enroll → lessons → certificate."""

import re

import pytest
from sqlalchemy import func, select

from app.certificates import service as certificates
from app.enrollments import service as enrollments
from app.models.certificate import Certificate
from app.models.course_completion import CourseCompletion
from app.progress import service as progress

CODE_PATTERN = re.compile(r"^CERT-\d{8}-[A-F0-9]{16}$")


@pytest.mark.asyncio
async def test_go101_scenario(db_session, make_course, user_id) -> None:
    course, (l1, l2) = await make_course("Go101", lessons=2)

    enrollment = await enrollments.enroll(db_session, user_id, course.course_id)
    assert enrollment.course_id == course.course_id

    first = await progress.complete_lesson(db_session, user_id, l1.lesson_id, recipient_name="U")
    assert str(first.evaluation.progress.rate) == "50.00"
    assert first.evaluation.event is None
    assert first.certificate is None

    second = await progress.complete_lesson(db_session, user_id, l2.lesson_id, recipient_name="U")
    assert str(second.evaluation.progress.rate) == "100.00"
    assert second.evaluation.event is not None
    cert = second.certificate
    assert cert is not None
    assert CODE_PATTERN.match(cert.certificate_code)

    again = await progress.complete_lesson(db_session, user_id, l2.lesson_id, recipient_name="U")
    assert not again.newly_recorded
    assert again.record.completed_at == second.record.completed_at
    assert again.evaluation.event is None
    assert again.certificate is None

    assert await db_session.scalar(select(func.count()).select_from(CourseCompletion)) == 1
    assert await db_session.scalar(select(func.count()).select_from(Certificate)) == 1

    verification = await certificates.verify(db_session, cert.certificate_code)
    assert verification.is_valid
    assert verification.course_title == "Go101"
    assert verification.issued_on == cert.issued_at.date()


@pytest.mark.asyncio
async def test_repeated_final_completions_issue_one_certificate(
    session_factory, make_course, db_session, user_id
) -> None:
    course, lessons = await make_course("Go101", lessons=1)
    await enrollments.enroll(db_session, user_id, course.course_id)
    await db_session.commit()

    issued = []
    for _ in range(5):
        async with session_factory() as session:
            outcome = await progress.complete_lesson(
                session, user_id, lessons[0].lesson_id, recipient_name="U"
            )
            await session.commit()
        if outcome.certificate is not None:
            issued.append(outcome.certificate.certificate_id)

    assert len(issued) == 1
    async with session_factory() as session:
        assert await session.scalar(select(func.count()).select_from(CourseCompletion)) == 1
        assert await session.scalar(select(func.count()).select_from(Certificate)) == 1


@pytest.mark.asyncio
async def test_completion_unlocks_dependent_course(db_session, make_course, user_id) -> None:
    from app.exceptions import PrerequisitesNotMetError
    from app.prerequisites import service as prerequisites

    basics, (lesson,) = await make_course("Basics", lessons=1)
    advanced, _ = await make_course("Advanced", lessons=1)
    await prerequisites.add_edge(db_session, advanced.course_id, basics.course_id)

    await enrollments.enroll(db_session, user_id, basics.course_id)
    with pytest.raises(PrerequisitesNotMetError):
        await enrollments.enroll(db_session, user_id, advanced.course_id)

    await progress.complete_lesson(db_session, user_id, lesson.lesson_id, recipient_name="U")

    enrollment = await enrollments.enroll(db_session, user_id, advanced.course_id)
    assert enrollment.course_id == advanced.course_id
