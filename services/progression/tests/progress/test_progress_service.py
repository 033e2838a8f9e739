from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from app.enrollments import service as enrollments
from app.exceptions import LessonNotFoundError, NotEnrolledError
from app.models.progress_record import ProgressRecord
from app.progress import service
from shared.database.types import utcnow


@pytest.mark.asyncio
async def test_record_completion_is_idempotent(db_session, make_course, user_id) -> None:
    _, lessons = await make_course("Go101")
    lesson_id = lessons[0].lesson_id

    first, created = await service.record_completion(db_session, user_id, lesson_id)
    assert created
    second, created_again = await service.record_completion(db_session, user_id, lesson_id)

    assert not created_again
    assert second.completed_at == first.completed_at
    count = await db_session.scalar(
        select(func.count()).select_from(ProgressRecord).where(ProgressRecord.user_id == user_id)
    )
    assert count == 1


@pytest.mark.asyncio
async def test_record_completion_unknown_lesson(db_session, user_id) -> None:
    with pytest.raises(LessonNotFoundError):
        await service.record_completion(db_session, user_id, uuid4())


@pytest.mark.asyncio
async def test_concurrent_record_returns_winner(
    db_session, session_factory, make_course, user_id, monkeypatch
) -> None:
    _, lessons = await make_course("Go101")
    lesson_id = lessons[0].lesson_id
    await db_session.commit()

    earlier = utcnow() - timedelta(minutes=5)
    async with session_factory() as other:
        other.add(ProgressRecord(user_id=user_id, lesson_id=lesson_id, completed_at=earlier))
        await other.commit()

    real_find = service.find_record
    calls = 0

    async def _miss_first(db, uid, lid):
        nonlocal calls
        calls += 1
        if calls == 1:
            return None
        return await real_find(db, uid, lid)

    monkeypatch.setattr(service, "find_record", _miss_first)

    record, created = await service.record_completion(db_session, user_id, lesson_id)

    assert not created
    assert record.completed_at == earlier


@pytest.mark.asyncio
async def test_completion_projections(db_session, make_course, user_id) -> None:
    _, go_lessons = await make_course("Go101", lessons=2)
    _, py_lessons = await make_course("Py101", lessons=1)
    other_user = uuid4()
    await service.record_completion(db_session, user_id, go_lessons[0].lesson_id)
    await service.record_completion(db_session, user_id, py_lessons[0].lesson_id)
    await service.record_completion(db_session, other_user, go_lessons[0].lesson_id)

    mine = await service.completions_for_user(db_session, user_id)
    assert {r.lesson_id for r in mine} == {go_lessons[0].lesson_id, py_lessons[0].lesson_id}

    in_go = await service.completions_for_user(
        db_session, user_id, course_id=go_lessons[0].course_id
    )
    assert [r.lesson_id for r in in_go] == [go_lessons[0].lesson_id]

    by_lesson = await service.completions_for_lesson(db_session, go_lessons[0].lesson_id)
    assert {r.user_id for r in by_lesson} == {user_id, other_user}


@pytest.mark.asyncio
async def test_complete_lesson_requires_enrollment(db_session, make_course, user_id) -> None:
    _, lessons = await make_course("Go101")
    with pytest.raises(NotEnrolledError):
        await service.complete_lesson(
            db_session, user_id, lessons[0].lesson_id, recipient_name="Ada"
        )


@pytest.mark.asyncio
async def test_complete_unknown_lesson(db_session, user_id) -> None:
    with pytest.raises(LessonNotFoundError):
        await service.complete_lesson(db_session, user_id, uuid4(), recipient_name="Ada")


@pytest.mark.asyncio
async def test_complete_lesson_reports_progress(db_session, make_course, user_id) -> None:
    course, lessons = await make_course("Go101", lessons=4)
    await enrollments.enroll(db_session, user_id, course.course_id)

    outcome = await service.complete_lesson(
        db_session, user_id, lessons[0].lesson_id, recipient_name="Ada"
    )

    assert outcome.newly_recorded
    assert outcome.evaluation.progress.completed == 1
    assert outcome.evaluation.progress.total == 4
    assert str(outcome.evaluation.progress.rate) == "25.00"
    assert outcome.evaluation.event is None
    assert outcome.certificate is None


@pytest.mark.asyncio
async def test_complete_lesson_locks_enrollment_before_recording(
    db_session, make_course, user_id, monkeypatch
) -> None:
    course, lessons = await make_course("Go101", lessons=2)
    await enrollments.enroll(db_session, user_id, course.course_id)

    calls: list[str] = []
    real_lock = enrollments.lock_enrollment
    real_record = service.record_completion

    async def _lock(db, uid, cid):
        calls.append("lock")
        return await real_lock(db, uid, cid)

    async def _record(db, uid, lid):
        calls.append("record")
        return await real_record(db, uid, lid)

    monkeypatch.setattr(enrollments, "lock_enrollment", _lock)
    monkeypatch.setattr(service, "record_completion", _record)

    await service.complete_lesson(db_session, user_id, lessons[1].lesson_id, recipient_name="Ada")

    assert calls == ["lock", "record"]


@pytest.mark.asyncio
async def test_last_of_two_completions_sees_both(
    db_session, session_factory, make_course, user_id
) -> None:
    course, (first, second) = await make_course("Go101", lessons=2)
    await enrollments.enroll(db_session, user_id, course.course_id)
    await db_session.commit()

    # The first request commits while the second waits on the enrollment lock.
    async with session_factory() as session:
        outcome = await service.complete_lesson(
            session, user_id, first.lesson_id, recipient_name="Ada"
        )
        await session.commit()
    assert outcome.evaluation.event is None

    async with session_factory() as session:
        outcome = await service.complete_lesson(
            session, user_id, second.lesson_id, recipient_name="Ada"
        )
        await session.commit()

    assert outcome.evaluation.event is not None
    assert outcome.certificate is not None
