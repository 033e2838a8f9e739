from uuid import uuid4

import pytest
from sqlalchemy import func, select

from app.enrollments import service as enrollments
from app.exceptions import (
    CourseNotFoundError,
    InvalidLessonOrderError,
    InvalidStatusTransitionError,
    LessonNotFoundError,
    NotCourseOwnerError,
)
from app.lms import service
from app.models.enrollment import Enrollment
from app.models.enums import CourseStatus
from app.models.lesson import Lesson
from app.models.progress_record import ProgressRecord
from app.progress import service as tracker

INSTRUCTOR = uuid4()


async def _course(db, lessons: int = 0):
    course = await service.create_course(
        db, INSTRUCTOR, title="Go101", description=None, instructor_name="Rob"
    )
    created = []
    for n in range(lessons):
        created.append(
            await service.create_lesson(
                db, course.course_id, INSTRUCTOR, title=f"L{n + 1}", content=None, duration_mins=10
            )
        )
    return course, created


async def _titles(db, course_id) -> list[str]:
    return [lesson.title for lesson in await service.list_lessons(db, course_id)]


async def _numbers(db, course_id) -> list[int]:
    return [lesson.order_number for lesson in await service.list_lessons(db, course_id)]


@pytest.mark.asyncio
async def test_course_lifecycle(db_session) -> None:
    course, _ = await _course(db_session)
    assert course.status == CourseStatus.DRAFT

    course = await service.publish_course(db_session, course.course_id, INSTRUCTOR)
    assert course.status == CourseStatus.PUBLISHED
    with pytest.raises(InvalidStatusTransitionError):
        await service.publish_course(db_session, course.course_id, INSTRUCTOR)

    course = await service.archive_course(db_session, course.course_id, INSTRUCTOR)
    assert course.status == CourseStatus.ARCHIVED
    with pytest.raises(InvalidStatusTransitionError):
        await service.archive_course(db_session, course.course_id, INSTRUCTOR)


@pytest.mark.asyncio
async def test_only_owner_or_admin_may_modify(db_session) -> None:
    course, _ = await _course(db_session)
    stranger = uuid4()

    with pytest.raises(NotCourseOwnerError):
        await service.publish_course(db_session, course.course_id, stranger)

    published = await service.publish_course(db_session, course.course_id, stranger, is_admin=True)
    assert published.status == CourseStatus.PUBLISHED


@pytest.mark.asyncio
async def test_list_courses_defaults_to_published(db_session) -> None:
    draft, _ = await _course(db_session)
    live, _ = await _course(db_session)
    await service.publish_course(db_session, live.course_id, INSTRUCTOR)

    courses, total = await service.list_courses(db_session)
    assert total == 1
    assert courses[0].course_id == live.course_id

    drafts, total = await service.list_courses(db_session, status=CourseStatus.DRAFT)
    assert [c.course_id for c in drafts] == [draft.course_id]


@pytest.mark.asyncio
async def test_lessons_append_in_order(db_session) -> None:
    course, _ = await _course(db_session, lessons=3)

    assert await _numbers(db_session, course.course_id) == [1, 2, 3]
    assert await _titles(db_session, course.course_id) == ["L1", "L2", "L3"]


@pytest.mark.asyncio
async def test_insert_lesson_shifts_later_ones(db_session) -> None:
    course, _ = await _course(db_session, lessons=3)

    await service.create_lesson(
        db_session,
        course.course_id,
        INSTRUCTOR,
        title="Intro",
        content=None,
        duration_mins=None,
        order_number=1,
    )

    assert await _numbers(db_session, course.course_id) == [1, 2, 3, 4]
    assert await _titles(db_session, course.course_id) == ["Intro", "L1", "L2", "L3"]


@pytest.mark.asyncio
@pytest.mark.parametrize("order_number", [0, 5])
async def test_insert_lesson_out_of_range(db_session, order_number) -> None:
    course, _ = await _course(db_session, lessons=3)
    with pytest.raises(InvalidLessonOrderError):
        await service.create_lesson(
            db_session,
            course.course_id,
            INSTRUCTOR,
            title="X",
            content=None,
            duration_mins=None,
            order_number=order_number,
        )


@pytest.mark.asyncio
async def test_delete_lesson_closes_gap(db_session) -> None:
    course, lessons = await _course(db_session, lessons=3)

    await service.delete_lesson(db_session, lessons[0].lesson_id, INSTRUCTOR)

    assert await _numbers(db_session, course.course_id) == [1, 2]
    assert await _titles(db_session, course.course_id) == ["L2", "L3"]


@pytest.mark.asyncio
async def test_reorder_lessons(db_session) -> None:
    course, lessons = await _course(db_session, lessons=3)
    new_order = [lessons[2].lesson_id, lessons[0].lesson_id, lessons[1].lesson_id]

    reordered = await service.reorder_lessons(
        db_session, course.course_id, INSTRUCTOR, lesson_ids=new_order
    )

    assert [lesson.lesson_id for lesson in reordered] == new_order
    assert [lesson.order_number for lesson in reordered] == [1, 2, 3]
    assert await _titles(db_session, course.course_id) == ["L3", "L1", "L2"]


@pytest.mark.asyncio
async def test_reorder_rejects_bad_permutations(db_session) -> None:
    course, lessons = await _course(db_session, lessons=3)
    ids = [lesson.lesson_id for lesson in lessons]

    for bad in (ids[:2], ids + [uuid4()], [ids[0], ids[0], ids[1]], [ids[0], ids[1], uuid4()]):
        with pytest.raises(InvalidLessonOrderError):
            await service.reorder_lessons(db_session, course.course_id, INSTRUCTOR, lesson_ids=bad)

    assert await _numbers(db_session, course.course_id) == [1, 2, 3]


@pytest.mark.asyncio
async def test_delete_course_cascades(db_session, user_id) -> None:
    course, lessons = await _course(db_session, lessons=2)
    await service.publish_course(db_session, course.course_id, INSTRUCTOR)
    await enrollments.enroll(db_session, user_id, course.course_id)
    await tracker.record_completion(db_session, user_id, lessons[0].lesson_id)

    await service.delete_course(db_session, course.course_id, INSTRUCTOR)

    with pytest.raises(CourseNotFoundError):
        await service.get_course_by_id(db_session, course.course_id)
    for model in (Lesson, Enrollment, ProgressRecord):
        remaining = await db_session.scalar(select(func.count()).select_from(model))
        assert remaining == 0


@pytest.mark.asyncio
async def test_update_course_changes_given_fields(db_session) -> None:
    course, _ = await _course(db_session)

    updated = await service.update_course(
        db_session, course.course_id, INSTRUCTOR, title="Go 101", description=None
    )

    assert updated.title == "Go 101"
    assert updated.instructor_name == "Rob"
    with pytest.raises(NotCourseOwnerError):
        await service.update_course(db_session, course.course_id, uuid4(), title="Hijacked")

    by_admin = await service.update_course(
        db_session, course.course_id, uuid4(), is_admin=True, description="Concurrency"
    )
    assert by_admin.title == "Go 101"
    assert by_admin.description == "Concurrency"


@pytest.mark.asyncio
async def test_update_lesson_keeps_position(db_session) -> None:
    course, (first, second) = await _course(db_session, lessons=2)

    updated = await service.update_lesson(
        db_session, second.lesson_id, INSTRUCTOR, title="Channels", duration_mins=25
    )

    assert updated.title == "Channels"
    assert updated.duration_mins == 25
    assert await _numbers(db_session, course.course_id) == [1, 2]
    with pytest.raises(NotCourseOwnerError):
        await service.update_lesson(db_session, first.lesson_id, uuid4(), title="Nope")
    with pytest.raises(LessonNotFoundError):
        await service.update_lesson(db_session, uuid4(), INSTRUCTOR, title="Gone")


@pytest.mark.asyncio
async def test_search_courses_by_title_or_description(db_session) -> None:
    go, _ = await _course(db_session)
    rust = await service.create_course(
        db_session,
        INSTRUCTOR,
        title="Rust Basics",
        description="Ownership and GO-style channels",
        instructor_name="Rob",
    )
    other = await service.create_course(
        db_session, INSTRUCTOR, title="Python", description=None, instructor_name="Rob"
    )
    for course in (go, rust, other):
        await service.publish_course(db_session, course.course_id, INSTRUCTOR)

    found, total = await service.list_courses(db_session, query="go")
    assert total == 2
    assert {c.course_id for c in found} == {go.course_id, rust.course_id}

    found, total = await service.list_courses(db_session, query="  PYTHON ")
    assert [c.course_id for c in found] == [other.course_id]

    _, total = await service.list_courses(db_session, query="haskell")
    assert total == 0
