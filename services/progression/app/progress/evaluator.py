"""Completion evaluator — pure business logic, no FastAPI imports.

Sole source of a learner's completion rate for a course, and the only
writer of ``CourseCompletion`` rows. A completion is written once per
(user, course), the first time every lesson of a non-empty course has a
progress record; the composite primary key decides concurrent evaluators
and the losing call returns no event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import CourseCompletionNotFoundError, CourseNotFoundError
from app.models.course import Course
from app.models.course_completion import CourseCompletion
from app.models.lesson import Lesson
from app.models.progress_record import ProgressRecord
from shared.database.types import utcnow
from shared.events.schemas import CourseCompleted

logger = logging.getLogger(__name__)

FULL_RATE = Decimal("100.00")
_CENT = Decimal("0.01")


@dataclass(frozen=True)
class CourseProgress:
    user_id: UUID
    course_id: UUID
    completed: int
    total: int
    rate: Decimal

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.completed == self.total


@dataclass(frozen=True)
class Evaluation:
    progress: CourseProgress
    completion: CourseCompletion | None
    # Set only on the call that wrote the completion
    event: CourseCompleted | None = None


def completion_rate(completed: int, total: int) -> Decimal:
    """``completed / total * 100`` to two places; 0 for a course with no lessons."""
    if total <= 0:
        return Decimal("0.00")
    return (Decimal(completed) * 100 / Decimal(total)).quantize(_CENT, rounding=ROUND_HALF_UP)


async def find_completion(
    db: AsyncSession, user_id: UUID, course_id: UUID
) -> CourseCompletion | None:
    return await db.get(CourseCompletion, (user_id, course_id))


async def compute_progress(db: AsyncSession, user_id: UUID, course_id: UUID) -> CourseProgress:
    if await db.get(Course, course_id) is None:
        raise CourseNotFoundError(course_id)

    total = await db.scalar(
        select(func.count()).select_from(Lesson).where(Lesson.course_id == course_id)
    ) or 0
    completed = await db.scalar(
        select(func.count())
        .select_from(ProgressRecord)
        .join(Lesson, Lesson.lesson_id == ProgressRecord.lesson_id)
        .where(ProgressRecord.user_id == user_id, Lesson.course_id == course_id)
    ) or 0

    return CourseProgress(
        user_id=user_id,
        course_id=course_id,
        completed=completed,
        total=total,
        rate=completion_rate(completed, total),
    )


async def evaluate(db: AsyncSession, user_id: UUID, course_id: UUID) -> Evaluation:
    progress = await compute_progress(db, user_id, course_id)

    existing = await find_completion(db, user_id, course_id)
    if existing is not None or not progress.is_complete:
        return Evaluation(progress=progress, completion=existing)

    completion = CourseCompletion(
        user_id=user_id,
        course_id=course_id,
        completion_rate=FULL_RATE,
        completed_at=utcnow(),
    )
    try:
        async with db.begin_nested():
            db.add(completion)
    except IntegrityError:
        logger.info(
            "Course %s already completed by %s in a concurrent request",
            course_id,
            user_id,
        )
        winner = await find_completion(db, user_id, course_id)
        return Evaluation(progress=progress, completion=winner)

    logger.info("Course %s completed by user %s", course_id, user_id)
    event = CourseCompleted(
        user_id=user_id,
        course_id=course_id,
        completion_rate=completion.completion_rate,
        completed_at=completion.completed_at,
    )
    return Evaluation(progress=progress, completion=completion, event=event)


async def get_completion(db: AsyncSession, user_id: UUID, course_id: UUID) -> CourseCompletion:
    completion = await find_completion(db, user_id, course_id)
    if completion is None:
        raise CourseCompletionNotFoundError(f"{user_id}/{course_id}")
    return completion


async def list_completions_for_user(
    db: AsyncSession,
    user_id: UUID,
    *,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[CourseCompletion], int]:
    total = await db.scalar(
        select(func.count())
        .select_from(CourseCompletion)
        .where(CourseCompletion.user_id == user_id)
    ) or 0
    stmt = (
        select(CourseCompletion)
        .where(CourseCompletion.user_id == user_id)
        .order_by(CourseCompletion.completed_at.desc(), CourseCompletion.course_id)
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all()), total
