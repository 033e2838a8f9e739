"""Progress tracker — pure business logic, no FastAPI imports.

Records one completion per (user, lesson); the first completion wins and
is never moved. ``complete_lesson`` chains the tracker, the completion
evaluator and the certificate issuer inside the caller's transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.certificates import service as certificates
from app.certificates.codes import generate_certificate_code
from app.certificates.service import DEFAULT_MAX_ATTEMPTS, CodeFactory
from app.enrollments import service as enrollments
from app.exceptions import LessonNotFoundError, NotEnrolledError
from app.models.certificate import Certificate
from app.models.lesson import Lesson
from app.models.progress_record import ProgressRecord
from app.progress import evaluator
from app.progress.evaluator import Evaluation
from shared.database.types import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LessonCompletionOutcome:
    record: ProgressRecord
    # False when the lesson had already been completed
    newly_recorded: bool
    evaluation: Evaluation
    # Issued by this call; None otherwise
    certificate: Certificate | None = None


async def _get_lesson(db: AsyncSession, lesson_id: UUID) -> Lesson:
    lesson = await db.get(Lesson, lesson_id)
    if lesson is None:
        raise LessonNotFoundError(lesson_id)
    return lesson


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


async def find_record(
    db: AsyncSession, user_id: UUID, lesson_id: UUID
) -> ProgressRecord | None:
    return await db.get(ProgressRecord, (user_id, lesson_id))


async def record_completion(
    db: AsyncSession,
    user_id: UUID,
    lesson_id: UUID,
) -> tuple[ProgressRecord, bool]:
    """Return ``(record, created)``; an existing record comes back unchanged."""
    existing = await find_record(db, user_id, lesson_id)
    if existing is not None:
        return existing, False

    await _get_lesson(db, lesson_id)
    record = ProgressRecord(user_id=user_id, lesson_id=lesson_id, completed_at=utcnow())
    try:
        async with db.begin_nested():
            db.add(record)
    except IntegrityError as exc:
        winner = await find_record(db, user_id, lesson_id)
        if winner is None:
            # Not a duplicate: the lesson went away under us
            raise LessonNotFoundError(lesson_id) from exc
        logger.info("Lesson %s already recorded for %s by a concurrent request", lesson_id, user_id)
        return winner, False

    return record, True


async def completions_for_user(
    db: AsyncSession,
    user_id: UUID,
    *,
    course_id: UUID | None = None,
) -> list[ProgressRecord]:
    stmt = select(ProgressRecord).where(ProgressRecord.user_id == user_id)
    if course_id is not None:
        stmt = stmt.join(Lesson, Lesson.lesson_id == ProgressRecord.lesson_id).where(
            Lesson.course_id == course_id
        )
    stmt = stmt.order_by(ProgressRecord.completed_at, ProgressRecord.lesson_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def completions_for_lesson(db: AsyncSession, lesson_id: UUID) -> list[ProgressRecord]:
    await _get_lesson(db, lesson_id)
    stmt = (
        select(ProgressRecord)
        .where(ProgressRecord.lesson_id == lesson_id)
        .order_by(ProgressRecord.completed_at, ProgressRecord.user_id)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Complete lesson flow
# ---------------------------------------------------------------------------


async def complete_lesson(
    db: AsyncSession,
    user_id: UUID,
    lesson_id: UUID,
    *,
    recipient_name: str,
    max_code_attempts: int = DEFAULT_MAX_ATTEMPTS,
    verification_base_url: str = "",
    code_factory: CodeFactory = generate_certificate_code,
) -> LessonCompletionOutcome:
    lesson = await _get_lesson(db, lesson_id)
    # Held until commit: the evaluation below must see this learner's
    # concurrent completions in the same course.
    if await enrollments.lock_enrollment(db, user_id, lesson.course_id) is None:
        raise NotEnrolledError()

    record, created = await record_completion(db, user_id, lesson_id)
    evaluation, certificate = await evaluate_course(
        db,
        user_id,
        lesson.course_id,
        recipient_name=recipient_name,
        max_code_attempts=max_code_attempts,
        verification_base_url=verification_base_url,
        code_factory=code_factory,
    )

    return LessonCompletionOutcome(
        record=record,
        newly_recorded=created,
        evaluation=evaluation,
        certificate=certificate,
    )


async def evaluate_course(
    db: AsyncSession,
    user_id: UUID,
    course_id: UUID,
    *,
    recipient_name: str,
    max_code_attempts: int = DEFAULT_MAX_ATTEMPTS,
    verification_base_url: str = "",
    code_factory: CodeFactory = generate_certificate_code,
) -> tuple[Evaluation, Certificate | None]:
    """Re-run the evaluator for a learner, issuing the certificate on a new completion.

    Covers courses that reach 100% without a lesson being completed, for
    example after an unfinished lesson is deleted.
    """
    evaluation = await evaluator.evaluate(db, user_id, course_id)
    certificate = None
    if evaluation.event is not None:
        certificate = await certificates.handle_course_completed(
            db,
            evaluation.event,
            recipient_name=recipient_name,
            max_attempts=max_code_attempts,
            verification_base_url=verification_base_url,
            code_factory=code_factory,
        )
    return evaluation, certificate
