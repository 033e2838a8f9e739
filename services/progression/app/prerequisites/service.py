"""Prerequisite graph — pure business logic, no FastAPI imports.

Edges point from a course to a course it requires. Gating is shallow:
only a course's direct prerequisites are checked when enrolling, each
course's own requirements having been checked when the learner enrolled
in it.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    CourseNotFoundError,
    PrerequisiteAlreadyExistsError,
    PrerequisiteCycleError,
    PrerequisiteNotFoundError,
    SelfPrerequisiteError,
)
from app.models.course import Course
from app.models.course_completion import CourseCompletion
from app.models.prerequisite import PrerequisiteEdge

logger = logging.getLogger(__name__)


async def _ensure_course_exists(db: AsyncSession, course_id: UUID) -> Course:
    course = await db.get(Course, course_id)
    if course is None:
        raise CourseNotFoundError(course_id)
    return course


async def _depends_on(db: AsyncSession, start: UUID, target: UUID) -> bool:
    """Breadth-first walk of required-course edges from ``start``.

    True when ``target`` is reachable, i.e. ``start`` already requires
    ``target`` directly or transitively.
    """
    seen: set[UUID] = {start}
    frontier: set[UUID] = {start}
    while frontier:
        stmt = select(PrerequisiteEdge.required_course_id).where(
            PrerequisiteEdge.course_id.in_(frontier)
        )
        result = await db.execute(stmt)
        nxt = set(result.scalars().all()) - seen
        if target in nxt:
            return True
        seen |= nxt
        frontier = nxt
    return False


# ---------------------------------------------------------------------------
# Edge management
# ---------------------------------------------------------------------------


async def add_edge(
    db: AsyncSession,
    course_id: UUID,
    required_course_id: UUID,
    *,
    reject_cycles: bool = True,
) -> PrerequisiteEdge:
    if course_id == required_course_id:
        raise SelfPrerequisiteError()
    await _ensure_course_exists(db, course_id)
    await _ensure_course_exists(db, required_course_id)

    if await db.get(PrerequisiteEdge, (course_id, required_course_id)) is not None:
        raise PrerequisiteAlreadyExistsError()

    if reject_cycles and await _depends_on(db, required_course_id, course_id):
        raise PrerequisiteCycleError(course_id, required_course_id)

    edge = PrerequisiteEdge(course_id=course_id, required_course_id=required_course_id)
    try:
        async with db.begin_nested():
            db.add(edge)
    except IntegrityError as exc:
        # Inserted concurrently between the lookup and the flush
        raise PrerequisiteAlreadyExistsError() from exc

    logger.info("Prerequisite added: %s requires %s", course_id, required_course_id)
    return edge


async def remove_edge(
    db: AsyncSession,
    course_id: UUID,
    required_course_id: UUID,
) -> None:
    edge = await db.get(PrerequisiteEdge, (course_id, required_course_id))
    if edge is None:
        raise PrerequisiteNotFoundError(course_id, required_course_id)
    await db.delete(edge)
    await db.flush()
    logger.info("Prerequisite removed: %s no longer requires %s", course_id, required_course_id)


async def list_edges(db: AsyncSession, course_id: UUID) -> list[PrerequisiteEdge]:
    await _ensure_course_exists(db, course_id)
    stmt = (
        select(PrerequisiteEdge)
        .where(PrerequisiteEdge.course_id == course_id)
        .order_by(PrerequisiteEdge.required_course_id)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def required_courses(db: AsyncSession, course_id: UUID) -> list[UUID]:
    """Direct prerequisites of ``course_id``, sorted by id."""
    stmt = select(PrerequisiteEdge.required_course_id).where(
        PrerequisiteEdge.course_id == course_id
    )
    result = await db.execute(stmt)
    return sorted(result.scalars().all())


async def is_satisfied(
    db: AsyncSession,
    user_id: UUID,
    course_id: UUID,
) -> tuple[bool, list[UUID]]:
    """Return ``(satisfied, missing)`` with ``missing`` sorted by course id."""
    required = await required_courses(db, course_id)
    if not required:
        return True, []

    stmt = select(CourseCompletion.course_id).where(
        CourseCompletion.user_id == user_id,
        CourseCompletion.course_id.in_(required),
    )
    result = await db.execute(stmt)
    completed = set(result.scalars().all())
    missing = [cid for cid in required if cid not in completed]
    return not missing, missing
