from uuid import uuid4

import pytest
from sqlalchemy import func, select

from app.models.course import Course
from shared.database.postgres import _build_ssl_connect_args, get_session


def test_ssl_disabled_without_env(monkeypatch) -> None:
    monkeypatch.delenv("DATABASE_SSL", raising=False)
    assert _build_ssl_connect_args() == {}

    monkeypatch.setenv("DATABASE_SSL", "disable")
    assert _build_ssl_connect_args() == {}


def test_ssl_require_without_certificate(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("DATABASE_SSL", "require")
    monkeypatch.setenv("DATABASE_SSL_CERT", str(tmp_path / "missing.pem"))

    assert _build_ssl_connect_args() == {"connect_args": {"ssl": "require"}}


async def _count_courses(session_factory) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(Course))


@pytest.mark.asyncio
async def test_get_session_commits_on_success(session_factory) -> None:
    sessions = get_session(session_factory)
    session = await anext(sessions)
    session.add(Course(title="Kept", instructor_id=uuid4()))

    with pytest.raises(StopAsyncIteration):
        await anext(sessions)

    assert await _count_courses(session_factory) == 1


@pytest.mark.asyncio
async def test_get_session_rolls_back_on_error(session_factory) -> None:
    sessions = get_session(session_factory)
    session = await anext(sessions)
    session.add(Course(title="Discarded", instructor_id=uuid4()))
    await session.flush()

    with pytest.raises(RuntimeError):
        await sessions.athrow(RuntimeError("request failed"))

    assert await _count_courses(session_factory) == 0
