from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401 - register with Base
from app.config import Settings
from app.database import get_db
from app.dependencies import get_settings
from app.main import create_app
from app.models.course import Course
from app.models.enums import CourseStatus
from app.models.lesson import Lesson
from shared.auth.config import AuthSettings, get_auth_settings
from shared.database.postgres import Base

TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_JWT_SECRET = "test-secret-that-is-long-enough-for-hs256"

INSTRUCTOR_ID = UUID("00000000-0000-0000-0000-00000000a001")


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _record) -> None:
        # Let SQLAlchemy emit BEGIN itself so SAVEPOINT works; enforce FKs.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        progression_database_url=TEST_DATABASE_URL,
        certificate_base_url="https://lms.test/certificates",
        storage_timeout_secs=5.0,
    )


@pytest.fixture
def auth_settings() -> AuthSettings:
    return AuthSettings(_env_file=None, secret=TEST_JWT_SECRET)


@pytest.fixture
def make_token(auth_settings: AuthSettings) -> Callable[..., str]:
    def _make(
        user_id: UUID,
        *,
        roles: tuple[str, ...] = ("student",),
        name: str = "Test User",
        email: str = "user@example.com",
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "email": email,
            "name": name,
            "roles": list(roles),
            "iss": auth_settings.issuer,
            "aud": auth_settings.audience,
            "iat": now,
            "exp": now + timedelta(hours=1),
        }
        return jwt.encode(payload, auth_settings.secret, algorithm=auth_settings.algorithm)

    return _make


@pytest.fixture
def auth_headers(make_token: Callable[..., str]) -> Callable[..., dict[str, str]]:
    def _headers(user_id: UUID, **kwargs) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user_id, **kwargs)}"}

    return _headers


@pytest_asyncio.fixture
async def async_client(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
    auth_settings: AuthSettings,
) -> AsyncGenerator[AsyncClient, None]:
    app = create_app(settings)

    async def _get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_auth_settings] = lambda: auth_settings

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


CourseFactory = Callable[..., Awaitable[tuple[Course, list[Lesson]]]]


@pytest.fixture
def make_course(db_session: AsyncSession) -> CourseFactory:
    """Insert a course with ``lessons`` lessons numbered 1..n."""

    async def _make(
        title: str = "Course",
        *,
        lessons: int = 2,
        status: CourseStatus = CourseStatus.PUBLISHED,
        instructor_id: UUID = INSTRUCTOR_ID,
    ) -> tuple[Course, list[Lesson]]:
        course = Course(
            title=title,
            instructor_id=instructor_id,
            instructor_name="Instructor",
            status=status,
        )
        db_session.add(course)
        await db_session.flush()
        created = []
        for n in range(1, lessons + 1):
            lesson = Lesson(course_id=course.course_id, title=f"{title} L{n}", order_number=n)
            db_session.add(lesson)
            created.append(lesson)
        await db_session.flush()
        return course, created

    return _make


@pytest.fixture
def user_id() -> UUID:
    return uuid4()
