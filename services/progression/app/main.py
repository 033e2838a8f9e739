import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.certificates.router import router as certificates_router
from app.config import Settings
from app.database import close_db, get_db, init_db, storage_guard
from app.dependencies import get_settings
from app.enrollments.router import router as enrollments_router
from app.exceptions import DomainError
from app.http_errors import to_http_exception
from app.lms.router import router as lms_router
from app.prerequisites.router import router as prerequisites_router
from app.progress.router import router as progress_router
from shared.log_config import configure_logging
from shared.middleware.error_handler import error_envelope_middleware
from shared.middleware.request_id import request_id_middleware

logger = logging.getLogger(__name__)


def _lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(
            settings.progression_database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=settings.db_pool_recycle_secs,
        )
        logger.info("Progression service started (env=%s)", settings.env_name)

        yield

        # Shutdown
        await close_db()

    return lifespan


SWAGGER_DESCRIPTION = """\
## Course Progression Service

Owns the learning path of a user through the catalogue: prerequisite
gating, enrollment, per-lesson progress, course completion and
certificate issuance with public verification.

### Domain Tags

| Tag | Description |
|-----|-------------|
| **LMS** | Course CRUD, publish/archive, ordered lessons |
| **Prerequisites** | Course → required-course edges, gating checks |
| **Enrollments** | Enroll / unenroll, enrollment listings |
| **Progress** | Lesson completion, completion rate, course completions |
| **Certificates** | Issuance, retrieval, public verification |

### Authentication

All endpoints (except health checks, the catalogue and certificate
verification) require a valid JWT Bearer token in the `Authorization` header.
Token structure: `{"sub": "<user_uuid>", "email": "...", "name": "...", "roles": [...]}`.
Roles are ordered `student < instructor < admin`.

### Completion Flow

```
POST /api/v1/lms/lessons/{id}/complete
  → progress record (first completion wins)
  → completion rate = completed / total lessons
  → at 100%: course completion (once) → certificate CERT-YYYYMMDD-XXXXXXXXXXXXXXXX
```

### Status Transitions

```
Course: DRAFT → PUBLISHED → ARCHIVED
```
"""


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    app = FastAPI(
        title="Course Progression Service",
        version="0.1.0",
        description=SWAGGER_DESCRIPTION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=_lifespan(settings),
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )
    app.middleware("http")(error_envelope_middleware)
    app.middleware("http")(request_id_middleware)

    app.include_router(lms_router, prefix="/api/v1")
    app.include_router(prerequisites_router, prefix="/api/v1")
    app.include_router(enrollments_router, prefix="/api/v1")
    app.include_router(progress_router, prefix="/api/v1")
    app.include_router(certificates_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health() -> dict:
        return {"status": "ok", "service": "progression"}

    @app.get("/health/db", tags=["Health"])
    async def health_db(
        db: AsyncSession = Depends(get_db),
        settings: Settings = Depends(get_settings),
    ) -> dict:
        try:
            async with storage_guard(settings.storage_timeout_secs):
                await db.execute(text("SELECT 1"))
        except DomainError as exc:
            raise to_http_exception(exc) from exc
        return {"status": "ok", "database": "reachable"}

    return app


app = create_app()
