from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CourseCompleted(BaseModel):
    """Domain event: a learner reached 100% of a course for the first time.

    Emitted exactly once per (user, course) by the completion evaluator and
    consumed in-process by the certificate issuer.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    event_type: str = "course.completed"
    user_id: UUID
    course_id: UUID
    completion_rate: Decimal
    completed_at: datetime
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
