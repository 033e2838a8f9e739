from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class EnrollmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    course_id: UUID
    enrolled_at: datetime
