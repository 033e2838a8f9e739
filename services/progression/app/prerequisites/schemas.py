from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AddPrerequisiteRequest(BaseModel):
    required_course_id: UUID = Field(description="Course that must be completed first.")


class PrerequisiteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    required_course_id: UUID
    created_at: datetime


class PrerequisiteCheckResponse(BaseModel):
    course_id: UUID
    satisfied: bool
    missing_course_ids: list[UUID] = Field(
        default_factory=list,
        description="Direct prerequisites the caller has not completed, sorted by id.",
    )
