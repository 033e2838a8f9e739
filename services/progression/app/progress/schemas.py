"""Progress and completion Pydantic V2 schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.certificates.schemas import CertificateResponse


class ProgressRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    lesson_id: UUID
    completed_at: datetime


class CourseCompletionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    course_id: UUID
    completion_rate: Decimal
    completed_at: datetime


class CourseProgressResponse(BaseModel):
    user_id: UUID
    course_id: UUID
    completed_lessons: int
    total_lessons: int
    completion_rate: Decimal
    is_completed: bool
    completed_at: datetime | None = None


class CompleteLessonResponse(BaseModel):
    record: ProgressRecordResponse
    newly_recorded: bool
    progress: CourseProgressResponse
    # True only on the request that completed the course
    course_completed: bool
    certificate: CertificateResponse | None = None


class EvaluateCourseResponse(BaseModel):
    progress: CourseProgressResponse
    course_completed: bool
    certificate: CertificateResponse | None = None
