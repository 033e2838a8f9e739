"""LMS catalogue Pydantic V2 schemas.

Follows RORO: separate request models from response models.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import CourseStatus


# ---------------------------------------------------------------------------
# Course
# ---------------------------------------------------------------------------


class CreateCourseRequest(BaseModel):
    """Request body for creating a new course (starts in DRAFT)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=300, description="Course title.")
    description: str | None = Field(default=None, description="Course description.")
    instructor_name: str | None = Field(
        default=None,
        max_length=200,
        description="Display name shown on course cards. Defaults to the caller's name.",
    )


class UpdateCourseRequest(BaseModel):
    """PATCH body for updating a course. All fields optional."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(default=None, min_length=1, max_length=300)
    description: str | None = Field(default=None)
    instructor_name: str | None = Field(default=None, max_length=200)


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    title: str
    description: str | None
    instructor_id: UUID
    instructor_name: str
    status: CourseStatus
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Lesson
# ---------------------------------------------------------------------------


class CreateLessonRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=300)
    content: str | None = None
    duration_mins: int | None = Field(default=None, ge=0)
    order_number: int | None = Field(
        default=None,
        ge=1,
        description="1-based position. Omit to append; an occupied slot shifts later lessons down.",
    )


class UpdateLessonRequest(BaseModel):
    """PATCH body for updating a lesson. Position changes go through reorder."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(default=None, min_length=1, max_length=300)
    content: str | None = None
    duration_mins: int | None = Field(default=None, ge=0)


class ReorderLessonsRequest(BaseModel):
    lesson_ids: list[UUID] = Field(
        description="Every lesson id of the course, in the desired order."
    )


class LessonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lesson_id: UUID
    course_id: UUID
    title: str
    content: str | None
    duration_mins: int | None
    order_number: int
    created_at: datetime
    updated_at: datetime


class CourseDetailResponse(CourseResponse):
    lessons: list[LessonResponse] = Field(default_factory=list)
