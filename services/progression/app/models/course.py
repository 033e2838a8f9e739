import uuid
from datetime import datetime

from sqlalchemy import Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base
from shared.database.types import UTCDateTime, utcnow

from .enums import CourseStatus, course_status_enum


class Course(Base):
    __tablename__ = "courses"

    course_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Soft reference — User lives in identity_db, FK not enforceable cross-DB
    instructor_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    # Denormalized so course cards render without cross-service calls
    instructor_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    status: Mapped[CourseStatus] = mapped_column(
        course_status_enum, nullable=False, default=CourseStatus.DRAFT
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    # Lessons, edges, enrollments, progress and certificates go with the course
    # through ON DELETE CASCADE in the schema.
    __table_args__ = (
        Index("ix_courses_instructor_id", "instructor_id"),
        Index("ix_courses_status", "status"),
        Index("ix_courses_created_at", "created_at"),
    )
