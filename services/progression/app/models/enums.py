import enum

from sqlalchemy import Enum as SAEnum


class CourseStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


# Shared SQLAlchemy enum type (reused so the type is declared once)
course_status_enum = SAEnum(
    CourseStatus,
    name="course_status",
    values_callable=lambda members: [m.value for m in members],
)
