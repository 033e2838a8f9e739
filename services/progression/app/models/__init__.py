# Import all models so Alembic can discover them via Base.metadata
from .certificate import Certificate
from .course import Course
from .course_completion import CourseCompletion
from .enrollment import Enrollment
from .enums import CourseStatus
from .lesson import Lesson
from .prerequisite import PrerequisiteEdge
from .progress_record import ProgressRecord

__all__ = [
    "Certificate",
    "Course",
    "CourseCompletion",
    "CourseStatus",
    "Enrollment",
    "Lesson",
    "PrerequisiteEdge",
    "ProgressRecord",
]
