from shared.events.schemas import CourseCompleted

__all__ = ["CourseCompleted"]
