"""Domain exception classes for the progression service.

Raised by service-layer code and caught by controllers, which map each
family to an HTTP status (see ``app.http_errors``). Every class carries a
stable ``code`` string that ends up in the response body.
"""

from uuid import UUID


class DomainError(Exception):
    code = "domain_error"

    def __init__(self, message: str = ""):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# NotFound
# ---------------------------------------------------------------------------


class NotFoundError(DomainError):
    code = "not_found"


class CourseNotFoundError(NotFoundError):
    code = "course_not_found"

    def __init__(self, identifier: object = ""):
        self.identifier = str(identifier)
        super().__init__(f"Course not found: {identifier}")


class LessonNotFoundError(NotFoundError):
    code = "lesson_not_found"

    def __init__(self, lesson_id: object = ""):
        self.lesson_id = str(lesson_id)
        super().__init__(f"Lesson not found: {lesson_id}")


class EnrollmentNotFoundError(NotFoundError):
    code = "enrollment_not_found"

    def __init__(self, identifier: object = ""):
        self.identifier = str(identifier)
        super().__init__(f"Enrollment not found: {identifier}")


class PrerequisiteNotFoundError(NotFoundError):
    code = "prerequisite_not_found"

    def __init__(self, course_id: UUID, required_course_id: UUID):
        self.course_id = course_id
        self.required_course_id = required_course_id
        super().__init__(
            f"Course {course_id} does not require course {required_course_id}"
        )


class CertificateNotFoundError(NotFoundError):
    code = "certificate_not_found"

    def __init__(self, identifier: object = ""):
        self.identifier = str(identifier)
        super().__init__(f"Certificate not found: {identifier}")


class CourseCompletionNotFoundError(NotFoundError):
    code = "course_completion_not_found"

    def __init__(self, identifier: object = ""):
        self.identifier = str(identifier)
        super().__init__(f"Course completion not found: {identifier}")


# ---------------------------------------------------------------------------
# Conflict
# ---------------------------------------------------------------------------


class ConflictError(DomainError):
    code = "conflict"


class AlreadyEnrolledError(ConflictError):
    """User is already enrolled in this course."""

    code = "already_enrolled"


class PrerequisiteAlreadyExistsError(ConflictError):
    """This prerequisite edge already exists."""

    code = "prerequisite_already_exists"


# ---------------------------------------------------------------------------
# Prerequisites not met
# ---------------------------------------------------------------------------


class PrerequisitesNotMetError(DomainError):
    code = "prerequisites_not_met"

    def __init__(self, missing: list[UUID]):
        self.missing = list(missing)
        ids = ", ".join(str(m) for m in self.missing)
        super().__init__(f"Prerequisite courses not completed: {ids}")


# ---------------------------------------------------------------------------
# InvalidOperation
# ---------------------------------------------------------------------------


class InvalidOperationError(DomainError):
    code = "invalid_operation"


class SelfPrerequisiteError(InvalidOperationError):
    """A course cannot require itself."""

    code = "self_prerequisite"


class PrerequisiteCycleError(InvalidOperationError):
    """Raised when a new edge would make a course (transitively) require itself."""

    code = "prerequisite_cycle"

    def __init__(self, course_id: UUID, required_course_id: UUID):
        self.course_id = course_id
        self.required_course_id = required_course_id
        super().__init__(
            f"Course {required_course_id} already depends on course {course_id}"
        )


class CourseNotPublishedError(InvalidOperationError):
    """Course is not open for enrollment."""

    code = "course_not_published"


class NotEnrolledError(InvalidOperationError):
    """User is not enrolled in the lesson's course."""

    code = "not_enrolled"


class CourseNotCompletedError(InvalidOperationError):
    """User has not completed this course."""

    code = "course_not_completed"


class InvalidStatusTransitionError(InvalidOperationError):
    code = "invalid_status_transition"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition from {current} to {target}")


class InvalidLessonOrderError(InvalidOperationError):
    code = "invalid_lesson_order"


class NotCourseOwnerError(InvalidOperationError):
    """Only the course instructor or an admin may modify this course."""

    code = "not_course_owner"


# ---------------------------------------------------------------------------
# InvalidFormat
# ---------------------------------------------------------------------------


class InvalidFormatError(DomainError):
    code = "invalid_format"


class InvalidCertificateCodeError(InvalidFormatError):
    code = "invalid_certificate_code"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Not a certificate code: {value!r}")


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------


class ServiceUnavailableError(DomainError):
    """Storage is unreachable or did not answer in time."""

    code = "service_unavailable"


class CertificateCodeExhaustedError(ServiceUnavailableError):
    code = "certificate_code_exhausted"

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not allocate a unique certificate code in {attempts} attempts")


class InternalError(DomainError):
    """Unexpected storage failure."""

    code = "internal_error"

    def __init__(self, cause: BaseException | None = None):
        self.cause = cause
        super().__init__()
