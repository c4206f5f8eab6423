# Import all models so Base.metadata is populated for create_all / Alembic.
from courseflow.models.user import User  # noqa: F401
from courseflow.models.session import Session  # noqa: F401
from courseflow.models.audit import AuditLogEvent  # noqa: F401
from courseflow.models.course import Course, Lesson, Module  # noqa: F401
from courseflow.models.progress import (  # noqa: F401
    HomeworkSubmission,
    LessonProgress,
    SubmissionStatus,
)
from courseflow.models.certificate import Certificate  # noqa: F401
