from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from courseflow.models.progress import SubmissionStatus


class LessonCompletionRequest(BaseModel):
    lesson_id: str
    completed: bool = True


class LessonProgressRead(BaseModel):
    id: UUID
    user_id: UUID
    lesson_id: UUID
    completed: bool
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class HomeworkSubmitRequest(BaseModel):
    module_id: str
    content: str = Field(..., max_length=100_000)


class HomeworkSubmissionRead(BaseModel):
    id: UUID
    user_id: UUID
    lesson_id: UUID
    submission_text: str
    status: SubmissionStatus
    feedback: str | None = None
    submitted_at: datetime

    model_config = {"from_attributes": True}


class HomeworkReviewRequest(BaseModel):
    status: SubmissionStatus | None = None
    feedback: str | None = None


class LearnerProgressRead(BaseModel):
    user_id: UUID
    email: str
    full_name: str | None = None
    completed_lessons: int
    total_lessons: int
    modules_with_homework: int
    total_modules: int
