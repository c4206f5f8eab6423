from uuid import UUID

from pydantic import BaseModel


class LessonOutline(BaseModel):
    id: UUID
    title: str
    order: int
    completed: bool
    unlocked: bool


class ModuleOutline(BaseModel):
    id: UUID
    title: str
    order: int
    homework_instructions: str | None = None
    homework_submitted: bool
    lessons: list[LessonOutline]


class CourseOutlineRead(BaseModel):
    id: UUID
    title: str
    description: str | None = None
    completed_lessons: int
    total_lessons: int
    modules: list[ModuleOutline]


class LessonRead(BaseModel):
    id: UUID
    module_id: UUID
    title: str
    description: str | None = None
    content: str | None = None
    order: int
    completed: bool = False

    model_config = {"from_attributes": True}
