"""Learner-facing course views: outline with unlock state, lesson access.

Structure comes from the cache, learner facts are always read fresh.
Administrators see every lesson unlocked.
"""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from courseflow.core.errors import LessonLockedError, NotFoundError
from courseflow.models.course import Lesson
from courseflow.models.user import User
from courseflow.services import course_service, progress_service
from courseflow.services.cache import TTLCache
from courseflow.services.unlock import (
    CourseStructure,
    compute_unlock_map,
    is_lesson_unlocked,
    modules_with_submission,
)


async def _learner_facts(
    db: AsyncSession,
    structure: CourseStructure,
    user_id: uuid.UUID,
) -> tuple[set[uuid.UUID], set[uuid.UUID]]:
    completed = await progress_service.get_completed_lesson_ids(
        db, user_id=user_id, lesson_ids=structure.lesson_ids
    )
    submitted = await progress_service.get_submitted_lesson_ids(db, user_id=user_id)
    return completed, modules_with_submission(structure.modules, submitted)


async def get_course_outline(
    db: AsyncSession,
    cache: TTLCache,
    *,
    user: User,
) -> dict:
    """Active course with per-lesson completed/unlocked flags.

    Raises NotFoundError when no course is configured.
    """
    structure = await course_service.get_course_structure(db, cache)
    if structure is None:
        raise NotFoundError("No course configured")

    completed, with_homework = await _learner_facts(db, structure, user.id)
    if user.is_admin:
        unlocked = {lid: True for lid in structure.lesson_ids}
    else:
        unlocked = compute_unlock_map(structure.modules, completed, with_homework)

    return {
        "id": structure.course_id,
        "title": structure.title,
        "description": structure.description,
        "completed_lessons": len(completed),
        "total_lessons": len(structure.lesson_ids),
        "modules": [
            {
                "id": module.id,
                "title": module.title,
                "order": module.order,
                "homework_instructions": module.homework_instructions,
                "homework_submitted": module.id in with_homework,
                "lessons": [
                    {
                        "id": lesson.id,
                        "title": lesson.title,
                        "order": lesson.order,
                        "completed": lesson.id in completed,
                        "unlocked": unlocked[lesson.id],
                    }
                    for lesson in module.lessons
                ],
            }
            for module in structure.modules
        ],
    }


async def get_lesson_for_user(
    db: AsyncSession,
    cache: TTLCache,
    *,
    user: User,
    lesson_id: uuid.UUID,
) -> tuple[Lesson, bool]:
    """Return (lesson, completed) if the user may open it.

    Raises NotFoundError for unknown lessons and LessonLockedError when a
    learner has not unlocked it yet.
    """
    lesson = await course_service.get_lesson(db, lesson_id=lesson_id)
    structure = await course_service.get_course_structure(db, cache)
    position = structure.locate(lesson_id) if structure is not None else None
    if structure is not None and position is None:
        # Cached structure may predate the lesson; check storage once.
        structure = await course_service.load_course_structure(db, structure.course_id)
        position = structure.locate(lesson_id) if structure is not None else None

    if structure is None or position is None:
        # Lesson outside the active course: only admins may look at it.
        if not user.is_admin:
            raise NotFoundError("Lesson not found")
        return lesson, False

    completed, with_homework = await _learner_facts(db, structure, user.id)
    if not user.is_admin:
        module_index, lesson_index = position
        if not is_lesson_unlocked(
            module_index, lesson_index, structure.modules, completed, with_homework
        ):
            raise LessonLockedError("Lesson is locked")
    return lesson, lesson_id in completed
