"""Course content reads: active course, ordered structure, single lookups.

Structure reads go through the injected cache; callers that gate an
irreversible decision (eligibility, issuance) use the uncached loaders.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from courseflow.config import settings
from courseflow.core.errors import NotFoundError
from courseflow.models.course import Course, Lesson, Module
from courseflow.services.cache import TTLCache, active_course_key, course_structure_key
from courseflow.services.unlock import CourseStructure, LessonNode, ModuleNode


async def get_active_course(db: AsyncSession) -> Course | None:
    """The engine works on one course: the earliest created."""
    result = await db.execute(
        select(Course).order_by(Course.created_at.asc(), Course.id.asc()).limit(1)
    )
    return result.scalar_one_or_none()


async def load_course_structure(
    db: AsyncSession,
    course_id: uuid.UUID,
) -> CourseStructure | None:
    """Read the course with its modules and lessons, sorted by order."""
    course = await db.get(Course, course_id)
    if course is None:
        return None

    modules = (
        await db.execute(
            select(Module)
            .where(Module.course_id == course_id)
            .order_by(Module.order.asc())
        )
    ).scalars().all()

    lessons_by_module: dict[uuid.UUID, list[LessonNode]] = {m.id: [] for m in modules}
    if modules:
        lessons = (
            await db.execute(
                select(Lesson)
                .where(Lesson.module_id.in_(list(lessons_by_module)))
                .order_by(Lesson.module_id, Lesson.order.asc())
            )
        ).scalars().all()
        for lesson in lessons:
            lessons_by_module[lesson.module_id].append(
                LessonNode(id=lesson.id, title=lesson.title, order=lesson.order)
            )

    return CourseStructure(
        course_id=course.id,
        title=course.title,
        description=course.description,
        completion_message=course.completion_message,
        modules=tuple(
            ModuleNode(
                id=m.id,
                title=m.title,
                order=m.order,
                lessons=tuple(sorted(lessons_by_module[m.id], key=lambda l: l.order)),
                homework_instructions=m.homework_instructions,
            )
            for m in modules
        ),
    )


async def get_course_structure(
    db: AsyncSession,
    cache: TTLCache,
) -> CourseStructure | None:
    """Cached structure of the active course, or None if no course exists."""
    ttl = settings.cache_course_structure_ttl_seconds

    async def _active_course_id() -> uuid.UUID | None:
        course = await get_active_course(db)
        return course.id if course is not None else None

    course_id = await cache.get_or_load(active_course_key(), ttl, _active_course_id)
    if course_id is None:
        return None

    return await cache.get_or_load(
        course_structure_key(course_id),
        ttl,
        lambda: load_course_structure(db, course_id),
    )


async def get_lesson(db: AsyncSession, *, lesson_id: uuid.UUID) -> Lesson:
    lesson = await db.get(Lesson, lesson_id)
    if lesson is None:
        raise NotFoundError("Lesson not found")
    return lesson


async def get_module(db: AsyncSession, *, module_id: uuid.UUID) -> Module:
    module = await db.get(Module, module_id)
    if module is None:
        raise NotFoundError("Module not found")
    return module


async def get_module_lessons(db: AsyncSession, *, module_id: uuid.UUID) -> list[Lesson]:
    result = await db.execute(
        select(Lesson)
        .where(Lesson.module_id == module_id)
        .order_by(Lesson.order.asc())
    )
    return list(result.scalars().all())
