"""Seed data: a demo course with three modules for local setups and tests."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from courseflow.models.course import Course, Lesson, Module

COURSE = {
    "title": "Foundations of Personal Productivity",
    "description": "A short self-paced course on planning, focus and review habits.",
    "completion_message": "Congratulations on finishing the course. Keep the habits going!",
    "modules": [
        {
            "title": "Planning",
            "order": 1,
            "homework_instructions": "Write down your top three goals for next week.",
            "lessons": [
                {"title": "Why plans fail", "order": 1},
                {"title": "Weekly planning", "order": 2},
            ],
        },
        {
            "title": "Focus",
            "order": 2,
            "homework_instructions": "Run two 25-minute focus blocks and describe how they went.",
            "lessons": [
                {"title": "Deep work blocks", "order": 1},
                {"title": "Handling interruptions", "order": 2},
            ],
        },
        {
            "title": "Review",
            "order": 3,
            "homework_instructions": "Share your first weekly review.",
            "lessons": [
                {"title": "The weekly review", "order": 1},
            ],
        },
    ],
}


async def seed_course(db: AsyncSession) -> Course:
    """Create the demo course unless a course with the same title exists.

    Returns the (existing or new) course.
    """
    result = await db.execute(select(Course).where(Course.title == COURSE["title"]))
    existing = result.scalar_one_or_none()
    if existing is not None:
        return existing

    course = Course(
        title=COURSE["title"],
        description=COURSE["description"],
        completion_message=COURSE["completion_message"],
    )
    db.add(course)
    await db.flush()

    for module_data in COURSE["modules"]:
        module = Module(
            course_id=course.id,
            title=module_data["title"],
            order=module_data["order"],
            homework_instructions=module_data["homework_instructions"],
        )
        db.add(module)
        await db.flush()
        for lesson_data in module_data["lessons"]:
            db.add(
                Lesson(
                    module_id=module.id,
                    title=lesson_data["title"],
                    description=f"{module_data['title']}: {lesson_data['title']}",
                    order=lesson_data["order"],
                )
            )

    await db.flush()
    return course
