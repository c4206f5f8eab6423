"""Test data builders shared by service and router tests."""

from sqlalchemy.ext.asyncio import AsyncSession

from courseflow.core.auth import hash_password
from courseflow.models.course import Course, Lesson, Module
from courseflow.models.progress import HomeworkSubmission, LessonProgress
from courseflow.models.user import User, UserRole


async def create_user(
    db: AsyncSession,
    email: str = "learner@test.com",
    *,
    role: UserRole = UserRole.student,
    full_name: str | None = None,
    password: str | None = None,
) -> User:
    user = User(
        email=email,
        password_hash=hash_password(password) if password else "x",
        role=role,
        full_name=full_name,
    )
    db.add(user)
    await db.flush()
    return user


async def create_course(
    db: AsyncSession,
    layout: dict[str, list[str]],
    *,
    title: str = "Test Course",
    completion_message: str | None = None,
) -> tuple[Course, dict[str, Module], dict[str, Lesson]]:
    """Build a course from {"A": ["A1", "A2"], "B": ["B1"]}.

    Modules and lessons get orders 10, 20, ... in layout order so that
    non-contiguous ordering is always exercised.
    """
    course = Course(title=title, completion_message=completion_message)
    db.add(course)
    await db.flush()

    modules: dict[str, Module] = {}
    lessons: dict[str, Lesson] = {}
    for m_pos, (module_name, lesson_names) in enumerate(layout.items(), start=1):
        module = Module(course_id=course.id, title=module_name, order=m_pos * 10)
        db.add(module)
        await db.flush()
        modules[module_name] = module
        for l_pos, lesson_name in enumerate(lesson_names, start=1):
            lesson = Lesson(module_id=module.id, title=lesson_name, order=l_pos * 10)
            db.add(lesson)
            lessons[lesson_name] = lesson
    await db.flush()
    return course, modules, lessons


async def complete_lessons(db: AsyncSession, user: User, *lessons: Lesson) -> None:
    for lesson in lessons:
        db.add(LessonProgress(user_id=user.id, lesson_id=lesson.id, completed=True))
    await db.flush()


async def submit_for(db: AsyncSession, user: User, lesson: Lesson, text: str = "done") -> HomeworkSubmission:
    submission = HomeworkSubmission(user_id=user.id, lesson_id=lesson.id, submission_text=text)
    db.add(submission)
    await db.flush()
    return submission


async def login_headers(client, email: str, password: str) -> dict[str, str]:
    resp = await client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"X-Session-Token": resp.json()["token"]}


async def learner_headers(
    client,
    email: str = "learner@test.com",
    password: str = "Pass1234!",
    full_name: str | None = None,
) -> dict[str, str]:
    """Register through the API and return session headers."""
    resp = await client.post(
        "/auth/register",
        json={"email": email, "password": password, "full_name": full_name},
    )
    assert resp.status_code == 201, resp.text
    return await login_headers(client, email, password)


async def admin_headers(
    client,
    db: AsyncSession,
    email: str = "admin@test.com",
    password: str = "AdminPass1!",
) -> dict[str, str]:
    await create_user(db, email, role=UserRole.admin, password=password)
    return await login_headers(client, email, password)
