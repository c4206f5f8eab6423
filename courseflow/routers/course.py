"""Course routes: outline with unlock state, lesson content.

Content reads use the cached course structure; completion and homework
facts are read fresh on every request.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from courseflow.core.auth import get_current_user
from courseflow.core.errors import parse_uuid
from courseflow.dependencies import get_cache, get_db
from courseflow.models.user import User
from courseflow.schemas.course import CourseOutlineRead, LessonRead
from courseflow.services import outline_service
from courseflow.services.cache import TTLCache

router = APIRouter(prefix="/course", tags=["course"])


@router.get("", response_model=CourseOutlineRead)
async def get_course(
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: User = Depends(get_current_user),
):
    """Active course outline. Admins see every lesson unlocked."""
    outline = await outline_service.get_course_outline(db, cache, user=current_user)
    return CourseOutlineRead.model_validate(outline)


@router.get("/lessons/{lesson_id}", response_model=LessonRead)
async def get_lesson(
    lesson_id: str,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: User = Depends(get_current_user),
):
    """Lesson content; 403 while the lesson is still locked for the learner."""
    lid = parse_uuid(lesson_id, "lesson_id")
    lesson, completed = await outline_service.get_lesson_for_user(
        db, cache, user=current_user, lesson_id=lid
    )
    read = LessonRead.model_validate(lesson)
    read.completed = completed
    return read
