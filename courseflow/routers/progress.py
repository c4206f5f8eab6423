"""Progress routes: lesson completion and homework submission."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from courseflow.core.auth import get_current_user
from courseflow.core.errors import parse_uuid
from courseflow.dependencies import get_cache, get_db
from courseflow.models.user import User
from courseflow.schemas.progress import (
    HomeworkSubmissionRead,
    HomeworkSubmitRequest,
    LessonCompletionRequest,
    LessonProgressRead,
)
from courseflow.services import progress_service
from courseflow.services.cache import TTLCache

router = APIRouter(tags=["progress"])


@router.post("/progress/lesson", response_model=LessonProgressRead)
async def mark_lesson(
    body: LessonCompletionRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: User = Depends(get_current_user),
):
    """Mark a lesson complete, or incomplete with ``completed: false``."""
    ip = request.client.host if request.client else None
    lid = parse_uuid(body.lesson_id, "lesson_id")
    progress = await progress_service.set_lesson_completion(
        db,
        cache,
        user_id=current_user.id,
        lesson_id=lid,
        completed=body.completed,
        ip_address=ip,
    )
    return LessonProgressRead.model_validate(progress)


@router.post("/homework", response_model=HomeworkSubmissionRead, status_code=201)
async def submit_homework(
    body: HomeworkSubmitRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: User = Depends(get_current_user),
):
    """Submit (or resubmit) homework for a module."""
    ip = request.client.host if request.client else None
    mid = parse_uuid(body.module_id, "module_id")
    submission = await progress_service.submit_homework(
        db,
        cache,
        user_id=current_user.id,
        module_id=mid,
        content=body.content,
        ip_address=ip,
    )
    return HomeworkSubmissionRead.model_validate(submission)


@router.get("/homework", response_model=list[HomeworkSubmissionRead])
async def list_homework(
    module_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """The current user's submissions for a module, newest first."""
    mid = parse_uuid(module_id, "module_id")
    submissions = await progress_service.list_module_submissions(
        db, user_id=current_user.id, module_id=mid
    )
    return [HomeworkSubmissionRead.model_validate(s) for s in submissions]
