"""Admin routes: homework review, progress overview, users, demo seed."""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from courseflow.core.auth import require_admin
from courseflow.core.errors import parse_uuid
from courseflow.dependencies import get_cache, get_db
from courseflow.models.progress import SubmissionStatus
from courseflow.models.user import User, UserRole
from courseflow.schemas.progress import (
    HomeworkReviewRequest,
    HomeworkSubmissionRead,
    LearnerProgressRead,
)
from courseflow.schemas.user import UserAdminUpdate, UserRead
from courseflow.services import progress_service, user_service
from courseflow.services.cache import TTLCache, invalidate_progress_on_commit
from courseflow.services.course_seed import seed_course

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/homework", response_model=list[HomeworkSubmissionRead])
async def list_homework(
    status: SubmissionStatus | None = None,
    limit: int = 100,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    submissions = await progress_service.list_submissions(
        db, status=status, limit=min(limit, 500), offset=offset
    )
    return [HomeworkSubmissionRead.model_validate(s) for s in submissions]


@router.patch("/homework/{submission_id}", response_model=HomeworkSubmissionRead)
async def review_homework(
    submission_id: str,
    body: HomeworkReviewRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    ip = request.client.host if request.client else None
    submission = await progress_service.review_submission(
        db,
        reviewer_id=admin.id,
        submission_id=parse_uuid(submission_id, "submission_id"),
        status=body.status,
        feedback=body.feedback,
        ip_address=ip,
    )
    return HomeworkSubmissionRead.model_validate(submission)


@router.get("/progress", response_model=list[LearnerProgressRead])
async def progress_overview(
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    admin: User = Depends(require_admin),
):
    overview = await progress_service.get_progress_overview(db, cache)
    if overview is None:
        raise HTTPException(status_code=404, detail="No course configured")
    return [LearnerProgressRead.model_validate(row) for row in overview]


@router.get("/users", response_model=list[UserRead])
async def list_users(
    role: UserRole | None = None,
    limit: int = 100,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return await user_service.list_users(db, role=role, limit=min(limit, 500), offset=offset)


@router.get("/users/{user_id}", response_model=UserRead)
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return await user_service.get_user(db, user_id=parse_uuid(user_id, "user_id"))


@router.patch("/users/{user_id}", response_model=UserRead)
async def update_user(
    user_id: str,
    body: UserAdminUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    admin: User = Depends(require_admin),
):
    ip = request.client.host if request.client else None
    return await user_service.update_user(
        db,
        cache,
        actor_id=admin.id,
        user_id=parse_uuid(user_id, "user_id"),
        full_name=body.full_name,
        role=body.role,
        status=body.status,
        ip_address=ip,
    )


@router.post("/seed")
async def seed_demo_course(
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    admin: User = Depends(require_admin),
):
    """Create the demo course if it is missing. Safe to call repeatedly."""
    course = await seed_course(db)
    invalidate_progress_on_commit(db, cache)
    return {"course_id": str(course.id), "title": course.title}
