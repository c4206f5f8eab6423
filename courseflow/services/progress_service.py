"""Progress service: learner facts, lesson completion, homework.

Every write is audit-logged and queues a clear of the ``course:*`` and
``progress:*`` cache namespaces that runs when the transaction commits.
"""

import logging
import uuid
from collections.abc import Collection

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from courseflow.config import settings
from courseflow.core.errors import NotFoundError, ValidationError
from courseflow.models.base import utcnow
from courseflow.models.progress import HomeworkSubmission, LessonProgress, SubmissionStatus
from courseflow.models.user import User, UserRole
from courseflow.services import audit_service, course_service
from courseflow.services.cache import (
    TTLCache,
    invalidate_progress_on_commit,
    progress_overview_key,
)
from courseflow.services.unlock import modules_with_submission

logger = logging.getLogger("courseflow.progress")


# --- learner facts (never cached) ---

async def get_completed_lesson_ids(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    lesson_ids: Collection[uuid.UUID],
) -> set[uuid.UUID]:
    """Completed lessons of the user, restricted to ``lesson_ids``."""
    if not lesson_ids:
        return set()
    result = await db.execute(
        select(LessonProgress.lesson_id).where(
            LessonProgress.user_id == user_id,
            LessonProgress.completed == True,  # noqa: E712
            LessonProgress.lesson_id.in_(list(lesson_ids)),
        )
    )
    return set(result.scalars().all())


async def get_submitted_lesson_ids(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
) -> set[uuid.UUID]:
    """Lessons the user has submitted homework against, in any course."""
    result = await db.execute(
        select(HomeworkSubmission.lesson_id).where(HomeworkSubmission.user_id == user_id)
    )
    return set(result.scalars().all())


async def get_progress_for_lesson(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    lesson_id: uuid.UUID,
) -> LessonProgress | None:
    result = await db.execute(
        select(LessonProgress).where(
            LessonProgress.user_id == user_id,
            LessonProgress.lesson_id == lesson_id,
        )
    )
    return result.scalar_one_or_none()


# --- mutations ---

def _apply_completion(progress: LessonProgress, completed: bool) -> None:
    progress.completed = completed
    progress.completed_at = utcnow() if completed else None


async def set_lesson_completion(
    db: AsyncSession,
    cache: TTLCache,
    *,
    user_id: uuid.UUID,
    lesson_id: uuid.UUID,
    completed: bool = True,
    ip_address: str | None = None,
) -> LessonProgress:
    """Mark a lesson complete (or incomplete) for the user.

    Creates the progress row on first interaction and updates it in place
    afterwards. Raises NotFoundError if the lesson does not exist.
    """
    lesson = await course_service.get_lesson(db, lesson_id=lesson_id)
    module = await course_service.get_module(db, module_id=lesson.module_id)

    progress = await get_progress_for_lesson(db, user_id=user_id, lesson_id=lesson_id)
    if progress is None:
        progress = LessonProgress(user_id=user_id, lesson_id=lesson_id)
        _apply_completion(progress, completed)
        try:
            async with db.begin_nested():
                db.add(progress)
                await db.flush()
        except IntegrityError:
            # A concurrent request created the row first; update that one.
            progress = await get_progress_for_lesson(db, user_id=user_id, lesson_id=lesson_id)
            if progress is None:
                raise
            _apply_completion(progress, completed)
            await db.flush()
    else:
        _apply_completion(progress, completed)
        await db.flush()

    await audit_service.log_event(
        db,
        user_id=user_id,
        event_type="lesson.completed" if completed else "lesson.uncompleted",
        entity_type="LessonProgress",
        entity_id=progress.id,
        course_id=module.course_id,
        action="complete" if completed else "uncomplete",
        detail={"lesson_id": str(lesson_id), "lesson_title": lesson.title},
        ip_address=ip_address,
    )

    invalidate_progress_on_commit(db, cache)
    logger.info("Lesson progress user=%s lesson=%s completed=%s", user_id, lesson_id, completed)
    return progress


async def submit_homework(
    db: AsyncSession,
    cache: TTLCache,
    *,
    user_id: uuid.UUID,
    module_id: uuid.UUID,
    content: str,
    ip_address: str | None = None,
) -> HomeworkSubmission:
    """Submit homework for a module.

    A new submission is recorded against the module's first lesson. If the
    user already has a submission on any lesson of the module, that one is
    updated with the new text instead.
    """
    text = (content or "").strip()
    if not text:
        raise ValidationError("content is required and must be a non-empty string")

    module = await course_service.get_module(db, module_id=module_id)
    lessons = await course_service.get_module_lessons(db, module_id=module_id)
    if not lessons:
        raise NotFoundError("No lessons found in this module")

    result = await db.execute(
        select(HomeworkSubmission)
        .where(
            HomeworkSubmission.user_id == user_id,
            HomeworkSubmission.lesson_id.in_([l.id for l in lessons]),
        )
        .order_by(HomeworkSubmission.submitted_at.desc())
        .limit(1)
    )
    submission = result.scalar_one_or_none()

    if submission is not None:
        submission.submission_text = text
        submission.submitted_at = utcnow()
        action = "resubmit"
    else:
        submission = HomeworkSubmission(
            user_id=user_id,
            lesson_id=lessons[0].id,
            submission_text=text,
            status=SubmissionStatus.SUBMITTED,
            submitted_at=utcnow(),
        )
        db.add(submission)
        action = "submit"
    await db.flush()

    await audit_service.log_event(
        db,
        user_id=user_id,
        event_type="homework.submitted",
        entity_type="HomeworkSubmission",
        entity_id=submission.id,
        course_id=module.course_id,
        action=action,
        detail={"module_id": str(module_id), "lesson_id": str(submission.lesson_id)},
        ip_address=ip_address,
    )

    invalidate_progress_on_commit(db, cache)
    logger.info("Homework %s user=%s module=%s", action, user_id, module_id)
    return submission


async def list_module_submissions(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    module_id: uuid.UUID,
) -> list[HomeworkSubmission]:
    """The user's submissions on any lesson of the module, newest first."""
    await course_service.get_module(db, module_id=module_id)
    lessons = await course_service.get_module_lessons(db, module_id=module_id)
    if not lessons:
        return []
    result = await db.execute(
        select(HomeworkSubmission)
        .where(
            HomeworkSubmission.user_id == user_id,
            HomeworkSubmission.lesson_id.in_([l.id for l in lessons]),
        )
        .order_by(HomeworkSubmission.submitted_at.desc())
    )
    return list(result.scalars().all())


# --- admin ---

async def list_submissions(
    db: AsyncSession,
    *,
    status: SubmissionStatus | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[HomeworkSubmission]:
    stmt = select(HomeworkSubmission).order_by(HomeworkSubmission.submitted_at.desc())
    if status is not None:
        stmt = stmt.where(HomeworkSubmission.status == status)
    result = await db.execute(stmt.offset(offset).limit(limit))
    return list(result.scalars().all())


async def review_submission(
    db: AsyncSession,
    *,
    reviewer_id: uuid.UUID,
    submission_id: uuid.UUID,
    status: SubmissionStatus | None = None,
    feedback: str | None = None,
    ip_address: str | None = None,
) -> HomeworkSubmission:
    """Set review status and/or feedback. Does not affect unlock or eligibility."""
    if status is None and feedback is None:
        raise ValidationError("Provide status or feedback")

    submission = await db.get(HomeworkSubmission, submission_id)
    if submission is None:
        raise NotFoundError("Submission not found")

    if status is not None:
        submission.status = status
    if feedback is not None:
        submission.feedback = feedback
    await db.flush()

    await audit_service.log_event(
        db,
        user_id=reviewer_id,
        event_type="homework.reviewed",
        entity_type="HomeworkSubmission",
        entity_id=submission.id,
        action="review",
        detail={
            "learner_id": str(submission.user_id),
            "status": submission.status.value,
            "feedback_updated": feedback is not None,
        },
        ip_address=ip_address,
    )
    return submission


async def get_progress_overview(
    db: AsyncSession,
    cache: TTLCache,
) -> list[dict] | None:
    """Per-learner progress in the active course, for the admin dashboard.

    Cached under ``progress:overview:<course_id>``. Returns None when no
    course is configured.
    """
    structure = await course_service.get_course_structure(db, cache)
    if structure is None:
        return None

    async def _load() -> list[dict]:
        lesson_ids = list(structure.lesson_ids)
        learners = (
            await db.execute(
                select(User).where(User.role == UserRole.student).order_by(User.email.asc())
            )
        ).scalars().all()

        completed: dict[uuid.UUID, set[uuid.UUID]] = {}
        submitted: dict[uuid.UUID, set[uuid.UUID]] = {}
        if lesson_ids:
            rows = await db.execute(
                select(LessonProgress.user_id, LessonProgress.lesson_id).where(
                    LessonProgress.completed == True,  # noqa: E712
                    LessonProgress.lesson_id.in_(lesson_ids),
                )
            )
            for uid, lid in rows.all():
                completed.setdefault(uid, set()).add(lid)
            rows = await db.execute(
                select(HomeworkSubmission.user_id, HomeworkSubmission.lesson_id).where(
                    HomeworkSubmission.lesson_id.in_(lesson_ids)
                )
            )
            for uid, lid in rows.all():
                submitted.setdefault(uid, set()).add(lid)

        return [
            {
                "user_id": learner.id,
                "email": learner.email,
                "full_name": learner.full_name,
                "completed_lessons": len(completed.get(learner.id, ())),
                "total_lessons": len(lesson_ids),
                "modules_with_homework": len(
                    modules_with_submission(structure.modules, submitted.get(learner.id, set()))
                ),
                "total_modules": len(structure.modules),
            }
            for learner in learners
        ]

    return await cache.get_or_load(
        progress_overview_key(structure.course_id),
        settings.cache_progress_ttl_seconds,
        _load,
    )
