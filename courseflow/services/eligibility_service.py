"""Certificate eligibility.

A learner is eligible once they have completed every lesson of the active
course AND every module has at least one homework submission on any of its
lessons (the same module rule the unlock evaluator uses).

Results are tagged so that "no course configured yet" can never be mistaken
for a plain ineligible learner. Facts are always read fresh from storage.
"""

import enum
import uuid
from collections.abc import Collection
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from courseflow.services import course_service, progress_service
from courseflow.services.unlock import CourseStructure, modules_with_submission


class IneligibilityReason(str, enum.Enum):
    lessons_incomplete = "lessons_incomplete"
    homework_missing = "homework_missing"


@dataclass(frozen=True)
class EligibilityCounts:
    missing_lessons: int = 0
    missing_modules: int = 0
    total_lessons: int = 0
    total_modules: int = 0


@dataclass(frozen=True)
class Eligible:
    counts: EligibilityCounts

    @property
    def eligible(self) -> bool:
        return True


@dataclass(frozen=True)
class NotEligible:
    reason: IneligibilityReason
    counts: EligibilityCounts

    @property
    def eligible(self) -> bool:
        return False


@dataclass(frozen=True)
class CourseNotConfigured:
    counts: EligibilityCounts = field(default_factory=EligibilityCounts)

    @property
    def eligible(self) -> bool:
        return False


EligibilityResult = Eligible | NotEligible | CourseNotConfigured


def evaluate_eligibility(
    structure: CourseStructure | None,
    completed_lesson_ids: Collection[uuid.UUID],
    submitted_lesson_ids: Collection[uuid.UUID] = (),
) -> EligibilityResult:
    """Decide eligibility from already-loaded facts.

    The lessons gate is checked first; while lessons are missing the module
    shortfall is reported as the total module count.
    """
    if structure is None:
        return CourseNotConfigured()

    course_lessons = structure.lesson_ids
    total_lessons = len(course_lessons)
    total_modules = len(structure.modules)
    missing_lessons = total_lessons - len(course_lessons & set(completed_lesson_ids))

    if missing_lessons > 0:
        return NotEligible(
            reason=IneligibilityReason.lessons_incomplete,
            counts=EligibilityCounts(
                missing_lessons=missing_lessons,
                missing_modules=total_modules,
                total_lessons=total_lessons,
                total_modules=total_modules,
            ),
        )

    submitted = course_lessons & set(submitted_lesson_ids)
    missing_modules = total_modules - len(modules_with_submission(structure.modules, submitted))
    counts = EligibilityCounts(
        missing_lessons=0,
        missing_modules=missing_modules,
        total_lessons=total_lessons,
        total_modules=total_modules,
    )
    if missing_modules > 0:
        return NotEligible(reason=IneligibilityReason.homework_missing, counts=counts)
    return Eligible(counts=counts)


async def check_eligibility(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
) -> EligibilityResult:
    """Load the learner's facts for the active course and evaluate them."""
    course = await course_service.get_active_course(db)
    if course is None:
        return CourseNotConfigured()

    structure = await course_service.load_course_structure(db, course.id)
    completed = await progress_service.get_completed_lesson_ids(
        db, user_id=user_id, lesson_ids=structure.lesson_ids
    )
    result = evaluate_eligibility(structure, completed)
    if isinstance(result, NotEligible) and result.reason == IneligibilityReason.lessons_incomplete:
        return result

    submitted = await progress_service.get_submitted_lesson_ids(db, user_id=user_id)
    return evaluate_eligibility(structure, completed, submitted)
