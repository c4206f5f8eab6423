"""Lesson unlock rules.

Pure functions over an ordered course structure and a learner's facts; no
storage access happens here, so the rules can be checked exhaustively in
tests. Administrators never go through these rules.

Rules, first match wins:
1. The first lesson of the first module is always unlocked.
2. A later lesson in a module is unlocked iff the lesson just before it in
   the same module is completed.
3. The first lesson of a later module is unlocked iff every lesson of the
   previous module is completed AND the previous module has homework.
4. Everything else is locked.
"""

import uuid
from collections.abc import Collection, Iterable
from dataclasses import dataclass, field


@dataclass(frozen=True)
class LessonNode:
    id: uuid.UUID
    title: str
    order: int


@dataclass(frozen=True)
class ModuleNode:
    id: uuid.UUID
    title: str
    order: int
    lessons: tuple[LessonNode, ...] = ()
    homework_instructions: str | None = None

    @property
    def lesson_ids(self) -> frozenset[uuid.UUID]:
        return frozenset(lesson.id for lesson in self.lessons)


@dataclass(frozen=True)
class CourseStructure:
    """Snapshot of a course's modules and lessons, both sorted by order.

    Safe to cache: holds no ORM state.
    """

    course_id: uuid.UUID
    title: str
    description: str | None = None
    completion_message: str | None = None
    modules: tuple[ModuleNode, ...] = field(default_factory=tuple)

    @property
    def lesson_ids(self) -> frozenset[uuid.UUID]:
        return frozenset(lid for module in self.modules for lid in module.lesson_ids)

    @property
    def lesson_to_module(self) -> dict[uuid.UUID, uuid.UUID]:
        return {
            lesson.id: module.id
            for module in self.modules
            for lesson in module.lessons
        }

    def locate(self, lesson_id: uuid.UUID) -> tuple[int, int] | None:
        """Return (module_index, lesson_index) of a lesson, or None."""
        for m_idx, module in enumerate(self.modules):
            for l_idx, lesson in enumerate(module.lessons):
                if lesson.id == lesson_id:
                    return m_idx, l_idx
        return None


def module_has_submission(
    module: ModuleNode,
    submitted_lesson_ids: Collection[uuid.UUID],
) -> bool:
    """A module's homework counts as done once any of its lessons has a submission."""
    return any(lesson.id in submitted_lesson_ids for lesson in module.lessons)


def modules_with_submission(
    modules: Iterable[ModuleNode],
    submitted_lesson_ids: Collection[uuid.UUID],
) -> set[uuid.UUID]:
    return {
        module.id
        for module in modules
        if module_has_submission(module, submitted_lesson_ids)
    }


def is_lesson_unlocked(
    module_index: int,
    lesson_index: int,
    modules: list[ModuleNode] | tuple[ModuleNode, ...],
    completed_lesson_ids: Collection[uuid.UUID],
    modules_with_homework: Collection[uuid.UUID],
) -> bool:
    if module_index < 0 or lesson_index < 0 or module_index >= len(modules):
        return False
    if lesson_index >= len(modules[module_index].lessons):
        return False

    if module_index == 0 and lesson_index == 0:
        return True

    if lesson_index > 0:
        previous = modules[module_index].lessons[lesson_index - 1]
        return previous.id in completed_lesson_ids

    previous_module = modules[module_index - 1]
    all_done = all(lesson.id in completed_lesson_ids for lesson in previous_module.lessons)
    return all_done and previous_module.id in modules_with_homework


def compute_unlock_map(
    modules: list[ModuleNode] | tuple[ModuleNode, ...],
    completed_lesson_ids: Collection[uuid.UUID],
    modules_with_homework: Collection[uuid.UUID],
) -> dict[uuid.UUID, bool]:
    """Unlock state for every lesson in the course, keyed by lesson id."""
    return {
        lesson.id: is_lesson_unlocked(
            m_idx, l_idx, modules, completed_lesson_ids, modules_with_homework
        )
        for m_idx, module in enumerate(modules)
        for l_idx, lesson in enumerate(module.lessons)
    }
