import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from builders import create_course, create_user
from courseflow.services import audit_service


@pytest.mark.asyncio
async def test_log_event_with_course(db_session: AsyncSession):
    user = await create_user(db_session)
    course, _, _ = await create_course(db_session, {"A": ["A1"]})

    event = await audit_service.log_event(
        db_session,
        user_id=user.id,
        event_type="lesson.completed",
        entity_type="LessonProgress",
        entity_id=uuid.uuid4(),
        course_id=course.id,
        action="complete",
        detail={"lesson_title": "A1"},
        ip_address="10.0.0.1",
    )

    assert event.id is not None
    assert event.course_id == course.id
    assert event.timestamp is not None


@pytest.mark.asyncio
async def test_events_filtered_by_type(db_session: AsyncSession):
    user = await create_user(db_session)
    other = await create_user(db_session, "other@test.com")
    for event_type in ("lesson.completed", "homework.submitted", "lesson.completed"):
        await audit_service.log_event(
            db_session,
            user_id=user.id,
            event_type=event_type,
            entity_type="Test",
            entity_id=uuid.uuid4(),
            action="test",
        )
    await audit_service.log_event(
        db_session,
        user_id=other.id,
        event_type="lesson.completed",
        entity_type="Test",
        entity_id=uuid.uuid4(),
        action="test",
    )

    everything = await audit_service.get_events_for_user(db_session, user.id)
    lessons = await audit_service.get_events_for_user(
        db_session, user.id, event_type="lesson.completed"
    )

    assert len(everything) == 3
    assert len(lessons) == 2


@pytest.mark.asyncio
async def test_events_are_append_only(db_session: AsyncSession):
    user = await create_user(db_session)
    event = await audit_service.log_event(
        db_session,
        user_id=user.id,
        event_type="certificate.issued",
        entity_type="Certificate",
        entity_id=uuid.uuid4(),
        action="issue",
    )

    event.action = "tampered"
    with pytest.raises(RuntimeError, match="append-only"):
        await db_session.flush()
