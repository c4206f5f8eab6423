import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, event, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from courseflow.models.base import Base, generate_uuid, utcnow


class AuditLogEvent(Base):
    """Append-only record of learner, admin and auth writes.

    ``course_id`` is set for course-scoped events (lesson progress, homework,
    certificates) so a course's history can be read without joins.
    """

    __tablename__ = "audit_log_events"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    course_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("courses.id"), nullable=True, index=True
    )
    event_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    detail: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )


@event.listens_for(AuditLogEvent, "before_update")
@event.listens_for(AuditLogEvent, "before_delete")
def _reject_audit_change(mapper, connection, target):
    raise RuntimeError("Audit log events are append-only")
