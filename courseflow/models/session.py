import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from courseflow.models.base import Base, TimestampMixin, generate_uuid, utcnow


class Session(TimestampMixin, Base):
    """Server-side login session, looked up by the X-Session-Token header."""

    __tablename__ = "sessions"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked: Mapped[bool] = mapped_column(default=False, nullable=False)

    @classmethod
    def open(cls, user_id: uuid.UUID, token: str, hours: int) -> "Session":
        return cls(user_id=user_id, token=token, expires_at=utcnow() + timedelta(hours=hours))

    def is_expired(self, now: datetime | None = None) -> bool:
        expires_at = self.expires_at
        # SQLite hands back naive datetimes
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at < (now or utcnow())
