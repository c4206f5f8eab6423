"""User service: profile edits and admin account management."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from courseflow.core.errors import NotFoundError, ValidationError
from courseflow.models.user import User, UserRole, UserStatus
from courseflow.services import audit_service
from courseflow.services.cache import TTLCache, invalidate_progress_on_commit

logger = logging.getLogger("courseflow.users")


def _clean_name(full_name: str) -> str:
    name = full_name.strip()
    if not name:
        raise ValidationError("full_name must be a non-empty string")
    return name


async def list_users(
    db: AsyncSession,
    *,
    role: UserRole | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[User]:
    stmt = select(User).order_by(User.email.asc())
    if role is not None:
        stmt = stmt.where(User.role == role)
    result = await db.execute(stmt.offset(offset).limit(limit))
    return list(result.scalars().all())


async def get_user(db: AsyncSession, *, user_id: uuid.UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def update_profile(
    db: AsyncSession,
    cache: TTLCache,
    *,
    user: User,
    full_name: str,
    ip_address: str | None = None,
) -> User:
    """Change the caller's display name."""
    previous = user.full_name
    user.full_name = _clean_name(full_name)
    await db.flush()

    await audit_service.log_event(
        db,
        user_id=user.id,
        event_type="profile.updated",
        entity_type="User",
        entity_id=user.id,
        action="update",
        detail={"from": previous, "to": user.full_name},
        ip_address=ip_address,
    )
    # Names appear in the admin progress overview.
    invalidate_progress_on_commit(db, cache)
    logger.info("Profile updated user=%s", user.id)
    return user


async def update_user(
    db: AsyncSession,
    cache: TTLCache,
    *,
    actor_id: uuid.UUID,
    user_id: uuid.UUID,
    full_name: str | None = None,
    role: UserRole | None = None,
    status: UserStatus | None = None,
    ip_address: str | None = None,
) -> User:
    """Admin edit of another account's name, role or status.

    Admins cannot demote or suspend their own account.
    """
    if full_name is None and role is None and status is None:
        raise ValidationError("Provide full_name, role or status")

    user = await get_user(db, user_id=user_id)
    if user.id == actor_id and (
        (role is not None and role != UserRole.admin)
        or (status is not None and status != UserStatus.active)
    ):
        raise ValidationError("Administrators cannot demote or suspend themselves")

    changes: dict[str, dict] = {}
    if full_name is not None:
        changes["full_name"] = {"from": user.full_name, "to": _clean_name(full_name)}
        user.full_name = changes["full_name"]["to"]
    if role is not None and role != user.role:
        changes["role"] = {"from": user.role.value, "to": role.value}
        user.role = role
    if status is not None and status != user.status:
        changes["status"] = {"from": user.status.value, "to": status.value}
        user.status = status
    await db.flush()

    await audit_service.log_event(
        db,
        user_id=actor_id,
        event_type="user.updated",
        entity_type="User",
        entity_id=user.id,
        action="update",
        detail=changes,
        ip_address=ip_address,
    )
    # Role changes move users in or out of the learner overview.
    invalidate_progress_on_commit(db, cache)
    logger.info("User updated user=%s by=%s fields=%s", user.id, actor_id, sorted(changes))
    return user
