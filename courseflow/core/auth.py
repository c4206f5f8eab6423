"""Authentication: register, login, logout, current-user dependencies.

Session-token auth with bcrypt password hashing. Emails are compared
case-insensitively. Addresses listed in ``settings.admin_emails`` register
as administrators; everyone else starts as a student and can be promoted
through the admin user routes.
"""

import secrets
import uuid

import bcrypt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from courseflow.config import settings
from courseflow.dependencies import get_db
from courseflow.models.session import Session
from courseflow.models.user import User, UserRole, UserStatus
from courseflow.services import audit_service

SESSION_TOKEN_HEADER = "X-Session-Token"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def normalize_email(email: str) -> str:
    return email.strip().lower()


def role_for_new_user(email: str) -> UserRole:
    if normalize_email(email) in settings.admin_email_set:
        return UserRole.admin
    return UserRole.student


async def _user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def _record(
    db: AsyncSession,
    user_id: uuid.UUID,
    action: str,
    entity: User | Session,
    *,
    ip_address: str | None,
    detail: dict | None = None,
) -> None:
    await audit_service.log_event(
        db,
        user_id=user_id,
        event_type=f"auth.{action}",
        entity_type=type(entity).__name__,
        entity_id=entity.id,
        action=action,
        detail=detail,
        ip_address=ip_address,
    )


async def register_user(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    full_name: str | None = None,
    role: UserRole | None = None,
    ip_address: str | None = None,
) -> User:
    """Create an active account. 409 if the email is taken.

    Without an explicit ``role`` the role comes from ``role_for_new_user``.
    """
    if await _user_by_email(db, email) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = User(
        email=normalize_email(email),
        password_hash=hash_password(password),
        full_name=(full_name or "").strip() or None,
        role=role or role_for_new_user(email),
        status=UserStatus.active,
    )
    db.add(user)
    await db.flush()

    await _record(
        db, user.id, "register", user,
        ip_address=ip_address, detail={"email": user.email, "role": user.role.value},
    )
    return user


async def login_user(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    ip_address: str | None = None,
) -> tuple[User, str]:
    """Check credentials and open a session. Returns (user, token)."""
    user = await _user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if user.status != UserStatus.active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is not active")

    session = Session.open(user.id, secrets.token_hex(32), settings.session_duration_hours)
    db.add(session)
    await db.flush()

    await _record(db, user.id, "login", session, ip_address=ip_address)
    return user, session.token


async def logout_user(
    db: AsyncSession,
    *,
    token: str,
    ip_address: str | None = None,
) -> None:
    """Revoke a session token. Unknown tokens are ignored."""
    result = await db.execute(select(Session).where(Session.token == token))
    session = result.scalar_one_or_none()
    if session is None or session.revoked:
        return

    session.revoked = True
    await db.flush()
    await _record(db, session.user_id, "logout", session, ip_address=ip_address)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """FastAPI dependency: resolve the session token to an active user (401 otherwise)."""
    token = request.headers.get(SESSION_TOKEN_HEADER)
    if not token:
        raise _unauthorized("Authentication required")

    session = (
        await db.execute(select(Session).where(Session.token == token))
    ).scalar_one_or_none()
    if session is None or session.revoked:
        raise _unauthorized("Invalid or revoked session")
    if session.is_expired():
        raise _unauthorized("Session expired")

    user = await db.get(User, session.user_id)
    if user is None or user.status != UserStatus.active:
        raise _unauthorized("User not found or inactive")

    request.state.user_id = str(user.id)
    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """FastAPI dependency: the current user, who must be an administrator."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required",
        )
    return current_user
