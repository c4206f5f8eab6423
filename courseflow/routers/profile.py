"""Profile routes: read and rename the signed-in account."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from courseflow.core.auth import get_current_user
from courseflow.dependencies import get_cache, get_db
from courseflow.models.user import User
from courseflow.schemas.user import ProfileUpdate, UserRead
from courseflow.services import user_service
from courseflow.services.cache import TTLCache

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=UserRead)
async def get_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("", response_model=UserRead)
async def update_profile(
    body: ProfileUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: User = Depends(get_current_user),
):
    ip = request.client.host if request.client else None
    return await user_service.update_profile(
        db, cache, user=current_user, full_name=body.full_name, ip_address=ip
    )
