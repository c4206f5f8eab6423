import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from courseflow.models.user import UserRole, UserStatus


class UserCreate(BaseModel):
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str | None = Field(None, max_length=255)


class UserLogin(BaseModel):
    email: str = Field(..., max_length=255)
    password: str = Field(..., max_length=128)


class UserRead(BaseModel):
    id: uuid.UUID
    email: str
    full_name: str | None = None
    role: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    full_name: str = Field(..., max_length=255)


class UserAdminUpdate(BaseModel):
    full_name: str | None = Field(None, max_length=255)
    role: UserRole | None = None
    status: UserStatus | None = None
