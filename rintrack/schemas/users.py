from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import EmailStr, Field

from rintrack.core.roles import IdentityStatus, Role
from rintrack.schemas.common import CamelModel


class UserOut(CamelModel):
    id: UUID
    email: EmailStr
    name: Optional[str] = None
    image: Optional[str] = None
    role: Role
    status: IdentityStatus
    suspend_reason: Optional[str] = None
    suspend_feedback: Optional[str] = None
    suspended_at: Optional[datetime] = None
    last_logged_in_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class UserPage(CamelModel):
    users: list[UserOut]
    total_count: int
    total_pages: int
    current_page: int


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(default=None, max_length=255)
    image: Optional[str] = Field(default=None, max_length=1024)


class RoleUpdate(CamelModel):
    email: EmailStr
    role: Role


class SuspendRequest(CamelModel):
    reason: str = Field(min_length=1, max_length=255)
    feedback: Optional[str] = None
