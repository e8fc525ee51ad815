from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rintrack.api import deps
from rintrack.core.errors import Forbidden, NotFound
from rintrack.core.roles import STAFF, Role
from rintrack.core.security import VerifiedSubject
from rintrack.models import User
from rintrack.schemas.auth import RoleOut
from rintrack.schemas.common import page_count
from rintrack.schemas.users import (
    ProfileUpdate,
    RoleUpdate,
    SuspendRequest,
    UserOut,
    UserPage,
)
from rintrack.services import users as users_service
from rintrack.services.authz import authorize

router = APIRouter(tags=["users"])


@router.post("/user", response_model=UserOut)
async def save_user(
    payload: ProfileUpdate,
    subject: VerifiedSubject = Depends(deps.get_verified_subject),
    db: AsyncSession = Depends(deps.get_db_session),
) -> UserOut:
    """Create or refresh the caller's own identity record."""
    user = await users_service.sync_profile(
        db, subject.email, name=payload.name, image=payload.image
    )
    return UserOut.model_validate(user)


@router.get("/user/role", response_model=RoleOut)
async def read_own_role(
    subject: VerifiedSubject = Depends(deps.get_verified_subject),
    db: AsyncSession = Depends(deps.get_db_session),
) -> RoleOut:
    user = await users_service.get_by_email(db, subject.email)
    if user is None:
        return RoleOut()
    return RoleOut(role=user.role, status=user.status)


@router.get("/users", response_model=UserPage)
async def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=5, ge=1, le=100),
    search: str = Query(default="", max_length=100),
    role: Optional[Role] = Query(default=None),
    admin: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db_session),
) -> UserPage:
    users, total = await users_service.list_users(
        db, exclude_email=admin.email, search=search, role=role, page=page, limit=limit
    )
    return UserPage(
        users=[UserOut.model_validate(user) for user in users],
        total_count=total,
        total_pages=page_count(total, limit),
        current_page=page,
    )


@router.patch("/users", response_model=UserOut)
async def change_role(
    payload: RoleUpdate,
    admin: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db_session),
) -> UserOut:
    user = await users_service.update_role(db, payload.email, payload.role, actor=admin.email)
    if user is None:
        raise NotFound("User not found")
    return UserOut.model_validate(user)


@router.patch("/users/suspend/{user_id}", response_model=UserOut)
async def suspend_user(
    user_id: UUID,
    payload: SuspendRequest,
    admin: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db_session),
) -> UserOut:
    user = await users_service.suspend(
        db, user_id, reason=payload.reason, feedback=payload.feedback, actor=admin.email
    )
    if user is None:
        raise NotFound("User not found")
    return UserOut.model_validate(user)


@router.get("/users/{email}", response_model=UserOut)
async def read_user(
    email: str,
    subject: VerifiedSubject = Depends(deps.get_verified_subject),
    db: AsyncSession = Depends(deps.get_db_session),
) -> UserOut:
    target = users_service.normalize_email(email)
    if target != subject.email:
        caller = await users_service.get_by_email(db, subject.email)
        # Same answer whether or not the target exists.
        if not authorize(STAFF, caller).allowed:
            raise Forbidden("Forbidden access")
    user = await users_service.get_by_email(db, target)
    if user is None:
        raise NotFound("User not found")
    return UserOut.model_validate(user)


@router.patch("/users/{email}", response_model=UserOut)
async def update_own_profile(
    email: str,
    payload: ProfileUpdate,
    subject: VerifiedSubject = Depends(deps.get_verified_subject),
    db: AsyncSession = Depends(deps.get_db_session),
) -> UserOut:
    if users_service.normalize_email(email) != subject.email:
        raise Forbidden("Forbidden access")
    user = await users_service.update_profile(
        db, subject.email, name=payload.name, image=payload.image
    )
    if user is None:
        raise NotFound("User not found")
    return UserOut.model_validate(user)
