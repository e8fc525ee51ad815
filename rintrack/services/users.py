from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from rintrack.core.logging import audit
from rintrack.core.roles import DEFAULT_ROLE, IdentityStatus, Role
from rintrack.models.user import User
from rintrack.services.loans import escape_like


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
    stmt = select(User).where(User.email == normalize_email(email))
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_by_id(db: AsyncSession, user_id: UUID) -> Optional[User]:
    return await db.get(User, user_id)


async def record_login(
    db: AsyncSession,
    email: str,
    *,
    name: Optional[str] = None,
    image: Optional[str] = None,
) -> None:
    """Create the identity on first login, otherwise refresh the login timestamp.

    Role and status are only ever defaulted here, never copied from input.
    """
    now = datetime.now(timezone.utc)
    insert_stmt = insert(User).values(
        email=normalize_email(email),
        name=name,
        image=image,
        role=DEFAULT_ROLE.value,
        status=IdentityStatus.ACTIVE.value,
        last_logged_in_at=now,
    )
    stmt = insert_stmt.on_conflict_do_update(
        index_elements=[User.email],
        set_={"last_logged_in_at": now},
    )
    await db.execute(stmt)
    await db.commit()


async def sync_profile(
    db: AsyncSession,
    email: str,
    *,
    name: Optional[str],
    image: Optional[str],
) -> User:
    """Upsert the caller's own record; concurrent first saves converge on one row.

    Omitted ``name``/``image`` keep the stored values.
    """
    now = datetime.now(timezone.utc)
    insert_stmt = insert(User).values(
        email=normalize_email(email),
        name=name,
        image=image,
        role=DEFAULT_ROLE.value,
        status=IdentityStatus.ACTIVE.value,
        last_logged_in_at=now,
    )
    stmt = (
        insert_stmt.on_conflict_do_update(
            index_elements=[User.email],
            set_={
                "last_logged_in_at": now,
                "name": func.coalesce(insert_stmt.excluded.name, User.name),
                "image": func.coalesce(insert_stmt.excluded.image, User.image),
            },
        )
        .returning(User)
        .execution_options(populate_existing=True)
    )
    user = (await db.execute(stmt)).scalar_one()
    await db.commit()
    return user


async def list_users(
    db: AsyncSession,
    *,
    exclude_email: str,
    search: str = "",
    role: Optional[Role] = None,
    page: int = 1,
    limit: int = 5,
) -> tuple[list[User], int]:
    filters = [User.email != normalize_email(exclude_email)]
    if role is not None:
        filters.append(User.role == role.value)
    if search:
        pattern = f"%{escape_like(search)}%"
        filters.append(
            or_(
                User.name.ilike(pattern, escape="\\"),
                User.email.ilike(pattern, escape="\\"),
            )
        )

    count_stmt = select(func.count()).select_from(User).where(*filters)
    total = (await db.execute(count_stmt)).scalar_one()

    stmt = (
        select(User)
        .where(*filters)
        .order_by(User.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all()), int(total)


async def update_role(db: AsyncSession, email: str, role: Role, *, actor: str) -> Optional[User]:
    user = await get_by_email(db, email)
    if user is None:
        return None
    previous = user.role
    user.role = role.value
    db.add(user)
    await db.commit()
    audit(
        "user.role_changed",
        "Role of %s changed from %s to %s by %s",
        user.email,
        previous,
        role.value,
        actor,
    )
    return user


async def update_profile(
    db: AsyncSession, email: str, *, name: Optional[str], image: Optional[str]
) -> Optional[User]:
    user = await get_by_email(db, email)
    if user is None:
        return None
    if name is not None:
        user.name = name
    if image is not None:
        user.image = image
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def suspend(
    db: AsyncSession,
    user_id: UUID,
    *,
    reason: str,
    feedback: Optional[str],
    actor: str,
) -> Optional[User]:
    user = await get_by_id(db, user_id)
    if user is None:
        return None
    user.status = IdentityStatus.SUSPENDED.value
    user.suspend_reason = reason
    user.suspend_feedback = feedback
    user.suspended_at = datetime.now(timezone.utc)
    db.add(user)
    await db.commit()
    audit("user.suspended", "User %s suspended by %s: %s", user.email, actor, reason)
    return user
