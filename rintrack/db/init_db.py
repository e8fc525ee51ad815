import asyncio
import logging

from sqlalchemy import select

from rintrack.core.roles import IdentityStatus, Role
from rintrack.core.settings import settings
from rintrack.db.session import AsyncSessionLocal
from rintrack.models.user import User
from rintrack.services.users import normalize_email

logger = logging.getLogger(__name__)


async def init_db() -> None:
    """Ensure the configured bootstrap account exists and holds the admin role.

    Roles are never accepted from clients, so the first admin has to come from
    configuration. Does nothing when SEED_ADMIN_EMAIL is unset.
    """
    if not settings.seed_admin_email:
        return

    email = normalize_email(settings.seed_admin_email)
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if user is None:
            session.add(
                User(email=email, role=Role.ADMIN.value, status=IdentityStatus.ACTIVE.value)
            )
            logger.info("Seeded admin account %s", email)
        elif user.role != Role.ADMIN.value:
            user.role = Role.ADMIN.value
            logger.info("Promoted seeded account %s to admin", email)
        else:
            return
        await session.commit()


if __name__ == "__main__":
    asyncio.run(init_db())
