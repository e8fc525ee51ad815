from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rintrack.models.loan_application import LoanApplication
from rintrack.schemas.common import ApplicationFeeStatus, LoanApplicationStatus
from rintrack.schemas.loan import LoanApplicationCreate


@dataclass(frozen=True)
class FeePayment:
    """Provenance of an application-fee payment, as reported by the processor."""

    stripe_payment_id: Optional[str]
    payment_email: Optional[str]
    payment_amount: Decimal
    paid_at: datetime


async def get_application(db: AsyncSession, application_id: UUID) -> Optional[LoanApplication]:
    return await db.get(LoanApplication, application_id)


async def create_application(
    db: AsyncSession, payload: LoanApplicationCreate, *, user_email: str
) -> LoanApplication:
    application = LoanApplication(
        **payload.model_dump(),
        user_email=user_email,
        status=LoanApplicationStatus.PENDING.value,
        application_fee_status=ApplicationFeeStatus.UNPAID.value,
    )
    db.add(application)
    await db.commit()
    await db.refresh(application)
    return application


async def list_by_status(
    db: AsyncSession, status: LoanApplicationStatus
) -> list[LoanApplication]:
    stmt = (
        select(LoanApplication)
        .where(LoanApplication.status == status.value)
        .order_by(LoanApplication.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_all(db: AsyncSession) -> list[LoanApplication]:
    stmt = select(LoanApplication).order_by(LoanApplication.created_at.desc())
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_for_user(db: AsyncSession, user_email: str) -> list[LoanApplication]:
    stmt = (
        select(LoanApplication)
        .where(LoanApplication.user_email == user_email)
        .order_by(LoanApplication.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def update_status(
    db: AsyncSession, application_id: UUID, status: LoanApplicationStatus
) -> Optional[LoanApplication]:
    application = await get_application(db, application_id)
    if application is None:
        return None
    entering_approved = (
        status is LoanApplicationStatus.APPROVED
        and application.status != LoanApplicationStatus.APPROVED.value
    )
    application.status = status.value
    if entering_approved:
        application.approved_at = datetime.now(timezone.utc)
    db.add(application)
    await db.commit()
    await db.refresh(application)
    return application


async def delete_own_application(
    db: AsyncSession, application_id: UUID, *, user_email: str
) -> bool:
    application = await get_application(db, application_id)
    if application is None or application.user_email != user_email:
        return False
    await db.delete(application)
    await db.commit()
    return True


def fee_payment_statement(application_id: UUID, payment: FeePayment):
    """Conditional update that only matches applications whose fee is still unpaid."""
    return (
        update(LoanApplication)
        .where(
            LoanApplication.id == application_id,
            LoanApplication.application_fee_status != ApplicationFeeStatus.PAID.value,
        )
        .values(
            application_fee_status=ApplicationFeeStatus.PAID.value,
            stripe_payment_id=payment.stripe_payment_id,
            payment_email=payment.payment_email,
            payment_amount=payment.payment_amount,
            paid_at=payment.paid_at,
        )
        .execution_options(synchronize_session=False)
    )


async def mark_fee_paid(db: AsyncSession, application_id: UUID, payment: FeePayment) -> bool:
    """Settle the fee once. Returns False when nothing changed (unknown or already paid)."""
    result = await db.execute(fee_payment_statement(application_id, payment))
    return (result.rowcount or 0) == 1
