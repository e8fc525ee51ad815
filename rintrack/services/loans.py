from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rintrack.models.loan import Loan
from rintrack.schemas.loan import LoanCreate, LoanSort, LoanUpdate

HOME_PAGE_LIMIT = 6

SORT_OPTIONS = {
    LoanSort.NEWEST: Loan.created_at.desc(),
    LoanSort.OLDEST: Loan.created_at.asc(),
    LoanSort.PRICE_HIGH: Loan.max_loan_limit.desc(),
    LoanSort.PRICE_LOW: Loan.max_loan_limit.asc(),
}


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_loan_filters(search: str = "", category: str = "") -> list:
    filters = []
    if search:
        filters.append(Loan.title.ilike(f"%{escape_like(search)}%", escape="\\"))
    if category:
        filters.append(Loan.category == category)
    return filters


async def list_loans(
    db: AsyncSession,
    *,
    search: str = "",
    category: str = "",
    sort: LoanSort = LoanSort.NEWEST,
    page: int = 1,
    limit: int = 8,
) -> tuple[list[Loan], int]:
    filters = build_loan_filters(search, category)
    count_stmt = select(func.count()).select_from(Loan).where(*filters)
    total = (await db.execute(count_stmt)).scalar_one()

    stmt = (
        select(Loan)
        .where(*filters)
        .order_by(SORT_OPTIONS[sort])
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all()), int(total)


async def list_home_loans(db: AsyncSession) -> list[Loan]:
    stmt = (
        select(Loan)
        .where(Loan.show_on_home.is_(True))
        .order_by(Loan.created_at.desc())
        .limit(HOME_PAGE_LIMIT)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_categories(db: AsyncSession) -> list[str]:
    stmt = (
        select(Loan.category)
        .where(Loan.category.is_not(None), Loan.category != "")
        .group_by(Loan.category)
        .order_by(Loan.category)
    )
    result = await db.execute(stmt)
    return [row[0] for row in result.all()]


async def get_loan(db: AsyncSession, loan_id: UUID) -> Optional[Loan]:
    return await db.get(Loan, loan_id)


async def create_loan(db: AsyncSession, payload: LoanCreate, *, created_by: str) -> Loan:
    loan = Loan(**payload.model_dump(), created_by=created_by)
    db.add(loan)
    await db.commit()
    await db.refresh(loan)
    return loan


async def update_loan(db: AsyncSession, loan_id: UUID, payload: LoanUpdate) -> Optional[Loan]:
    loan = await get_loan(db, loan_id)
    if loan is None:
        return None
    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(loan, field, value)
    db.add(loan)
    await db.commit()
    await db.refresh(loan)
    return loan


async def delete_loan(db: AsyncSession, loan_id: UUID) -> bool:
    loan = await get_loan(db, loan_id)
    if loan is None:
        return False
    await db.delete(loan)
    await db.commit()
    return True
