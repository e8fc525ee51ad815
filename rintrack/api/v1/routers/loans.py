from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rintrack.api import deps
from rintrack.core.errors import NotFound
from rintrack.models import User
from rintrack.schemas.common import SuccessResponse, page_count
from rintrack.schemas.loan import LoanCreate, LoanOut, LoanPage, LoanSort, LoanUpdate
from rintrack.services import loans as loans_service

router = APIRouter(tags=["loans"])


@router.post("/loans", response_model=LoanOut, status_code=201)
async def create_loan(
    payload: LoanCreate,
    manager: User = Depends(deps.require_manager),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanOut:
    loan = await loans_service.create_loan(db, payload, created_by=manager.email)
    return LoanOut.model_validate(loan)


@router.get("/loans-home", response_model=list[LoanOut])
async def list_home_loans(db: AsyncSession = Depends(deps.get_db_session)) -> list[LoanOut]:
    loans = await loans_service.list_home_loans(db)
    return [LoanOut.model_validate(loan) for loan in loans]


@router.get("/loans", response_model=LoanPage)
async def list_loans(
    search: str = Query(default="", max_length=100),
    category: str = Query(default="", max_length=100),
    sort: LoanSort = Query(default=LoanSort.NEWEST),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=8, ge=1, le=100),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanPage:
    loans, total = await loans_service.list_loans(
        db, search=search, category=category, sort=sort, page=page, limit=limit
    )
    return LoanPage(
        loans=[LoanOut.model_validate(loan) for loan in loans],
        total_count=total,
        total_pages=page_count(total, limit),
        current_page=page,
    )


@router.get("/loan-categories", response_model=list[str])
async def list_categories(db: AsyncSession = Depends(deps.get_db_session)) -> list[str]:
    return await loans_service.list_categories(db)


@router.get("/loans/{loan_id}", response_model=LoanOut)
async def read_loan(loan_id: UUID, db: AsyncSession = Depends(deps.get_db_session)) -> LoanOut:
    loan = await loans_service.get_loan(db, loan_id)
    if loan is None:
        raise NotFound("Loan not found")
    return LoanOut.model_validate(loan)


@router.patch("/loans/{loan_id}", response_model=LoanOut)
async def update_loan(
    loan_id: UUID,
    payload: LoanUpdate,
    _staff: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanOut:
    loan = await loans_service.update_loan(db, loan_id, payload)
    if loan is None:
        raise NotFound("Loan not found")
    return LoanOut.model_validate(loan)


@router.delete("/loans/{loan_id}", response_model=SuccessResponse, response_model_exclude_none=True)
async def delete_loan(
    loan_id: UUID,
    _staff: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db_session),
) -> SuccessResponse:
    if not await loans_service.delete_loan(db, loan_id):
        raise NotFound("Loan not found")
    return SuccessResponse(success=True)
