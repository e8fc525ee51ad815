from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rintrack.api import deps
from rintrack.core.errors import Forbidden, NotFound
from rintrack.models import User
from rintrack.schemas.common import LoanApplicationStatus, SuccessResponse
from rintrack.schemas.loan import (
    LoanApplicationCreate,
    LoanApplicationCreated,
    LoanApplicationOut,
    StatusUpdate,
)
from rintrack.services import loan_applications
from rintrack.services.users import normalize_email

router = APIRouter(tags=["loan-applications"])


def _serialize(applications) -> list[LoanApplicationOut]:
    return [LoanApplicationOut.model_validate(item) for item in applications]


@router.post("/loans/application", response_model=LoanApplicationCreated, status_code=201)
async def submit_application(
    payload: LoanApplicationCreate,
    borrower: User = Depends(deps.require_borrower),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanApplicationCreated:
    application = await loan_applications.create_application(
        db, payload, user_email=borrower.email
    )
    return LoanApplicationCreated(application=LoanApplicationOut.model_validate(application))


@router.get("/pending-loans", response_model=list[LoanApplicationOut])
async def list_pending(
    _manager: User = Depends(deps.require_manager),
    db: AsyncSession = Depends(deps.get_db_session),
) -> list[LoanApplicationOut]:
    return _serialize(await loan_applications.list_by_status(db, LoanApplicationStatus.PENDING))


@router.get("/approved-loans", response_model=list[LoanApplicationOut])
async def list_approved(
    _manager: User = Depends(deps.require_manager),
    db: AsyncSession = Depends(deps.get_db_session),
) -> list[LoanApplicationOut]:
    return _serialize(await loan_applications.list_by_status(db, LoanApplicationStatus.APPROVED))


@router.patch("/update-status/{application_id}", response_model=LoanApplicationOut)
async def update_status(
    application_id: UUID,
    payload: StatusUpdate,
    _manager: User = Depends(deps.require_manager),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanApplicationOut:
    application = await loan_applications.update_status(db, application_id, payload.status)
    if application is None:
        raise NotFound("Loan application not found")
    return LoanApplicationOut.model_validate(application)


@router.get("/my-loans/{email}", response_model=list[LoanApplicationOut])
async def list_my_applications(
    email: str,
    borrower: User = Depends(deps.require_borrower),
    db: AsyncSession = Depends(deps.get_db_session),
) -> list[LoanApplicationOut]:
    if normalize_email(email) != borrower.email:
        raise Forbidden("Forbidden")
    return _serialize(await loan_applications.list_for_user(db, borrower.email))


@router.delete(
    "/loan-application/{application_id}",
    response_model=SuccessResponse,
    response_model_exclude_none=True,
)
async def delete_application(
    application_id: UUID,
    borrower: User = Depends(deps.require_borrower),
    db: AsyncSession = Depends(deps.get_db_session),
) -> SuccessResponse:
    deleted = await loan_applications.delete_own_application(
        db, application_id, user_email=borrower.email
    )
    if not deleted:
        raise NotFound("Loan application not found")
    return SuccessResponse(success=True)


@router.get("/loan-applications", response_model=list[LoanApplicationOut])
async def list_all_applications(
    _staff: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db_session),
) -> list[LoanApplicationOut]:
    return _serialize(await loan_applications.list_all(db))
