from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rintrack.api import deps
from rintrack.schemas.payments import CheckoutRequest, CheckoutResponse, PaymentConfirmation
from rintrack.services.checkout import CheckoutOrchestrator
from rintrack.services.reconciliation import ReconciliationService

router = APIRouter(tags=["payments"])


@router.post("/create-checkout-session", response_model=CheckoutResponse)
async def create_checkout_session(
    payload: CheckoutRequest,
    orchestrator: CheckoutOrchestrator = Depends(deps.get_checkout_orchestrator),
    db: AsyncSession = Depends(deps.get_db_session),
) -> CheckoutResponse:
    url = await orchestrator.create_checkout(db, payload)
    return CheckoutResponse(url=url)


@router.get("/payment-success", response_model=PaymentConfirmation)
async def payment_success(
    session_id: Optional[str] = Query(default=None, max_length=255),
    reconciler: ReconciliationService = Depends(deps.get_reconciliation_service),
    db: AsyncSession = Depends(deps.get_db_session),
) -> PaymentConfirmation:
    """Processor success redirect.

    No session is required: the processor-issued checkout session id is the
    authorization, and payment state is always re-read from the processor.
    """
    result = await reconciler.reconcile(db, session_id)
    return PaymentConfirmation(
        message="Payment already recorded" if result.already_reconciled else "Payment successful",
        loan_application_id=str(result.loan_application_id),
        stripe_payment_id=result.stripe_payment_id,
    )
