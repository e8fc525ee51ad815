from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rintrack.core.errors import (
    BadRequest,
    MissingLinkage,
    NotFound,
    PaymentNotCompleted,
    ServerError,
)
from rintrack.core.logging import audit
from rintrack.services import loan_applications
from rintrack.services.loan_applications import FeePayment
from rintrack.services.payment_processor import (
    CheckoutSessionRecord,
    PaymentProcessor,
    PaymentProcessorError,
)

logger = logging.getLogger(__name__)

PAID = "paid"
LINKAGE_KEY = "loanApplicationId"


@dataclass(frozen=True)
class ReconciliationResult:
    loan_application_id: UUID
    stripe_payment_id: Optional[str]
    already_reconciled: bool


def linked_application_id(session: CheckoutSessionRecord) -> UUID:
    raw = (session.metadata or {}).get(LINKAGE_KEY)
    if not raw:
        raise MissingLinkage()
    try:
        return UUID(str(raw))
    except ValueError as exc:
        raise MissingLinkage("Invalid loanApplicationId in session metadata") from exc


def fee_payment_from_session(session: CheckoutSessionRecord, paid_at: datetime) -> FeePayment:
    amount_total = session.amount_total or 0
    return FeePayment(
        stripe_payment_id=session.payment_intent,
        payment_email=session.customer_email or (session.metadata or {}).get("borrower") or None,
        payment_amount=Decimal(amount_total) / Decimal(100),
        paid_at=paid_at,
    )


class ReconciliationService:
    """Applies a processor-confirmed payment to its linked loan application.

    Safe to run any number of times for the same session: only the first run
    writes, later runs observe the settled record and report success.
    """

    def __init__(self, processor: PaymentProcessor) -> None:
        self._processor = processor

    async def reconcile(self, db: AsyncSession, session_id: Optional[str]) -> ReconciliationResult:
        if not session_id or not session_id.strip():
            raise BadRequest("Missing session_id")

        try:
            session = await self._processor.retrieve_checkout_session(session_id.strip())
        except PaymentProcessorError as exc:
            raise ServerError() from exc

        if session.payment_status != PAID:
            logger.info(
                "Checkout session %s not paid (status=%s)", session.id, session.payment_status
            )
            raise PaymentNotCompleted()

        application_id = linked_application_id(session)
        payment = fee_payment_from_session(session, datetime.now(timezone.utc))

        try:
            applied = await loan_applications.mark_fee_paid(db, application_id, payment)
            if applied:
                await db.commit()
                audit(
                    "loan_application.fee_paid",
                    "Application %s fee settled by checkout session %s (%s)",
                    application_id,
                    session.id,
                    payment.payment_amount,
                )
                return ReconciliationResult(application_id, payment.stripe_payment_id, False)

            application = await loan_applications.get_application(db, application_id)
        except SQLAlchemyError as exc:
            await db.rollback()
            raise ServerError() from exc

        if application is None:
            raise NotFound("Linked loan application not found")
        logger.info("Checkout session %s already reconciled", session.id)
        return ReconciliationResult(
            application_id,
            application.stripe_payment_id or payment.stripe_payment_id,
            True,
        )
