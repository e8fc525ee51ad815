from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rintrack.core.errors import Conflict, NotFound, ServerError
from rintrack.schemas.common import ApplicationFeeStatus
from rintrack.schemas.payments import CheckoutRequest
from rintrack.services import loan_applications
from rintrack.services.payment_processor import PaymentProcessor, PaymentProcessorError

logger = logging.getLogger(__name__)


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class CheckoutOrchestrator:
    """Builds processor payment intents for application fees.

    Nothing is written locally here; the application stays unpaid until the
    reconciliation step sees a paid session.
    """

    def __init__(self, processor: PaymentProcessor, *, site_domain: str, currency: str) -> None:
        self._processor = processor
        self._site_domain = site_domain.rstrip("/")
        self._currency = currency

    def build_params(self, request: CheckoutRequest) -> dict[str, Any]:
        payer_email = str(request.borrower.email) if request.borrower.email else None
        product_data: dict[str, Any] = {
            "name": request.loan_title,
            "description": f"${request.amount}",
        }
        if request.image:
            product_data["images"] = [request.image]
        params: dict[str, Any] = {
            "mode": "payment",
            "line_items": [
                {
                    "price_data": {
                        "currency": self._currency,
                        "product_data": product_data,
                        "unit_amount": to_minor_units(request.amount),
                    },
                    "quantity": request.quantity,
                }
            ],
            "metadata": {
                "loanApplicationId": str(request.loan_application_id),
                "borrower": payer_email or "",
            },
            "success_url": (
                f"{self._site_domain}/payment-success?session_id={{CHECKOUT_SESSION_ID}}"
            ),
            "cancel_url": f"{self._site_domain}/loans",
        }
        if payer_email:
            params["customer_email"] = payer_email
        return params

    async def create_checkout(self, db: AsyncSession, request: CheckoutRequest) -> str:
        try:
            application = await loan_applications.get_application(db, request.loan_application_id)
        except SQLAlchemyError as exc:
            raise ServerError() from exc
        if application is None:
            raise NotFound("Loan application not found")
        if application.application_fee_status == ApplicationFeeStatus.PAID.value:
            raise Conflict("Application fee already paid")

        try:
            session = await self._processor.create_checkout_session(self.build_params(request))
        except PaymentProcessorError as exc:
            raise ServerError() from exc
        if not session.url:
            raise ServerError("Checkout session has no redirect url")
        logger.info(
            "Checkout session %s created for application %s",
            session.id,
            request.loan_application_id,
        )
        return session.url
