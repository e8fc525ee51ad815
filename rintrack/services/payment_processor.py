from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import stripe
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


class PaymentProcessorError(Exception):
    pass


@dataclass(frozen=True)
class CheckoutSessionRecord:
    """The parts of a processor checkout session this service relies on."""

    id: str
    url: Optional[str] = None
    payment_status: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)
    customer_email: Optional[str] = None
    amount_total: Optional[int] = None
    payment_intent: Optional[str] = None


class PaymentProcessor(Protocol):
    async def create_checkout_session(self, params: dict[str, Any]) -> CheckoutSessionRecord:
        ...

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionRecord:
        ...


def _object_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return getattr(value, "id", None)


def _record_from_session(session: Any) -> CheckoutSessionRecord:
    customer_email = getattr(session, "customer_email", None)
    if not customer_email:
        details = getattr(session, "customer_details", None)
        customer_email = getattr(details, "email", None) if details else None
    metadata = getattr(session, "metadata", None) or {}
    return CheckoutSessionRecord(
        id=session.id,
        url=getattr(session, "url", None),
        payment_status=getattr(session, "payment_status", None),
        metadata={str(key): str(metadata[key]) for key in metadata.keys()},
        customer_email=customer_email,
        amount_total=getattr(session, "amount_total", None),
        payment_intent=_object_id(getattr(session, "payment_intent", None)),
    )


class StripePaymentProcessor:
    """Stripe Checkout adapter; SDK calls are blocking so they run in the threadpool."""

    def __init__(self, api_key: Optional[str]) -> None:
        self._api_key = api_key

    def _require_key(self) -> str:
        if not self._api_key:
            raise PaymentProcessorError("STRIPE_SECRET_KEY missing")
        return self._api_key

    async def create_checkout_session(self, params: dict[str, Any]) -> CheckoutSessionRecord:
        api_key = self._require_key()
        try:
            session = await run_in_threadpool(
                stripe.checkout.Session.create, api_key=api_key, **params
            )
        except stripe.StripeError as exc:
            logger.error("Stripe checkout creation failed: %s", type(exc).__name__)
            raise PaymentProcessorError(str(exc)) from exc
        return _record_from_session(session)

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionRecord:
        api_key = self._require_key()
        try:
            session = await run_in_threadpool(
                stripe.checkout.Session.retrieve, session_id, api_key=api_key
            )
        except stripe.StripeError as exc:
            logger.error("Stripe session lookup failed: %s", type(exc).__name__)
            raise PaymentProcessorError(str(exc)) from exc
        return _record_from_session(session)
