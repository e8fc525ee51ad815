from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest
import stripe
from sqlalchemy.exc import OperationalError
from sqlalchemy.sql.dml import Update

from rintrack.models import LoanApplication
from rintrack.services import payment_processor
from rintrack.services.checkout import to_minor_units
from rintrack.services.payment_processor import (
    CheckoutSessionRecord,
    PaymentProcessorError,
    StripePaymentProcessor,
    _record_from_session,
)

from conftest import FakeResult, fee_update_handler, get_data, make_application

CHECKOUT_URL = "/api/v1/create-checkout-session"
SUCCESS_URL = "/api/v1/payment-success"


def _checkout_body(application_id, **overrides) -> dict:
    body = {
        "loanTitle": "Small Business Loan",
        "amount": 1250,
        "image": "https://img.example/loan.png",
        "quantity": 1,
        "borrower": {"email": "rina@example.com"},
        "loanApplicationId": str(application_id),
    }
    body.update(overrides)
    return body


def _paid_session(application, session_id="cs_paid", **overrides) -> CheckoutSessionRecord:
    fields = dict(
        id=session_id,
        payment_status="paid",
        metadata={"loanApplicationId": str(application.id), "borrower": "rina@example.com"},
        customer_email="payer@example.com",
        amount_total=125000,
        payment_intent="pi_first",
    )
    fields.update(overrides)
    return CheckoutSessionRecord(**fields)


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "amount, expected",
    [(Decimal("1250"), 125000), (Decimal("10.55"), 1055), (Decimal("0.5"), 50)],
)
def test_to_minor_units(amount, expected) -> None:
    assert to_minor_units(amount) == expected


def test_checkout_builds_processor_session_without_writing(client, fake_db, processor) -> None:
    application = make_application()
    fake_db.on_get(LoanApplication, application.id, application)

    resp = client.post(CHECKOUT_URL, json=_checkout_body(application.id))

    assert resp.status_code == 200
    assert get_data(resp) == {"url": "https://checkout.stripe.test/cs_test_1"}
    params = processor.created[0]
    line_item = params["line_items"][0]
    assert line_item["price_data"]["unit_amount"] == 125000
    assert line_item["price_data"]["currency"] == "usd"
    assert line_item["price_data"]["product_data"]["name"] == "Small Business Loan"
    assert line_item["quantity"] == 1
    assert params["mode"] == "payment"
    assert params["customer_email"] == "rina@example.com"
    assert params["metadata"] == {
        "loanApplicationId": str(application.id),
        "borrower": "rina@example.com",
    }
    assert params["success_url"] == (
        "https://rintrack.example/payment-success?session_id={CHECKOUT_SESSION_ID}"
    )
    assert params["cancel_url"] == "https://rintrack.example/loans"
    assert application.application_fee_status == "Unpaid"
    assert fake_db.executed == []
    assert not fake_db.committed


def test_checkout_unknown_application_is_404(client, processor) -> None:
    resp = client.post(CHECKOUT_URL, json=_checkout_body(uuid4()))

    assert resp.status_code == 404
    assert processor.created == []


def test_checkout_refuses_already_paid_application(client, fake_db, processor) -> None:
    application = make_application(application_fee_status="Paid")
    fake_db.on_get(LoanApplication, application.id, application)

    resp = client.post(CHECKOUT_URL, json=_checkout_body(application.id))

    assert resp.status_code == 409
    assert processor.created == []


@pytest.mark.parametrize("amount", [0, -5, "abc"])
def test_checkout_validates_amount(client, processor, amount) -> None:
    resp = client.post(CHECKOUT_URL, json=_checkout_body(uuid4(), amount=amount))

    assert resp.status_code == 422
    assert processor.created == []


def test_checkout_processor_failure_is_500(client, fake_db, processor) -> None:
    application = make_application()
    fake_db.on_get(LoanApplication, application.id, application)
    processor.fail = True

    resp = client.post(CHECKOUT_URL, json=_checkout_body(application.id))

    assert resp.status_code == 500


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


def test_reconcile_marks_fee_paid_with_provenance(client, fake_db, processor) -> None:
    application = make_application()
    fake_db.on_get(LoanApplication, application.id, application)
    fake_db.on_execute(fee_update_handler(application))
    processor.sessions["cs_paid"] = _paid_session(application)

    resp = client.get(SUCCESS_URL, params={"session_id": "cs_paid"})

    assert resp.status_code == 200
    assert get_data(resp) == {
        "success": True,
        "message": "Payment successful",
        "loanApplicationId": str(application.id),
        "stripePaymentId": "pi_first",
    }
    assert application.application_fee_status == "Paid"
    assert application.stripe_payment_id == "pi_first"
    assert application.payment_email == "payer@example.com"
    assert application.payment_amount == Decimal("1250")
    assert application.paid_at is not None
    assert fake_db.commits == 1


def test_reconcile_is_idempotent(client, fake_db, processor) -> None:
    application = make_application()
    fake_db.on_get(LoanApplication, application.id, application)
    fake_db.on_execute(fee_update_handler(application))
    processor.sessions["cs_paid"] = _paid_session(application)

    first = client.get(SUCCESS_URL, params={"session_id": "cs_paid"})
    paid_at = application.paid_at
    second = client.get(SUCCESS_URL, params={"session_id": "cs_paid"})

    assert first.status_code == 200
    assert second.status_code == 200
    assert get_data(second)["stripePaymentId"] == "pi_first"
    assert get_data(second)["message"] == "Payment already recorded"
    assert application.paid_at == paid_at
    assert fake_db.commits == 1


def test_reconcile_never_overwrites_settled_provenance(client, fake_db, processor) -> None:
    application = make_application()
    fake_db.on_get(LoanApplication, application.id, application)
    fake_db.on_execute(fee_update_handler(application))
    processor.sessions["cs_paid"] = _paid_session(application)
    processor.sessions["cs_other"] = _paid_session(
        application, session_id="cs_other", payment_intent="pi_second", amount_total=999
    )

    client.get(SUCCESS_URL, params={"session_id": "cs_paid"})
    resp = client.get(SUCCESS_URL, params={"session_id": "cs_other"})

    assert resp.status_code == 200
    assert get_data(resp)["stripePaymentId"] == "pi_first"
    assert application.stripe_payment_id == "pi_first"
    assert application.payment_amount == Decimal("1250")


def test_reconcile_unpaid_session_writes_nothing(client, fake_db, processor) -> None:
    application = make_application()
    processor.sessions["cs_open"] = _paid_session(
        application, session_id="cs_open", payment_status="unpaid"
    )

    resp = client.get(SUCCESS_URL, params={"session_id": "cs_open"})

    assert resp.status_code == 400
    assert resp.json()["code"] == "payment_not_completed"
    assert not any(isinstance(stmt, Update) for stmt in fake_db.executed)
    assert application.application_fee_status == "Unpaid"


@pytest.mark.parametrize("metadata", [{}, {"loanApplicationId": ""}, {"loanApplicationId": "not-a-uuid"}])
def test_reconcile_requires_linkage(client, fake_db, processor, metadata) -> None:
    application = make_application()
    processor.sessions["cs_paid"] = _paid_session(application, metadata=metadata)

    resp = client.get(SUCCESS_URL, params={"session_id": "cs_paid"})

    assert resp.status_code == 400
    assert resp.json()["code"] == "missing_linkage"
    assert fake_db.executed == []


def test_reconcile_unknown_application_is_404(client, fake_db, processor) -> None:
    application = make_application()
    fake_db.on_execute(lambda stmt: FakeResult(rowcount=0) if isinstance(stmt, Update) else None)
    processor.sessions["cs_paid"] = _paid_session(application)

    resp = client.get(SUCCESS_URL, params={"session_id": "cs_paid"})

    assert resp.status_code == 404
    assert fake_db.commits == 0


def test_reconcile_requires_session_id(client, processor) -> None:
    resp = client.get(SUCCESS_URL)

    assert resp.status_code == 400
    assert resp.json()["code"] == "bad_request"
    assert processor.retrieved == []


def test_reconcile_processor_failure_is_500(client, processor) -> None:
    resp = client.get(SUCCESS_URL, params={"session_id": "cs_missing"})

    assert resp.status_code == 500
    assert processor.retrieved == ["cs_missing"]


def test_reconcile_store_failure_rolls_back(client, fake_db, processor) -> None:
    application = make_application()
    processor.sessions["cs_paid"] = _paid_session(application)

    def _broken_update(stmt):
        if isinstance(stmt, Update):
            raise OperationalError("UPDATE", {}, Exception("connection reset"))
        return None

    fake_db.on_execute(_broken_update, first=True)

    resp = client.get(SUCCESS_URL, params={"session_id": "cs_paid"})

    assert resp.status_code == 500
    assert resp.json()["code"] == "internal_server_error"
    assert fake_db.rollbacks == 1
    assert fake_db.commits == 0
    assert application.application_fee_status == "Unpaid"


def test_payment_success_needs_no_session(client, fake_db, processor, issuer) -> None:
    application = make_application()
    fake_db.on_get(LoanApplication, application.id, application)
    fake_db.on_execute(fee_update_handler(application))
    processor.sessions["cs_paid"] = _paid_session(application)

    resp = client.get(SUCCESS_URL, params={"session_id": "cs_paid"})

    assert resp.status_code == 200
    assert issuer.calls == []
    assert resp.headers["cache-control"] == "no-store"


# ---------------------------------------------------------------------------
# Stripe adapter
# ---------------------------------------------------------------------------


def test_record_from_stripe_session_falls_back_to_customer_details() -> None:
    session = SimpleNamespace(
        id="cs_1",
        url=None,
        payment_status="paid",
        metadata={"loanApplicationId": "abc"},
        customer_email=None,
        customer_details=SimpleNamespace(email="details@example.com"),
        amount_total=5000,
        payment_intent=SimpleNamespace(id="pi_expanded"),
    )

    record = _record_from_session(session)

    assert record.customer_email == "details@example.com"
    assert record.payment_intent == "pi_expanded"
    assert record.metadata == {"loanApplicationId": "abc"}


@pytest.mark.asyncio
async def test_stripe_processor_requires_secret_key() -> None:
    with pytest.raises(PaymentProcessorError):
        await StripePaymentProcessor(None).retrieve_checkout_session("cs_1")


@pytest.mark.asyncio
async def test_stripe_processor_passes_key_per_call(monkeypatch) -> None:
    seen = {}

    def fake_create(**kwargs):
        seen.update(kwargs)
        return SimpleNamespace(id="cs_1", url="https://checkout.stripe.test/cs_1", metadata={})

    monkeypatch.setattr(payment_processor.stripe.checkout.Session, "create", fake_create)

    record = await StripePaymentProcessor("sk_test_123").create_checkout_session({"mode": "payment"})

    assert seen == {"api_key": "sk_test_123", "mode": "payment"}
    assert record.url == "https://checkout.stripe.test/cs_1"


@pytest.mark.asyncio
async def test_stripe_errors_become_processor_errors(monkeypatch) -> None:
    def fake_retrieve(session_id, api_key=None):
        raise stripe.StripeError("No such checkout.session")

    monkeypatch.setattr(payment_processor.stripe.checkout.Session, "retrieve", fake_retrieve)

    with pytest.raises(PaymentProcessorError):
        await StripePaymentProcessor("sk_test_123").retrieve_checkout_session("cs_missing")
