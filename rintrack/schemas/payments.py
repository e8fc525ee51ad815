from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import EmailStr, Field

from rintrack.schemas.common import CamelModel


class Borrower(CamelModel):
    email: Optional[EmailStr] = None


class CheckoutRequest(CamelModel):
    loan_title: str = Field(min_length=1, max_length=255)
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    image: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    borrower: Borrower = Field(default_factory=Borrower)
    loan_application_id: UUID


class CheckoutResponse(CamelModel):
    url: str


class PaymentConfirmation(CamelModel):
    success: bool = True
    message: str
    loan_application_id: str
    stripe_payment_id: Optional[str] = None
