from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import Field

from rintrack.schemas.common import (
    ApplicationFeeStatus,
    CamelModel,
    LoanApplicationStatus,
)


class LoanSort(str, Enum):
    NEWEST = "desc"
    OLDEST = "asc"
    PRICE_HIGH = "price-high"
    PRICE_LOW = "price-low"


class LoanBase(CamelModel):
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)
    interest_rate: Optional[Decimal] = Field(default=None, ge=0)
    max_loan_limit: Optional[Decimal] = Field(default=None, ge=0)
    required_documents: list[str] = Field(default_factory=list)
    emi_plans: list[str] = Field(default_factory=list)
    image: Optional[str] = None
    show_on_home: bool = False


class LoanCreate(LoanBase):
    title: str = Field(min_length=1, max_length=255)


class LoanUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)
    interest_rate: Optional[Decimal] = Field(default=None, ge=0)
    max_loan_limit: Optional[Decimal] = Field(default=None, ge=0)
    required_documents: Optional[list[str]] = None
    emi_plans: Optional[list[str]] = None
    image: Optional[str] = None
    show_on_home: Optional[bool] = None


class LoanOut(LoanBase):
    id: UUID
    title: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LoanPage(CamelModel):
    loans: list[LoanOut]
    total_count: int
    total_pages: int
    current_page: int


class LoanApplicationCreate(CamelModel):
    """Applicant-supplied fields only.

    Status, fee status and owner are never taken from the request body.
    """

    loan_id: Optional[UUID] = None
    loan_title: Optional[str] = Field(default=None, max_length=255)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    contact_number: Optional[str] = Field(default=None, max_length=50)
    national_id: Optional[str] = Field(default=None, max_length=100)
    income_source: Optional[str] = Field(default=None, max_length=255)
    monthly_income: Optional[Decimal] = Field(default=None, ge=0)
    loan_amount: Optional[Decimal] = Field(default=None, ge=0)
    interest_rate: Optional[Decimal] = Field(default=None, ge=0)
    reason: Optional[str] = None
    address: Optional[str] = Field(default=None, max_length=512)
    extra_notes: Optional[str] = None


class LoanApplicationOut(LoanApplicationCreate):
    id: UUID
    user_email: str
    status: LoanApplicationStatus
    application_fee_status: ApplicationFeeStatus
    approved_at: Optional[datetime] = None
    stripe_payment_id: Optional[str] = None
    payment_email: Optional[str] = None
    payment_amount: Optional[Decimal] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class LoanApplicationCreated(CamelModel):
    success: bool = True
    application: LoanApplicationOut


class StatusUpdate(CamelModel):
    status: LoanApplicationStatus
