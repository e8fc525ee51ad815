import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID

from rintrack.db.base import Base


class LoanApplication(Base):
    __tablename__ = "loan_applications"
    __table_args__ = (
        CheckConstraint("loan_amount >= 0", name="ck_loan_app_amount_nonneg"),
        CheckConstraint("monthly_income >= 0", name="ck_loan_app_income_nonneg"),
        CheckConstraint(
            "status IN ('Pending', 'Approved', 'Rejected')",
            name="ck_loan_app_status",
        ),
        CheckConstraint(
            "application_fee_status IN ('Unpaid', 'Paid')",
            name="ck_loan_app_fee_status",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id = Column(
        UUID(as_uuid=True),
        ForeignKey("loans.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    loan_title = Column(String(255), nullable=True)
    user_email = Column(String(255), nullable=False, index=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    contact_number = Column(String(50), nullable=True)
    national_id = Column(String(100), nullable=True)
    income_source = Column(String(255), nullable=True)
    monthly_income = Column(Numeric(14, 2), nullable=True)
    loan_amount = Column(Numeric(14, 2), nullable=True)
    interest_rate = Column(Numeric(6, 3), nullable=True)
    reason = Column(Text, nullable=True)
    address = Column(String(512), nullable=True)
    extra_notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="Pending", index=True)
    application_fee_status = Column(String(20), nullable=False, default="Unpaid")
    approved_at = Column(DateTime(timezone=True), nullable=True)
    stripe_payment_id = Column(String(255), nullable=True)
    payment_email = Column(String(255), nullable=True)
    payment_amount = Column(Numeric(14, 2), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
