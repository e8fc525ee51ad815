import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID

from rintrack.db.base import Base


class Loan(Base):
    __tablename__ = "loans"
    __table_args__ = (
        CheckConstraint("max_loan_limit >= 0", name="ck_loans_max_limit_nonneg"),
        CheckConstraint("interest_rate >= 0", name="ck_loans_rate_nonneg"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True, index=True)
    interest_rate = Column(Numeric(6, 3), nullable=True)
    max_loan_limit = Column(Numeric(14, 2), nullable=True)
    required_documents = Column(JSONB, nullable=False, default=list)
    emi_plans = Column(JSONB, nullable=False, default=list)
    image = Column(String(1024), nullable=True)
    show_on_home = Column(Boolean, nullable=False, default=False, server_default="false")
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
