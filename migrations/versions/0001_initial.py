"""Create users, loans and loan_applications tables"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            server_onupdate=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("image", sa.String(length=1024), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="borrower"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("suspend_reason", sa.String(length=255), nullable=True),
        sa.Column("suspend_feedback", sa.Text(), nullable=True),
        sa.Column("suspended_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("last_logged_in_at", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("role IN ('admin', 'manager', 'borrower')", name="ck_users_role"),
        sa.CheckConstraint("status IN ('active', 'suspended')", name="ck_users_status"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "loans",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("interest_rate", sa.Numeric(6, 3), nullable=True),
        sa.Column("max_loan_limit", sa.Numeric(14, 2), nullable=True),
        sa.Column(
            "required_documents",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("emi_plans", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("image", sa.String(length=1024), nullable=True),
        sa.Column("show_on_home", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("max_loan_limit >= 0", name="ck_loans_max_limit_nonneg"),
        sa.CheckConstraint("interest_rate >= 0", name="ck_loans_rate_nonneg"),
    )
    op.create_index("ix_loans_title", "loans", ["title"])
    op.create_index("ix_loans_category", "loans", ["category"])

    op.create_table(
        "loan_applications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "loan_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("loans.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("loan_title", sa.String(length=255), nullable=True),
        sa.Column("user_email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("contact_number", sa.String(length=50), nullable=True),
        sa.Column("national_id", sa.String(length=100), nullable=True),
        sa.Column("income_source", sa.String(length=255), nullable=True),
        sa.Column("monthly_income", sa.Numeric(14, 2), nullable=True),
        sa.Column("loan_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("interest_rate", sa.Numeric(6, 3), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("address", sa.String(length=512), nullable=True),
        sa.Column("extra_notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Pending"),
        sa.Column("application_fee_status", sa.String(length=20), nullable=False, server_default="Unpaid"),
        sa.Column("approved_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("stripe_payment_id", sa.String(length=255), nullable=True),
        sa.Column("payment_email", sa.String(length=255), nullable=True),
        sa.Column("payment_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("paid_at", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("loan_amount >= 0", name="ck_loan_app_amount_nonneg"),
        sa.CheckConstraint("monthly_income >= 0", name="ck_loan_app_income_nonneg"),
        sa.CheckConstraint("status IN ('Pending', 'Approved', 'Rejected')", name="ck_loan_app_status"),
        sa.CheckConstraint("application_fee_status IN ('Unpaid', 'Paid')", name="ck_loan_app_fee_status"),
    )
    op.create_index("ix_loan_applications_loan_id", "loan_applications", ["loan_id"])
    op.create_index("ix_loan_applications_user_email", "loan_applications", ["user_email"])
    op.create_index("ix_loan_applications_status", "loan_applications", ["status"])


def downgrade() -> None:
    op.drop_index("ix_loan_applications_status", table_name="loan_applications")
    op.drop_index("ix_loan_applications_user_email", table_name="loan_applications")
    op.drop_index("ix_loan_applications_loan_id", table_name="loan_applications")
    op.drop_table("loan_applications")
    op.drop_index("ix_loans_category", table_name="loans")
    op.drop_index("ix_loans_title", table_name="loans")
    op.drop_table("loans")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
