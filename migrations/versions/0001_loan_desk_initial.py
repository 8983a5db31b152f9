"""Create loans, repayments and staff_users tables"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_loan_desk_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "loans",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("id_number", sa.String(length=50), nullable=True),
        sa.Column("contact_number", sa.String(length=50), nullable=True),
        sa.Column("physical_address", sa.String(length=500), nullable=True),
        sa.Column("postal_address", sa.String(length=500), nullable=True),
        sa.Column("kin_name", sa.String(length=200), nullable=True),
        sa.Column("kin_relationship", sa.String(length=100), nullable=True),
        sa.Column("kin_address", sa.String(length=500), nullable=True),
        sa.Column("married_in_community", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("spouse_name", sa.String(length=200), nullable=True),
        sa.Column("spouse_id_number", sa.String(length=50), nullable=True),
        sa.Column("loan_amount", sa.Float(), nullable=False),
        sa.Column("interest_rate", sa.Float(), nullable=False),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.Column("loan_period_months", sa.Integer(), nullable=False),
        sa.Column("loan_date", sa.Date(), nullable=True),
        sa.Column("payment_date", sa.Date(), nullable=True),
        sa.Column("bank_name", sa.String(length=100), nullable=True),
        sa.Column("account_number", sa.String(length=50), nullable=True),
        sa.Column("branch", sa.String(length=100), nullable=True),
        sa.Column("repayment_methods", sa.JSON(), nullable=False),
        sa.Column("terms_accepted", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("checked_by", sa.String(length=36), nullable=True),
        sa.Column("checked_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("checker_comments", sa.Text(), nullable=True),
        sa.Column("disbursed_by", sa.String(length=36), nullable=True),
        sa.Column("disbursed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("disbursement_reference", sa.String(length=100), nullable=True),
        sa.CheckConstraint("loan_amount > 0", name="ck_loans_amount_positive"),
        sa.CheckConstraint("interest_rate >= 0", name="ck_loans_rate_nonneg"),
        sa.CheckConstraint("loan_period_months >= 1", name="ck_loans_period_positive"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'disbursed')",
            name="ck_loans_status",
        ),
    )
    op.create_index("ix_loans_status", "loans", ["status"])
    op.create_index("ix_loans_created_at", "loans", ["created_at"])

    op.create_table(
        "repayments",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "loan_id",
            sa.String(length=36),
            sa.ForeignKey("loans.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("amount_paid", sa.Float(), nullable=False),
        sa.Column("payment_method", sa.String(length=50), nullable=True),
        sa.Column("reference_number", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("recorded_by", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("amount_paid > 0", name="ck_repayments_amount_positive"),
    )
    op.create_index("ix_repayments_loan_id", "repayments", ["loan_id"])

    op.create_table(
        "staff_users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("username", name="uq_staff_users_username"),
        sa.CheckConstraint(
            "role IN ('admin', 'maker', 'checker', 'accountant')",
            name="ck_staff_users_role",
        ),
    )


def downgrade() -> None:
    op.drop_table("staff_users")
    op.drop_index("ix_repayments_loan_id", table_name="repayments")
    op.drop_table("repayments")
    op.drop_index("ix_loans_created_at", table_name="loans")
    op.drop_index("ix_loans_status", table_name="loans")
    op.drop_table("loans")
