"""create donations table

Revision ID: 8d4f1b7e2c56
Revises: 7c2e6a1d3b45
Create Date: 2025-02-17
"""
from alembic import op
import sqlalchemy as sa

revision = "8d4f1b7e2c56"
down_revision = "7c2e6a1d3b45"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "donations",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("campaign_id", sa.String(64), nullable=True),
        sa.Column("donor_user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("donor_name", sa.String(255), nullable=True),
        sa.Column("is_anonymous", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), server_default="ZMW", nullable=False),
        sa.Column("payment_method", sa.String(16), nullable=False),
        sa.Column("msisdn", sa.String(32), nullable=True),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        sa.Column("reference", sa.String(64), nullable=False),
        sa.Column("platform_fee_amount", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("net_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("source", sa.String(32), server_default="web", nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("reference"),
        sa.CheckConstraint("amount > 0", name="ck_donations_amount_positive"),
        sa.CheckConstraint("payment_method IN ('mobile_money', 'card')", name="ck_donations_payment_method"),
        sa.CheckConstraint(
            "status IN ('pending', 'completed', 'failed', 'cancelled')", name="ck_donations_status"
        ),
        sa.CheckConstraint(
            r"msisdn IS NULL OR msisdn ~ '^\+?[0-9]{9,15}$'", name="donations_msisdn_format_check"
        ),
    )
    op.create_index("ix_donations_donor_user_id", "donations", ["donor_user_id"])

    op.execute(
        "CREATE TRIGGER donations_set_updated_at BEFORE UPDATE ON donations "
        "FOR EACH ROW EXECUTE FUNCTION public.set_updated_at()"
    )

    op.execute("NOTIFY pgrst, 'reload schema'")


def downgrade() -> None:
    op.drop_index("ix_donations_donor_user_id", table_name="donations")
    op.drop_table("donations")
