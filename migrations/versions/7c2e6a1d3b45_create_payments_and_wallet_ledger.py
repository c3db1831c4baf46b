"""create subscriptions, payments and wallet ledger tables

Revision ID: 7c2e6a1d3b45
Revises: 5b8d2e4f9a12
Create Date: 2025-02-03
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "7c2e6a1d3b45"
down_revision = "5b8d2e4f9a12"
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _money(name):
    return sa.Column(name, sa.Numeric(12, 2), server_default="0", nullable=False)


def upgrade() -> None:
    # -- subscription_plans --
    plans = op.create_table(
        "subscription_plans",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("account_type", sa.String(32), nullable=False),
        sa.Column("price_zmw", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("price_usd", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("billing_interval", sa.String(16), server_default="monthly", nullable=False),
        sa.Column("features", postgresql.JSONB(), server_default="[]", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    # -- subscriptions --
    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("plan_id", sa.Uuid(), sa.ForeignKey("subscription_plans.id"), nullable=True),
        sa.Column("status", sa.String(16), server_default="trialing", nullable=False),
        sa.Column("current_period_start", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("current_period_end", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("cancel_at_period_end", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("cancelled_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("trial_end", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("currency", sa.String(3), server_default="ZMW", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('active', 'trialing', 'past_due', 'cancelled', 'expired')",
            name="ck_subscriptions_status",
        ),
    )
    op.create_index("ix_subscriptions_user_status", "subscriptions", ["user_id", "status"])

    # -- platform_fee_tiers --
    tiers = op.create_table(
        "platform_fee_tiers",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("min_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("max_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("fee_percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("currency", sa.String(3), server_default="ZMW", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # -- payment_accounts --
    op.create_table(
        "payment_accounts",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _money("balance_zmw"),
        _money("balance_usd"),
        _money("pending_balance_zmw"),
        _money("pending_balance_usd"),
        sa.Column("provider_account_id", sa.String(128), nullable=True),
        sa.Column("bank_account_number", sa.String(64), nullable=True),
        sa.Column("bank_name", sa.String(128), nullable=True),
        sa.Column("mobile_money_number", sa.String(32), nullable=True),
        sa.Column("mobile_money_provider", sa.String(64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )

    # -- transactions --
    op.create_table(
        "transactions",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("recipient_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("transaction_type", sa.String(32), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), server_default="ZMW", nullable=False),
        _money("platform_fee"),
        sa.Column("net_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        sa.Column("provider_reference", sa.String(255), nullable=True),
        sa.Column("provider_transaction_id", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), server_default="{}", nullable=False),
        sa.Column("subscription_id", sa.Uuid(), sa.ForeignKey("subscriptions.id"), nullable=True),
        sa.Column("idempotency_key", sa.String(255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("idempotency_key"),
    )
    op.create_index("ix_transactions_user_status", "transactions", ["user_id", "status"])

    # -- payments --
    op.create_table(
        "payments",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), server_default="ZMW", nullable=False),
        sa.Column("payment_provider", sa.String(32), nullable=False),
        sa.Column("provider_payment_id", sa.String(255), nullable=True),
        sa.Column("status", sa.String(16), server_default="initiated", nullable=False),
        sa.Column("type", sa.String(32), server_default="subscription", nullable=False),
        sa.Column("metadata", postgresql.JSONB(), server_default="{}", nullable=False),
        sa.Column("reference", sa.String(255), nullable=True),
        sa.Column("paid_at", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("reference"),
        sa.UniqueConstraint("provider_payment_id"),
        sa.CheckConstraint(
            "status IN ('initiated', 'pending', 'succeeded', 'failed', 'refunded')",
            name="ck_payments_status",
        ),
    )
    op.create_index("ix_payments_user_status", "payments", ["user_id", "status"])

    # -- webhook_events --
    op.create_table(
        "webhook_events",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("provider", sa.String(32), nullable=False),
        sa.Column("event_id", sa.String(255), nullable=False),
        sa.Column("event_type", sa.String(64), nullable=True),
        sa.Column("payload", postgresql.JSONB(), server_default="{}", nullable=False),
        sa.Column("processed", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("processed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("received_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("provider", "event_id", name="uq_webhook_events_provider_event"),
    )

    for table in ("subscription_plans", "subscriptions", "payment_accounts", "transactions", "payments"):
        op.execute(
            f"CREATE TRIGGER {table}_set_updated_at BEFORE UPDATE ON {table} "
            "FOR EACH ROW EXECUTE FUNCTION public.set_updated_at()"
        )

    # Seed data
    op.bulk_insert(
        plans,
        [
            {"name": name, "description": description, "account_type": account_type,
             "price_zmw": zmw, "price_usd": usd, "billing_interval": "monthly", "features": features}
            for name, description, account_type, zmw, usd, features in (
                ("Sole Proprietor Basic", "Essential tools for individual entrepreneurs", "sole_proprietor", 99, 5,
                 ["Basic profile listing", "5 marketplace posts/month", "Email support"]),
                ("Sole Proprietor Pro", "Advanced features for growing businesses", "sole_proprietor", 249, 12,
                 ["Featured profile listing", "Unlimited marketplace posts", "Priority support", "Analytics dashboard"]),
                ("Professional Basic", "For professionals offering services", "professional", 149, 7.5,
                 ["Professional profile", "10 client connections/month", "Portfolio showcase"]),
                ("Professional Pro", "Premium features for established professionals", "professional", 349, 17.5,
                 ["Verified badge", "Unlimited client connections", "Featured listings", "Advanced analytics"]),
                ("SME Starter", "For small and medium enterprises", "sme", 299, 15,
                 ["Company profile", "20 marketplace listings", "Team access (3 users)", "Basic compliance tools"]),
                ("SME Growth", "Scale your business operations", "sme", 599, 30,
                 ["Unlimited listings", "Team access (10 users)", "Advanced compliance", "Investor matching",
                  "Priority support"]),
                ("Investor Basic", "Access investment opportunities", "investor", 199, 10,
                 ["Browse SME directory", "5 connection requests/month", "Investment alerts"]),
                ("Investor Premium", "Full access to investment ecosystem", "investor", 499, 25,
                 ["Unlimited connections", "Priority deal flow", "Due diligence tools", "Co-investment network"]),
                ("Donor Access", "For donors and funding organizations", "donor", 0, 0,
                 ["Full platform access", "Impact tracking", "Grant management"]),
                ("Government Portal", "Government and regulatory access", "government", 0, 0,
                 ["Full platform access", "Compliance monitoring", "Report generation"]),
            )
        ],
    )
    op.bulk_insert(
        tiers,
        [
            {"min_amount": lo, "max_amount": hi, "fee_percentage": pct, "currency": currency}
            for currency, lo, hi, pct in (
                ("ZMW", 0, 500, 5), ("ZMW", 500.01, 2000, 4), ("ZMW", 2000.01, 10000, 3), ("ZMW", 10000.01, None, 2.5),
                ("USD", 0, 25, 5), ("USD", 25.01, 100, 4), ("USD", 100.01, 500, 3), ("USD", 500.01, None, 2.5),
            )
        ],
    )

    op.execute("NOTIFY pgrst, 'reload schema'")


def downgrade() -> None:
    op.drop_table("webhook_events")
    op.drop_index("ix_payments_user_status", table_name="payments")
    op.drop_table("payments")
    op.drop_index("ix_transactions_user_status", table_name="transactions")
    op.drop_table("transactions")
    op.drop_table("payment_accounts")
    op.drop_table("platform_fee_tiers")
    op.drop_index("ix_subscriptions_user_status", table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_table("subscription_plans")
