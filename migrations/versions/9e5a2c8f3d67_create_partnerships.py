"""create partnership tables

Revision ID: 9e5a2c8f3d67
Revises: 8d4f1b7e2c56
Create Date: 2025-03-04
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "9e5a2c8f3d67"
down_revision = "8d4f1b7e2c56"
branch_labels = None
depends_on = None


def _list(name):
    return sa.Column(name, postgresql.JSONB(), server_default="[]", nullable=False)


def _timestamps():
    return [
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    # -- partnership_opportunities --
    op.create_table(
        "partnership_opportunities",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("partner_org_name", sa.String(255), nullable=False),
        sa.Column("partner_org_type", sa.String(64), nullable=True),
        _list("country_focus"),
        _list("sectors"),
        _list("partnership_type"),
        _list("target_beneficiaries"),
        sa.Column("requirements_summary", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("is_ongoing", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("link_to_more_info", sa.Text(), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("is_featured", sa.Boolean(), server_default="false", nullable=False),
        _list("tags"),
        sa.Column("created_by_profile_id", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.execute(
        "CREATE INDEX ix_partnership_opportunities_sectors "
        "ON partnership_opportunities USING gin (sectors)"
    )
    op.execute(
        "CREATE INDEX ix_partnership_opportunities_tags "
        "ON partnership_opportunities USING gin (tags)"
    )

    # -- partnership_interests --
    op.create_table(
        "partnership_interests",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column(
            "opportunity_id", sa.Uuid(),
            sa.ForeignKey("partnership_opportunities.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "initiator_profile_id", sa.Uuid(),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("role", sa.String(64), nullable=True),
        sa.Column("status", sa.String(16), server_default="new", nullable=False),
        sa.Column("matching_score", sa.Numeric(5, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("opportunity_id", "initiator_profile_id", name="uq_partnership_interest_once"),
    )
    op.create_index("ix_partnership_interests_opportunity_id", "partnership_interests", ["opportunity_id"])
    op.create_index(
        "ix_partnership_interests_initiator_profile_id", "partnership_interests", ["initiator_profile_id"]
    )

    # -- partnership_profiles --
    op.create_table(
        "partnership_profiles",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("profile_id", sa.Uuid(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("org_name", sa.String(255), nullable=True),
        sa.Column("org_type", sa.String(64), nullable=True),
        _list("sectors"),
        _list("partnerships_sought"),
        _list("country_focus"),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("profile_id"),
    )

    for table in ("partnership_opportunities", "partnership_interests", "partnership_profiles"):
        op.execute(
            f"CREATE TRIGGER {table}_set_updated_at BEFORE UPDATE ON {table} "
            "FOR EACH ROW EXECUTE FUNCTION public.set_updated_at()"
        )

    op.execute("NOTIFY pgrst, 'reload schema'")


def downgrade() -> None:
    op.drop_table("partnership_profiles")
    op.drop_index("ix_partnership_interests_initiator_profile_id", table_name="partnership_interests")
    op.drop_index("ix_partnership_interests_opportunity_id", table_name="partnership_interests")
    op.drop_table("partnership_interests")
    op.execute("DROP INDEX IF EXISTS ix_partnership_opportunities_tags")
    op.execute("DROP INDEX IF EXISTS ix_partnership_opportunities_sectors")
    op.drop_table("partnership_opportunities")
