"""create role-specific profile extension tables

Revision ID: 5b8d2e4f9a12
Revises: 3f1a9c2e7b01
Create Date: 2025-01-22
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "5b8d2e4f9a12"
down_revision = "3f1a9c2e7b01"
branch_labels = None
depends_on = None


def _list(name):
    return sa.Column(name, postgresql.JSONB(), server_default="[]", nullable=False)


EXTENSIONS = {
    "sme_profiles": lambda: [
        sa.Column("business_name", sa.String(255), nullable=True),
        sa.Column("industry", sa.String(255), nullable=True),
        sa.Column("business_stage", sa.String(64), nullable=True),
        sa.Column("services_or_products", sa.Text(), nullable=True),
        _list("top_needs"),
        _list("areas_served"),
        sa.Column("registration_status", sa.String(64), nullable=True),
        sa.Column("team_size_range", sa.String(64), nullable=True),
        sa.Column("funding_needed", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("funding_range", sa.String(64), nullable=True),
        _list("preferred_support"),
        _list("sectors_of_interest"),
    ],
    "professional_profiles": lambda: [
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("qualifications", sa.Text(), nullable=True),
        _list("expertise_areas"),
        sa.Column("years_experience", sa.Integer(), nullable=True),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("currency", sa.String(3), server_default="ZMW", nullable=False),
        sa.Column("msisdn", sa.String(32), nullable=True),
    ],
    "freelancer_profiles": lambda: [
        sa.Column("professional_title", sa.String(255), nullable=True),
        _list("primary_skills"),
        sa.Column("services_offered", sa.Text(), nullable=True),
        sa.Column("experience_level", sa.String(64), nullable=True),
        sa.Column("availability", sa.String(64), nullable=True),
        sa.Column("work_mode", sa.String(64), nullable=True),
        sa.Column("rate_type", sa.String(64), nullable=True),
        sa.Column("rate_range", sa.String(64), nullable=True),
        sa.Column("portfolio_url", sa.Text(), nullable=True),
        _list("certifications"),
        _list("languages"),
        _list("preferred_industries"),
    ],
    "investor_profiles": lambda: [
        sa.Column("investor_type", sa.String(64), nullable=True),
        sa.Column("ticket_size_range", sa.String(64), nullable=True),
        _list("investment_stage_focus"),
        _list("sectors_of_interest"),
        _list("investment_preferences"),
        _list("geo_focus"),
        sa.Column("thesis", sa.Text(), nullable=True),
        sa.Column("decision_timeline", sa.String(64), nullable=True),
    ],
    "donor_profiles": lambda: [
        sa.Column("organization_name", sa.String(255), nullable=True),
        sa.Column("donor_type", sa.String(64), nullable=True),
        _list("focus_areas"),
        sa.Column("funding_range", sa.String(64), nullable=True),
        _list("geo_focus"),
    ],
    "government_profiles": lambda: [
        sa.Column("institution_name", sa.String(255), nullable=True),
        sa.Column("department_or_unit", sa.String(255), nullable=True),
        sa.Column("institution_type", sa.String(64), nullable=True),
        _list("mandate_areas"),
        sa.Column("services_or_programmes", sa.Text(), nullable=True),
        _list("collaboration_interests"),
        sa.Column("contact_person_title", sa.String(255), nullable=True),
        sa.Column("current_initiatives", sa.Text(), nullable=True),
        sa.Column("eligibility_criteria", sa.Text(), nullable=True),
    ],
}


def upgrade() -> None:
    for table, columns in EXTENSIONS.items():
        op.create_table(
            table,
            sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), nullable=False),
            sa.Column("profile_id", sa.Uuid(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
            *columns(),
            sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
            sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("profile_id"),
        )
        op.execute(
            f"CREATE TRIGGER {table}_set_updated_at BEFORE UPDATE ON {table} "
            "FOR EACH ROW EXECUTE FUNCTION public.set_updated_at()"
        )

    op.execute("NOTIFY pgrst, 'reload schema'")


def downgrade() -> None:
    for table in reversed(list(EXTENSIONS)):
        op.drop_table(table)
