"""create registrations table

Revision ID: b27c4e1f5a89
Revises: a16b3d9e4f78
Create Date: 2025-04-02
"""
from alembic import op
import sqlalchemy as sa

revision = "b27c4e1f5a89"
down_revision = "a16b3d9e4f78"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "registrations",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("account_type", sa.String(32), nullable=True),
        sa.Column("company", sa.String(255), nullable=True),
        sa.Column("mobile_number", sa.String(32), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_registrations_email_lower", "registrations", [sa.text("lower(email)")], unique=True
    )

    op.execute(
        "CREATE TRIGGER registrations_set_updated_at BEFORE UPDATE ON registrations "
        "FOR EACH ROW EXECUTE FUNCTION public.set_updated_at()"
    )

    op.execute("NOTIFY pgrst, 'reload schema'")


def downgrade() -> None:
    op.drop_index("uq_registrations_email_lower", table_name="registrations")
    op.drop_table("registrations")
