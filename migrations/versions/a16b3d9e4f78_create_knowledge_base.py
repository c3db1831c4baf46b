"""create knowledge base table

Revision ID: a16b3d9e4f78
Revises: 9e5a2c8f3d67
Create Date: 2025-03-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "a16b3d9e4f78"
down_revision = "9e5a2c8f3d67"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "wathaci_knowledge",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("slug", sa.String(128), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("audience", sa.String(32), server_default="all", nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("tags", postgresql.JSONB(), server_default="[]", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index("ix_wathaci_knowledge_category", "wathaci_knowledge", ["category"])

    # Full-text search document (PostgreSQL only)
    op.execute(
        """
        ALTER TABLE wathaci_knowledge ADD COLUMN search_document tsvector
        GENERATED ALWAYS AS (
            setweight(to_tsvector('english', coalesce(title, '')), 'A') ||
            setweight(jsonb_to_tsvector('english', tags, '["string"]'), 'B') ||
            setweight(to_tsvector('english', coalesce(content, '')), 'C')
        ) STORED
        """
    )
    op.execute(
        "CREATE INDEX ix_wathaci_knowledge_search "
        "ON wathaci_knowledge USING gin (search_document)"
    )

    op.execute(
        "CREATE TRIGGER wathaci_knowledge_set_updated_at BEFORE UPDATE ON wathaci_knowledge "
        "FOR EACH ROW EXECUTE FUNCTION public.set_updated_at()"
    )

    op.execute("NOTIFY pgrst, 'reload schema'")


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS ix_wathaci_knowledge_search")
    op.drop_index("ix_wathaci_knowledge_category", table_name="wathaci_knowledge")
    op.drop_table("wathaci_knowledge")
