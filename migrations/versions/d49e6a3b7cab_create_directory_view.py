"""create v_directory_profiles view

Revision ID: d49e6a3b7cab
Revises: c38d5f2a6b9a
Create Date: 2025-04-29
"""
from alembic import op

revision = "d49e6a3b7cab"
down_revision = "c38d5f2a6b9a"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Listed as soon as an account type is chosen, complete or not
    op.execute(
        """
        CREATE OR REPLACE VIEW v_directory_profiles
        WITH (security_invoker = true) AS
        SELECT
            p.id,
            p.full_name,
            p.display_name,
            p.company_name,
            p.account_type,
            p.role_type,
            p.country,
            p.city,
            p.bio,
            p.avatar_url,
            p.website_url,
            p.linkedin_url,
            p.is_profile_complete,
            p.onboarding_step,
            p.created_at,
            COALESCE(
                to_jsonb(sme) - 'id' - 'profile_id' - 'created_at' - 'updated_at',
                to_jsonb(pro) - 'id' - 'profile_id' - 'created_at' - 'updated_at' - 'msisdn',
                to_jsonb(fr) - 'id' - 'profile_id' - 'created_at' - 'updated_at',
                to_jsonb(inv) - 'id' - 'profile_id' - 'created_at' - 'updated_at',
                to_jsonb(dn) - 'id' - 'profile_id' - 'created_at' - 'updated_at',
                to_jsonb(gov) - 'id' - 'profile_id' - 'created_at' - 'updated_at',
                to_jsonb(pp) - 'id' - 'profile_id' - 'created_at' - 'updated_at'
            ) AS extension
        FROM profiles p
        LEFT JOIN sme_profiles sme
            ON sme.profile_id = p.id AND p.account_type IN ('sme', 'sole_proprietor')
        LEFT JOIN professional_profiles pro
            ON pro.profile_id = p.id AND p.account_type = 'professional'
        LEFT JOIN freelancer_profiles fr
            ON fr.profile_id = p.id AND p.account_type = 'freelancer'
        LEFT JOIN investor_profiles inv
            ON inv.profile_id = p.id AND p.account_type = 'investor'
        LEFT JOIN donor_profiles dn
            ON dn.profile_id = p.id AND p.account_type = 'donor'
        LEFT JOIN government_profiles gov
            ON gov.profile_id = p.id AND p.account_type = 'government'
        LEFT JOIN partnership_profiles pp
            ON pp.profile_id = p.id AND p.account_type = 'partner'
        WHERE p.account_type IS NOT NULL
        """
    )
    op.execute("GRANT SELECT ON v_directory_profiles TO anon, authenticated")

    op.execute("NOTIFY pgrst, 'reload schema'")


def downgrade() -> None:
    op.execute("DROP VIEW IF EXISTS v_directory_profiles")
