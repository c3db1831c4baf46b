"""enable row level security and create policies

Revision ID: e5af7b4c8dbc
Revises: d49e6a3b7cab
Create Date: 2025-05-12

Same policy set as wathaci.security.policies.POLICIES.
"""
from alembic import op

revision = "e5af7b4c8dbc"
down_revision = "d49e6a3b7cab"
branch_labels = None
depends_on = None


OWN = "{col} = auth.uid()"
ADMIN = "public.is_admin(auth.uid())"

EXTENSION_TABLES = (
    "sme_profiles", "professional_profiles", "freelancer_profiles",
    "investor_profiles", "donor_profiles", "government_profiles",
)

# (table, policy name, command, roles, USING, WITH CHECK)
POLICIES = [
    ("profiles", "profiles_select_own", "SELECT", "authenticated", OWN.format(col="id"), None),
    ("profiles", "profiles_insert_own", "INSERT", "authenticated", None, OWN.format(col="id")),
    ("profiles", "profiles_update_own", "UPDATE", "authenticated", OWN.format(col="id"), OWN.format(col="id")),
    ("profiles", "profiles_directory_select", "SELECT", "anon, authenticated", "account_type IS NOT NULL", None),
    ("profiles", "profiles_admin_all", "ALL", "authenticated", ADMIN, ADMIN),

    *[
        policy
        for table in EXTENSION_TABLES
        for policy in (
            (table, f"{table}_select_authenticated", "SELECT", "authenticated", "true", None),
            (table, f"{table}_insert_own", "INSERT", "authenticated", None, OWN.format(col="profile_id")),
            (table, f"{table}_update_own", "UPDATE", "authenticated",
             OWN.format(col="profile_id"), OWN.format(col="profile_id")),
        )
    ],

    ("payment_accounts", "payment_accounts_select_own", "SELECT", "authenticated", OWN.format(col="user_id"), None),
    ("payment_accounts", "payment_accounts_insert_own", "INSERT", "authenticated", None, OWN.format(col="user_id")),
    ("payment_accounts", "payment_accounts_update_own", "UPDATE", "authenticated",
     OWN.format(col="user_id"), OWN.format(col="user_id")),
    ("transactions", "transactions_select_own_or_recipient", "SELECT", "authenticated",
     "user_id = auth.uid() OR recipient_id = auth.uid()", None),
    ("subscriptions", "subscriptions_select_own", "SELECT", "authenticated", OWN.format(col="user_id"), None),
    ("payments", "payments_select_own", "SELECT", "authenticated", OWN.format(col="user_id"), None),
    ("subscription_plans", "subscription_plans_select_active", "SELECT", "anon, authenticated", "is_active", None),
    ("subscription_plans", "subscription_plans_admin_all", "ALL", "authenticated", ADMIN, ADMIN),
    ("platform_fee_tiers", "platform_fee_tiers_select_active", "SELECT", "anon, authenticated", "is_active", None),
    ("webhook_events", None, None, None, None, None),

    ("donations", "donations_insert_any", "INSERT", "anon, authenticated", None, "true"),
    ("donations", "donations_select_own_or_admin", "SELECT", "authenticated",
     f"donor_user_id = auth.uid() OR {ADMIN}", None),

    ("audit_logs", "audit_logs_select_own", "SELECT", "authenticated", OWN.format(col="user_id"), None),
    ("audit_logs", "audit_logs_select_admin", "SELECT", "authenticated", ADMIN, None),
    ("audit_logs", "audit_logs_insert", "INSERT", "authenticated", None, "true"),
    ("user_events", "user_events_select_own", "SELECT", "authenticated", OWN.format(col="user_id"), None),

    ("partnership_opportunities", "partnership_opportunities_select_active", "SELECT", "anon, authenticated",
     "is_active", None),
    ("partnership_opportunities", "partnership_opportunities_admin_all", "ALL", "authenticated", ADMIN, ADMIN),
    ("partnership_interests", "partnership_interests_own", "ALL", "authenticated",
     OWN.format(col="initiator_profile_id"), OWN.format(col="initiator_profile_id")),
    ("partnership_profiles", "partnership_profiles_select_active", "SELECT", "anon, authenticated",
     "is_active", None),
    ("partnership_profiles", "partnership_profiles_own", "ALL", "authenticated",
     OWN.format(col="profile_id"), OWN.format(col="profile_id")),

    ("wathaci_knowledge", "wathaci_knowledge_select_active", "SELECT", "anon, authenticated", "is_active", None),
    ("wathaci_knowledge", "wathaci_knowledge_admin_all", "ALL", "authenticated", ADMIN, ADMIN),

    ("registrations", "registrations_insert_public", "INSERT", "anon, authenticated", None, "true"),
    ("registrations", "registrations_select_admin", "SELECT", "authenticated", ADMIN, None),

    ("user_roles", "user_roles_select_own", "SELECT", "authenticated", OWN.format(col="user_id"), None),
    ("user_roles", "user_roles_admin_all", "ALL", "authenticated", ADMIN, ADMIN),
]


def _tables():
    seen = []
    for table, *_ in POLICIES:
        if table not in seen:
            seen.append(table)
    return seen


def _quote(sql):
    return sql.replace("'", "''")


def _create_policy(table, name, command, roles, using, check) -> None:
    statement = f"CREATE POLICY {name} ON public.{table} FOR {command} TO {roles}"
    if using is not None:
        statement += f" USING ({using})"
    if check is not None:
        statement += f" WITH CHECK ({check})"
    op.execute(
        f"""
        DO $$
        BEGIN
            IF NOT EXISTS (
                SELECT 1 FROM pg_policies
                WHERE schemaname = 'public' AND tablename = '{table}' AND policyname = '{name}'
            ) THEN
                EXECUTE '{_quote(statement)}';
            END IF;
        END$$;
        """
    )


def upgrade() -> None:
    # Bypasses RLS on user_roles so the admin check does not recurse
    op.execute(
        """
        CREATE OR REPLACE FUNCTION public.is_admin(uid uuid) RETURNS boolean
        LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
            SELECT EXISTS (
                SELECT 1 FROM user_roles
                WHERE user_id = uid AND role IN ('admin', 'super_admin')
            ) OR EXISTS (
                SELECT 1 FROM users WHERE id = uid AND is_admin
            )
        $$
        """
    )

    for table in _tables():
        op.execute(f"ALTER TABLE public.{table} ENABLE ROW LEVEL SECURITY")
        op.execute(f"GRANT SELECT, INSERT, UPDATE, DELETE ON public.{table} TO authenticated, service_role")
        op.execute(f"GRANT SELECT ON public.{table} TO anon")

    op.execute("GRANT INSERT ON public.donations, public.registrations TO anon")
    op.execute("GRANT USAGE ON SCHEMA auth TO anon, authenticated, service_role")

    for table, name, command, roles, using, check in POLICIES:
        # RLS on, no policy: only service_role
        if name is None:
            continue
        _create_policy(table, name, command, roles, using, check)

    op.execute("NOTIFY pgrst, 'reload schema'")


def downgrade() -> None:
    for table, name, *_ in reversed(POLICIES):
        if name is not None:
            op.execute(f"DROP POLICY IF EXISTS {name} ON public.{table}")
    for table in _tables():
        op.execute(f"ALTER TABLE public.{table} DISABLE ROW LEVEL SECURITY")
    op.execute("DROP FUNCTION IF EXISTS public.is_admin(uuid)")

    op.execute("NOTIFY pgrst, 'reload schema'")
