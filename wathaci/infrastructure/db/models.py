"""
SQLAlchemy ORM models

Column shapes follow the final authoritative definition of every table;
PostgreSQL-only artifacts (RLS policies, views, regex CHECKs, generated
tsvector columns, updated_at triggers) live in the Alembic revisions.
"""
import uuid
from datetime import date as date_type, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Text, Integer, SmallInteger, Boolean, Numeric, Date, TIMESTAMP, Uuid,
    ForeignKey, UniqueConstraint, CheckConstraint, Index, func, text,
)
from sqlalchemy.orm import Mapped, mapped_column, validates
from sqlalchemy.dialects.postgresql import JSONB

from wathaci.infrastructure.db.session import Base
from wathaci.domain.account_types import ACCOUNT_TYPES, PROFILE_STATUSES
from wathaci.domain.msisdn import is_valid_msisdn
from wathaci.utils.dates import utcnow


def _in_list(column: str, values) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


def _created_at():
    return mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


def _updated_at():
    return mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(),
        onupdate=utcnow, nullable=False
    )


# ============================================================================
# Identity
# ============================================================================


class User(Base):
    """
    Identity record (stand-in for the auth provider's user table).

    Inserting a row creates the matching profile, see
    wathaci.application.profiles.on_auth_user_created.
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    raw_user_meta_data: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    last_sign_in_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    created_at: Mapped[datetime] = _created_at()


class UserRole(Base):
    __tablename__ = "user_roles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String(32), nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
        CheckConstraint(_in_list("role", ("admin", "super_admin", "moderator", "user")), name="ck_user_roles_role"),
    )


class UserEvent(Base):
    """Signup observability log (auth_user_created, signup_completed, ...)"""
    __tablename__ = "user_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    payload: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    created_at: Mapped[datetime] = _created_at()


# ============================================================================
# Profiles
# ============================================================================


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    msisdn: Mapped[str | None] = mapped_column(String(32), nullable=True)
    payment_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    use_same_phone: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    profile_type: Mapped[str] = mapped_column(String(32), nullable=False, default="customer", server_default="customer")

    account_type: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    role_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    role_metadata: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    website_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    linkedin_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(32), nullable=False, default="incomplete", server_default="incomplete")
    onboarding_step: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=1, server_default="1")
    is_profile_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    profile_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")

    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    __table_args__ = (
        CheckConstraint(
            "account_type IS NULL OR " + _in_list("account_type", ACCOUNT_TYPES),
            name="ck_profiles_account_type",
        ),
        CheckConstraint(_in_list("status", PROFILE_STATUSES), name="ck_profiles_status"),
        CheckConstraint("onboarding_step BETWEEN 1 AND 4", name="ck_profiles_onboarding_step"),
    )


class SmeProfile(Base):
    __tablename__ = "sme_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    business_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    industry: Mapped[str | None] = mapped_column(String(255), nullable=True)
    business_stage: Mapped[str | None] = mapped_column(String(64), nullable=True)
    services_or_products: Mapped[str | None] = mapped_column(Text, nullable=True)
    top_needs: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    areas_served: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    registration_status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    team_size_range: Mapped[str | None] = mapped_column(String(64), nullable=True)
    funding_needed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    funding_range: Mapped[str | None] = mapped_column(String(64), nullable=True)
    preferred_support: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    sectors_of_interest: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class ProfessionalProfile(Base):
    __tablename__ = "professional_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    qualifications: Mapped[str | None] = mapped_column(Text, nullable=True)
    expertise_areas: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    years_experience: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="ZMW", server_default="ZMW")
    msisdn: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class FreelancerProfile(Base):
    __tablename__ = "freelancer_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    professional_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    primary_skills: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    services_offered: Mapped[str | None] = mapped_column(Text, nullable=True)
    experience_level: Mapped[str | None] = mapped_column(String(64), nullable=True)
    availability: Mapped[str | None] = mapped_column(String(64), nullable=True)
    work_mode: Mapped[str | None] = mapped_column(String(64), nullable=True)
    rate_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    rate_range: Mapped[str | None] = mapped_column(String(64), nullable=True)
    portfolio_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    certifications: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    languages: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    preferred_industries: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class InvestorProfile(Base):
    __tablename__ = "investor_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    investor_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    ticket_size_range: Mapped[str | None] = mapped_column(String(64), nullable=True)
    investment_stage_focus: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    sectors_of_interest: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    investment_preferences: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    geo_focus: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    thesis: Mapped[str | None] = mapped_column(Text, nullable=True)
    decision_timeline: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class DonorProfile(Base):
    __tablename__ = "donor_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    organization_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    donor_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    focus_areas: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    funding_range: Mapped[str | None] = mapped_column(String(64), nullable=True)
    geo_focus: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class GovernmentProfile(Base):
    __tablename__ = "government_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    institution_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    department_or_unit: Mapped[str | None] = mapped_column(String(255), nullable=True)
    institution_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    mandate_areas: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    services_or_programmes: Mapped[str | None] = mapped_column(Text, nullable=True)
    collaboration_interests: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    contact_person_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    current_initiatives: Mapped[str | None] = mapped_column(Text, nullable=True)
    eligibility_criteria: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


# ============================================================================
# Subscriptions, payments, wallet
# ============================================================================


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    account_type: Mapped[str] = mapped_column(String(32), nullable=False)
    price_zmw: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    price_usd: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    billing_interval: Mapped[str] = mapped_column(String(16), nullable=False, default="monthly", server_default="monthly")
    features: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class Subscription(Base):
    __tablename__ = "subscriptions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    plan_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("subscription_plans.id"), nullable=True
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="trialing", server_default="trialing")
    current_period_start: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    current_period_end: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    cancelled_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    trial_end: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="ZMW", server_default="ZMW")
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    __table_args__ = (
        CheckConstraint(
            _in_list("status", ("active", "trialing", "past_due", "cancelled", "expired")),
            name="ck_subscriptions_status",
        ),
        Index("ix_subscriptions_user_status", "user_id", "status"),
    )


class PlatformFeeTier(Base):
    __tablename__ = "platform_fee_tiers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    min_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    max_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    fee_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="ZMW", server_default="ZMW")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = _created_at()


class PaymentAccount(Base):
    """
    Per-user wallet. Balances are mutated only by ApplyWalletTransactionUseCase.
    """
    __tablename__ = "payment_accounts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    balance_zmw: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"), server_default="0")
    balance_usd: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"), server_default="0")
    pending_balance_zmw: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"), server_default="0")
    pending_balance_usd: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"), server_default="0")
    provider_account_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    bank_account_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    bank_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    mobile_money_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    mobile_money_provider: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    recipient_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    transaction_type: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="ZMW", server_default="ZMW")
    platform_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"), server_default="0")
    net_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")
    provider_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)
    provider_transaction_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_json: Mapped[dict] = mapped_column("metadata", JSONB, nullable=False, default=dict)
    subscription_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("subscriptions.id"), nullable=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    __table_args__ = (
        Index("ix_transactions_user_status", "user_id", "status"),
    )


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="ZMW", server_default="ZMW")
    payment_provider: Mapped[str] = mapped_column(String(32), nullable=False)
    provider_payment_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="initiated", server_default="initiated")
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="subscription", server_default="subscription")
    metadata_json: Mapped[dict] = mapped_column("metadata", JSONB, nullable=False, default=dict)
    reference: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    __table_args__ = (
        CheckConstraint(
            _in_list("status", ("initiated", "pending", "succeeded", "failed", "refunded")),
            name="ck_payments_status",
        ),
        Index("ix_payments_user_status", "user_id", "status"),
    )


class WebhookEvent(Base):
    __tablename__ = "webhook_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    event_id: Mapped[str] = mapped_column(String(255), nullable=False)
    event_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payload: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    processed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    received_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("provider", "event_id", name="uq_webhook_events_provider_event"),
    )


# ============================================================================
# Donations
# ============================================================================


class Donation(Base):
    __tablename__ = "donations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    campaign_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    donor_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    donor_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="ZMW", server_default="ZMW")
    payment_method: Mapped[str] = mapped_column(String(16), nullable=False)
    msisdn: Mapped[str | None] = mapped_column(String(32), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")
    reference: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    platform_fee_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    net_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="web", server_default="web")
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_donations_amount_positive"),
        CheckConstraint(_in_list("payment_method", ("mobile_money", "card")), name="ck_donations_payment_method"),
        CheckConstraint(_in_list("status", ("pending", "completed", "failed", "cancelled")), name="ck_donations_status"),
    )

    @validates("msisdn")
    def _validate_msisdn(self, key, value):
        # PostgreSQL enforces the same pattern with donations_msisdn_format_check
        if value is not None and not is_valid_msisdn(value):
            raise ValueError(f"Invalid MSISDN: {value!r}")
        return value


# ============================================================================
# Partnerships
# ============================================================================


class PartnershipOpportunity(Base):
    __tablename__ = "partnership_opportunities"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    partner_org_name: Mapped[str] = mapped_column(String(255), nullable=False)
    partner_org_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    country_focus: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    sectors: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    partnership_type: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    target_beneficiaries: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    requirements_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    is_ongoing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    link_to_more_info: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    tags: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    created_by_profile_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class PartnershipInterest(Base):
    __tablename__ = "partnership_interests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    opportunity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("partnership_opportunities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    initiator_profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="new", server_default="new")
    matching_score: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    __table_args__ = (
        UniqueConstraint("opportunity_id", "initiator_profile_id", name="uq_partnership_interest_once"),
    )


class PartnershipProfile(Base):
    __tablename__ = "partnership_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    org_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    org_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    sectors: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    partnerships_sought: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    country_focus: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


# ============================================================================
# Audit, knowledge base, registrations
# ============================================================================


class AuditLog(Base):
    """Append-only audit trail, populated by wathaci.infrastructure.audit.listeners"""
    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    table_name: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    record_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    old_data: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    new_data: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    metadata_json: Mapped[dict] = mapped_column("metadata", JSONB, nullable=False, default=dict)
    created_at: Mapped[datetime] = _created_at()


class KnowledgeEntry(Base):
    __tablename__ = "wathaci_knowledge"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    slug: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    audience: Mapped[str] = mapped_column(String(32), nullable=False, default="all", server_default="all")
    content: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class Registration(Base):
    __tablename__ = "registrations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    account_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    mobile_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    __table_args__ = (
        Index("uq_registrations_email_lower", text("lower(email)"), unique=True),
    )
