"""
Profile use cases - signup hook, onboarding progress, profile completion

Every identity gets exactly one profile (profiles.id == users.id). The row is
created by on_auth_user_created when a User is inserted, and can be repaired
later with EnsureProfileExistsUseCase (idempotent insert-or-merge).
"""
import logging
import uuid
from contextlib import nullcontext

from sqlalchemy import event, insert, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Session

from wathaci.domain.account_types import (
    ACCOUNT_TYPE_DONOR, ACCOUNT_TYPE_FREELANCER, ACCOUNT_TYPE_GOVERNMENT, ACCOUNT_TYPE_INVESTOR,
    ACCOUNT_TYPE_PARTNER, ACCOUNT_TYPE_PROFESSIONAL, ACCOUNT_TYPE_SME, ACCOUNT_TYPE_SOLE_PROPRIETOR,
    ONBOARDING_LAST_STEP, clamp_onboarding_step, normalize_account_type,
)
from wathaci.infrastructure.audit.listeners import json_safe, record_core_update
from wathaci.infrastructure.db.models import (
    DonorProfile, FreelancerProfile, GovernmentProfile, InvestorProfile, PartnershipProfile,
    ProfessionalProfile, Profile, SmeProfile, User, UserEvent,
)
from wathaci.utils.dates import utcnow

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_TYPE = "customer"

# account type -> role extension table
EXTENSION_MODELS = {
    ACCOUNT_TYPE_SME: SmeProfile,
    ACCOUNT_TYPE_SOLE_PROPRIETOR: SmeProfile,
    ACCOUNT_TYPE_PROFESSIONAL: ProfessionalProfile,
    ACCOUNT_TYPE_FREELANCER: FreelancerProfile,
    ACCOUNT_TYPE_INVESTOR: InvestorProfile,
    ACCOUNT_TYPE_DONOR: DonorProfile,
    ACCOUNT_TYPE_GOVERNMENT: GovernmentProfile,
    ACCOUNT_TYPE_PARTNER: PartnershipProfile,
}

BASE_PROFILE_FIELDS = (
    "full_name", "display_name", "phone", "country", "city", "bio",
    "website_url", "linkedin_url", "avatar_url",
)

_BOOKKEEPING_COLUMNS = {"id", "profile_id", "created_at", "updated_at"}


class ProfileValidationError(ValueError):
    pass


def placeholder_email(user_id) -> str:
    return f"missing-email-{user_id}@example.invalid"


def _blank_to_none(value):
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ============================================================================
# Core-level helpers (usable inside a flush, where the ORM session is busy)
# ============================================================================


def log_user_event(conn: Connection, user_id, event_type: str, email: str | None = None, payload: dict | None = None) -> None:
    conn.execute(
        insert(UserEvent.__table__).values(
            user_id=user_id,
            event_type=event_type,
            email=email,
            payload=payload or {},
            created_at=utcnow(),
        )
    )


def ensure_profile_row(
    conn: Connection,
    user_id,
    email: str | None,
    full_name: str | None = None,
    msisdn: str | None = None,
    profile_type: str | None = DEFAULT_PROFILE_TYPE,
    account_type: str | None = None,
    phone: str | None = None,
    company_name: str | None = None,
) -> bool:
    """
    Insert the profile for a user, or fill its empty fields.

    Existing non-empty values always win over the incoming ones.
    Unknown account types are stored as NULL. A merge that fills anything is
    audited like an ORM profile update; nothing to fill means no write at all.

    Returns:
        True if a new row was inserted
    """
    profiles = Profile.__table__
    incoming = {
        "email": _blank_to_none(email) or placeholder_email(user_id),
        "full_name": _blank_to_none(full_name),
        "msisdn": _blank_to_none(msisdn),
        "profile_type": _blank_to_none(profile_type) or DEFAULT_PROFILE_TYPE,
        "account_type": normalize_account_type(account_type),
        "phone": _blank_to_none(phone),
        "company_name": _blank_to_none(company_name),
    }

    existing = conn.execute(select(profiles).where(profiles.c.id == user_id)).mappings().first()

    now = utcnow()
    if existing is None:
        conn.execute(insert(profiles).values(id=user_id, created_at=now, updated_at=now, **incoming))
        return True

    merged = {}
    for key, value in incoming.items():
        if _blank_to_none(existing[key]) is None and value is not None:
            merged[key] = value
    if not merged:
        return False

    merged["updated_at"] = now
    conn.execute(update(profiles).where(profiles.c.id == user_id).values(**merged))

    old_row = {name: json_safe(value) for name, value in existing.items()}
    new_row = dict(old_row)
    new_row.update({name: json_safe(value) for name, value in merged.items()})
    record_core_update(conn, profiles.name, user_id, user_id, old_row, new_row)
    return False


def savepoint(conn: Connection):
    # a failed statement aborts the whole PostgreSQL transaction unless it ran in a savepoint
    if conn.dialect.name == "postgresql":
        return conn.begin_nested()
    return nullcontext()


def handle_new_user(conn: Connection, user: User) -> None:
    """
    Create the profile for a freshly inserted user from its email and metadata.

    Never raises: a failure is recorded as a profile_creation_error event
    so the user insert itself goes through.
    """
    metadata = user.raw_user_meta_data or {}
    email = user.email or metadata.get("email") or metadata.get("user_email")
    msisdn = metadata.get("msisdn") or user.phone
    event_email = email or placeholder_email(user.id)

    log_user_event(conn, user.id, "auth_user_created", event_email, {"source": "auth_trigger"})

    try:
        with savepoint(conn):
            ensure_profile_row(
                conn,
                user.id,
                email=email,
                full_name=metadata.get("full_name"),
                msisdn=msisdn,
                profile_type=metadata.get("profile_type"),
                account_type=metadata.get("account_type"),
                phone=msisdn,
                company_name=metadata.get("company_name") or metadata.get("business_name"),
            )
    except Exception as exc:
        logger.exception("Profile creation failed for user %s", user.id)
        log_user_event(
            conn, user.id, "profile_creation_error", event_email,
            {"error": str(exc), "context": "handle_new_user"},
        )
        return

    log_user_event(conn, user.id, "signup_completed", event_email, {"profile_source": "trigger"})


def on_auth_user_created(mapper, connection, target) -> None:
    handle_new_user(connection, target)


def install_signup_hook() -> None:
    """Attach handle_new_user to User inserts (safe to call repeatedly)"""
    if not event.contains(User, "after_insert", on_auth_user_created):
        event.listen(User, "after_insert", on_auth_user_created)


# ============================================================================
# Use cases
# ============================================================================


class EnsureProfileExistsUseCase:
    """
    Use case: make sure a user has a profile row (insert or merge)

    Repeated calls are no-ops apart from filling still-empty fields.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user_id: uuid.UUID,
        email: str | None,
        full_name: str | None = None,
        msisdn: str | None = None,
        profile_type: str | None = DEFAULT_PROFILE_TYPE,
        account_type: str | None = None,
        phone: str | None = None,
        company_name: str | None = None,
    ) -> bool:
        if user_id is None:
            raise ProfileValidationError("User ID is required")

        created = ensure_profile_row(
            self.db.connection(),
            user_id,
            email=email,
            full_name=full_name,
            msisdn=msisdn,
            profile_type=profile_type,
            account_type=account_type,
            phone=phone,
            company_name=company_name,
        )
        self.db.commit()
        return created


class SaveOnboardingProgressUseCase:
    """
    Use case: persist the caller's onboarding wizard state

    - step is clamped to 1..4 and never moves backwards
    - account_type is saved immediately (the profile shows up in the directory)
    - role_type defaults to the account type
    - role_metadata is replaced only when supplied
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user_id: uuid.UUID | None,
        onboarding_step: int | None,
        account_type: str | None = None,
        role_type: str | None = None,
        role_metadata: dict | None = None,
    ) -> dict:
        if user_id is None:
            return {"success": False, "error": "Not authenticated"}

        normalized = normalize_account_type(account_type)
        if _blank_to_none(account_type) is not None and normalized is None:
            return {"success": False, "error": f"Invalid account type: {account_type}"}

        try:
            step = clamp_onboarding_step(onboarding_step)
            profile = self.db.query(Profile).filter(Profile.id == user_id).first()
            if profile is None:
                profile = Profile(
                    id=user_id,
                    account_type=normalized,
                    role_type=role_type or normalized,
                    role_metadata=role_metadata or {},
                    onboarding_step=step,
                    is_profile_complete=False,
                    profile_completed=False,
                )
                self.db.add(profile)
            else:
                if normalized is not None:
                    profile.account_type = normalized
                profile.role_type = role_type or normalized or profile.role_type or profile.account_type
                if role_metadata is not None:
                    profile.role_metadata = role_metadata
                profile.onboarding_step = max(profile.onboarding_step or 1, step)

            self.db.commit()
        except Exception as exc:
            self.db.rollback()
            logger.exception("save_onboarding_progress failed for user %s", user_id)
            return {"success": False, "error": str(exc)}

        return {
            "success": True,
            "nextStep": min(profile.onboarding_step + 1, ONBOARDING_LAST_STEP),
            "profileCompleted": bool(profile.is_profile_complete or profile.profile_completed),
            "onboarding_step": profile.onboarding_step,
            "account_type": profile.account_type,
        }


def _column_reset_value(column):
    default = column.default
    if default is None:
        return None
    if default.is_callable:
        return default.arg(None)
    if default.is_scalar:
        return default.arg
    return None


def _extension_values(model, role_data: dict) -> dict:
    values = {}
    for column in model.__table__.columns:
        if column.key in _BOOKKEEPING_COLUMNS:
            continue
        value = role_data.get(column.key)
        values[column.key] = _column_reset_value(column) if value is None else value
    return values


class CompleteProfileUseCase:
    """
    Use case: finish onboarding in one call

    Process:
    1. Update base profile fields (incoming non-null values win)
    2. Upsert the role extension row for the account type
    3. Mark the profile complete at the last onboarding step
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        actor_user_id: uuid.UUID | None,
        user_id: uuid.UUID,
        base_data: dict | None,
        role_data: dict | None,
        account_type: str | None,
    ) -> dict:
        if actor_user_id is None or actor_user_id != user_id:
            return {"success": False, "error": "Unauthorized"}

        normalized = normalize_account_type(account_type)
        if normalized is None:
            return {"success": False, "error": f"Invalid account type: {account_type}"}

        base_data = base_data or {}
        try:
            profile = self.db.query(Profile).filter(Profile.id == user_id).first()
            if profile is None:
                return {"success": False, "error": "Profile not found"}

            profile.account_type = normalized
            for field in BASE_PROFILE_FIELDS:
                value = base_data.get(field)
                if value is not None:
                    setattr(profile, field, value)

            model = EXTENSION_MODELS.get(normalized)
            if model is not None:
                self._upsert_extension(model, user_id, role_data or {})

            profile.is_profile_complete = True
            profile.profile_completed = True
            profile.onboarding_step = ONBOARDING_LAST_STEP
            profile.role_type = profile.role_type or normalized
            if role_data is not None:
                profile.role_metadata = role_data

            self.db.commit()
        except Exception as exc:
            self.db.rollback()
            logger.exception("complete_profile failed for user %s", user_id)
            return {"success": False, "error": str(exc)}

        return {"success": True, "message": "Profile completed successfully"}

    def _upsert_extension(self, model, profile_id, role_data: dict):
        values = _extension_values(model, role_data)
        row = self.db.query(model).filter(model.profile_id == profile_id).first()
        if row is None:
            self.db.add(model(profile_id=profile_id, **values))
        else:
            for key, value in values.items():
                setattr(row, key, value)
