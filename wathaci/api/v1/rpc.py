"""
RPC endpoints - stored-procedure style operations under /rpc/<name>

Operations return structured dicts ({"success": ..., ...}) rather than HTTP
errors for business failures; only authentication and authorization problems
become 401/403.
"""
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from wathaci.api.deps import encode, get_db, require_authenticated, require_service_or_admin
from wathaci.application import entitlements, monitoring
from wathaci.application.profiles import (
    CompleteProfileUseCase, EnsureProfileExistsUseCase, SaveOnboardingProgressUseCase,
)
from wathaci.application.wallet_ledger import (
    AdminRepairWalletTransactionUseCase, ApplyWalletTransactionUseCase, calculate_platform_fee,
)
from wathaci.security.policies import Actor
from wathaci.utils.validation import normalize_decimal_input, validate_and_normalize_amount


router = APIRouter(prefix="/rpc", tags=["rpc"])


def _normalize_amount(v):
    """Ledger amounts are only normalized here; the ledger reports bad ones in its result"""
    if v is None:
        return None
    return normalize_decimal_input(str(v))


# === Request models ===

class ApplyWalletTransactionRequest(BaseModel):
    p_user_id: Optional[uuid.UUID] = None
    p_amount: Optional[str] = None
    p_currency: Optional[str] = None
    p_transaction_type: Optional[str] = None
    p_description: Optional[str] = None
    p_idempotency_key: Optional[str] = None
    p_provider_reference: Optional[str] = None
    p_metadata: Optional[dict[str, Any]] = None

    @field_validator("p_amount", mode="before")
    @classmethod
    def normalize_amount(cls, v):
        return _normalize_amount(v)


class AdminRepairRequest(BaseModel):
    p_user_id: uuid.UUID
    p_amount: str
    p_currency: str
    p_reason: str

    @field_validator("p_amount", mode="before")
    @classmethod
    def normalize_amount(cls, v):
        return _normalize_amount(v)


class EnsureProfileRequest(BaseModel):
    p_user_id: uuid.UUID
    p_email: Optional[str] = None
    p_full_name: Optional[str] = None
    p_msisdn: Optional[str] = None
    p_profile_type: Optional[str] = "customer"
    p_account_type: Optional[str] = None
    p_phone: Optional[str] = None
    p_company_name: Optional[str] = None


class SaveOnboardingRequest(BaseModel):
    p_onboarding_step: Optional[int] = None
    p_account_type: Optional[str] = None
    p_role_type: Optional[str] = None
    p_role_metadata: Optional[dict[str, Any]] = None


class CompleteProfileRequest(BaseModel):
    p_user_id: uuid.UUID
    p_base_data: Optional[dict[str, Any]] = None
    p_role_data: Optional[dict[str, Any]] = None
    p_account_type: Optional[str] = None


class UserRequest(BaseModel):
    p_user_id: Optional[uuid.UUID] = None


class PlatformFeeRequest(BaseModel):
    p_amount: str
    p_currency: str = "ZMW"

    @field_validator("p_amount", mode="before")
    @classmethod
    def validate_amount(cls, v):
        return validate_and_normalize_amount(v, max_decimal_places=2)


class SignupStatisticsRequest(BaseModel):
    p_hours: int = 24


# === Helpers ===

def _target_user(actor: Actor, requested: Optional[uuid.UUID]) -> uuid.UUID:
    """Users may only ask about themselves; admins and the service role about anyone"""
    if requested is None:
        if actor.user_id is None:
            raise HTTPException(status_code=400, detail="p_user_id is required")
        return actor.user_id
    if requested != actor.user_id and not (actor.bypasses_rls or actor.is_admin):
        raise HTTPException(status_code=403, detail="Not allowed to act on another user")
    return requested


# === Wallet ===

@router.post("/apply_wallet_transaction")
def apply_wallet_transaction(
    req: ApplyWalletTransactionRequest,
    actor: Actor = Depends(require_service_or_admin),
    db: Session = Depends(get_db),
):
    result = ApplyWalletTransactionUseCase(db).execute(
        user_id=req.p_user_id,
        amount=req.p_amount,
        currency=req.p_currency,
        transaction_type=req.p_transaction_type,
        description=req.p_description,
        idempotency_key=req.p_idempotency_key,
        provider_reference=req.p_provider_reference,
        metadata=req.p_metadata,
    )
    return encode(result)


@router.post("/admin_repair_wallet_transaction")
def admin_repair_wallet_transaction(
    req: AdminRepairRequest,
    actor: Actor = Depends(require_authenticated),
    db: Session = Depends(get_db),
):
    result = AdminRepairWalletTransactionUseCase(db).execute(
        actor_user_id=actor.user_id,
        user_id=req.p_user_id,
        amount=req.p_amount,
        currency=req.p_currency,
        reason=req.p_reason,
    )
    return encode(result)


@router.post("/calculate_platform_fee")
def platform_fee(req: PlatformFeeRequest, db: Session = Depends(get_db)):
    return encode({"fee": calculate_platform_fee(db, req.p_amount, req.p_currency)})


# === Profiles ===

@router.post("/ensure_profile_exists")
def ensure_profile_exists(
    req: EnsureProfileRequest,
    actor: Actor = Depends(require_authenticated),
    db: Session = Depends(get_db),
):
    user_id = _target_user(actor, req.p_user_id)
    created = EnsureProfileExistsUseCase(db).execute(
        user_id=user_id,
        email=req.p_email,
        full_name=req.p_full_name,
        msisdn=req.p_msisdn,
        profile_type=req.p_profile_type,
        account_type=req.p_account_type,
        phone=req.p_phone,
        company_name=req.p_company_name,
    )
    return {"success": True, "created": created}


@router.post("/save_onboarding_progress")
def save_onboarding_progress(
    req: SaveOnboardingRequest,
    actor: Actor = Depends(require_authenticated),
    db: Session = Depends(get_db),
):
    result = SaveOnboardingProgressUseCase(db).execute(
        user_id=actor.user_id,
        onboarding_step=req.p_onboarding_step,
        account_type=req.p_account_type,
        role_type=req.p_role_type,
        role_metadata=req.p_role_metadata,
    )
    return encode(result)


@router.post("/complete_profile")
def complete_profile(
    req: CompleteProfileRequest,
    actor: Actor = Depends(require_authenticated),
    db: Session = Depends(get_db),
):
    result = CompleteProfileUseCase(db).execute(
        actor_user_id=actor.user_id,
        user_id=req.p_user_id,
        base_data=req.p_base_data,
        role_data=req.p_role_data,
        account_type=req.p_account_type,
    )
    return encode(result)


# === Entitlements ===

@router.post("/has_full_access")
def has_full_access(
    req: UserRequest,
    actor: Actor = Depends(require_authenticated),
    db: Session = Depends(get_db),
):
    user_id = _target_user(actor, req.p_user_id)
    return entitlements.has_full_access(db, user_id)


@router.post("/get_user_entitlements")
def get_user_entitlements(
    req: UserRequest,
    actor: Actor = Depends(require_authenticated),
    db: Session = Depends(get_db),
):
    user_id = _target_user(actor, req.p_user_id)
    return encode(entitlements.get_user_entitlements(db, user_id))


# === Signup monitoring ===

@router.post("/get_signup_statistics")
def get_signup_statistics(
    req: SignupStatisticsRequest,
    actor: Actor = Depends(require_service_or_admin),
    db: Session = Depends(get_db),
):
    return encode(monitoring.get_signup_statistics(db, req.p_hours))


@router.post("/monitor_signup_health")
def monitor_signup_health(
    actor: Actor = Depends(require_service_or_admin),
    db: Session = Depends(get_db),
):
    return encode(monitoring.monitor_signup_health(db))


@router.post("/users_without_profiles")
def users_without_profiles(
    actor: Actor = Depends(require_service_or_admin),
    db: Session = Depends(get_db),
):
    return encode(monitoring.users_without_profiles(db))


@router.post("/get_user_signup_events")
def get_user_signup_events(
    req: UserRequest,
    actor: Actor = Depends(require_authenticated),
    db: Session = Depends(get_db),
):
    user_id = _target_user(actor, req.p_user_id)
    return encode(monitoring.get_user_signup_events(db, user_id))


@router.post("/backfill_missing_profiles")
def backfill_missing_profiles(
    actor: Actor = Depends(require_service_or_admin),
    db: Session = Depends(get_db),
):
    return encode(monitoring.backfill_missing_profiles(db))
