"""
Donation, partnership and payment webhook API endpoints
"""
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from wathaci.api.deps import (
    encode, get_actor, get_db, require_authenticated, require_service_or_admin, translate_errors,
)
from wathaci.application.donations import CreateDonationUseCase, UpdateDonationStatusUseCase
from wathaci.application.partnerships import (
    ExpressInterestUseCase, UpsertPartnershipProfileUseCase, list_opportunities,
)
from wathaci.application.payments import RecordWebhookEventUseCase
from wathaci.security.policies import Actor
from wathaci.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1", tags=["payments"])


# === Request/Response models ===

class CreateDonationRequest(BaseModel):
    amount: str
    payment_method: str
    msisdn: Optional[str] = None
    currency: Optional[str] = None
    donor_name: Optional[str] = None
    is_anonymous: bool = False
    campaign_id: Optional[str] = None
    message: Optional[str] = None
    source: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v):
        return validate_and_normalize_amount(v, max_decimal_places=2)


class DonationResponse(BaseModel):
    id: uuid.UUID
    reference: str
    status: str
    amount: str
    currency: str
    platform_fee_amount: str
    net_amount: str


class DonationStatusRequest(BaseModel):
    status: str


class WebhookEventRequest(BaseModel):
    event_id: str
    event_type: Optional[str] = None
    payload: dict[str, Any] = {}


class InterestRequest(BaseModel):
    role: Optional[str] = None
    notes: Optional[str] = None


class PartnershipProfileRequest(BaseModel):
    org_name: Optional[str] = None
    org_type: Optional[str] = None
    sectors: Optional[list[str]] = None
    partnerships_sought: Optional[list[str]] = None
    country_focus: Optional[list[str]] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


def _donation_response(donation) -> DonationResponse:
    return DonationResponse(
        id=donation.id,
        reference=donation.reference,
        status=donation.status,
        amount=str(donation.amount),
        currency=donation.currency,
        platform_fee_amount=str(donation.platform_fee_amount),
        net_amount=str(donation.net_amount),
    )


# === Donations ===

@router.post("/donations", response_model=DonationResponse, status_code=201)
def create_donation(req: CreateDonationRequest, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    with translate_errors():
        donation = CreateDonationUseCase(db).execute(
            amount=req.amount,
            payment_method=req.payment_method,
            msisdn=req.msisdn,
            currency=req.currency,
            donor_user_id=actor.user_id,
            donor_name=req.donor_name,
            is_anonymous=req.is_anonymous,
            campaign_id=req.campaign_id,
            message=req.message,
            source=req.source,
        )
    return _donation_response(donation)


@router.post("/donations/{reference}/status", response_model=DonationResponse)
def update_donation_status(
    reference: str,
    req: DonationStatusRequest,
    actor: Actor = Depends(require_service_or_admin),
    db: Session = Depends(get_db),
):
    with translate_errors():
        donation = UpdateDonationStatusUseCase(db).execute(reference, req.status)
    return _donation_response(donation)


# === Gateway webhooks ===

@router.post("/webhooks/{provider}")
def receive_webhook(
    provider: str,
    req: WebhookEventRequest,
    actor: Actor = Depends(require_service_or_admin),
    db: Session = Depends(get_db),
):
    """Signature checks happen at the gateway edge; this endpoint needs the service key"""
    with translate_errors():
        result = RecordWebhookEventUseCase(db).execute(provider, req.event_id, req.event_type, req.payload)
    return encode(result)


# === Partnerships ===

@router.get("/partnerships/opportunities")
def opportunities(
    sector: Optional[str] = None,
    partnership_type: Optional[str] = None,
    tag: Optional[str] = None,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    rows = list_opportunities(db, actor, sector=sector, partnership_type=partnership_type, tag=tag)
    return encode([
        {
            "id": row.id,
            "title": row.title,
            "description": row.description,
            "partner_org_name": row.partner_org_name,
            "sectors": row.sectors,
            "partnership_type": row.partnership_type,
            "tags": row.tags,
            "is_featured": row.is_featured,
        }
        for row in rows
    ])


@router.post("/partnerships/opportunities/{opportunity_id}/interest", status_code=201)
def express_interest(
    opportunity_id: uuid.UUID,
    req: InterestRequest,
    actor: Actor = Depends(require_authenticated),
    db: Session = Depends(get_db),
):
    with translate_errors():
        interest_id = ExpressInterestUseCase(db).execute(actor, opportunity_id, role=req.role, notes=req.notes)
    return {"id": str(interest_id), "status": "new"}


@router.put("/partnerships/profile")
def upsert_partnership_profile(
    req: PartnershipProfileRequest,
    actor: Actor = Depends(require_authenticated),
    db: Session = Depends(get_db),
):
    with translate_errors():
        row = UpsertPartnershipProfileUseCase(db).execute(actor, **req.model_dump(exclude_none=True))
    return {"id": str(row.id), "profile_id": str(row.profile_id)}
