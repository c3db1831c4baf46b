"""
Partnership use cases - opportunities, expressions of interest, partner profiles
"""
import uuid
from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wathaci.infrastructure.db.models import (
    PartnershipInterest, PartnershipOpportunity, PartnershipProfile, Profile,
)
from wathaci.infrastructure.db.session import is_postgres
from wathaci.security.policies import Actor, authorize_write, visible

INTEREST_STATUSES = ("new", "in_review", "accepted", "declined")

_PROFILE_FIELDS = ("org_name", "org_type", "sectors", "partnerships_sought", "country_focus", "description", "is_active")
_LIST_FIELDS = ("sectors", "partnerships_sought", "country_focus")


class PartnershipValidationError(ValueError):
    pass


def _as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def list_opportunities(
    db: Session,
    actor: Actor,
    sector: str | None = None,
    partnership_type: str | None = None,
    tag: str | None = None,
    limit: int = 50,
) -> list[PartnershipOpportunity]:
    """
    Active opportunities, featured first then newest.

    Sector, type and tag filters match array membership.
    """
    query = visible(db, PartnershipOpportunity, actor).filter(PartnershipOpportunity.is_active.is_(True))
    filters = (
        (PartnershipOpportunity.sectors, sector),
        (PartnershipOpportunity.partnership_type, partnership_type),
        (PartnershipOpportunity.tags, tag),
    )
    postgres = is_postgres(db)
    if postgres:
        for column, value in filters:
            if value:
                query = query.filter(column.contains([value]))

    query = query.order_by(PartnershipOpportunity.is_featured.desc(), PartnershipOpportunity.created_at.desc())
    if postgres:
        return query.limit(limit).all()

    # JSON arrays without containment operators: filter in Python
    rows = query.all()
    for column, value in filters:
        if value:
            rows = [row for row in rows if value in (getattr(row, column.key) or [])]
    return rows[:limit]


class CreateOpportunityUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        actor: Actor,
        title: str,
        description: str,
        partner_org_name: str,
        partner_org_type: str | None = None,
        sectors=None,
        partnership_type=None,
        country_focus=None,
        tags=None,
        start_date: date | None = None,
        end_date: date | None = None,
        is_featured: bool = False,
        contact_email: str | None = None,
        link_to_more_info: str | None = None,
    ) -> uuid.UUID:
        title = (title or "").strip()
        if not title:
            raise PartnershipValidationError("Title is required")
        if not (description or "").strip():
            raise PartnershipValidationError("Description is required")
        if not (partner_org_name or "").strip():
            raise PartnershipValidationError("Partner organisation is required")
        if start_date and end_date and end_date < start_date:
            raise PartnershipValidationError("End date must not be before start date")

        opportunity = PartnershipOpportunity(
            title=title,
            description=description.strip(),
            partner_org_name=partner_org_name.strip(),
            partner_org_type=partner_org_type,
            sectors=_as_list(sectors),
            partnership_type=_as_list(partnership_type),
            country_focus=_as_list(country_focus),
            tags=_as_list(tags),
            start_date=start_date,
            end_date=end_date,
            is_ongoing=end_date is None,
            is_featured=is_featured,
            contact_email=contact_email,
            link_to_more_info=link_to_more_info,
            created_by_profile_id=actor.user_id,
        )
        authorize_write(actor, "insert", opportunity)
        self.db.add(opportunity)
        self.db.flush()
        self.db.commit()
        return opportunity.id


class ExpressInterestUseCase:
    """
    Use case: a profile registers interest in an opportunity (once per opportunity)
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        actor: Actor,
        opportunity_id: uuid.UUID,
        role: str | None = None,
        notes: str | None = None,
    ) -> uuid.UUID:
        if actor.user_id is None:
            raise PartnershipValidationError("Not authenticated")

        opportunity = self.db.query(PartnershipOpportunity).filter(
            PartnershipOpportunity.id == opportunity_id,
            PartnershipOpportunity.is_active.is_(True),
        ).first()
        if opportunity is None:
            raise PartnershipValidationError("Opportunity not found")

        existing = self.db.query(PartnershipInterest).filter(
            PartnershipInterest.opportunity_id == opportunity_id,
            PartnershipInterest.initiator_profile_id == actor.user_id,
        ).first()
        if existing is not None:
            raise PartnershipValidationError("Interest already registered for this opportunity")

        interest = PartnershipInterest(
            opportunity_id=opportunity_id,
            initiator_profile_id=actor.user_id,
            role=role,
            notes=notes,
            status="new",
        )
        authorize_write(actor, "insert", interest)
        self.db.add(interest)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            raise PartnershipValidationError("Interest already registered for this opportunity")
        self.db.commit()
        return interest.id


class UpsertPartnershipProfileUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, actor: Actor, **fields) -> PartnershipProfile:
        if actor.user_id is None:
            raise PartnershipValidationError("Not authenticated")
        unknown = set(fields) - set(_PROFILE_FIELDS)
        if unknown:
            raise PartnershipValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
        if self.db.query(Profile.id).filter(Profile.id == actor.user_id).first() is None:
            raise PartnershipValidationError("Profile not found")

        for key in _LIST_FIELDS:
            if key in fields:
                fields[key] = _as_list(fields[key])

        row = self.db.query(PartnershipProfile).filter(PartnershipProfile.profile_id == actor.user_id).first()
        if row is None:
            row = PartnershipProfile(profile_id=actor.user_id, **fields)
            authorize_write(actor, "insert", row)
            self.db.add(row)
        else:
            for key, value in fields.items():
                setattr(row, key, value)
            authorize_write(actor, "update", row)
        self.db.commit()
        return row
