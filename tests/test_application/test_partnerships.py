"""
Tests for partnership use cases
"""
import uuid
from datetime import date

import pytest

from wathaci.application.partnerships import (
    CreateOpportunityUseCase, ExpressInterestUseCase, PartnershipValidationError,
    UpsertPartnershipProfileUseCase, list_opportunities,
)
from wathaci.infrastructure.db.models import PartnershipInterest, PartnershipOpportunity, PartnershipProfile
from wathaci.security.policies import Actor, PolicyViolation


@pytest.fixture
def opportunities(db_session):
    use_case = CreateOpportunityUseCase(db_session)
    service = Actor.service()
    agri = use_case.execute(
        service, title="Agri value chains", description="Grants for agro-processing",
        partner_org_name="Zambia Agri Fund", sectors=["agriculture"], partnership_type=["grant"], tags=["rural"],
    )
    tech = use_case.execute(
        service, title="Tech incubator", description="Incubation for startups",
        partner_org_name="Lusaka Hub", sectors=["technology"], partnership_type=["mentorship"],
        is_featured=True,
    )
    return agri, tech


def test_list_featured_first(db_session, opportunities):
    agri, tech = opportunities
    rows = list_opportunities(db_session, Actor.anonymous())
    assert [r.id for r in rows] == [tech, agri]


def test_list_filters_by_array_membership(db_session, opportunities):
    agri, _ = opportunities
    actor = Actor.anonymous()
    assert [r.id for r in list_opportunities(db_session, actor, sector="agriculture")] == [agri]
    assert [r.id for r in list_opportunities(db_session, actor, tag="rural")] == [agri]
    assert list_opportunities(db_session, actor, partnership_type="loan") == []


def test_inactive_opportunities_are_hidden(db_session, opportunities):
    agri, tech = opportunities
    db_session.query(PartnershipOpportunity).filter(PartnershipOpportunity.id == tech).one().is_active = False
    db_session.commit()

    assert [r.id for r in list_opportunities(db_session, Actor.anonymous())] == [agri]


def test_regular_user_cannot_create_opportunity(db_session, sample_user):
    with pytest.raises(PolicyViolation):
        CreateOpportunityUseCase(db_session).execute(
            Actor.for_user(sample_user.id), title="Mine", description="x", partner_org_name="Org",
        )


def test_opportunity_dates_are_checked(db_session):
    with pytest.raises(PartnershipValidationError):
        CreateOpportunityUseCase(db_session).execute(
            Actor.service(), title="T", description="D", partner_org_name="O",
            start_date=date(2025, 5, 1), end_date=date(2025, 4, 1),
        )


def test_express_interest_once(db_session, sample_user, opportunities):
    agri, _ = opportunities
    actor = Actor.for_user(sample_user.id)
    use_case = ExpressInterestUseCase(db_session)

    interest_id = use_case.execute(actor, agri, role="beneficiary")

    interest = db_session.query(PartnershipInterest).filter(PartnershipInterest.id == interest_id).one()
    assert interest.status == "new"
    assert interest.initiator_profile_id == sample_user.id

    with pytest.raises(PartnershipValidationError, match="already registered"):
        use_case.execute(actor, agri)


def test_express_interest_unknown_opportunity(db_session, sample_user):
    with pytest.raises(PartnershipValidationError, match="not found"):
        ExpressInterestUseCase(db_session).execute(Actor.for_user(sample_user.id), uuid.uuid4())


def test_upsert_partnership_profile(db_session, sample_user):
    actor = Actor.for_user(sample_user.id)
    use_case = UpsertPartnershipProfileUseCase(db_session)

    row = use_case.execute(actor, org_name="Banda Foods", sectors="agriculture")
    assert row.sectors == ["agriculture"]

    use_case.execute(actor, description="Food processing")
    rows = db_session.query(PartnershipProfile).filter(PartnershipProfile.profile_id == sample_user.id).all()
    assert len(rows) == 1
    assert rows[0].org_name == "Banda Foods"
    assert rows[0].description == "Food processing"


def test_upsert_partnership_profile_rejects_unknown_fields(db_session, sample_user):
    with pytest.raises(PartnershipValidationError, match="Unknown fields"):
        UpsertPartnershipProfileUseCase(db_session).execute(Actor.for_user(sample_user.id), balance=1)
