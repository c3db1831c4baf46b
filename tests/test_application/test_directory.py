"""
Tests for the directory read service
"""
import pytest

from wathaci.application.directory import DirectoryValidationError, list_directory
from wathaci.application.profiles import CompleteProfileUseCase
from wathaci.security.policies import Actor


@pytest.fixture
def members(make_user):
    sme = make_user(metadata={"full_name": "Mulenga Phiri", "account_type": "sme"})
    investor = make_user(metadata={"full_name": "Kabwe Capital", "account_type": "investor"})
    undecided = make_user(metadata={"full_name": "No Type Yet"})
    return sme, investor, undecided


def test_profiles_without_account_type_are_not_listed(db_session, members):
    sme, investor, undecided = members

    ids = {entry["id"] for entry in list_directory(db_session, Actor.anonymous())}

    assert ids == {sme.id, investor.id}
    assert undecided.id not in ids


def test_incomplete_profiles_are_listed_immediately(db_session, members):
    sme, _, _ = members

    entries = list_directory(db_session, Actor.anonymous(), account_type="sme")

    assert [e["id"] for e in entries] == [sme.id]
    assert entries[0]["is_profile_complete"] is False
    assert entries[0]["extension"] is None


def test_extension_is_included_without_bookkeeping_fields(db_session, members):
    sme, _, _ = members
    CompleteProfileUseCase(db_session).execute(
        actor_user_id=sme.id, user_id=sme.id, base_data={"city": "Ndola"},
        role_data={"business_name": "Phiri Hardware"}, account_type="sme",
    )

    entry = list_directory(db_session, Actor.for_user(sme.id), account_type="SME")[0]

    assert entry["city"] == "Ndola"
    assert entry["extension"]["business_name"] == "Phiri Hardware"
    assert "profile_id" not in entry["extension"]
    assert "id" not in entry["extension"]


def test_search_matches_names(db_session, members):
    _, investor, _ = members
    entries = list_directory(db_session, Actor.anonymous(), search="kabwe")
    assert [e["id"] for e in entries] == [investor.id]


def test_private_fields_are_not_exposed(db_session, members):
    entry = list_directory(db_session, Actor.anonymous())[0]
    assert "email" not in entry
    assert "msisdn" not in entry


def test_invalid_account_type_filter(db_session, members):
    with pytest.raises(DirectoryValidationError):
        list_directory(db_session, Actor.anonymous(), account_type="astronaut")
