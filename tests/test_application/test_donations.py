"""
Tests for donation use cases
"""
import re
from decimal import Decimal

import pytest

from wathaci.application.donations import (
    CreateDonationUseCase, DonationValidationError, UpdateDonationStatusUseCase,
)
from wathaci.domain.msisdn import MSISDN_PATTERN
from wathaci.infrastructure.db.models import Donation


def test_create_mobile_money_donation(db_session, sample_user):
    donation = CreateDonationUseCase(db_session).execute(
        amount="100",
        payment_method="mobile_money",
        msisdn="0260 97 1234567",
        currency="zmw",
        donor_user_id=sample_user.id,
        donor_name="  Amara ",
        message="  Keep going ",
    )

    assert donation.status == "pending"
    assert donation.msisdn == "+260971234567"
    assert re.match(MSISDN_PATTERN, donation.msisdn)
    assert donation.currency == "ZMW"
    assert donation.platform_fee_amount == Decimal("5.00")
    assert donation.net_amount == Decimal("95.00")
    assert donation.donor_name == "Amara"
    assert donation.message == "Keep going"
    assert donation.source == "web"
    assert re.match(r"^DON-\d+-[0-9A-F]{6}$", donation.reference)


def test_anonymous_donor_keeps_no_name(db_session):
    donation = CreateDonationUseCase(db_session).execute(
        amount=50, payment_method="card", donor_name="Hidden", is_anonymous=True,
    )
    assert donation.donor_name is None
    assert donation.msisdn is None


@pytest.mark.parametrize("amount", ["0", "-5", "19.99", "5000.01", "lots"])
def test_amount_out_of_bounds(db_session, amount):
    with pytest.raises(DonationValidationError):
        CreateDonationUseCase(db_session).execute(amount=amount, payment_method="card")
    assert db_session.query(Donation).count() == 0


def test_unknown_payment_method(db_session):
    with pytest.raises(DonationValidationError, match="Payment method"):
        CreateDonationUseCase(db_session).execute(amount=100, payment_method="cash")


def test_mobile_money_requires_msisdn(db_session):
    with pytest.raises(DonationValidationError, match="required"):
        CreateDonationUseCase(db_session).execute(amount=100, payment_method="mobile_money")


def test_invalid_msisdn(db_session):
    with pytest.raises(DonationValidationError, match="Invalid mobile number"):
        CreateDonationUseCase(db_session).execute(amount=100, payment_method="mobile_money", msisdn="12345")


def test_model_rejects_bad_msisdn():
    with pytest.raises(ValueError):
        Donation(msisdn="not-a-number")


def test_update_status_once(db_session):
    donation = CreateDonationUseCase(db_session).execute(amount=100, payment_method="card")
    use_case = UpdateDonationStatusUseCase(db_session)

    updated = use_case.execute(donation.reference, "completed")
    assert updated.status == "completed"

    with pytest.raises(DonationValidationError, match="already completed"):
        use_case.execute(donation.reference, "failed")


def test_update_status_validation(db_session):
    use_case = UpdateDonationStatusUseCase(db_session)
    with pytest.raises(DonationValidationError, match="Invalid donation status"):
        use_case.execute("DON-1-ABCDEF", "pending")
    with pytest.raises(DonationValidationError, match="not found"):
        use_case.execute("DON-1-ABCDEF", "completed")
