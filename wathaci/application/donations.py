"""
Donation use cases - create a pending donation and settle it by reference
"""
import logging
import secrets
import time
import uuid
from decimal import Decimal

from sqlalchemy.orm import Session

from wathaci.config import get_settings
from wathaci.domain.msisdn import is_valid_msisdn, normalize_msisdn
from wathaci.domain.wallet import fee_for_percentage, round_money, to_decimal
from wathaci.infrastructure.db.models import Donation

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ("mobile_money", "card")
FINAL_STATUSES = ("completed", "failed", "cancelled")


class DonationValidationError(ValueError):
    pass


def generate_reference() -> str:
    """DON-<epoch ms>-<6 hex chars>"""
    return f"DON-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"


class CreateDonationUseCase:
    """
    Use case: record a pending donation

    Process:
    1. Validate amount against configured bounds and payment method
    2. Normalize the MSISDN (mobile money requires one)
    3. Compute platform fee and net amount
    4. Save with a unique reference and status `pending`
    """

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def execute(
        self,
        amount,
        payment_method: str,
        msisdn: str | None = None,
        currency: str | None = None,
        donor_user_id: uuid.UUID | None = None,
        donor_name: str | None = None,
        is_anonymous: bool = False,
        campaign_id: str | None = None,
        message: str | None = None,
        source: str | None = None,
    ) -> Donation:
        try:
            amount = to_decimal(amount)
        except ValueError:
            raise DonationValidationError("Amount must be a number")
        if amount is None or amount <= 0:
            raise DonationValidationError("Amount must be positive")

        min_amount = self.settings.MIN_DONATION_AMOUNT
        max_amount = self.settings.MAX_DONATION_AMOUNT
        if amount < min_amount or amount > max_amount:
            raise DonationValidationError(f"Amount must be between {min_amount} and {max_amount}")

        if payment_method not in PAYMENT_METHODS:
            raise DonationValidationError("Payment method must be mobile_money or card")

        normalized_msisdn = normalize_msisdn(msisdn)
        if normalized_msisdn is not None and not is_valid_msisdn(normalized_msisdn):
            raise DonationValidationError(f"Invalid mobile number: {msisdn}")
        if payment_method == "mobile_money" and normalized_msisdn is None:
            raise DonationValidationError("Mobile number is required for mobile money donations")

        amount = round_money(amount)
        platform_fee = fee_for_percentage(amount, Decimal(self.settings.PLATFORM_FEE_PERCENTAGE))

        donation = Donation(
            campaign_id=campaign_id,
            donor_user_id=donor_user_id,
            donor_name=None if is_anonymous else (donor_name or "").strip() or None,
            is_anonymous=is_anonymous,
            amount=amount,
            currency=(currency or "ZMW").strip().upper(),
            payment_method=payment_method,
            msisdn=normalized_msisdn,
            status="pending",
            reference=generate_reference(),
            platform_fee_amount=platform_fee,
            net_amount=round_money(amount - platform_fee),
            message=(message or "").strip() or None,
            source=source or "web",
        )
        self.db.add(donation)
        self.db.flush()
        self.db.commit()

        logger.info("Donation %s created: %s %s via %s", donation.reference, amount, donation.currency, payment_method)
        return donation


class UpdateDonationStatusUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, reference: str, status: str) -> Donation:
        if status not in FINAL_STATUSES:
            raise DonationValidationError(f"Invalid donation status: {status}")

        donation = self.db.query(Donation).filter(Donation.reference == reference).first()
        if donation is None:
            raise DonationValidationError(f"Donation not found: {reference}")
        if donation.status != "pending":
            raise DonationValidationError(f"Donation {reference} is already {donation.status}")

        donation.status = status
        self.db.commit()
        return donation
