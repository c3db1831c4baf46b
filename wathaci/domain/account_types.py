"""
Account types and profile-extension mapping

The account type column went through several incompatible renditions
(upper-case labels, an enum with `SERVICE_PROVIDER`/`PARTNER`/`ADMIN`,
then lower-case values). Everything is normalized to the lower-case set below.
"""

ACCOUNT_TYPE_SME = "sme"
ACCOUNT_TYPE_SOLE_PROPRIETOR = "sole_proprietor"
ACCOUNT_TYPE_PROFESSIONAL = "professional"
ACCOUNT_TYPE_FREELANCER = "freelancer"
ACCOUNT_TYPE_INVESTOR = "investor"
ACCOUNT_TYPE_DONOR = "donor"
ACCOUNT_TYPE_GOVERNMENT = "government"
ACCOUNT_TYPE_PARTNER = "partner"
ACCOUNT_TYPE_ADMIN = "admin"

ACCOUNT_TYPES = (
    ACCOUNT_TYPE_SME,
    ACCOUNT_TYPE_SOLE_PROPRIETOR,
    ACCOUNT_TYPE_PROFESSIONAL,
    ACCOUNT_TYPE_FREELANCER,
    ACCOUNT_TYPE_INVESTOR,
    ACCOUNT_TYPE_DONOR,
    ACCOUNT_TYPE_GOVERNMENT,
    ACCOUNT_TYPE_PARTNER,
    ACCOUNT_TYPE_ADMIN,
)

# Values written by older clients
LEGACY_ACCOUNT_TYPES = {
    "service_provider": ACCOUNT_TYPE_PROFESSIONAL,
    "service provider": ACCOUNT_TYPE_PROFESSIONAL,
    "government_institution": ACCOUNT_TYPE_GOVERNMENT,
}

PROFILE_STATUSES = ("incomplete", "pending_verification", "active")

ONBOARDING_FIRST_STEP = 1
ONBOARDING_LAST_STEP = 4


def normalize_account_type(value: str | None) -> str | None:
    """
    Map raw input to a known account type.

    Returns None for empty or unknown input, never raises.

    Example:
        >>> normalize_account_type(" SME ")
        'sme'
        >>> normalize_account_type("SERVICE_PROVIDER")
        'professional'
        >>> normalize_account_type("astronaut") is None
        True
    """
    if value is None:
        return None
    key = str(value).strip().lower()
    if not key:
        return None
    if key in ACCOUNT_TYPES:
        return key
    return LEGACY_ACCOUNT_TYPES.get(key)


def clamp_onboarding_step(step: int | None) -> int:
    if step is None:
        return ONBOARDING_FIRST_STEP
    return min(max(int(step), ONBOARDING_FIRST_STEP), ONBOARDING_LAST_STEP)
