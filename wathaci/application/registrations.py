"""
Pre-launch registrations - sanitized sign-up list, one row per email (case-insensitive)
"""
import logging

from markupsafe import Markup
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wathaci.domain.account_types import normalize_account_type
from wathaci.infrastructure.db.models import Registration
from wathaci.security.policies import Actor, authorize_write, visible

logger = logging.getLogger(__name__)


class RegistrationValidationError(ValueError):
    pass


class DuplicateRegistrationError(RegistrationValidationError):
    def __init__(self, message: str = "User already registered"):
        super().__init__(message)


def sanitize_text(value) -> str | None:
    """
    Strip markup and collapse whitespace; empty input becomes None.

    Example:
        >>> sanitize_text("  <b>Acme</b>   Ltd ")
        'Acme Ltd'
    """
    if value is None:
        return None
    trimmed = str(value).strip()
    if not trimmed:
        return None
    cleaned = Markup(trimmed).striptags().strip()
    return cleaned or None


class RegisterInterestUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        actor: Actor,
        email: str,
        first_name: str | None = None,
        last_name: str | None = None,
        account_type: str | None = None,
        company: str | None = None,
        mobile_number: str | None = None,
    ) -> Registration:
        clean_email = sanitize_text(email)
        if not clean_email or "@" not in clean_email:
            raise RegistrationValidationError("Registration email is required")
        clean_email = clean_email.lower()

        existing = self.db.query(Registration.id).filter(
            func.lower(Registration.email) == clean_email
        ).first()
        if existing is not None:
            raise DuplicateRegistrationError()

        registration = Registration(
            email=clean_email,
            first_name=sanitize_text(first_name),
            last_name=sanitize_text(last_name),
            account_type=normalize_account_type(sanitize_text(account_type)),
            company=sanitize_text(company),
            mobile_number=sanitize_text(mobile_number),
        )
        authorize_write(actor, "insert", registration)
        self.db.add(registration)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateRegistrationError()
        self.db.commit()

        logger.info("Registration stored for %s", clean_email)
        return registration


def list_registrations(db: Session, actor: Actor, limit: int = 100) -> list[Registration]:
    return (
        visible(db, Registration, actor)
        .order_by(Registration.created_at.desc())
        .limit(limit)
        .all()
    )
