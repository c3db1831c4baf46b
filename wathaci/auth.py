from passlib.context import CryptContext
from sqlalchemy import func
from sqlalchemy.orm import Session

from wathaci.infrastructure.db.models import User

# pbkdf2_sha256: primary (no native deps)
# bcrypt: accepted for hashes imported from the previous auth provider
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated=["bcrypt"])


class SignupError(ValueError):
    pass


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


def create_user(
    db: Session,
    email: str,
    password: str | None = None,
    phone: str | None = None,
    metadata: dict | None = None,
) -> User:
    """
    Register an identity. The profile row is created by the user insert hook
    (wathaci.application.profiles.on_auth_user_created) in the same transaction.

    Raises:
        SignupError: if the email is empty or already registered
    """
    email = (email or "").strip().lower()
    if not email:
        raise SignupError("Email is required")
    if get_user_by_email(db, email):
        raise SignupError("User already registered")

    user = User(
        email=email,
        password_hash=hash_password(password) if password else None,
        phone=phone,
        raw_user_meta_data=dict(metadata or {}),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
