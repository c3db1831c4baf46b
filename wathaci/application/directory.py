"""
Directory read service - browsable profiles with their role extension

A profile is listed as soon as it has an account type, whether or not
onboarding is complete. PostgreSQL also exposes the same rows through the
v_directory_profiles view.
"""
from sqlalchemy import or_
from sqlalchemy.orm import Session

from wathaci.application.profiles import EXTENSION_MODELS
from wathaci.domain.account_types import normalize_account_type
from wathaci.infrastructure.db.models import Profile
from wathaci.security.policies import Actor, visible

PUBLIC_PROFILE_FIELDS = (
    "id", "full_name", "display_name", "company_name", "account_type", "role_type",
    "country", "city", "bio", "avatar_url", "website_url", "linkedin_url",
    "is_profile_complete", "onboarding_step", "created_at",
)

_HIDDEN_EXTENSION_FIELDS = {"id", "profile_id", "created_at", "updated_at", "msisdn"}


class DirectoryValidationError(ValueError):
    pass


def _extension_dict(row) -> dict:
    return {
        column.key: getattr(row, column.key)
        for column in row.__table__.columns
        if column.key not in _HIDDEN_EXTENSION_FIELDS
    }


def list_directory(
    db: Session,
    actor: Actor,
    account_type: str | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[dict]:
    """
    Directory entries visible to the actor, newest first.

    Returns:
        list of dicts with the public profile fields and an "extension" dict
        (None when the role extension has not been filled in yet)
    """
    query = visible(db, Profile, actor).filter(Profile.account_type.is_not(None))

    if account_type:
        normalized = normalize_account_type(account_type)
        if normalized is None:
            raise DirectoryValidationError(f"Invalid account type: {account_type}")
        query = query.filter(Profile.account_type == normalized)

    search = (search or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Profile.full_name.ilike(pattern),
            Profile.display_name.ilike(pattern),
            Profile.company_name.ilike(pattern),
            Profile.bio.ilike(pattern),
            Profile.city.ilike(pattern),
        ))

    profiles = query.order_by(Profile.created_at.desc()).offset(offset).limit(limit).all()

    # one extension query per model present on the page
    extensions = {}
    by_model = {}
    for profile in profiles:
        model = EXTENSION_MODELS.get(profile.account_type)
        if model is not None:
            by_model.setdefault(model, []).append(profile.id)
    for model, ids in by_model.items():
        for row in db.query(model).filter(model.profile_id.in_(ids)).all():
            extensions[row.profile_id] = _extension_dict(row)

    result = []
    for profile in profiles:
        entry = {field: getattr(profile, field) for field in PUBLIC_PROFILE_FIELDS}
        entry["extension"] = extensions.get(profile.id)
        result.append(entry)
    return result
