"""
FastAPI dependencies (DB session, caller identity)
"""
import hmac
from contextlib import contextmanager
from decimal import Decimal
import uuid

from fastapi import Depends, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from wathaci.config import get_settings
from wathaci.infrastructure.db.session import get_db as _get_db
from wathaci.security.policies import Actor, PolicyViolation, apply_request_claims, load_actor


# Re-export get_db for routers
get_db = _get_db

SERVICE_KEY_HEADER = "X-Service-Key"


def _session_user_id(request: Request) -> uuid.UUID | None:
    raw = request.session.get("user_id")
    if not raw:
        return None
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        return None


def _is_service_call(request: Request) -> bool:
    expected = get_settings().SERVICE_ROLE_KEY
    provided = request.headers.get(SERVICE_KEY_HEADER)
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided, expected)


def get_actor(request: Request, db: Session = Depends(get_db)) -> Actor:
    """
    Resolve who is calling:
        - a valid X-Service-Key header → service_role (bypasses RLS)
        - a logged-in session → authenticated user (admin flag from user_roles)
        - otherwise → anon
    """
    if _is_service_call(request):
        actor = Actor.service()
    else:
        actor = load_actor(db, _session_user_id(request))
    apply_request_claims(db, actor)
    return actor


def require_authenticated(actor: Actor = Depends(get_actor)) -> Actor:
    """
    Raises:
        HTTPException(401): for anonymous callers
    """
    if actor.role == "anon":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return actor


def require_service_or_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.bypasses_rls or actor.is_admin:
        return actor
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin or service role required")


@contextmanager
def translate_errors():
    """
    Map domain errors raised by use cases to HTTP errors

    Usage:
        with translate_errors():
            CreateDonationUseCase(db).execute(...)
    """
    try:
        yield
    except PolicyViolation as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def encode(result):
    """JSON-ready payload; money stays exact as strings"""
    return jsonable_encoder(result, custom_encoder={Decimal: str})
