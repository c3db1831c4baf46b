"""
Authentication routes (signup, login, logout) - JSON, session cookie based
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from wathaci.api.deps import get_db
from wathaci.auth import SignupError, create_user, get_user_by_email, verify_password
from wathaci.utils.dates import utcnow


router = APIRouter(prefix="/auth", tags=["auth"])


class SignupRequest(BaseModel):
    email: str
    password: str
    phone: Optional[str] = None
    metadata: dict[str, Any] = {}


class LoginRequest(BaseModel):
    email: str
    password: str


@router.post("/signup")
def signup(request: Request, req: SignupRequest, db: Session = Depends(get_db)):
    """Create the identity (its profile is created by the user insert hook) and log in"""
    try:
        user = create_user(db, req.email, req.password, phone=req.phone, metadata=req.metadata)
    except SignupError as e:
        raise HTTPException(status_code=400, detail=str(e))

    request.session["user_id"] = str(user.id)
    return {"user_id": str(user.id), "email": user.email}


@router.post("/login")
def login(request: Request, req: LoginRequest, db: Session = Depends(get_db)):
    user = get_user_by_email(db, req.email)
    if not user or not verify_password(req.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    request.session["user_id"] = str(user.id)
    user.last_sign_in_at = utcnow()
    db.commit()
    return {"user_id": str(user.id), "email": user.email}


@router.post("/logout")
def logout(request: Request):
    request.session.clear()
    return {"success": True}
