"""
Pre-launch registration API endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from wathaci.api.deps import encode, get_actor, get_db, require_service_or_admin, translate_errors
from wathaci.application.registrations import (
    DuplicateRegistrationError, RegisterInterestUseCase, list_registrations,
)
from wathaci.security.policies import Actor


router = APIRouter(prefix="/api/v1/registrations", tags=["registrations"])


class RegistrationRequest(BaseModel):
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    email: str
    account_type: Optional[str] = Field(None, alias="accountType")
    company: Optional[str] = None
    mobile_number: Optional[str] = Field(None, alias="mobileNumber")

    model_config = {"populate_by_name": True}


def _to_response(record) -> dict:
    return {
        "id": str(record.id),
        "firstName": record.first_name,
        "lastName": record.last_name,
        "email": record.email,
        "accountType": record.account_type,
        "company": record.company,
        "mobileNumber": record.mobile_number,
        "registeredAt": record.created_at,
    }


@router.post("/", status_code=201)
def register(req: RegistrationRequest, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    with translate_errors():
        try:
            record = RegisterInterestUseCase(db).execute(
                actor=actor,
                email=req.email,
                first_name=req.first_name,
                last_name=req.last_name,
                account_type=req.account_type,
                company=req.company,
                mobile_number=req.mobile_number,
            )
        except DuplicateRegistrationError as e:
            raise HTTPException(status_code=409, detail=str(e))
    return encode(_to_response(record))


@router.get("/")
def list_all(actor: Actor = Depends(require_service_or_admin), db: Session = Depends(get_db)):
    return encode([_to_response(r) for r in list_registrations(db, actor)])
