"""Registration, login and identity lookup routes."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..database.base import get_db
from ..dependencies import get_current_stakeholder
from .schemas import LoginRequest, RegisterRequest, StakeholderIdentity
from .service import authenticate, register_stakeholder

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stakeholders"])


@router.post("/auth/register")
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    stakeholder = register_stakeholder(
        db,
        account_type=body.account_type,
        name=body.name,
        email=body.email,
        password=body.password,
        region=body.region,
        capacity=body.capacity,
    )
    identity = StakeholderIdentity.model_validate(stakeholder)
    return JSONResponse({"message": "Account created successfully", "user": identity.model_dump()})


@router.post("/auth/login")
def login(body: LoginRequest, db: Session = Depends(get_db)):
    stakeholder = authenticate(db, body.email, body.password)
    if stakeholder is None:
        logger.info("Failed login for %s", body.email)
        return JSONResponse({"error": "Invalid credentials"}, status_code=401)
    identity = StakeholderIdentity.model_validate(stakeholder)
    return JSONResponse({"message": "Login successful", "user": identity.model_dump()})


@router.get("/stakeholders/id")
def stakeholder_id(user: StakeholderIdentity = Depends(get_current_stakeholder)):
    return JSONResponse({"stakeholder_id": user.id})
