"""
Athlete-facing associate application endpoints.

POST /v1/associate/applications     Submit (or resubmit after the cooldown)
GET  /v1/associate/applications/me  The caller's application
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.database import get_db
from core.exceptions import NotFoundError
from models import Athlete
from schemas import AssociateApplicationCreate, AssociateApplicationResponse
from services.workflow import associate_applications as workflow

router = APIRouter(prefix="/v1/associate/applications", tags=["applications"])


@router.post("", response_model=AssociateApplicationResponse, status_code=status.HTTP_201_CREATED)
def submit_application(
    request: AssociateApplicationCreate,
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return workflow.submit_application(db, current_user, request.model_dump())


@router.get("/me", response_model=AssociateApplicationResponse)
def my_application(
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    application = workflow.get_application_for_athlete(db, current_user.id)
    if not application:
        raise NotFoundError("Application", f"athlete {current_user.id}")
    return application
