"""
Team-formation applications.

POST /v1/team-applications                       Athlete submits to a guide
GET  /v1/guide/team-applications                 Guide's pending queue
POST /v1/guide/team-applications/{id}/approve    Creates the team
POST /v1/guide/team-applications/{id}/reject
"""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.database import get_db
from models import Athlete
from schemas import (
    TeamApplicationApprovalResponse,
    TeamApplicationCreate,
    TeamApplicationResponse,
    TeamApplicationReviewRequest,
)
from services.workflow import team_applications as workflow

router = APIRouter(prefix="/v1/team-applications", tags=["teams"])
guide_router = APIRouter(prefix="/v1/guide/team-applications", tags=["guide", "teams"])


@router.post("", response_model=TeamApplicationResponse, status_code=status.HTTP_201_CREATED)
def submit_team_application(
    request: TeamApplicationCreate,
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    fields = request.model_dump(exclude={"guide_id"})
    return workflow.submit_team_application(db, current_user, request.guide_id, fields)


@guide_router.get("", response_model=List[TeamApplicationResponse])
def list_pending_team_applications(
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return workflow.list_guide_team_applications(db, current_user)


@guide_router.post("/{application_id}/approve", response_model=TeamApplicationApprovalResponse)
def approve_team_application(
    application_id: UUID,
    request: Optional[TeamApplicationReviewRequest] = None,
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    note = request.review_note if request else None
    application, team = workflow.approve_team_application(db, application_id, current_user, review_note=note)
    return {"status": application.status, "team_id": team.id}


@guide_router.post("/{application_id}/reject", response_model=TeamApplicationResponse)
def reject_team_application(
    application_id: UUID,
    request: Optional[TeamApplicationReviewRequest] = None,
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    note = request.review_note if request else None
    return workflow.reject_team_application(db, application_id, current_user, review_note=note)
