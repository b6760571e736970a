"""
Admin review of associate applications.

GET  /v1/admin/applications/stats
GET  /v1/admin/applications            ?status=PENDING|UNDER_REVIEW|APPROVED|REJECTED
GET  /v1/admin/applications/{id}
POST /v1/admin/applications/{id}/claim
POST /v1/admin/applications/{id}/approve
POST /v1/admin/applications/{id}/reject

Approve and reject from UNDER_REVIEW are reserved to the admin who claimed it.
"""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.auth import require_admin
from core.database import get_db
from models import Athlete
from schemas import (
    ApplicationApprovalResponse,
    ApplicationApproveRequest,
    ApplicationRejectRequest,
    ApplicationStatsResponse,
    AssociateApplicationResponse,
)
from services.workflow import associate_applications as workflow

router = APIRouter(prefix="/v1/admin/applications", tags=["admin", "applications"])


@router.get("/stats", response_model=ApplicationStatsResponse)
def application_stats(
    admin: Athlete = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return workflow.get_application_stats(db)


@router.get("", response_model=List[AssociateApplicationResponse])
def list_applications(
    status: Optional[str] = Query(default=None),
    admin: Athlete = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return workflow.list_applications(db, status=status)


@router.get("/{application_id}", response_model=AssociateApplicationResponse)
def get_application(
    application_id: UUID,
    admin: Athlete = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return workflow.get_application(db, application_id)


@router.post("/{application_id}/claim", response_model=AssociateApplicationResponse)
def claim_application(
    application_id: UUID,
    admin: Athlete = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return workflow.claim_application(db, application_id, admin)


@router.post("/{application_id}/approve", response_model=ApplicationApprovalResponse)
def approve_application(
    application_id: UUID,
    request: Optional[ApplicationApproveRequest] = None,
    admin: Athlete = Depends(require_admin),
    db: Session = Depends(get_db),
):
    notes = request.review_notes if request else None
    application, profile = workflow.approve_application(db, application_id, admin, review_notes=notes)
    return {"application": application, "associate_profile_id": profile.id}


@router.post("/{application_id}/reject", response_model=AssociateApplicationResponse)
def reject_application(
    application_id: UUID,
    request: ApplicationRejectRequest,
    admin: Athlete = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return workflow.reject_application(
        db,
        application_id,
        admin,
        rejection_reason=request.rejection_reason,
        cooldown_days=request.cooldown_days,
    )
