"""
Physical evaluation requests.

POST /v1/evaluation-requests                        Athlete asks a guide
GET  /v1/evaluation-requests/{id}                   Athlete or addressed guide
GET  /v1/guide/evaluation-requests                  Guide's requests, newest first
POST /v1/guide/evaluation-requests/{id}/accept      Schedules and issues the OTP
POST /v1/guide/evaluation-requests/{id}/reject
"""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.database import get_db
from models import Athlete
from schemas import EvaluationRequestAccept, EvaluationRequestCreate, EvaluationRequestResponse
from services.workflow import evaluation_requests as workflow

router = APIRouter(prefix="/v1/evaluation-requests", tags=["evaluations"])
guide_router = APIRouter(prefix="/v1/guide/evaluation-requests", tags=["guide", "evaluations"])


@router.post("", response_model=EvaluationRequestResponse, status_code=status.HTTP_201_CREATED)
def create_evaluation_request(
    request: EvaluationRequestCreate,
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return workflow.create_evaluation_request(
        db,
        current_user,
        request.guide_id,
        message=request.message,
        scheduled_date=request.scheduled_date,
        scheduled_time=request.scheduled_time,
    )


@router.get("/{request_id}", response_model=EvaluationRequestResponse)
def get_evaluation_request(
    request_id: UUID,
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return workflow.get_evaluation_request_details(db, request_id, current_user)


@guide_router.get("", response_model=List[EvaluationRequestResponse])
def list_guide_requests(
    status: Optional[str] = Query(default=None),
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return workflow.list_guide_evaluation_requests(db, current_user, status=status)


@guide_router.post("/{request_id}/accept", response_model=EvaluationRequestResponse)
def accept_request(
    request_id: UUID,
    request: EvaluationRequestAccept,
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return workflow.accept_evaluation_request(
        db,
        request_id,
        current_user,
        scheduled_date=request.scheduled_date,
        scheduled_time=request.scheduled_time,
        location=request.location,
        equipment=request.equipment,
        message_from_guide=request.message_from_guide,
    )


@guide_router.post("/{request_id}/reject", response_model=EvaluationRequestResponse)
def reject_request(
    request_id: UUID,
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return workflow.reject_evaluation_request(db, request_id, current_user)
