"""
Physical evaluation requests sent by athletes to guides.

PENDING --accept--> ACCEPTED --complete--> COMPLETED
PENDING --reject--> REJECTED

At most one request per (athlete, guide) pair may be PENDING, ACCEPTED or
REJECTED at a time; creation enforces it as a throttle. Rejected rows are
kept, so a rejection keeps blocking new requests to that guide.
"""

from __future__ import annotations

import logging
import secrets
from datetime import date
from typing import Iterable, List, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from core.auth import get_guide_for
from core.database import unit_of_work
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from core.logging import log_fields
from models import Athlete, Guide, NotificationType, PhysicalEvaluationRequest, RequestStatus
from services.notifications.dispatcher import NotificationDescriptor, notify_for
from services.notifications.types import (
    EvaluationCompletedPayload,
    StatApprovedPayload,
    StatDeniedPayload,
    StatRequestPayload,
)
from services.workflow.state_machine import EVALUATION, conditional_update

logger = logging.getLogger(__name__)

# Statuses that block a new request for the same (athlete, guide) pair.
THROTTLED_STATUSES = (
    RequestStatus.PENDING.value,
    RequestStatus.ACCEPTED.value,
    RequestStatus.REJECTED.value,
)


def generate_otp() -> int:
    """Six-digit one-time code the athlete shows at the evaluation."""
    return 100000 + secrets.randbelow(900000)


def parse_equipment(raw: Union[str, Iterable[str], None]) -> List[str]:
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else raw
    return [item.strip() for item in items if item and item.strip()]


def get_evaluation_request(db: Session, request_id: UUID) -> PhysicalEvaluationRequest:
    request = db.query(PhysicalEvaluationRequest).filter(PhysicalEvaluationRequest.id == request_id).first()
    if not request:
        raise NotFoundError("EvaluationRequest", request_id)
    return request


def create_evaluation_request(
    db: Session,
    actor: Athlete,
    guide_id: UUID,
    message: Optional[str] = None,
    scheduled_date: Optional[date] = None,
    scheduled_time: Optional[str] = None,
) -> PhysicalEvaluationRequest:
    guide = db.query(Guide).filter(Guide.id == guide_id).first()
    if not guide:
        raise NotFoundError("Guide", guide_id)

    existing = (
        db.query(PhysicalEvaluationRequest)
        .filter(
            PhysicalEvaluationRequest.athlete_id == actor.id,
            PhysicalEvaluationRequest.guide_id == guide.id,
            PhysicalEvaluationRequest.status.in_(THROTTLED_STATUSES),
        )
        .first()
    )
    if existing:
        logger.warning(
            "Evaluation request throttled",
            extra=log_fields(actor_id=str(actor.id), guide_id=str(guide.id),
                             existing_id=str(existing.id), error_code="CONFLICT"),
        )
        raise ConflictError(
            f"REQUEST_ALREADY_EXISTS: an active request exists for this guide ({existing.status})"
        )

    with unit_of_work(db):
        request = PhysicalEvaluationRequest(
            athlete_id=actor.id,
            guide_id=guide.id,
            status=RequestStatus.PENDING.value,
            message=message,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
        )
        db.add(request)
        db.flush()
        notify_for(db, NotificationDescriptor(
            recipient_id=guide.user_id,
            actor_id=actor.id,
            type=NotificationType.STAT_UPDATE_REQUEST,
            title="New physical evaluation request",
            message=f"{actor.display_name} requested a physical evaluation.",
            payload=StatRequestPayload(request_id=str(request.id), athlete_id=str(actor.id)),
        ))

    logger.info(
        f"Evaluation request {request.id} created for guide {guide.id}",
        extra=log_fields(request_id=str(request.id), actor_id=str(actor.id),
                         guide_id=str(guide.id), to_status=request.status),
    )
    return request


def _require_addressed_guide(db: Session, request: PhysicalEvaluationRequest, actor: Athlete) -> Guide:
    guide = get_guide_for(db, actor)
    if not guide:
        raise ForbiddenError("Guide profile required")
    if request.guide_id != guide.id:
        raise ForbiddenError("Request is addressed to another guide")
    return guide


def accept_evaluation_request(
    db: Session,
    request_id: UUID,
    actor: Athlete,
    scheduled_date: Optional[date],
    scheduled_time: Optional[str],
    location: Optional[str],
    equipment: Union[str, List[str], None] = None,
    message_from_guide: Optional[str] = None,
) -> PhysicalEvaluationRequest:
    request = get_evaluation_request(db, request_id)
    from_status = request.status
    transition = EVALUATION.check("accept", from_status, request.id)
    guide = _require_addressed_guide(db, request, actor)

    if not scheduled_date or not scheduled_time or not location:
        raise ValidationError("Missing required scheduling fields: scheduled_date, scheduled_time, location")

    otp = generate_otp()
    equipment_list = parse_equipment(equipment)

    with unit_of_work(db):
        conditional_update(
            db, request, from_status, transition.target,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            location=location,
            equipment=equipment_list,
            message_from_guide=message_from_guide,
            otp=otp,
        )
        notify_for(db, NotificationDescriptor(
            recipient_id=request.athlete_id,
            actor_id=actor.id,
            type=NotificationType.STAT_UPDATE_APPROVED,
            title="Physical evaluation request accepted",
            message="Your physical evaluation request was accepted. Check details for schedule and location.",
            payload=StatApprovedPayload(
                request_id=str(request.id),
                guide_id=str(guide.id),
                otp=otp,
                scheduled_date=scheduled_date,
                scheduled_time=scheduled_time,
                location=location,
                equipment=equipment_list,
            ),
        ))

    _log_transition(request, actor, from_status)
    return request


def reject_evaluation_request(db: Session, request_id: UUID, actor: Athlete) -> PhysicalEvaluationRequest:
    request = get_evaluation_request(db, request_id)
    from_status = request.status
    transition = EVALUATION.check("reject", from_status, request.id)
    guide = _require_addressed_guide(db, request, actor)

    with unit_of_work(db):
        conditional_update(db, request, from_status, transition.target)
        notify_for(db, NotificationDescriptor(
            recipient_id=request.athlete_id,
            actor_id=actor.id,
            type=NotificationType.STAT_UPDATE_DENIED,
            title="Physical evaluation request rejected",
            message="Your physical evaluation request was rejected by the guide.",
            payload=StatDeniedPayload(request_id=str(request.id), guide_id=str(guide.id)),
        ))

    _log_transition(request, actor, from_status)
    return request


def require_accepted_request(
    db: Session,
    request_id: UUID,
    guide_id: UUID,
    athlete_id: UUID,
) -> PhysicalEvaluationRequest:
    """Precondition for submitting evaluation stats: an ACCEPTED request for this pair."""
    request = (
        db.query(PhysicalEvaluationRequest)
        .filter(
            PhysicalEvaluationRequest.id == request_id,
            PhysicalEvaluationRequest.guide_id == guide_id,
            PhysicalEvaluationRequest.athlete_id == athlete_id,
        )
        .first()
    )
    if not request:
        raise NotFoundError("EvaluationRequest", request_id)
    if request.status != RequestStatus.ACCEPTED.value:
        raise ConflictError(f"Evaluation request is {request.status}; stats require an ACCEPTED request")
    return request


def complete_evaluation_request(
    db: Session,
    request_id: UUID,
    actor: Athlete,
    athlete_id: UUID,
) -> PhysicalEvaluationRequest:
    """Close an accepted request once the guide has recorded the evaluation."""
    guide = get_guide_for(db, actor)
    if not guide:
        raise ForbiddenError("Guide profile required")
    if guide.status != "approved":
        raise ForbiddenError("Guide not authorized")
    request = require_accepted_request(db, request_id, guide.id, athlete_id)
    from_status = request.status
    transition = EVALUATION.check("complete", from_status, request.id)

    with unit_of_work(db):
        conditional_update(db, request, from_status, transition.target)
        notify_for(db, NotificationDescriptor(
            recipient_id=request.athlete_id,
            actor_id=actor.id,
            type=NotificationType.EVALUATION_COMPLETED,
            title="Physical Evaluation Completed",
            message="Your physical evaluation has been completed. View your stats in your profile.",
            payload=EvaluationCompletedPayload(
                request_id=str(request.id),
                guide_id=str(guide.id),
                athlete_id=str(request.athlete_id),
            ),
        ))

    _log_transition(request, actor, from_status)
    return request


def list_guide_evaluation_requests(
    db: Session,
    actor: Athlete,
    status: Optional[str] = None,
) -> List[PhysicalEvaluationRequest]:
    guide = get_guide_for(db, actor)
    if not guide:
        raise ForbiddenError("Guide profile required")
    q = db.query(PhysicalEvaluationRequest).filter(PhysicalEvaluationRequest.guide_id == guide.id)
    if status:
        try:
            q = q.filter(PhysicalEvaluationRequest.status == RequestStatus(status).value)
        except ValueError:
            raise ValidationError(f"Unknown request status: {status}", field="status")
    return q.order_by(PhysicalEvaluationRequest.created_at.desc()).all()


def get_evaluation_request_details(db: Session, request_id: UUID, actor: Athlete) -> PhysicalEvaluationRequest:
    """Visible to the requesting athlete and the addressed guide only."""
    request = get_evaluation_request(db, request_id)
    if request.athlete_id == actor.id:
        return request
    guide = get_guide_for(db, actor)
    if guide and request.guide_id == guide.id:
        return request
    raise ForbiddenError("Not a participant of this evaluation request")


def _log_transition(request: PhysicalEvaluationRequest, actor: Athlete, from_status: str) -> None:
    logger.info(
        f"Evaluation request {request.id}: {from_status} -> {request.status}",
        extra=log_fields(
            request_id=str(request.id),
            actor_id=str(actor.id),
            from_status=from_status,
            to_status=request.status,
        ),
    )
