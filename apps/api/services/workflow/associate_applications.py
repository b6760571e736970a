"""
Associate application review.

PENDING --claim--> UNDER_REVIEW --approve--> APPROVED
PENDING | UNDER_REVIEW --reject--> REJECTED

Approval snapshots the application into an AssociateProfile and grants the
ASSOCIATE role. Rejection stamps a reapply date from the caller's cooldown.
Every successful transition notifies the applicant in the same commit.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.config import settings
from core.database import unit_of_work
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from core.logging import log_fields
from models import (
    Athlete,
    ApplicationStatus,
    AssociateApplication,
    AssociateProfile,
    NotificationType,
    Role,
)
from services.notifications.dispatcher import NotificationDescriptor, notify_for
from services.notifications.types import (
    ApplicationApprovedPayload,
    ApplicationRejectedPayload,
    ApplicationUnderReviewPayload,
)
from services.workflow.state_machine import APPLICATION, as_utc, conditional_update, utcnow

logger = logging.getLogger(__name__)

# Professional fields copied verbatim into the AssociateProfile on approval.
PROFILE_SNAPSHOT_FIELDS = (
    "work_email",
    "resume_url",
    "primary_expertise",
    "secondary_expertise",
    "years_of_experience",
    "work_country",
    "work_state",
    "work_city",
    "work_latitude",
    "work_longitude",
)


def get_application(db: Session, application_id: UUID) -> AssociateApplication:
    application = db.query(AssociateApplication).filter(AssociateApplication.id == application_id).first()
    if not application:
        raise NotFoundError("Application", application_id)
    return application


def get_application_for_athlete(db: Session, athlete_id: UUID) -> Optional[AssociateApplication]:
    return db.query(AssociateApplication).filter(AssociateApplication.athlete_id == athlete_id).first()


def list_applications(db: Session, status: Optional[str] = None) -> List[AssociateApplication]:
    q = db.query(AssociateApplication)
    if status:
        try:
            q = q.filter(AssociateApplication.status == ApplicationStatus(status).value)
        except ValueError:
            raise ValidationError(f"Unknown application status: {status}", field="status")
    return q.order_by(AssociateApplication.submitted_at.desc()).all()


def get_application_stats(db: Session) -> Dict[str, int]:
    rows = (
        db.query(AssociateApplication.status, func.count(AssociateApplication.id))
        .group_by(AssociateApplication.status)
        .all()
    )
    by_status = {status: count for status, count in rows}
    return {
        "total": sum(by_status.values()),
        "pending": by_status.get(ApplicationStatus.PENDING.value, 0),
        "under_review": by_status.get(ApplicationStatus.UNDER_REVIEW.value, 0),
        "approved": by_status.get(ApplicationStatus.APPROVED.value, 0),
        "rejected": by_status.get(ApplicationStatus.REJECTED.value, 0),
    }


def submit_application(db: Session, actor: Athlete, fields: Dict[str, Any]) -> AssociateApplication:
    """
    Create a PENDING application for ``actor``.

    A rejected application inside its cooldown blocks resubmission; once the
    cooldown has passed it is replaced by the new one. Any other existing
    application blocks resubmission outright.
    """
    existing = get_application_for_athlete(db, actor.id)
    if existing is not None:
        if existing.status != ApplicationStatus.REJECTED.value:
            raise ConflictError(f"APPLICATION_EXISTS: application already {existing.status}")
        reapply_after = as_utc(existing.can_reapply_after)
        if reapply_after and utcnow() < reapply_after:
            raise ConflictError(f"COOLDOWN_ACTIVE: you can reapply after {reapply_after.date().isoformat()}")

    with unit_of_work(db):
        if existing is not None:
            db.delete(existing)
            db.flush()
        application = AssociateApplication(
            athlete_id=actor.id,
            status=ApplicationStatus.PENDING.value,
            submitted_at=utcnow(),
            **fields,
        )
        db.add(application)

    logger.info(
        f"Associate application {application.id} submitted",
        extra=log_fields(application_id=str(application.id), actor_id=str(actor.id), to_status=application.status),
    )
    return application


def _require_admin(actor: Athlete) -> None:
    if not actor.has_role(Role.ADMIN):
        raise ForbiddenError("Only admins can review associate applications")


def _require_claimant(application: AssociateApplication, actor: Athlete) -> None:
    if application.reviewed_by_id != actor.id:
        raise ForbiddenError("Application is claimed by another reviewer")


def claim_application(db: Session, application_id: UUID, actor: Athlete) -> AssociateApplication:
    application = get_application(db, application_id)
    from_status = application.status
    transition = APPLICATION.check("claim", from_status, application.id)
    _require_admin(actor)

    with unit_of_work(db):
        conditional_update(db, application, from_status, transition.target, reviewed_by_id=actor.id)
        notify_for(db, NotificationDescriptor(
            recipient_id=application.athlete_id,
            actor_id=actor.id,
            type=NotificationType.APPLICATION_UNDER_REVIEW,
            title="Application under review",
            message="An admin has started reviewing your associate application.",
            payload=ApplicationUnderReviewPayload(application_id=str(application.id)),
        ))

    _log_transition(application, actor, from_status)
    return application


def approve_application(
    db: Session,
    application_id: UUID,
    actor: Athlete,
    review_notes: Optional[str] = None,
) -> Tuple[AssociateApplication, AssociateProfile]:
    application = get_application(db, application_id)
    from_status = application.status
    transition = APPLICATION.check("approve", from_status, application.id)
    _require_admin(actor)
    _require_claimant(application, actor)

    now = utcnow()
    with unit_of_work(db):
        conditional_update(
            db, application, from_status, transition.target,
            reviewed_at=now,
            review_notes=review_notes,
        )

        if db.query(AssociateProfile).filter(AssociateProfile.athlete_id == application.athlete_id).first():
            raise ConflictError(f"Athlete {application.athlete_id} already has an associate profile")
        profile = AssociateProfile(
            athlete_id=application.athlete_id,
            verified_at=now,
            **{name: getattr(application, name) for name in PROFILE_SNAPSHOT_FIELDS},
        )
        db.add(profile)
        db.flush()

        athlete = db.query(Athlete).filter(Athlete.id == application.athlete_id).one()
        if not athlete.has_role(Role.ASSOCIATE):
            # Reassign so the JSON column is flagged dirty.
            athlete.roles = [*(athlete.roles or []), Role.ASSOCIATE.value]

        notify_for(db, NotificationDescriptor(
            recipient_id=application.athlete_id,
            actor_id=actor.id,
            type=NotificationType.APPLICATION_APPROVED,
            title="Associate application approved",
            message="Congratulations! Your associate application has been approved.",
            payload=ApplicationApprovedPayload(
                application_id=str(application.id),
                associate_profile_id=str(profile.id),
            ),
        ))

    _log_transition(application, actor, from_status, associate_profile_id=str(profile.id))
    return application, profile


def reject_application(
    db: Session,
    application_id: UUID,
    actor: Athlete,
    rejection_reason: str,
    cooldown_days: Optional[int] = None,
) -> AssociateApplication:
    """
    Reject a pending or claimed application.

    ``cooldown_days`` is trusted as given: request schemas bound it, this
    function does not.
    """
    application = get_application(db, application_id)
    from_status = application.status
    transition = APPLICATION.check("reject", from_status, application.id)
    _require_admin(actor)
    if from_status == ApplicationStatus.UNDER_REVIEW.value:
        _require_claimant(application, actor)

    if cooldown_days is None:
        cooldown_days = settings.APPLICATION_DEFAULT_COOLDOWN_DAYS
    now = utcnow()
    can_reapply_after = now + timedelta(days=cooldown_days)

    with unit_of_work(db):
        conditional_update(
            db, application, from_status, transition.target,
            reviewed_at=now,
            reviewed_by_id=actor.id,
            rejection_reason=rejection_reason,
            can_reapply_after=can_reapply_after,
        )
        notify_for(db, NotificationDescriptor(
            recipient_id=application.athlete_id,
            actor_id=actor.id,
            type=NotificationType.APPLICATION_REJECTED,
            title="Associate application rejected",
            message=(
                f"Your associate application was rejected. Reason: {rejection_reason}. "
                f"You can reapply after {can_reapply_after.date().isoformat()}."
            ),
            payload=ApplicationRejectedPayload(
                application_id=str(application.id),
                rejection_reason=rejection_reason,
                can_reapply_after=can_reapply_after,
            ),
        ))

    _log_transition(application, actor, from_status, cooldown_days=cooldown_days)
    return application


def _log_transition(application: AssociateApplication, actor: Athlete, from_status: str, **fields) -> None:
    logger.info(
        f"Associate application {application.id}: {from_status} -> {application.status}",
        extra=log_fields(
            application_id=str(application.id),
            actor_id=str(actor.id),
            from_status=from_status,
            to_status=application.status,
            **fields,
        ),
    )
