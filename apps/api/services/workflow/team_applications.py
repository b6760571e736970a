"""
Team-formation applications, reviewed by the guide they were sent to.

PENDING --approve--> APPROVED (creates the team)
PENDING --reject---> REJECTED

Approval creates Team + owner TeamMembership + TeamCounters and back-links
the team onto the application in the same commit as the status change. The
"applicant has no membership" check runs inside that unit of work; if it
fails the whole transition is rolled back and the application stays PENDING.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from core.auth import get_guide_for
from core.database import unit_of_work
from core.exceptions import ConflictError, ForbiddenError, NotFoundError
from core.logging import log_fields
from models import (
    Athlete,
    Guide,
    NotificationType,
    Team,
    TeamApplication,
    TeamApplicationStatus,
    TeamCounters,
    TeamMembership,
    TeamRole,
    TeamStatus,
)
from services.notifications.dispatcher import NotificationDescriptor, notify_for
from services.notifications.types import (
    ApplicationApprovedPayload,
    ApplicationRejectedPayload,
    ApplicationSubmittedPayload,
)
from services.workflow.state_machine import TEAM_FORMATION, conditional_update, utcnow

logger = logging.getLogger(__name__)

# Fields carried from the application onto the created team.
TEAM_FIELDS = (
    "name",
    "sport",
    "team_class",
    "rank",
    "bio",
    "logo_url",
    "country",
    "state",
    "city",
    "latitude",
    "longitude",
)

# Teams in these states no longer count as owned.
INACTIVE_TEAM_STATUSES = (TeamStatus.EXPIRED.value, TeamStatus.REVOKED.value)


def get_team_application(db: Session, application_id: UUID) -> TeamApplication:
    application = db.query(TeamApplication).filter(TeamApplication.id == application_id).first()
    if not application:
        raise NotFoundError("TeamApplication", application_id)
    return application


def owns_active_team(db: Session, athlete_id: UUID) -> bool:
    return (
        db.query(Team)
        .filter(Team.owner_id == athlete_id, Team.status.notin_(INACTIVE_TEAM_STATUSES))
        .first()
        is not None
    )


def has_membership(db: Session, athlete_id: UUID) -> bool:
    return db.query(TeamMembership).filter(TeamMembership.athlete_id == athlete_id).first() is not None


def submit_team_application(
    db: Session,
    actor: Athlete,
    guide_id: UUID,
    fields: Dict[str, Any],
) -> TeamApplication:
    if owns_active_team(db, actor.id) or has_membership(db, actor.id):
        raise ConflictError("ALREADY_ON_TEAM: leave or delete your current team before creating another")

    pending = (
        db.query(TeamApplication)
        .filter(
            TeamApplication.applicant_id == actor.id,
            TeamApplication.status == TeamApplicationStatus.PENDING.value,
        )
        .first()
    )
    if pending:
        raise ConflictError("PENDING_APPLICATION_EXISTS: wait for the guide to review your application")

    guide = db.query(Guide).filter(Guide.id == guide_id).first()
    if not guide:
        raise NotFoundError("Guide", guide_id)

    with unit_of_work(db):
        application = TeamApplication(
            applicant_id=actor.id,
            guide_id=guide.id,
            status=TeamApplicationStatus.PENDING.value,
            **fields,
        )
        db.add(application)
        db.flush()
        notify_for(db, NotificationDescriptor(
            recipient_id=guide.user_id,
            actor_id=actor.id,
            type=NotificationType.APPLICATION_SUBMITTED,
            title="New Team Application",
            message=f"{actor.username or actor.first_name or 'An athlete'} submitted a team application for review.",
            payload=ApplicationSubmittedPayload(
                application_id=str(application.id),
                applicant_id=str(actor.id),
            ),
        ))

    logger.info(
        f"Team application {application.id} submitted to guide {guide.id}",
        extra=log_fields(application_id=str(application.id), actor_id=str(actor.id), guide_id=str(guide.id)),
    )
    return application


def list_guide_team_applications(db: Session, actor: Athlete) -> List[TeamApplication]:
    guide = _require_guide(db, actor)
    return (
        db.query(TeamApplication)
        .filter(
            TeamApplication.guide_id == guide.id,
            TeamApplication.status == TeamApplicationStatus.PENDING.value,
        )
        .order_by(TeamApplication.created_at.desc())
        .all()
    )


def _require_guide(db: Session, actor: Athlete) -> Guide:
    guide = get_guide_for(db, actor)
    if not guide:
        raise ForbiddenError("Guide profile required")
    return guide


def _require_reviewing_guide(db: Session, application: TeamApplication, actor: Athlete) -> Guide:
    guide = _require_guide(db, actor)
    if application.guide_id != guide.id:
        raise ForbiddenError("Unauthorized to review this application")
    return guide


def approve_team_application(
    db: Session,
    application_id: UUID,
    actor: Athlete,
    review_note: Optional[str] = None,
) -> Tuple[TeamApplication, Team]:
    application = get_team_application(db, application_id)
    from_status = application.status
    transition = TEAM_FORMATION.check("approve", from_status, application.id)
    guide = _require_reviewing_guide(db, application, actor)

    with unit_of_work(db):
        conditional_update(
            db, application, from_status, transition.target,
            review_note=review_note,
            reviewed_at=utcnow(),
        )

        # Same transaction as the status change: a concurrent approval for the
        # same applicant either sees this membership or hits the unique index.
        if has_membership(db, application.applicant_id):
            raise ConflictError("Applicant already belongs to a team")

        team = Team(
            owner_id=application.applicant_id,
            overseer_guide_id=guide.id,
            team_application_id=application.id,
            status=TeamStatus.PENDING_MEMBERS.value,
            **{name: getattr(application, name) for name in TEAM_FIELDS},
        )
        db.add(team)
        db.flush()

        db.add(TeamMembership(
            team_id=team.id,
            athlete_id=application.applicant_id,
            role=TeamRole.OWNER.value,
            is_captain=True,
        ))
        db.add(TeamCounters(team_id=team.id, members_count=1))
        application.team_id = team.id
        db.flush()

        notify_for(db, NotificationDescriptor(
            recipient_id=application.applicant_id,
            actor_id=actor.id,
            type=NotificationType.APPLICATION_APPROVED,
            title="Team Application Approved",
            message=f'Your team "{application.name}" has been approved by the guide!',
            payload=ApplicationApprovedPayload(
                application_id=str(application.id),
                team_id=str(team.id),
                team_name=application.name,
            ),
        ))

    _log_transition(application, actor, from_status, team_id=str(team.id))
    return application, team


def reject_team_application(
    db: Session,
    application_id: UUID,
    actor: Athlete,
    review_note: Optional[str] = None,
) -> TeamApplication:
    application = get_team_application(db, application_id)
    from_status = application.status
    transition = TEAM_FORMATION.check("reject", from_status, application.id)
    _require_reviewing_guide(db, application, actor)

    with unit_of_work(db):
        conditional_update(
            db, application, from_status, transition.target,
            review_note=review_note,
            reviewed_at=utcnow(),
        )
        notify_for(db, NotificationDescriptor(
            recipient_id=application.applicant_id,
            actor_id=actor.id,
            type=NotificationType.APPLICATION_REJECTED,
            title="Team Application Rejected",
            message=(
                f'Your team application "{application.name}" was rejected. '
                f"Review note: {review_note or 'No reason provided'}"
            ),
            payload=ApplicationRejectedPayload(application_id=str(application.id), team_id=None),
        ))

    _log_transition(application, actor, from_status)
    return application


def _log_transition(application: TeamApplication, actor: Athlete, from_status: str, **fields) -> None:
    logger.info(
        f"Team application {application.id}: {from_status} -> {application.status}",
        extra=log_fields(
            application_id=str(application.id),
            actor_id=str(actor.id),
            from_status=from_status,
            to_status=application.status,
            **fields,
        ),
    )
