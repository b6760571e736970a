"""
Notification types and their payloads.

``Notification.data`` is a tagged union: the ``type`` column selects exactly
one payload model below. Payloads serialize with camelCase keys, which is the
shape polling clients read.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from models import NotificationType


class NotificationPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    def to_data(self) -> Dict[str, Any]:
        # exclude_unset keeps explicit nulls (e.g. teamId on a rejection)
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class EmptyPayload(NotificationPayload):
    pass


class ConversationPayload(NotificationPayload):
    conversation_id: Optional[str] = None


class FollowPayload(NotificationPayload):
    username: Optional[str] = None


class StatRequestPayload(NotificationPayload):
    request_id: str
    athlete_id: str


class StatApprovedPayload(NotificationPayload):
    request_id: str
    guide_id: str
    otp: int
    scheduled_date: date
    scheduled_time: str
    location: str
    equipment: List[str] = []


class StatDeniedPayload(NotificationPayload):
    request_id: str
    guide_id: str


class StatPermissionPayload(NotificationPayload):
    athlete_id: Optional[str] = None
    request_id: Optional[str] = None


class EvaluationCompletedPayload(NotificationPayload):
    request_id: str
    guide_id: str
    athlete_id: Optional[str] = None


class ApplicationSubmittedPayload(NotificationPayload):
    application_id: str
    applicant_id: Optional[str] = None


class ApplicationUnderReviewPayload(NotificationPayload):
    application_id: str


class ApplicationApprovedPayload(NotificationPayload):
    application_id: str
    associate_profile_id: Optional[str] = None
    team_id: Optional[str] = None
    team_name: Optional[str] = None


class ApplicationRejectedPayload(NotificationPayload):
    application_id: str
    team_id: Optional[str] = None
    rejection_reason: Optional[str] = None
    can_reapply_after: Optional[datetime] = None


class TeamPayload(NotificationPayload):
    team_id: Optional[str] = None


PAYLOAD_MODELS: Dict[NotificationType, Type[NotificationPayload]] = {
    NotificationType.FOLLOW: FollowPayload,
    NotificationType.NEW_FOLLOWER: FollowPayload,
    NotificationType.NEW_MESSAGE: ConversationPayload,
    NotificationType.MESSAGE: ConversationPayload,
    NotificationType.MENTION: ConversationPayload,
    NotificationType.STAT_UPDATE_REQUEST: StatRequestPayload,
    NotificationType.STAT_UPDATE_APPROVED: StatApprovedPayload,
    NotificationType.STAT_UPDATE_DENIED: StatDeniedPayload,
    NotificationType.STAT_UPDATE_PERMISSION: StatPermissionPayload,
    NotificationType.EVALUATION_COMPLETED: EvaluationCompletedPayload,
    NotificationType.APPLICATION_SUBMITTED: ApplicationSubmittedPayload,
    NotificationType.APPLICATION_UNDER_REVIEW: ApplicationUnderReviewPayload,
    NotificationType.APPLICATION_APPROVED: ApplicationApprovedPayload,
    NotificationType.APPLICATION_REJECTED: ApplicationRejectedPayload,
    NotificationType.TEAM_INVITE: TeamPayload,
    NotificationType.TEAM_EXPIRING: TeamPayload,
    NotificationType.MEMBER_JOINED: TeamPayload,
    NotificationType.MEMBER_LEFT: TeamPayload,
    NotificationType.ROLE_CHANGED: TeamPayload,
    NotificationType.ACCOUNT_UPDATE: EmptyPayload,
    NotificationType.SECURITY_ALERT: EmptyPayload,
    NotificationType.SYSTEM_ANNOUNCEMENT: EmptyPayload,
}


def payload_model_for(notification_type: NotificationType) -> Type[NotificationPayload]:
    return PAYLOAD_MODELS[NotificationType(notification_type)]


def build_notification_link(notification_type, data: Optional[Dict[str, Any]]) -> Optional[str]:
    """Deep link for a notification, or None when the payload lacks the target id."""
    try:
        kind = NotificationType(notification_type)
    except ValueError:
        return None
    payload = data if isinstance(data, dict) else {}

    if kind in (NotificationType.NEW_MESSAGE, NotificationType.MESSAGE, NotificationType.MENTION):
        conversation_id = payload.get("conversationId")
        return f"/messages/{conversation_id}" if conversation_id else None

    if kind in (NotificationType.NEW_FOLLOWER, NotificationType.FOLLOW):
        username = payload.get("username")
        return f"/profile/{username}" if username else None

    if kind in (
        NotificationType.STAT_UPDATE_REQUEST,
        NotificationType.STAT_UPDATE_APPROVED,
        NotificationType.STAT_UPDATE_DENIED,
        NotificationType.STAT_UPDATE_PERMISSION,
    ):
        athlete_id = payload.get("athleteId")
        return f"/athletes/{athlete_id}/stats" if athlete_id else None

    if kind in (
        NotificationType.APPLICATION_SUBMITTED,
        NotificationType.APPLICATION_UNDER_REVIEW,
        NotificationType.APPLICATION_APPROVED,
        NotificationType.APPLICATION_REJECTED,
    ):
        application_id = payload.get("applicationId")
        return f"/associate/applications/{application_id}" if application_id else None

    if kind in (
        NotificationType.TEAM_INVITE,
        NotificationType.TEAM_EXPIRING,
        NotificationType.MEMBER_JOINED,
        NotificationType.MEMBER_LEFT,
        NotificationType.ROLE_CHANGED,
    ):
        team_id = payload.get("teamId")
        return f"/teams/{team_id}" if team_id else None

    if kind in (
        NotificationType.ACCOUNT_UPDATE,
        NotificationType.SECURITY_ALERT,
        NotificationType.SYSTEM_ANNOUNCEMENT,
    ):
        return "/settings/security"

    # EVALUATION_COMPLETED has no dedicated screen
    return None
