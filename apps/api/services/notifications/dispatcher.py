"""
Notification dispatcher.

Writes one Notification row inside the caller's unit of work. Never commits
and performs no delivery: clients pull notifications through the delivery
service.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from core.logging import log_fields
from models import Notification, NotificationType
from services.notifications.types import NotificationPayload, payload_model_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationDescriptor:
    """What a transition wants delivered: recipient, type and typed payload."""
    recipient_id: UUID
    type: NotificationType
    title: str
    message: str
    payload: NotificationPayload
    actor_id: Optional[UUID] = None


def dispatch(
    db: Session,
    *,
    recipient_id: UUID,
    actor_id: Optional[UUID],
    type: NotificationType,
    title: str,
    message: str,
    data: Union[NotificationPayload, Dict[str, Any], None] = None,
) -> Notification:
    kind = NotificationType(type)
    model = payload_model_for(kind)
    if isinstance(data, NotificationPayload):
        if not isinstance(data, model):
            raise TypeError(f"{kind.value} expects {model.__name__}, got {data.__class__.__name__}")
        payload = data
    else:
        payload = model.model_validate(data or {})

    notification = Notification(
        athlete_id=recipient_id,
        actor_id=actor_id,
        type=kind.value,
        title=title,
        message=message,
        data=payload.to_data(),
        is_read=False,
    )
    db.add(notification)
    db.flush()

    logger.debug(
        "Notification staged",
        extra=log_fields(notification_id=str(notification.id), type=kind.value, recipient_id=str(recipient_id)),
    )
    return notification


def notify_for(db: Session, descriptor: NotificationDescriptor) -> Notification:
    return dispatch(
        db,
        recipient_id=descriptor.recipient_id,
        actor_id=descriptor.actor_id,
        type=descriptor.type,
        title=descriptor.title,
        message=descriptor.message,
        data=descriptor.payload,
    )
