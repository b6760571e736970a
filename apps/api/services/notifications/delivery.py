"""
Notification delivery (read path).

Polling clients page through their notifications newest first with a keyset
cursor, toggle read state, and clear them. Every mutation re-checks that the
caller owns the row; a notification id alone never authorizes anything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload

from core.config import settings
from core.database import unit_of_work
from core.exceptions import NotFoundError, ValidationError
from core.logging import log_fields
from models import Athlete, Notification
from services.notifications.types import build_notification_link

logger = logging.getLogger(__name__)

FILTERS = ("all", "unread")


@dataclass
class NotificationPage:
    items: List[Notification] = field(default_factory=list)
    has_more: bool = False
    unread_count: int = 0

    @property
    def next_cursor(self) -> Optional[UUID]:
        if self.has_more and self.items:
            return self.items[-1].id
        return None


def resolve_limit(limit: Optional[int]) -> int:
    if not limit or limit <= 0:
        return settings.NOTIFICATIONS_DEFAULT_PAGE_SIZE
    return min(limit, settings.NOTIFICATIONS_MAX_PAGE_SIZE)


def unread_count(db: Session, athlete_id: UUID) -> int:
    return (
        db.query(Notification)
        .filter(Notification.athlete_id == athlete_id, Notification.is_read.is_(False))
        .count()
    )


def list_notifications(
    db: Session,
    athlete_id: UUID,
    *,
    cursor: Optional[UUID] = None,
    limit: Optional[int] = None,
    filter: str = "all",
) -> NotificationPage:
    """
    One page ordered by (created_at desc, id desc).

    ``cursor`` is the id of the last item the client saw; the page starts
    strictly after that row's position, so rows inserted meanwhile never
    shift or repeat items. A cursor that does not resolve to one of the
    caller's notifications yields an empty page.
    """
    if filter not in FILTERS:
        raise ValidationError(f"filter must be one of {', '.join(FILTERS)}", field="filter")
    page_size = resolve_limit(limit)

    q = (
        db.query(Notification)
        .options(joinedload(Notification.actor))
        .filter(Notification.athlete_id == athlete_id)
    )
    if filter == "unread":
        q = q.filter(Notification.is_read.is_(False))

    if cursor is not None:
        anchor = (
            db.query(Notification.created_at, Notification.id)
            .filter(Notification.id == cursor, Notification.athlete_id == athlete_id)
            .first()
        )
        if anchor is None:
            return NotificationPage(items=[], has_more=False, unread_count=unread_count(db, athlete_id))
        q = q.filter(
            or_(
                Notification.created_at < anchor.created_at,
                and_(Notification.created_at == anchor.created_at, Notification.id < anchor.id),
            )
        )

    rows = (
        q.order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(page_size + 1)
        .all()
    )
    has_more = len(rows) > page_size

    return NotificationPage(
        items=rows[:page_size],
        has_more=has_more,
        unread_count=unread_count(db, athlete_id),
    )


def _get_owned(db: Session, athlete_id: UUID, notification_id: UUID) -> Notification:
    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    if notification is None or notification.athlete_id != athlete_id:
        raise NotFoundError("Notification", notification_id)
    return notification


def _set_read(db: Session, athlete_id: UUID, notification_id: UUID, is_read: bool) -> Notification:
    notification = _get_owned(db, athlete_id, notification_id)
    if notification.is_read == is_read:
        return notification

    with unit_of_work(db):
        notification.is_read = is_read
    return notification


def mark_read(db: Session, athlete_id: UUID, notification_id: UUID) -> Notification:
    return _set_read(db, athlete_id, notification_id, True)


def mark_unread(db: Session, athlete_id: UUID, notification_id: UUID) -> Notification:
    return _set_read(db, athlete_id, notification_id, False)


def delete_notification(db: Session, athlete_id: UUID, notification_id: UUID) -> bool:
    """
    Delete one of the caller's notifications.

    Returns False when the row is already gone, so a retried delete succeeds.
    Rows owned by someone else are reported as not found.
    """
    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    if notification is None:
        return False
    if notification.athlete_id != athlete_id:
        raise NotFoundError("Notification", notification_id)

    with unit_of_work(db):
        db.delete(notification)
    return True


def mark_all_read(db: Session, athlete_id: UUID) -> int:
    with unit_of_work(db):
        updated = (
            db.query(Notification)
            .filter(Notification.athlete_id == athlete_id, Notification.is_read.is_(False))
            .update({"is_read": True}, synchronize_session=False)
        )
    db.expire_all()
    logger.info(
        f"Marked {updated} notifications read",
        extra=log_fields(athlete_id=str(athlete_id), count=updated),
    )
    return updated


def clear_all(db: Session, athlete_id: UUID) -> int:
    with unit_of_work(db):
        deleted = (
            db.query(Notification)
            .filter(Notification.athlete_id == athlete_id)
            .delete(synchronize_session=False)
        )
    db.expire_all()
    logger.info(
        f"Cleared {deleted} notifications",
        extra=log_fields(athlete_id=str(athlete_id), count=deleted),
    )
    return deleted


def actor_summary(actor: Optional[Athlete]) -> Optional[Dict[str, Any]]:
    if actor is None:
        return None
    return {
        "id": actor.id,
        "username": actor.username,
        "first_name": actor.first_name,
        "last_name": actor.last_name,
        "profile_image": actor.profile_image,
    }


def notification_to_dto(notification: Notification) -> Dict[str, Any]:
    return {
        "id": notification.id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "is_read": notification.is_read,
        "created_at": notification.created_at,
        "actor": actor_summary(notification.actor),
        "data": notification.data,
        "link": build_notification_link(notification.type, notification.data),
    }
