"""
Notification inbox, polled by clients.

GET    /v1/notifications?cursor=&limit=&filter=all|unread
GET    /v1/notifications/unread-count
POST   /v1/notifications/read-all
POST   /v1/notifications/{id}/read
POST   /v1/notifications/{id}/unread
DELETE /v1/notifications/{id}
DELETE /v1/notifications
"""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.database import get_db
from models import Athlete
from schemas import (
    BulkMutationResponse,
    NotificationMutationResponse,
    NotificationPageResponse,
    UnreadCountResponse,
)
from services.notifications import delivery

router = APIRouter(prefix="/v1/notifications", tags=["notifications"])


@router.get("", response_model=NotificationPageResponse)
def list_notifications(
    cursor: Optional[UUID] = Query(default=None),
    limit: Optional[int] = Query(default=None),
    filter: str = Query(default="all"),
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    page = delivery.list_notifications(db, current_user.id, cursor=cursor, limit=limit, filter=filter)
    return {
        "notifications": [delivery.notification_to_dto(n) for n in page.items],
        "has_more": page.has_more,
        "unread_count": page.unread_count,
        "next_cursor": page.next_cursor,
    }


@router.get("/unread-count", response_model=UnreadCountResponse)
def get_unread_count(
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"unread_count": delivery.unread_count(db, current_user.id)}


@router.post("/read-all", response_model=BulkMutationResponse)
def mark_all_read(
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"count": delivery.mark_all_read(db, current_user.id)}


@router.post("/{notification_id}/read", response_model=NotificationMutationResponse)
def mark_read(
    notification_id: UUID,
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = delivery.mark_read(db, current_user.id, notification_id)
    return {"id": notification.id, "is_read": notification.is_read}


@router.post("/{notification_id}/unread", response_model=NotificationMutationResponse)
def mark_unread(
    notification_id: UUID,
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = delivery.mark_unread(db, current_user.id, notification_id)
    return {"id": notification.id, "is_read": notification.is_read}


@router.delete("/{notification_id}", response_model=NotificationMutationResponse)
def delete_notification(
    notification_id: UUID,
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    deleted = delivery.delete_notification(db, current_user.id, notification_id)
    return {"id": notification_id, "deleted": deleted}


@router.delete("", response_model=BulkMutationResponse)
def clear_all(
    current_user: Athlete = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"count": delivery.clear_all(db, current_user.id)}
