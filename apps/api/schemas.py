from pydantic import BaseModel, ConfigDict, Field, EmailStr
from datetime import datetime, date
from uuid import UUID
from typing import Optional, List, Dict, Any, Union

from core.config import settings


class AthleteSummary(BaseModel):
    id: UUID
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# --- Associate applications ---

class AssociateApplicationCreate(BaseModel):
    work_email: EmailStr
    cover_letter: Optional[str] = Field(default=None, max_length=5000)
    resume_url: Optional[str] = None
    primary_expertise: str = Field(min_length=1)
    secondary_expertise: List[str] = []
    years_of_experience: int = Field(default=0, ge=0, le=80)
    work_country: Optional[str] = None
    work_state: Optional[str] = None
    work_city: Optional[str] = None
    work_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    work_longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class AssociateApplicationResponse(BaseModel):
    id: UUID
    athlete_id: UUID
    work_email: str
    cover_letter: Optional[str] = None
    resume_url: Optional[str] = None
    primary_expertise: str
    secondary_expertise: List[str] = []
    years_of_experience: int
    work_country: Optional[str] = None
    work_state: Optional[str] = None
    work_city: Optional[str] = None
    status: str
    submitted_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by_id: Optional[UUID] = None
    review_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    can_reapply_after: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ApplicationApproveRequest(BaseModel):
    review_notes: Optional[str] = Field(default=None, max_length=2000)


class ApplicationRejectRequest(BaseModel):
    rejection_reason: str = Field(min_length=1, max_length=2000)
    # Bounded here only; the workflow trusts whatever it is given.
    cooldown_days: int = Field(
        default=settings.APPLICATION_DEFAULT_COOLDOWN_DAYS,
        ge=0,
        le=settings.APPLICATION_MAX_COOLDOWN_DAYS,
    )


class ApplicationApprovalResponse(BaseModel):
    application: AssociateApplicationResponse
    associate_profile_id: UUID


class ApplicationStatsResponse(BaseModel):
    total: int
    pending: int
    under_review: int
    approved: int
    rejected: int


# --- Team applications ---

class TeamApplicationCreate(BaseModel):
    guide_id: UUID
    name: str = Field(min_length=2, max_length=80)
    sport: str = Field(min_length=1)
    team_class: Optional[str] = None
    rank: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=2000)
    logo_url: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class TeamApplicationResponse(BaseModel):
    id: UUID
    applicant_id: UUID
    guide_id: UUID
    name: str
    sport: str
    team_class: Optional[str] = None
    rank: Optional[str] = None
    bio: Optional[str] = None
    logo_url: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    status: str
    review_note: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    team_id: Optional[UUID] = None
    created_at: datetime
    applicant: Optional[AthleteSummary] = None

    model_config = ConfigDict(from_attributes=True)


class TeamApplicationReviewRequest(BaseModel):
    review_note: Optional[str] = Field(default=None, max_length=2000)


class TeamApplicationApprovalResponse(BaseModel):
    status: str
    team_id: UUID


# --- Physical evaluation requests ---

class EvaluationRequestCreate(BaseModel):
    guide_id: UUID
    message: Optional[str] = Field(default=None, max_length=2000)
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None


class EvaluationRequestAccept(BaseModel):
    # Required on accept; checked by the workflow so the error kind is consistent.
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    location: Optional[str] = None
    equipment: Union[str, List[str], None] = None
    message_from_guide: Optional[str] = Field(default=None, max_length=2000)


class EvaluationRequestResponse(BaseModel):
    id: UUID
    athlete_id: UUID
    guide_id: UUID
    status: str
    message: Optional[str] = None
    message_from_guide: Optional[str] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    location: Optional[str] = None
    equipment: List[str] = []
    otp: Optional[int] = None
    created_at: datetime
    athlete: Optional[AthleteSummary] = None

    model_config = ConfigDict(from_attributes=True)


# --- Notifications ---

class NotificationResponse(BaseModel):
    id: UUID
    type: str
    title: str
    message: str
    is_read: bool
    created_at: datetime
    actor: Optional[AthleteSummary] = None
    data: Optional[Dict[str, Any]] = None
    link: Optional[str] = None


class NotificationPageResponse(BaseModel):
    notifications: List[NotificationResponse]
    has_more: bool
    unread_count: int
    next_cursor: Optional[UUID] = None


class UnreadCountResponse(BaseModel):
    unread_count: int


class NotificationMutationResponse(BaseModel):
    ok: bool = True
    id: UUID
    is_read: Optional[bool] = None
    deleted: Optional[bool] = None


class BulkMutationResponse(BaseModel):
    ok: bool = True
    count: int
