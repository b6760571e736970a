from sqlalchemy import Column, Integer, Boolean, CheckConstraint, Float, Date, DateTime, ForeignKey, Text, Index, JSON, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import JSONB
from core.database import Base
import enum
import uuid
from datetime import datetime, timezone

# JSONB on Postgres, plain JSON elsewhere (sqlite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_in(column: str, values, name: str) -> CheckConstraint:
    allowed = ", ".join(f"'{v}'" for v in values)
    return CheckConstraint(f"{column} IN ({allowed})", name=name)


class Role(str, enum.Enum):
    ATHLETE = "ATHLETE"
    ADMIN = "ADMIN"
    ASSOCIATE = "ASSOCIATE"
    GUIDE = "GUIDE"


class ApplicationStatus(str, enum.Enum):
    PENDING = "PENDING"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class TeamApplicationStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class TeamStatus(str, enum.Enum):
    PENDING_MEMBERS = "PENDING_MEMBERS"  # needs 2+ members to become ACTIVE
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"


class TeamRole(str, enum.Enum):
    OWNER = "OWNER"
    CAPTAIN = "CAPTAIN"
    MEMBER = "MEMBER"


class RequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"  # set by the downstream stats submission


class NotificationType(str, enum.Enum):
    FOLLOW = "FOLLOW"
    NEW_FOLLOWER = "NEW_FOLLOWER"
    NEW_MESSAGE = "NEW_MESSAGE"
    MESSAGE = "MESSAGE"
    MENTION = "MENTION"
    STAT_UPDATE_REQUEST = "STAT_UPDATE_REQUEST"
    STAT_UPDATE_APPROVED = "STAT_UPDATE_APPROVED"
    STAT_UPDATE_DENIED = "STAT_UPDATE_DENIED"
    STAT_UPDATE_PERMISSION = "STAT_UPDATE_PERMISSION"
    EVALUATION_COMPLETED = "EVALUATION_COMPLETED"
    APPLICATION_SUBMITTED = "APPLICATION_SUBMITTED"
    APPLICATION_UNDER_REVIEW = "APPLICATION_UNDER_REVIEW"
    APPLICATION_APPROVED = "APPLICATION_APPROVED"
    APPLICATION_REJECTED = "APPLICATION_REJECTED"
    TEAM_INVITE = "TEAM_INVITE"
    TEAM_EXPIRING = "TEAM_EXPIRING"
    MEMBER_JOINED = "MEMBER_JOINED"
    MEMBER_LEFT = "MEMBER_LEFT"
    ROLE_CHANGED = "ROLE_CHANGED"
    ACCOUNT_UPDATE = "ACCOUNT_UPDATE"
    SECURITY_ALERT = "SECURITY_ALERT"
    SYSTEM_ANNOUNCEMENT = "SYSTEM_ANNOUNCEMENT"


def _values(enum_cls):
    return [member.value for member in enum_cls]


class Athlete(Base):
    __tablename__ = "athlete"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    email = Column(Text, unique=True, nullable=True)
    username = Column(Text, unique=True, nullable=True)
    first_name = Column(Text, nullable=True)
    last_name = Column(Text, nullable=True)
    profile_image = Column(Text, nullable=True)
    primary_sport = Column(Text, nullable=True)
    # Role set; grants are set-unions, never duplicates.
    roles = Column(JSONType, nullable=False, default=lambda: [Role.ATHLETE.value])

    guide = relationship("Guide", back_populates="user", uselist=False)
    associate_profile = relationship("AssociateProfile", back_populates="athlete", uselist=False)
    team_membership = relationship("TeamMembership", back_populates="athlete", uselist=False)

    def has_role(self, role) -> bool:
        value = role.value if isinstance(role, Role) else role
        return value in (self.roles or [])

    @property
    def display_name(self) -> str:
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full or self.username or "An athlete"


class Guide(Base):
    __tablename__ = "guide"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("athlete.id"), unique=True, nullable=False)
    status = Column(Text, default="pending", nullable=False)  # 'pending' | 'approved'
    primary_sport = Column(Text, nullable=True)
    city = Column(Text, nullable=True)
    state = Column(Text, nullable=True)
    country = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    user = relationship("Athlete", back_populates="guide")

    __table_args__ = (
        _check_in("status", ["pending", "approved"], "ck_guide_status"),
    )


class AssociateApplication(Base):
    __tablename__ = "associate_application"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    athlete_id = Column(Uuid(as_uuid=True), ForeignKey("athlete.id"), unique=True, nullable=False)

    work_email = Column(Text, nullable=False)
    cover_letter = Column(Text, nullable=True)
    resume_url = Column(Text, nullable=True)
    primary_expertise = Column(Text, nullable=False)
    secondary_expertise = Column(JSONType, nullable=False, default=list)
    years_of_experience = Column(Integer, nullable=False, default=0)
    work_country = Column(Text, nullable=True)
    work_state = Column(Text, nullable=True)
    work_city = Column(Text, nullable=True)
    work_latitude = Column(Float, nullable=True)
    work_longitude = Column(Float, nullable=True)

    # --- REVIEW LIFECYCLE ---
    status = Column(Text, nullable=False, default=ApplicationStatus.PENDING.value, index=True)
    submitted_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by_id = Column(Uuid(as_uuid=True), ForeignKey("athlete.id"), nullable=True)
    review_notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    can_reapply_after = Column(DateTime(timezone=True), nullable=True)

    athlete = relationship("Athlete", foreign_keys=[athlete_id])
    reviewed_by = relationship("Athlete", foreign_keys=[reviewed_by_id])

    __table_args__ = (
        _check_in("status", _values(ApplicationStatus), "ck_associate_application_status"),
    )


class AssociateProfile(Base):
    """Immutable snapshot of an approved application's professional fields."""
    __tablename__ = "associate_profile"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    athlete_id = Column(Uuid(as_uuid=True), ForeignKey("athlete.id"), unique=True, nullable=False)
    work_email = Column(Text, nullable=False)
    resume_url = Column(Text, nullable=True)
    primary_expertise = Column(Text, nullable=False)
    secondary_expertise = Column(JSONType, nullable=False, default=list)
    years_of_experience = Column(Integer, nullable=False, default=0)
    work_country = Column(Text, nullable=True)
    work_state = Column(Text, nullable=True)
    work_city = Column(Text, nullable=True)
    work_latitude = Column(Float, nullable=True)
    work_longitude = Column(Float, nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    athlete = relationship("Athlete", back_populates="associate_profile")


class TeamApplication(Base):
    __tablename__ = "team_application"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    applicant_id = Column(Uuid(as_uuid=True), ForeignKey("athlete.id"), nullable=False, index=True)
    guide_id = Column(Uuid(as_uuid=True), ForeignKey("guide.id"), nullable=False, index=True)

    name = Column(Text, nullable=False)
    sport = Column(Text, nullable=False)
    team_class = Column("class", Text, nullable=True)
    rank = Column(Text, nullable=True)
    bio = Column(Text, nullable=True)
    logo_url = Column(Text, nullable=True)
    country = Column(Text, nullable=True)
    state = Column(Text, nullable=True)
    city = Column(Text, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    status = Column(Text, nullable=False, default=TeamApplicationStatus.PENDING.value, index=True)
    review_note = Column(Text, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    # Back-link to the team created on approval; team.team_application_id holds the FK.
    team_id = Column(Uuid(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    applicant = relationship("Athlete", foreign_keys=[applicant_id])
    guide = relationship("Guide")

    __table_args__ = (
        _check_in("status", _values(TeamApplicationStatus), "ck_team_application_status"),
    )


class Team(Base):
    __tablename__ = "team"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    sport = Column(Text, nullable=False)
    team_class = Column("class", Text, nullable=True)
    rank = Column(Text, nullable=True)
    bio = Column(Text, nullable=True)
    logo_url = Column(Text, nullable=True)
    country = Column(Text, nullable=True)
    state = Column(Text, nullable=True)
    city = Column(Text, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    owner_id = Column(Uuid(as_uuid=True), ForeignKey("athlete.id"), nullable=False, index=True)
    overseer_guide_id = Column(Uuid(as_uuid=True), ForeignKey("guide.id"), nullable=True)
    team_application_id = Column(Uuid(as_uuid=True), ForeignKey("team_application.id"), unique=True, nullable=True)
    status = Column(Text, nullable=False, default=TeamStatus.PENDING_MEMBERS.value)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    memberships = relationship("TeamMembership", back_populates="team")
    counters = relationship("TeamCounters", back_populates="team", uselist=False)

    __table_args__ = (
        _check_in("status", _values(TeamStatus), "ck_team_status"),
    )


class TeamMembership(Base):
    __tablename__ = "team_membership"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    team_id = Column(Uuid(as_uuid=True), ForeignKey("team.id"), nullable=False, index=True)
    # One team per athlete: the unique index backs the approval-time membership check.
    athlete_id = Column(Uuid(as_uuid=True), ForeignKey("athlete.id"), unique=True, nullable=False)
    role = Column(Text, nullable=False, default=TeamRole.MEMBER.value)
    is_captain = Column(Boolean, nullable=False, default=False)
    joined_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    team = relationship("Team", back_populates="memberships")
    athlete = relationship("Athlete", back_populates="team_membership")

    __table_args__ = (
        _check_in("role", _values(TeamRole), "ck_team_membership_role"),
    )


class TeamCounters(Base):
    __tablename__ = "team_counters"

    team_id = Column(Uuid(as_uuid=True), ForeignKey("team.id"), primary_key=True)
    members_count = Column(Integer, nullable=False, default=0)

    team = relationship("Team", back_populates="counters")


class PhysicalEvaluationRequest(Base):
    __tablename__ = "physical_evaluation_request"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    athlete_id = Column(Uuid(as_uuid=True), ForeignKey("athlete.id"), nullable=False)
    guide_id = Column(Uuid(as_uuid=True), ForeignKey("guide.id"), nullable=False)
    status = Column(Text, nullable=False, default=RequestStatus.PENDING.value)
    message = Column(Text, nullable=True)
    message_from_guide = Column(Text, nullable=True)
    scheduled_date = Column(Date, nullable=True)
    scheduled_time = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    equipment = Column(JSONType, nullable=False, default=list)
    otp = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    athlete = relationship("Athlete", foreign_keys=[athlete_id])
    guide = relationship("Guide")

    __table_args__ = (
        _check_in("status", _values(RequestStatus), "ck_physical_evaluation_request_status"),
        Index("ix_physical_evaluation_request_pair", "athlete_id", "guide_id", "status"),
    )


class Notification(Base):
    __tablename__ = "notification"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    athlete_id = Column(Uuid(as_uuid=True), ForeignKey("athlete.id", ondelete="CASCADE"), nullable=False)  # recipient
    actor_id = Column(Uuid(as_uuid=True), ForeignKey("athlete.id", ondelete="SET NULL"), nullable=True)
    type = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSONType, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    actor = relationship("Athlete", foreign_keys=[actor_id])

    __table_args__ = (
        _check_in("type", _values(NotificationType), "ck_notification_type"),
        # Feed order is (created_at desc, id desc) per recipient.
        Index("ix_notification_feed", "athlete_id", "created_at", "id"),
        Index("ix_notification_unread", "athlete_id", "is_read"),
    )
