"""initial workflow schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Accounts, guides, associate and team-formation applications, teams,
physical evaluation requests and the notification feed.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

NOTIFICATION_TYPES = (
    'FOLLOW', 'NEW_FOLLOWER', 'NEW_MESSAGE', 'MESSAGE', 'MENTION',
    'STAT_UPDATE_REQUEST', 'STAT_UPDATE_APPROVED', 'STAT_UPDATE_DENIED', 'STAT_UPDATE_PERMISSION',
    'EVALUATION_COMPLETED',
    'APPLICATION_SUBMITTED', 'APPLICATION_UNDER_REVIEW', 'APPLICATION_APPROVED', 'APPLICATION_REJECTED',
    'TEAM_INVITE', 'TEAM_EXPIRING', 'MEMBER_JOINED', 'MEMBER_LEFT', 'ROLE_CHANGED',
    'ACCOUNT_UPDATE', 'SECURITY_ALERT', 'SYSTEM_ANNOUNCEMENT',
)


def _in(column, values):
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


def upgrade() -> None:
    op.create_table(
        'athlete',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('email', sa.Text(), nullable=True, unique=True),
        sa.Column('username', sa.Text(), nullable=True, unique=True),
        sa.Column('first_name', sa.Text(), nullable=True),
        sa.Column('last_name', sa.Text(), nullable=True),
        sa.Column('profile_image', sa.Text(), nullable=True),
        sa.Column('primary_sport', sa.Text(), nullable=True),
        sa.Column('roles', JSONB(), server_default=sa.text("'[\"ATHLETE\"]'::jsonb"), nullable=False),
    )

    op.create_table(
        'guide',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('athlete.id'), nullable=False, unique=True),
        sa.Column('status', sa.Text(), server_default='pending', nullable=False),  # 'pending' | 'approved'
        sa.Column('primary_sport', sa.Text(), nullable=True),
        sa.Column('city', sa.Text(), nullable=True),
        sa.Column('state', sa.Text(), nullable=True),
        sa.Column('country', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(_in('status', ('pending', 'approved')), name='ck_guide_status'),
    )

    op.create_table(
        'associate_application',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('athlete_id', UUID(as_uuid=True), sa.ForeignKey('athlete.id'), nullable=False, unique=True),
        sa.Column('work_email', sa.Text(), nullable=False),
        sa.Column('cover_letter', sa.Text(), nullable=True),
        sa.Column('resume_url', sa.Text(), nullable=True),
        sa.Column('primary_expertise', sa.Text(), nullable=False),
        sa.Column('secondary_expertise', JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('years_of_experience', sa.Integer(), server_default='0', nullable=False),
        sa.Column('work_country', sa.Text(), nullable=True),
        sa.Column('work_state', sa.Text(), nullable=True),
        sa.Column('work_city', sa.Text(), nullable=True),
        sa.Column('work_latitude', sa.Float(), nullable=True),
        sa.Column('work_longitude', sa.Float(), nullable=True),
        sa.Column('status', sa.Text(), server_default='PENDING', nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by_id', UUID(as_uuid=True), sa.ForeignKey('athlete.id'), nullable=True),
        sa.Column('review_notes', sa.Text(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('can_reapply_after', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            _in('status', ('PENDING', 'UNDER_REVIEW', 'APPROVED', 'REJECTED')),
            name='ck_associate_application_status',
        ),
    )
    op.create_index('ix_associate_application_status', 'associate_application', ['status'])

    op.create_table(
        'associate_profile',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('athlete_id', UUID(as_uuid=True), sa.ForeignKey('athlete.id'), nullable=False, unique=True),
        sa.Column('work_email', sa.Text(), nullable=False),
        sa.Column('resume_url', sa.Text(), nullable=True),
        sa.Column('primary_expertise', sa.Text(), nullable=False),
        sa.Column('secondary_expertise', JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('years_of_experience', sa.Integer(), server_default='0', nullable=False),
        sa.Column('work_country', sa.Text(), nullable=True),
        sa.Column('work_state', sa.Text(), nullable=True),
        sa.Column('work_city', sa.Text(), nullable=True),
        sa.Column('work_latitude', sa.Float(), nullable=True),
        sa.Column('work_longitude', sa.Float(), nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'team_application',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('applicant_id', UUID(as_uuid=True), sa.ForeignKey('athlete.id'), nullable=False),
        sa.Column('guide_id', UUID(as_uuid=True), sa.ForeignKey('guide.id'), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('sport', sa.Text(), nullable=False),
        sa.Column('class', sa.Text(), nullable=True),
        sa.Column('rank', sa.Text(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('logo_url', sa.Text(), nullable=True),
        sa.Column('country', sa.Text(), nullable=True),
        sa.Column('state', sa.Text(), nullable=True),
        sa.Column('city', sa.Text(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('status', sa.Text(), server_default='PENDING', nullable=False),
        sa.Column('review_note', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('team_id', UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(_in('status', ('PENDING', 'APPROVED', 'REJECTED')), name='ck_team_application_status'),
    )
    op.create_index('ix_team_application_applicant_id', 'team_application', ['applicant_id'])
    op.create_index('ix_team_application_guide_id', 'team_application', ['guide_id'])
    op.create_index('ix_team_application_status', 'team_application', ['status'])

    op.create_table(
        'team',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('sport', sa.Text(), nullable=False),
        sa.Column('class', sa.Text(), nullable=True),
        sa.Column('rank', sa.Text(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('logo_url', sa.Text(), nullable=True),
        sa.Column('country', sa.Text(), nullable=True),
        sa.Column('state', sa.Text(), nullable=True),
        sa.Column('city', sa.Text(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('owner_id', UUID(as_uuid=True), sa.ForeignKey('athlete.id'), nullable=False),
        sa.Column('overseer_guide_id', UUID(as_uuid=True), sa.ForeignKey('guide.id'), nullable=True),
        sa.Column(
            'team_application_id', UUID(as_uuid=True), sa.ForeignKey('team_application.id'),
            nullable=True, unique=True,
        ),
        sa.Column('status', sa.Text(), server_default='PENDING_MEMBERS', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            _in('status', ('PENDING_MEMBERS', 'ACTIVE', 'EXPIRED', 'REVOKED')),
            name='ck_team_status',
        ),
    )
    op.create_index('ix_team_owner_id', 'team', ['owner_id'])

    op.create_table(
        'team_membership',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('team_id', UUID(as_uuid=True), sa.ForeignKey('team.id'), nullable=False),
        sa.Column('athlete_id', UUID(as_uuid=True), sa.ForeignKey('athlete.id'), nullable=False, unique=True),
        sa.Column('role', sa.Text(), server_default='MEMBER', nullable=False),
        sa.Column('is_captain', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(_in('role', ('OWNER', 'CAPTAIN', 'MEMBER')), name='ck_team_membership_role'),
    )
    op.create_index('ix_team_membership_team_id', 'team_membership', ['team_id'])

    op.create_table(
        'team_counters',
        sa.Column('team_id', UUID(as_uuid=True), sa.ForeignKey('team.id'), primary_key=True),
        sa.Column('members_count', sa.Integer(), server_default='0', nullable=False),
    )

    op.create_table(
        'physical_evaluation_request',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('athlete_id', UUID(as_uuid=True), sa.ForeignKey('athlete.id'), nullable=False),
        sa.Column('guide_id', UUID(as_uuid=True), sa.ForeignKey('guide.id'), nullable=False),
        sa.Column('status', sa.Text(), server_default='PENDING', nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('message_from_guide', sa.Text(), nullable=True),
        sa.Column('scheduled_date', sa.Date(), nullable=True),
        sa.Column('scheduled_time', sa.Text(), nullable=True),
        sa.Column('location', sa.Text(), nullable=True),
        sa.Column('equipment', JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('otp', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            _in('status', ('PENDING', 'ACCEPTED', 'REJECTED', 'COMPLETED')),
            name='ck_physical_evaluation_request_status',
        ),
    )
    op.create_index(
        'ix_physical_evaluation_request_pair',
        'physical_evaluation_request',
        ['athlete_id', 'guide_id', 'status'],
    )

    op.create_table(
        'notification',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('athlete_id', UUID(as_uuid=True), sa.ForeignKey('athlete.id', ondelete='CASCADE'), nullable=False),
        sa.Column('actor_id', UUID(as_uuid=True), sa.ForeignKey('athlete.id', ondelete='SET NULL'), nullable=True),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('data', JSONB(), nullable=True),
        sa.Column('is_read', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(_in('type', NOTIFICATION_TYPES), name='ck_notification_type'),
    )
    op.create_index('ix_notification_feed', 'notification', ['athlete_id', 'created_at', 'id'])
    op.create_index('ix_notification_unread', 'notification', ['athlete_id', 'is_read'])


def downgrade() -> None:
    op.drop_index('ix_notification_unread', table_name='notification')
    op.drop_index('ix_notification_feed', table_name='notification')
    op.drop_table('notification')
    op.drop_index('ix_physical_evaluation_request_pair', table_name='physical_evaluation_request')
    op.drop_table('physical_evaluation_request')
    op.drop_table('team_counters')
    op.drop_index('ix_team_membership_team_id', table_name='team_membership')
    op.drop_table('team_membership')
    op.drop_index('ix_team_owner_id', table_name='team')
    op.drop_table('team')
    op.drop_index('ix_team_application_status', table_name='team_application')
    op.drop_index('ix_team_application_guide_id', table_name='team_application')
    op.drop_index('ix_team_application_applicant_id', table_name='team_application')
    op.drop_table('team_application')
    op.drop_table('associate_profile')
    op.drop_index('ix_associate_application_status', table_name='associate_application')
    op.drop_table('associate_application')
    op.drop_table('guide')
    op.drop_table('athlete')
