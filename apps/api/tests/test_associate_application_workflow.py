"""
Associate application review workflow.

Service-level tests: claim, approve and reject plus submission, exercising
the conditional-update guard, the profile snapshot, the role grant and the
single notification each transition stages in its commit.
"""
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from core.exceptions import ConflictError, ForbiddenError, InvalidTransitionError, NotFoundError
from models import AssociateApplication, AssociateProfile, Athlete, Notification
from services.workflow.associate_applications import (
    approve_application,
    claim_application,
    get_application_stats,
    list_applications,
    reject_application,
    submit_application,
)
from tests.factories import make_application, make_athlete


def _notifications(db, athlete_id, type_=None):
    q = db.query(Notification).filter(Notification.athlete_id == athlete_id)
    if type_:
        q = q.filter(Notification.type == type_)
    return q.all()


class TestClaim:
    def test_claim_moves_to_under_review(self, db_session, admin, athlete):
        application = make_application(db_session, athlete)

        claimed = claim_application(db_session, application.id, admin)

        assert claimed.status == "UNDER_REVIEW"
        assert claimed.reviewed_by_id == admin.id
        notes = _notifications(db_session, athlete.id, "APPLICATION_UNDER_REVIEW")
        assert len(notes) == 1
        assert notes[0].data == {"applicationId": str(application.id)}
        assert notes[0].actor_id == admin.id

    def test_second_claim_by_other_admin_conflicts(self, db_session, admin, other_admin, athlete):
        application = make_application(db_session, athlete)
        claim_application(db_session, application.id, admin)

        with pytest.raises(ConflictError):
            claim_application(db_session, application.id, other_admin)

        db_session.expire_all()
        fresh = db_session.get(AssociateApplication, application.id)
        assert fresh.reviewed_by_id == admin.id
        assert len(_notifications(db_session, athlete.id)) == 1

    def test_racing_claim_from_stale_read_conflicts(self, db_session, session_factory, admin, other_admin, athlete):
        application = make_application(db_session, athlete)

        racer = session_factory()
        try:
            stale = racer.get(AssociateApplication, application.id)
            assert stale.status == "PENDING"

            claim_application(db_session, application.id, admin)

            with pytest.raises(ConflictError):
                claim_application(racer, application.id, other_admin)
        finally:
            racer.close()

        db_session.expire_all()
        fresh = db_session.get(AssociateApplication, application.id)
        assert fresh.status == "UNDER_REVIEW"
        assert fresh.reviewed_by_id == admin.id
        assert len(_notifications(db_session, athlete.id)) == 1

    def test_non_admin_cannot_claim(self, db_session, athlete):
        application = make_application(db_session, athlete)
        outsider = make_athlete(db_session)

        with pytest.raises(ForbiddenError):
            claim_application(db_session, application.id, outsider)

        assert db_session.get(AssociateApplication, application.id).status == "PENDING"
        assert _notifications(db_session, athlete.id) == []

    def test_missing_application(self, db_session, admin):
        with pytest.raises(NotFoundError):
            claim_application(db_session, uuid4(), admin)


class TestApprove:
    def _claimed(self, db, admin, athlete):
        application = make_application(db, athlete)
        claim_application(db, application.id, admin)
        return application

    def test_approve_creates_profile_and_grants_role(self, db_session, admin, athlete):
        application = self._claimed(db_session, admin, athlete)

        approved, profile = approve_application(db_session, application.id, admin, review_notes="Strong CV")

        assert approved.status == "APPROVED"
        assert approved.review_notes == "Strong CV"
        assert approved.reviewed_at is not None
        assert profile.athlete_id == athlete.id
        assert profile.work_email == application.work_email
        assert profile.primary_expertise == "Physiotherapy"
        assert profile.secondary_expertise == ["Strength", "Rehab"]
        assert profile.years_of_experience == 7
        assert profile.work_city == "Pune"
        assert profile.verified_at is not None

        refreshed = db_session.get(Athlete, athlete.id)
        assert refreshed.roles.count("ASSOCIATE") == 1

        notes = _notifications(db_session, athlete.id, "APPLICATION_APPROVED")
        assert len(notes) == 1
        assert notes[0].data == {
            "applicationId": str(application.id),
            "associateProfileId": str(profile.id),
        }

    def test_double_approve_yields_one_profile_and_one_role(self, db_session, admin, athlete):
        application = self._claimed(db_session, admin, athlete)
        approve_application(db_session, application.id, admin)

        with pytest.raises(ConflictError):
            approve_application(db_session, application.id, admin)

        assert db_session.query(AssociateProfile).filter(AssociateProfile.athlete_id == athlete.id).count() == 1
        assert db_session.get(Athlete, athlete.id).roles.count("ASSOCIATE") == 1
        assert len(_notifications(db_session, athlete.id, "APPLICATION_APPROVED")) == 1

    def test_racing_approve_creates_nothing_twice(self, db_session, session_factory, admin, athlete):
        application = self._claimed(db_session, admin, athlete)

        racer = session_factory()
        try:
            assert racer.get(AssociateApplication, application.id).status == "UNDER_REVIEW"
            approve_application(db_session, application.id, admin)
            with pytest.raises(ConflictError):
                approve_application(racer, application.id, admin)
        finally:
            racer.close()

        db_session.expire_all()
        assert db_session.query(AssociateProfile).count() == 1
        assert db_session.get(Athlete, athlete.id).roles.count("ASSOCIATE") == 1

    def test_existing_associate_role_is_not_duplicated(self, db_session, admin):
        applicant = make_athlete(db_session, roles=["ATHLETE", "ASSOCIATE"])
        application = self._claimed(db_session, admin, applicant)

        approve_application(db_session, application.id, admin)

        assert db_session.get(Athlete, applicant.id).roles == ["ATHLETE", "ASSOCIATE"]

    def test_only_claimant_can_approve(self, db_session, admin, other_admin, athlete):
        application = self._claimed(db_session, admin, athlete)

        with pytest.raises(ForbiddenError):
            approve_application(db_session, application.id, other_admin)

        assert db_session.get(AssociateApplication, application.id).status == "UNDER_REVIEW"

    def test_approve_unclaimed_is_invalid_transition(self, db_session, admin, athlete):
        application = make_application(db_session, athlete)

        with pytest.raises(InvalidTransitionError):
            approve_application(db_session, application.id, admin)

    def test_existing_profile_rolls_back_whole_transition(self, db_session, admin, athlete):
        application = self._claimed(db_session, admin, athlete)
        db_session.add(AssociateProfile(
            athlete_id=athlete.id,
            work_email="old@example.com",
            primary_expertise="Nutrition",
            verified_at=datetime.now(timezone.utc),
        ))
        db_session.commit()

        with pytest.raises(ConflictError):
            approve_application(db_session, application.id, admin)

        db_session.expire_all()
        assert db_session.get(AssociateApplication, application.id).status == "UNDER_REVIEW"
        assert "ASSOCIATE" not in db_session.get(Athlete, athlete.id).roles
        assert _notifications(db_session, athlete.id, "APPLICATION_APPROVED") == []


class TestReject:
    def test_reject_with_cooldown(self, db_session, admin, athlete):
        application = make_application(db_session, athlete)
        before = datetime.now(timezone.utc)

        rejected = reject_application(db_session, application.id, admin, "incomplete resume", cooldown_days=14)

        assert rejected.status == "REJECTED"
        assert rejected.rejection_reason == "incomplete resume"
        assert rejected.can_reapply_after.date() == (before + timedelta(days=14)).date()

        notes = _notifications(db_session, athlete.id, "APPLICATION_REJECTED")
        assert len(notes) == 1
        assert notes[0].data["applicationId"] == str(application.id)
        assert notes[0].data["rejectionReason"] == "incomplete resume"
        assert notes[0].data["canReapplyAfter"].startswith((before + timedelta(days=14)).date().isoformat())

    def test_default_cooldown_is_thirty_days(self, db_session, admin, athlete):
        application = make_application(db_session, athlete)
        before = datetime.now(timezone.utc)

        rejected = reject_application(db_session, application.id, admin, "not a fit")

        assert rejected.can_reapply_after.date() == (before + timedelta(days=30)).date()

    def test_cooldown_is_not_bounded_by_the_workflow(self, db_session, admin, athlete):
        application = make_application(db_session, athlete)
        before = datetime.now(timezone.utc)

        rejected = reject_application(db_session, application.id, admin, "spam", cooldown_days=400)

        assert rejected.can_reapply_after.date() == (before + timedelta(days=400)).date()

    def test_claimed_application_only_rejectable_by_claimant(self, db_session, admin, other_admin, athlete):
        application = make_application(db_session, athlete)
        claim_application(db_session, application.id, admin)

        with pytest.raises(ForbiddenError):
            reject_application(db_session, application.id, other_admin, "nope")

        rejected = reject_application(db_session, application.id, admin, "nope")
        assert rejected.status == "REJECTED"

    def test_reject_after_approval_conflicts(self, db_session, admin, athlete):
        application = make_application(db_session, athlete)
        claim_application(db_session, application.id, admin)
        approve_application(db_session, application.id, admin)

        with pytest.raises(ConflictError):
            reject_application(db_session, application.id, admin, "changed my mind")


class TestSubmit:
    FIELDS = dict(
        work_email="me@physioworks.in",
        primary_expertise="Sports Medicine",
        secondary_expertise=["Rehab"],
        years_of_experience=3,
    )

    def test_submit_creates_pending_application(self, db_session, athlete):
        application = submit_application(db_session, athlete, dict(self.FIELDS))

        assert application.status == "PENDING"
        assert application.athlete_id == athlete.id

    def test_open_application_blocks_resubmission(self, db_session, athlete):
        submit_application(db_session, athlete, dict(self.FIELDS))

        with pytest.raises(ConflictError) as exc:
            submit_application(db_session, athlete, dict(self.FIELDS))
        assert "APPLICATION_EXISTS" in exc.value.detail

    def test_cooldown_blocks_resubmission(self, db_session, admin, athlete):
        application = make_application(db_session, athlete)
        reject_application(db_session, application.id, admin, "too early", cooldown_days=10)

        with pytest.raises(ConflictError) as exc:
            submit_application(db_session, athlete, dict(self.FIELDS))
        assert "COOLDOWN_ACTIVE" in exc.value.detail

    def test_resubmission_after_cooldown_replaces_rejected(self, db_session, athlete):
        old = make_application(
            db_session,
            athlete,
            status="REJECTED",
            can_reapply_after=datetime.now(timezone.utc) - timedelta(days=1),
        )

        new = submit_application(db_session, athlete, dict(self.FIELDS))

        assert new.id != old.id
        assert new.status == "PENDING"
        assert db_session.query(AssociateApplication).filter(AssociateApplication.athlete_id == athlete.id).count() == 1


class TestQueries:
    def test_stats_and_filtering(self, db_session, admin):
        a1 = make_application(db_session, make_athlete(db_session))
        a2 = make_application(db_session, make_athlete(db_session))
        make_application(db_session, make_athlete(db_session))
        claim_application(db_session, a1.id, admin)
        reject_application(db_session, a2.id, admin, "no")

        stats = get_application_stats(db_session)
        assert stats == {"total": 3, "pending": 1, "under_review": 1, "approved": 0, "rejected": 1}

        under_review = list_applications(db_session, status="UNDER_REVIEW")
        assert [a.id for a in under_review] == [a1.id]
        assert len(list_applications(db_session)) == 3
