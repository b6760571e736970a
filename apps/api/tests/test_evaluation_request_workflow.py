"""
Physical evaluation request workflow: create (throttled), accept, reject,
and the ACCEPTED precondition the stats submission relies on.
"""
from datetime import date
from uuid import uuid4

import pytest

from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from models import Notification, PhysicalEvaluationRequest
from services.workflow.evaluation_requests import (
    accept_evaluation_request,
    complete_evaluation_request,
    create_evaluation_request,
    get_evaluation_request_details,
    list_guide_evaluation_requests,
    parse_equipment,
    reject_evaluation_request,
    require_accepted_request,
)
from tests.factories import make_athlete, make_evaluation_request


def _notifications(db, athlete_id, type_=None):
    q = db.query(Notification).filter(Notification.athlete_id == athlete_id)
    if type_:
        q = q.filter(Notification.type == type_)
    return q.all()


def _accept(db, request, guide, **overrides):
    kwargs = dict(
        scheduled_date=date(2026, 11, 3),
        scheduled_time="09:30",
        location="City Stadium, Gate 2",
        equipment="cones, stopwatch ,  , tape",
    )
    kwargs.update(overrides)
    return accept_evaluation_request(db, request.id, guide.user, **kwargs)


class TestCreate:
    def test_create_notifies_guide(self, db_session, guide, athlete):
        request = create_evaluation_request(db_session, athlete, guide.id, message="Ready for testing")

        assert request.status == "PENDING"
        notes = _notifications(db_session, guide.user_id, "STAT_UPDATE_REQUEST")
        assert len(notes) == 1
        assert notes[0].title == "New physical evaluation request"
        assert notes[0].data == {"requestId": str(request.id), "athleteId": str(athlete.id)}

    @pytest.mark.parametrize("existing_status", ["PENDING", "ACCEPTED", "REJECTED"])
    def test_active_request_throttles_new_ones(self, db_session, guide, athlete, existing_status):
        make_evaluation_request(db_session, athlete, guide, status=existing_status)

        with pytest.raises(ConflictError) as exc:
            create_evaluation_request(db_session, athlete, guide.id)
        assert "REQUEST_ALREADY_EXISTS" in exc.value.detail

    def test_completed_request_does_not_throttle(self, db_session, guide, athlete):
        make_evaluation_request(db_session, athlete, guide, status="COMPLETED")

        request = create_evaluation_request(db_session, athlete, guide.id)

        assert request.status == "PENDING"

    def test_throttle_is_per_guide(self, db_session, guide, other_guide, athlete):
        create_evaluation_request(db_session, athlete, guide.id)

        request = create_evaluation_request(db_session, athlete, other_guide.id)

        assert request.guide_id == other_guide.id

    def test_unknown_guide(self, db_session, athlete):
        with pytest.raises(NotFoundError):
            create_evaluation_request(db_session, athlete, uuid4())


class TestAccept:
    def test_accept_schedules_and_issues_otp(self, db_session, guide, athlete):
        request = make_evaluation_request(db_session, athlete, guide)

        accepted = _accept(db_session, request, guide, message_from_guide="Bring water")

        assert accepted.status == "ACCEPTED"
        assert 100000 <= accepted.otp <= 999999
        assert accepted.equipment == ["cones", "stopwatch", "tape"]
        assert accepted.location == "City Stadium, Gate 2"
        assert accepted.message_from_guide == "Bring water"

        notes = _notifications(db_session, athlete.id)
        assert len(notes) == 1
        assert notes[0].type == "STAT_UPDATE_APPROVED"
        assert notes[0].title == "Physical evaluation request accepted"
        assert notes[0].data == {
            "requestId": str(request.id),
            "guideId": str(guide.id),
            "otp": accepted.otp,
            "scheduledDate": "2026-11-03",
            "scheduledTime": "09:30",
            "location": "City Stadium, Gate 2",
            "equipment": ["cones", "stopwatch", "tape"],
        }
        # Only the athlete is notified.
        assert _notifications(db_session, guide.user_id) == []

    @pytest.mark.parametrize("missing", ["scheduled_date", "scheduled_time", "location"])
    def test_scheduling_fields_are_required(self, db_session, guide, athlete, missing):
        request = make_evaluation_request(db_session, athlete, guide)

        with pytest.raises(ValidationError):
            _accept(db_session, request, guide, **{missing: None})

        assert db_session.get(PhysicalEvaluationRequest, request.id).status == "PENDING"
        assert _notifications(db_session, athlete.id) == []

    def test_other_guide_cannot_accept(self, db_session, guide, other_guide, athlete):
        request = make_evaluation_request(db_session, athlete, guide)

        with pytest.raises(ForbiddenError):
            _accept(db_session, request, other_guide)

    def test_accept_twice_conflicts(self, db_session, guide, athlete):
        request = make_evaluation_request(db_session, athlete, guide)
        first = _accept(db_session, request, guide)
        otp = first.otp

        with pytest.raises(ConflictError):
            _accept(db_session, request, guide)

        db_session.expire_all()
        assert db_session.get(PhysicalEvaluationRequest, request.id).otp == otp
        assert len(_notifications(db_session, athlete.id)) == 1


class TestReject:
    def test_reject_keeps_row_and_keeps_throttling(self, db_session, guide, athlete):
        request = create_evaluation_request(db_session, athlete, guide.id)

        rejected = reject_evaluation_request(db_session, request.id, guide.user)

        assert rejected.status == "REJECTED"
        assert db_session.get(PhysicalEvaluationRequest, request.id) is not None
        notes = _notifications(db_session, athlete.id, "STAT_UPDATE_DENIED")
        assert len(notes) == 1
        assert notes[0].data == {"requestId": str(request.id), "guideId": str(guide.id)}

        with pytest.raises(ConflictError):
            create_evaluation_request(db_session, athlete, guide.id)

    def test_reject_accepted_conflicts(self, db_session, guide, athlete):
        request = make_evaluation_request(db_session, athlete, guide)
        _accept(db_session, request, guide)

        with pytest.raises(ConflictError):
            reject_evaluation_request(db_session, request.id, guide.user)


class TestDownstream:
    def test_require_accepted_request(self, db_session, guide, athlete):
        request = make_evaluation_request(db_session, athlete, guide)

        with pytest.raises(ConflictError):
            require_accepted_request(db_session, request.id, guide.id, athlete.id)

        _accept(db_session, request, guide)
        assert require_accepted_request(db_session, request.id, guide.id, athlete.id).id == request.id

    def test_require_accepted_request_checks_pair(self, db_session, guide, athlete):
        request = make_evaluation_request(db_session, athlete, guide)
        _accept(db_session, request, guide)

        with pytest.raises(NotFoundError):
            require_accepted_request(db_session, request.id, guide.id, make_athlete(db_session).id)

    def test_complete_notifies_athlete(self, db_session, guide, athlete):
        request = make_evaluation_request(db_session, athlete, guide)
        _accept(db_session, request, guide)

        completed = complete_evaluation_request(db_session, request.id, guide.user, athlete.id)

        assert completed.status == "COMPLETED"
        assert len(_notifications(db_session, athlete.id, "EVALUATION_COMPLETED")) == 1
        # A completed evaluation no longer blocks a fresh request.
        assert create_evaluation_request(db_session, athlete, guide.id).status == "PENDING"

    def test_unapproved_guide_cannot_complete(self, db_session, guide, athlete):
        request = make_evaluation_request(db_session, athlete, guide)
        _accept(db_session, request, guide)
        guide.status = "pending"
        db_session.commit()

        with pytest.raises(ForbiddenError):
            complete_evaluation_request(db_session, request.id, guide.user, athlete.id)

        db_session.expire_all()
        assert db_session.get(PhysicalEvaluationRequest, request.id).status == "ACCEPTED"
        assert _notifications(db_session, athlete.id, "EVALUATION_COMPLETED") == []


class TestQueries:
    def test_details_visible_to_participants_only(self, db_session, guide, other_guide, athlete):
        request = make_evaluation_request(db_session, athlete, guide)

        assert get_evaluation_request_details(db_session, request.id, athlete).id == request.id
        assert get_evaluation_request_details(db_session, request.id, guide.user).id == request.id
        with pytest.raises(ForbiddenError):
            get_evaluation_request_details(db_session, request.id, other_guide.user)

    def test_guide_list(self, db_session, guide, other_guide):
        mine = make_evaluation_request(db_session, make_athlete(db_session), guide)
        make_evaluation_request(db_session, make_athlete(db_session), other_guide)

        assert [r.id for r in list_guide_evaluation_requests(db_session, guide.user)] == [mine.id]

    def test_non_guide_cannot_list(self, db_session, athlete):
        with pytest.raises(ForbiddenError):
            list_guide_evaluation_requests(db_session, athlete)


def test_parse_equipment():
    assert parse_equipment(None) == []
    assert parse_equipment("a, b,,c ") == ["a", "b", "c"]
    assert parse_equipment(["  rope ", ""]) == ["rope"]
