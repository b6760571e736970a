"""
Transition tables and refusal classification.

Refusals split two ways: a subject somebody already moved past the source
state is a CONFLICT (stale read / double submit); a transition that is simply
not defined from where the subject sits is an INVALID_TRANSITION.
"""
import pytest

from core.exceptions import ConflictError, InvalidTransitionError
from services.workflow.state_machine import APPLICATION, EVALUATION, TEAM_FORMATION


class TestApplicationMachine:
    def test_claim_from_pending(self):
        t = APPLICATION.check("claim", "PENDING")
        assert t.target == "UNDER_REVIEW"

    def test_reject_allowed_from_pending_and_under_review(self):
        assert APPLICATION.check("reject", "PENDING").target == "REJECTED"
        assert APPLICATION.check("reject", "UNDER_REVIEW").target == "REJECTED"

    def test_second_claim_is_conflict(self):
        with pytest.raises(ConflictError):
            APPLICATION.check("claim", "UNDER_REVIEW")

    def test_approve_twice_is_conflict(self):
        with pytest.raises(ConflictError):
            APPLICATION.check("approve", "APPROVED")

    def test_approve_unclaimed_is_invalid_transition(self):
        with pytest.raises(InvalidTransitionError) as exc:
            APPLICATION.check("approve", "PENDING")
        assert exc.value.error_code == "INVALID_TRANSITION"
        assert exc.value.current_status == "PENDING"

    def test_approve_after_rejection_is_conflict(self):
        with pytest.raises(ConflictError):
            APPLICATION.check("approve", "REJECTED")

    def test_unknown_action_is_invalid_transition(self):
        with pytest.raises(InvalidTransitionError):
            APPLICATION.check("accept", "PENDING")

    def test_terminal_states(self):
        assert APPLICATION.is_terminal("APPROVED")
        assert APPLICATION.is_terminal("REJECTED")
        assert not APPLICATION.is_terminal("PENDING")

    def test_reachability(self):
        assert APPLICATION.reachable_from("PENDING") == {"UNDER_REVIEW", "APPROVED", "REJECTED"}
        assert APPLICATION.reachable_from("APPROVED") == set()


class TestTeamFormationMachine:
    def test_approve_and_reject_from_pending(self):
        assert TEAM_FORMATION.check("approve", "PENDING").target == "APPROVED"
        assert TEAM_FORMATION.check("reject", "PENDING").target == "REJECTED"

    @pytest.mark.parametrize("status", ["APPROVED", "REJECTED"])
    def test_reviewing_a_reviewed_application_is_conflict(self, status):
        with pytest.raises(ConflictError):
            TEAM_FORMATION.check("approve", status)
        with pytest.raises(ConflictError):
            TEAM_FORMATION.check("reject", status)

    def test_claim_is_not_defined(self):
        with pytest.raises(InvalidTransitionError):
            TEAM_FORMATION.check("claim", "PENDING")


class TestEvaluationMachine:
    def test_accept_from_pending(self):
        assert EVALUATION.check("accept", "PENDING").target == "ACCEPTED"

    def test_accept_completed_request_is_conflict(self):
        with pytest.raises(ConflictError):
            EVALUATION.check("accept", "COMPLETED")

    def test_complete_requires_accepted(self):
        assert EVALUATION.check("complete", "ACCEPTED").target == "COMPLETED"
        with pytest.raises(InvalidTransitionError):
            EVALUATION.check("complete", "PENDING")
        with pytest.raises(InvalidTransitionError):
            EVALUATION.check("complete", "REJECTED")

    def test_actions(self):
        assert EVALUATION.actions == {"accept", "reject", "complete"}
