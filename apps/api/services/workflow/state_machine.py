"""
Fixed state machines for the approval workflows.

Each machine is a compiled table of ``action -> (source statuses, target)``.
Services call ``check()`` before opening their unit of work; the conditional
update inside the unit of work is still the only concurrency guard.

Refusal classification:
- the current status is downstream of a valid source (someone already moved
  the subject): ``ConflictError``
- anything else, including unknown actions: ``InvalidTransitionError``
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Iterable, Optional, Set, Tuple

from sqlalchemy.orm import Session

from core.exceptions import ConflictError, InvalidTransitionError
from core.logging import log_fields
from models import ApplicationStatus, RequestStatus, TeamApplicationStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    action: str
    sources: FrozenSet[str]
    target: str


class StateMachine:
    def __init__(self, subject: str, table: Dict[str, Tuple[Iterable, object]]):
        self.subject = subject
        self._transitions: Dict[str, Transition] = {}
        for action, (sources, target) in table.items():
            self._transitions[action] = Transition(
                action=action,
                sources=frozenset(_value(s) for s in sources),
                target=_value(target),
            )

    @property
    def actions(self) -> Set[str]:
        return set(self._transitions)

    def transition(self, action: str) -> Transition:
        t = self._transitions.get(action)
        if t is None:
            raise InvalidTransitionError(self.subject, action)
        return t

    def successors(self, status: str) -> Set[str]:
        return {t.target for t in self._transitions.values() if status in t.sources}

    def reachable_from(self, status: str) -> Set[str]:
        """Statuses reachable from ``status`` in one or more steps."""
        seen: Set[str] = set()
        frontier = [status]
        while frontier:
            for nxt in self.successors(frontier.pop()):
                if nxt not in seen:
                    seen.add(nxt)
                    frontier.append(nxt)
        return seen

    def is_terminal(self, status) -> bool:
        return not self.successors(_value(status))

    def check(self, action: str, current_status, subject_id=None) -> Transition:
        current = _value(current_status)
        try:
            t = self.transition(action)
            if current in t.sources:
                return t
            if any(current in self.reachable_from(src) for src in t.sources):
                raise ConflictError(
                    f"{self.subject} is already {current}; '{action}' requires "
                    f"{' or '.join(sorted(t.sources))}"
                )
            raise InvalidTransitionError(self.subject, action, current)
        except (ConflictError, InvalidTransitionError) as e:
            logger.warning(
                f"{self.subject} {subject_id} refused '{action}' from {current}: {e.error_code}",
                extra=log_fields(subject=self.subject, subject_id=str(subject_id), action=action,
                                 status=current, error_code=e.error_code),
            )
            raise


def _value(status) -> str:
    return getattr(status, "value", status)


def conditional_update(db: Session, subject, expected_status: str, target: str, **values) -> None:
    """
    ``UPDATE ... SET status = target WHERE id = ? AND status = expected``.

    Zero matched rows means another writer moved the subject first.
    The in-session instance is refreshed from the row on success.
    """
    model = type(subject)
    values["status"] = _value(target)
    updated = (
        db.query(model)
        .filter(model.id == subject.id, model.status == _value(expected_status))
        .update(values, synchronize_session=False)
    )
    if updated == 0:
        logger.warning(
            f"{model.__name__} {subject.id} lost the race to {values['status']}",
            extra=log_fields(subject_id=str(subject.id), expected=_value(expected_status), error_code="CONFLICT"),
        )
        raise ConflictError(
            f"{model.__name__} {subject.id} changed status concurrently; expected {_value(expected_status)}"
        )
    db.refresh(subject)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps read back from stores without tz support."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


APPLICATION = StateMachine(
    "Application",
    {
        "claim": ([ApplicationStatus.PENDING], ApplicationStatus.UNDER_REVIEW),
        "approve": ([ApplicationStatus.UNDER_REVIEW], ApplicationStatus.APPROVED),
        "reject": (
            [ApplicationStatus.PENDING, ApplicationStatus.UNDER_REVIEW],
            ApplicationStatus.REJECTED,
        ),
    },
)

TEAM_FORMATION = StateMachine(
    "TeamApplication",
    {
        "approve": ([TeamApplicationStatus.PENDING], TeamApplicationStatus.APPROVED),
        "reject": ([TeamApplicationStatus.PENDING], TeamApplicationStatus.REJECTED),
    },
)

EVALUATION = StateMachine(
    "EvaluationRequest",
    {
        "accept": ([RequestStatus.PENDING], RequestStatus.ACCEPTED),
        "reject": ([RequestStatus.PENDING], RequestStatus.REJECTED),
        # Driven by the stats submission once the evaluation took place.
        "complete": ([RequestStatus.ACCEPTED], RequestStatus.COMPLETED),
    },
)
