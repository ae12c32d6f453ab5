"""Per-athlete completion state of assignments.

Completion is never stored. An athlete on an assignment's roster is
``completed`` when at least one result row exists for the pair and
``pending`` otherwise; both lists are recomputed from the store on every
call so concurrent submissions and resets show up on the next read.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from tracker.errors import NotFoundError
from tracker.logging_config import get_logger, log_context
from tracker.models import Assignment, AssignmentRoster, Athlete, Comment, Result, TestDefinition
from tracker.services.roster import get_assignment, roster_athlete_ids
from tracker.services.tiers import classify

logger = get_logger(__name__)

PENDING = "pending"
COMPLETED = "completed"


@dataclass
class CompletionStatus:
    pending: list[int] = field(default_factory=list)
    completed: list[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.pending) + len(self.completed)

    def status_of(self, athlete_id: int) -> Optional[str]:
        if athlete_id in self.completed:
            return COMPLETED
        if athlete_id in self.pending:
            return PENDING
        return None


@dataclass
class ParticipantRow:
    athlete_id: int
    name: str
    status: str
    value: Optional[float] = None
    tier: Optional[str] = None
    comment: Optional[str] = None


@dataclass
class AssignmentDetail:
    assignment_id: int
    test_id: int
    test_name: str
    group_code: str
    due_on: dt.date
    participants: list[ParticipantRow]

    @property
    def pending(self) -> list[ParticipantRow]:
        return [p for p in self.participants if p.status == PENDING]

    @property
    def completed(self) -> list[ParticipantRow]:
        return [p for p in self.participants if p.status == COMPLETED]


@dataclass
class AthleteAssignmentRow:
    assignment_id: int
    test_id: int
    test_name: str
    group_code: str
    due_on: dt.date
    status: str
    value: Optional[float] = None
    tier: Optional[str] = None


def partition_roster(roster_ids: Iterable[int], submitted_ids: Iterable[int]) -> CompletionStatus:
    """Split a roster into pending and completed, keeping roster order.

    Submissions from athletes outside the roster are ignored.
    """
    submitted = set(submitted_ids)
    status = CompletionStatus()
    seen: set[int] = set()
    for athlete_id in roster_ids:
        if athlete_id in seen:
            continue
        seen.add(athlete_id)
        if athlete_id in submitted:
            status.completed.append(athlete_id)
        else:
            status.pending.append(athlete_id)
    return status


def _submitted_athlete_ids(session: Session, assignment_id: int) -> set[int]:
    return set(
        session.execute(select(Result.athlete_id).where(Result.assignment_id == assignment_id).distinct()).scalars()
    )


def derive_status(session: Session, assignment_id: int) -> CompletionStatus:
    get_assignment(session, assignment_id)
    return partition_roster(
        roster_athlete_ids(session, assignment_id),
        _submitted_athlete_ids(session, assignment_id),
    )


def reset_completion(session: Session, assignment_id: int, athlete_id: int) -> int:
    """Invalidate an athlete's submission so they are pending again.

    Deletes every result row for the pair together with the feedback
    attached to it, and returns how many results were removed. There is
    no undo; callers confirm with the coach first.
    """
    get_assignment(session, assignment_id)
    on_roster = session.execute(
        select(AssignmentRoster.id).where(
            AssignmentRoster.assignment_id == assignment_id,
            AssignmentRoster.athlete_id == athlete_id,
        )
    ).first()
    if on_roster is None:
        raise NotFoundError("roster entry", (assignment_id, athlete_id))

    result_ids = list(
        session.execute(
            select(Result.id).where(Result.assignment_id == assignment_id, Result.athlete_id == athlete_id)
        ).scalars()
    )
    if result_ids:
        session.execute(delete(Comment).where(Comment.result_id.in_(result_ids)))
        session.execute(delete(Result).where(Result.id.in_(result_ids)))
        session.flush()
    logger.info(
        "completion reset",
        extra=log_context(assignment_id=assignment_id, athlete_id=athlete_id, results_deleted=len(result_ids)),
    )
    return len(result_ids)


def _latest_results(session: Session, assignment_ids: Iterable[int], athlete_id: Optional[int] = None) -> dict:
    """Most recent result per (assignment, athlete)."""
    q = select(Result).where(Result.assignment_id.in_(list(assignment_ids)))
    if athlete_id is not None:
        q = q.where(Result.athlete_id == athlete_id)
    latest: dict[tuple[int, int], Result] = {}
    for row in session.execute(q.order_by(Result.recorded_on, Result.id)).scalars():
        latest[(row.assignment_id, row.athlete_id)] = row
    return latest


def _first_comments(session: Session, result_ids: Iterable[int]) -> dict[int, str]:
    ids = list(result_ids)
    if not ids:
        return {}
    first: dict[int, str] = {}
    rows = session.execute(
        select(Comment).where(Comment.result_id.in_(ids)).order_by(Comment.commented_on, Comment.id)
    ).scalars()
    for c in rows:
        first.setdefault(c.result_id, c.body)
    return first


def assignment_detail(session: Session, assignment_id: int) -> AssignmentDetail:
    """Roster of one assignment with status, latest value, tier and feedback."""
    assignment = get_assignment(session, assignment_id)
    test = session.get(TestDefinition, assignment.test_id)
    if test is None:
        raise NotFoundError("test", assignment.test_id)

    roster = roster_athlete_ids(session, assignment_id)
    status = partition_roster(roster, _submitted_athlete_ids(session, assignment_id))
    names = dict(session.execute(select(Athlete.id, Athlete.full_name).where(Athlete.id.in_(roster))).all())
    latest = _latest_results(session, [assignment_id])
    comments = _first_comments(session, (r.id for r in latest.values()))

    participants = []
    for athlete_id in roster:
        result = latest.get((assignment_id, athlete_id))
        participants.append(
            ParticipantRow(
                athlete_id=athlete_id,
                name=names.get(athlete_id) or f"Athlete {athlete_id}",
                status=status.status_of(athlete_id) or PENDING,
                value=result.value if result else None,
                tier=classify(result.value, test.tiers) if result else None,
                comment=comments.get(result.id) if result else None,
            )
        )
    return AssignmentDetail(
        assignment_id=assignment.id,
        test_id=test.id,
        test_name=test.name,
        group_code=assignment.group_code,
        due_on=assignment.due_on,
        participants=participants,
    )


def athlete_assignments(session: Session, athlete_id: int) -> list[AthleteAssignmentRow]:
    """Every assignment an athlete is rostered on, soonest due first."""
    if session.get(Athlete, athlete_id) is None:
        raise NotFoundError("athlete", athlete_id)
    rows = session.execute(
        select(Assignment, TestDefinition)
        .join(AssignmentRoster, AssignmentRoster.assignment_id == Assignment.id)
        .join(TestDefinition, TestDefinition.id == Assignment.test_id)
        .where(AssignmentRoster.athlete_id == athlete_id)
        .order_by(Assignment.due_on, Assignment.id)
    ).all()
    latest = _latest_results(session, [a.id for a, _ in rows], athlete_id=athlete_id)

    out = []
    for assignment, test in rows:
        result = latest.get((assignment.id, athlete_id))
        out.append(
            AthleteAssignmentRow(
                assignment_id=assignment.id,
                test_id=test.id,
                test_name=test.name,
                group_code=assignment.group_code,
                due_on=assignment.due_on,
                status=COMPLETED if result else PENDING,
                value=result.value if result else None,
                tier=classify(result.value, test.tiers) if result else None,
            )
        )
    return out
