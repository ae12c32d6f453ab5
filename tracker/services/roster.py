"""Assignment creation with a point-in-time roster snapshot.

The roster of an assignment is copied from group membership when the test
is assigned. Later joins and leaves never touch existing roster rows, so an
assignment keeps reporting against the athletes it was issued to.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from tracker.errors import DuplicateAssignmentError, EmptyRosterError, NotFoundError, PartialWriteError
from tracker.logging_config import get_logger, log_context
from tracker.models import Assignment, AssignmentRoster, Comment, Result
from tracker.services.catalog import get_test_definition
from tracker.services.groups import get_group, list_member_ids

logger = get_logger(__name__)


def get_assignment(session: Session, assignment_id: int) -> Assignment:
    assignment = session.get(Assignment, assignment_id)
    if assignment is None:
        raise NotFoundError("assignment", assignment_id)
    return assignment


def roster_athlete_ids(session: Session, assignment_id: int) -> list[int]:
    return list(
        session.execute(
            select(AssignmentRoster.athlete_id)
            .where(AssignmentRoster.assignment_id == assignment_id)
            .order_by(AssignmentRoster.id)
        ).scalars()
    )


def _existing_assignment_id(session: Session, test_id: int, group_code: str, due_on: dt.date) -> Optional[int]:
    return session.execute(
        select(Assignment.id).where(
            Assignment.test_id == test_id,
            Assignment.group_code == group_code,
            Assignment.due_on == due_on,
        )
    ).scalar_one_or_none()


def _duplicate(test_id: int, group_code: str, due_on: dt.date) -> DuplicateAssignmentError:
    return DuplicateAssignmentError(
        f"test {test_id} already assigned to group {group_code!r} due {due_on.isoformat()}"
    )


def snapshot_roster(
    session: Session,
    coach_id: int,
    group_code: str,
    test_id: int,
    due_on: dt.date,
    now: Optional[dt.datetime] = None,
) -> Assignment:
    """Assign a test to a group, copying the group's current members.

    The assignment row and its roster rows are written inside one savepoint.
    Any store failure, or a roster that comes back short after the flush,
    rolls the whole assignment back and raises PartialWriteError. A unique
    violation on (test, group, due date) is reported as a duplicate instead.
    """
    get_group(session, group_code, coach_id=coach_id)
    get_test_definition(session, test_id, coach_id=coach_id)

    member_ids = list_member_ids(session, group_code)
    if not member_ids:
        logger.warning("assignment refused, group has no members", extra=log_context(group_code=group_code))
        raise EmptyRosterError(group_code)

    if _existing_assignment_id(session, test_id, group_code, due_on) is not None:
        raise _duplicate(test_id, group_code, due_on)

    try:
        with session.begin_nested():
            assignment = Assignment(
                test_id=test_id,
                group_code=group_code,
                coach_id=coach_id,
                assigned_on=now or dt.datetime.utcnow(),
                due_on=due_on,
            )
            session.add(assignment)
            session.flush()
            session.add_all(
                AssignmentRoster(
                    assignment_id=assignment.id,
                    athlete_id=athlete_id,
                    group_code_at_assignment=group_code,
                )
                for athlete_id in member_ids
            )
            session.flush()
            written = session.execute(
                select(func.count())
                .select_from(AssignmentRoster)
                .where(AssignmentRoster.assignment_id == assignment.id)
            ).scalar_one()
            if written != len(member_ids):
                raise PartialWriteError(
                    "roster snapshot incomplete, retry creating the assignment",
                    expected=len(member_ids),
                    written=written,
                )
    except IntegrityError as exc:
        # A concurrent writer may have committed the same assignment after the
        # pre-check; the unique constraint is what caught it.
        if _existing_assignment_id(session, test_id, group_code, due_on) is not None:
            logger.info(
                "assignment created concurrently",
                extra=log_context(group_code=group_code, test_id=test_id, due_on=due_on.isoformat()),
            )
            raise _duplicate(test_id, group_code, due_on) from exc
        logger.error(
            "roster snapshot failed",
            extra=log_context(group_code=group_code, test_id=test_id, expected=len(member_ids)),
        )
        raise PartialWriteError(
            "roster snapshot failed, retry creating the assignment",
            expected=len(member_ids),
        ) from exc
    except SQLAlchemyError as exc:
        logger.error(
            "roster snapshot failed",
            extra=log_context(group_code=group_code, test_id=test_id, expected=len(member_ids)),
        )
        raise PartialWriteError(
            "roster snapshot failed, retry creating the assignment",
            expected=len(member_ids),
        ) from exc

    logger.info(
        "assignment created",
        extra=log_context(assignment_id=assignment.id, group_code=group_code, roster_size=len(member_ids)),
    )
    return assignment


def find_incomplete_assignments(session: Session) -> list[int]:
    """Ids of assignments without a single roster row."""
    rows = session.execute(
        select(Assignment.id)
        .outerjoin(AssignmentRoster, AssignmentRoster.assignment_id == Assignment.id)
        .group_by(Assignment.id)
        .having(func.count(AssignmentRoster.id) == 0)
        .order_by(Assignment.id)
    ).scalars()
    return list(rows)


def purge_assignment(session: Session, assignment_id: int) -> None:
    """Remove an assignment with its roster, results and their comments."""
    get_assignment(session, assignment_id)
    result_ids = select(Result.id).where(Result.assignment_id == assignment_id)
    session.execute(delete(Comment).where(Comment.result_id.in_(result_ids)))
    session.execute(delete(Result).where(Result.assignment_id == assignment_id))
    session.execute(delete(AssignmentRoster).where(AssignmentRoster.assignment_id == assignment_id))
    session.execute(delete(Assignment).where(Assignment.id == assignment_id))
    session.flush()
    session.expire_all()
    logger.info("assignment purged", extra=log_context(assignment_id=assignment_id))
