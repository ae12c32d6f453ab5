from __future__ import annotations

import datetime as dt
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from tracker.errors import MalformedValueError, NotFoundError
from tracker.logging_config import get_logger, log_context
from tracker.models import AssignmentRoster, Coach, Comment, Result
from tracker.services.roster import get_assignment
from tracker.services.tiers import parse_value
from tracker.validators import CommentInput

logger = get_logger(__name__)


def submit_result(
    session: Session,
    assignment_id: int,
    athlete_id: int,
    raw_value: Any,
    now: Optional[dt.datetime] = None,
) -> Result:
    """Record an athlete's result; the athlete must be on the assignment roster."""
    value = parse_value(raw_value)
    if value is None:
        raise MalformedValueError(raw_value)
    get_assignment(session, assignment_id)
    on_roster = session.execute(
        select(AssignmentRoster.id).where(
            AssignmentRoster.assignment_id == assignment_id,
            AssignmentRoster.athlete_id == athlete_id,
        )
    ).first()
    if on_roster is None:
        raise NotFoundError("roster entry", (assignment_id, athlete_id))

    result = Result(
        assignment_id=assignment_id,
        athlete_id=athlete_id,
        value=value,
        recorded_on=now or dt.datetime.utcnow(),
    )
    session.add(result)
    session.flush()
    logger.info(
        "result submitted",
        extra=log_context(assignment_id=assignment_id, athlete_id=athlete_id, result_id=result.id),
    )
    return result


def add_comment(
    session: Session,
    result_id: int,
    coach_id: int,
    body: str,
    now: Optional[dt.datetime] = None,
) -> Comment:
    payload = CommentInput(coach_id=coach_id, body=body)
    if session.get(Result, result_id) is None:
        raise NotFoundError("result", result_id)
    if session.get(Coach, coach_id) is None:
        raise NotFoundError("coach", coach_id)
    comment = Comment(
        result_id=result_id,
        coach_id=payload.coach_id,
        body=payload.body,
        commented_on=now or dt.datetime.utcnow(),
    )
    session.add(comment)
    session.flush()
    return comment
