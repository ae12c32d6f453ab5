from __future__ import annotations

import datetime as dt
from typing import Any, Mapping, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from tracker.errors import NotFoundError
from tracker.logging_config import get_logger, log_context
from tracker.models import Assignment, Coach, TestDefinition
from tracker.validators import TestDefinitionInput

logger = get_logger(__name__)


def get_test_definition(session: Session, test_id: int, coach_id: Optional[int] = None) -> TestDefinition:
    test = session.get(TestDefinition, test_id)
    if test is None or (coach_id is not None and test.coach_id != coach_id):
        raise NotFoundError("test", test_id)
    return test


def create_test_definition(
    session: Session,
    coach_id: int,
    payload: Union[TestDefinitionInput, Mapping[str, Any]],
    now: Optional[dt.datetime] = None,
) -> TestDefinition:
    """Store a coach-owned test with its tier table in declaration order."""
    if not isinstance(payload, TestDefinitionInput):
        payload = TestDefinitionInput.model_validate(payload)
    if session.get(Coach, coach_id) is None:
        raise NotFoundError("coach", coach_id)
    test = TestDefinition(
        coach_id=coach_id,
        name=payload.name,
        description=payload.description.strip(),
        metric_kind=payload.metric_kind,
        tiers=[t.to_tier().as_dict() for t in payload.tiers],
        created_at=now or dt.datetime.utcnow(),
    )
    session.add(test)
    session.flush()
    logger.info("test definition created", extra=log_context(test_id=test.id, tiers=len(test.tiers)))
    return test


def list_test_definitions(
    session: Session, coach_id: int, offset: int = 0, limit: Optional[int] = None
) -> list[TestDefinition]:
    q = (
        select(TestDefinition)
        .where(TestDefinition.coach_id == coach_id)
        .order_by(TestDefinition.name, TestDefinition.id)
        .offset(offset)
    )
    if limit is not None:
        q = q.limit(limit)
    return list(session.execute(q).scalars())


def count_test_definitions(session: Session, coach_id: int) -> int:
    return session.execute(
        select(func.count()).select_from(TestDefinition).where(TestDefinition.coach_id == coach_id)
    ).scalar_one()


def delete_test_definition(session: Session, coach_id: int, test_id: int) -> None:
    """Hard-delete a test together with its assignments, rosters and results."""
    from tracker.services.roster import purge_assignment

    test = get_test_definition(session, test_id, coach_id=coach_id)
    assignment_ids = session.execute(select(Assignment.id).where(Assignment.test_id == test_id)).scalars().all()
    for assignment_id in assignment_ids:
        purge_assignment(session, assignment_id)
    session.delete(test)
    session.flush()
    logger.info(
        "test definition deleted",
        extra=log_context(test_id=test_id, assignments_removed=len(assignment_ids)),
    )
