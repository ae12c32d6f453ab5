"""Completion roll-ups for coach dashboards and reports.

Builds per-assignment progress (roster size, completed count, percent) and
buckets it by group and test. Listings split on the query time: assignments
still open are ordered soonest deadline first, closed ones most recently
closed first.
"""

from __future__ import annotations

import datetime as dt
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from tracker.errors import NotFoundError
from tracker.logging_config import get_logger, log_context
from tracker.models import Assignment, AssignmentRoster, Membership, Result, TestDefinition
from tracker.services.completion import partition_roster
from tracker.services.groups import get_group

logger = get_logger(__name__)

COMPLETION_FILTERS = ("all", "pending", "completed")


@dataclass
class AssignmentProgress:
    assignment_id: int
    total: int
    completed_count: int
    percent: int
    due_on: Optional[dt.date] = None
    group_code: Optional[str] = None
    test_id: Optional[int] = None
    test_name: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.completed_count == self.total


@dataclass
class GroupProgress:
    group_code: str
    test_id: int
    test_name: str
    assignment_ids: list[int] = field(default_factory=list)
    total: int = 0
    completed_count: int = 0
    percent: int = 0


@dataclass
class AssignmentListing:
    active: list[AssignmentProgress]
    history: list[AssignmentProgress]


@dataclass
class GroupSummary:
    group_code: str
    name: str
    member_count: int
    active_tests: int
    average_percent: float


def completion_percent(completed_count: int, total: int) -> int:
    """Whole-number percent, rounding halves up; an empty roster is 0%."""
    if total <= 0:
        return 0
    return int(math.floor(completed_count / total * 100 + 0.5))


def compute_progress(assignment_id: int, total: int, completed_count: int, **meta) -> AssignmentProgress:
    return AssignmentProgress(
        assignment_id=assignment_id,
        total=total,
        completed_count=completed_count,
        percent=completion_percent(completed_count, total),
        **meta,
    )


def aggregate(session: Session, assignment_ids: Iterable[int], skip_missing: bool = False) -> list[AssignmentProgress]:
    """Progress for each requested assignment, in request order.

    Unknown assignments (or ones whose test was deleted) raise NotFoundError,
    unless ``skip_missing`` is set, in which case each one is logged and
    left out.
    """
    ids = list(dict.fromkeys(assignment_ids))
    if not ids:
        return []

    found = {
        a.id: (a, t)
        for a, t in session.execute(
            select(Assignment, TestDefinition)
            .outerjoin(TestDefinition, TestDefinition.id == Assignment.test_id)
            .where(Assignment.id.in_(ids))
        ).all()
    }
    rosters: dict[int, list[int]] = defaultdict(list)
    for assignment_id, athlete_id in session.execute(
        select(AssignmentRoster.assignment_id, AssignmentRoster.athlete_id)
        .where(AssignmentRoster.assignment_id.in_(ids))
        .order_by(AssignmentRoster.id)
    ).all():
        rosters[assignment_id].append(athlete_id)
    submitted: dict[int, set[int]] = defaultdict(set)
    for assignment_id, athlete_id in session.execute(
        select(Result.assignment_id, Result.athlete_id).where(Result.assignment_id.in_(ids)).distinct()
    ).all():
        submitted[assignment_id].add(athlete_id)

    out: list[AssignmentProgress] = []
    for assignment_id in ids:
        assignment, test = found.get(assignment_id, (None, None))
        if assignment is None or test is None:
            entity, key = ("assignment", assignment_id) if assignment is None else ("test", assignment.test_id)
            if not skip_missing:
                raise NotFoundError(entity, key)
            logger.warning(
                "skipping assignment in aggregate",
                extra=log_context(assignment_id=assignment_id, missing=entity),
            )
            continue
        status = partition_roster(rosters[assignment_id], submitted[assignment_id])
        out.append(
            compute_progress(
                assignment_id,
                status.total,
                len(status.completed),
                due_on=assignment.due_on,
                group_code=assignment.group_code,
                test_id=test.id,
                test_name=test.name,
            )
        )
    return out


def aggregate_by_group(
    session: Session, assignment_ids: Iterable[int], skip_missing: bool = False
) -> list[GroupProgress]:
    """Bucket assignment progress by (group, test) for dashboard cards."""
    buckets: dict[tuple[str, int], GroupProgress] = {}
    for item in aggregate(session, assignment_ids, skip_missing=skip_missing):
        key = (item.group_code, item.test_id)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = GroupProgress(
                group_code=item.group_code, test_id=item.test_id, test_name=item.test_name
            )
        bucket.assignment_ids.append(item.assignment_id)
        bucket.total += item.total
        bucket.completed_count += item.completed_count
    for bucket in buckets.values():
        bucket.percent = completion_percent(bucket.completed_count, bucket.total)
    return list(buckets.values())


def _as_date(now: Union[dt.datetime, dt.date]) -> dt.date:
    return now.date() if isinstance(now, dt.datetime) else now


def split_listings(items: Iterable[AssignmentProgress], now: Union[dt.datetime, dt.date]) -> AssignmentListing:
    """Active (due today or later) ascending by due date; history descending."""
    today = _as_date(now)
    active = [i for i in items if i.due_on is not None and i.due_on >= today]
    history = [i for i in items if i.due_on is not None and i.due_on < today]
    active.sort(key=lambda i: (i.due_on, i.assignment_id))
    history.sort(key=lambda i: (i.due_on, i.assignment_id), reverse=True)
    return AssignmentListing(active=active, history=history)


def coach_assignment_listing(
    session: Session, coach_id: int, now: Optional[dt.datetime] = None
) -> AssignmentListing:
    ids = session.execute(select(Assignment.id).where(Assignment.coach_id == coach_id)).scalars().all()
    return split_listings(aggregate(session, ids), now or dt.datetime.utcnow())


def filter_by_completion(items: Iterable[AssignmentProgress], status: str = "all") -> list[AssignmentProgress]:
    if status not in COMPLETION_FILTERS:
        raise ValueError(f"status must be one of {COMPLETION_FILTERS}")
    if status == "completed":
        return [i for i in items if i.is_complete]
    if status == "pending":
        return [i for i in items if not i.is_complete]
    return list(items)


def group_summary(
    session: Session,
    group_code: str,
    coach_id: Optional[int] = None,
    now: Optional[dt.datetime] = None,
) -> GroupSummary:
    group = get_group(session, group_code, coach_id=coach_id)
    today = _as_date(now or dt.datetime.utcnow())
    member_count = session.execute(
        select(func.count()).select_from(Membership).where(Membership.group_code == group_code)
    ).scalar_one()
    ids = session.execute(select(Assignment.id).where(Assignment.group_code == group_code)).scalars().all()
    progress = aggregate(session, ids)

    avg = 0.0
    if progress:
        avg = sum(p.percent for p in progress) / len(progress)
    return GroupSummary(
        group_code=group.code,
        name=group.name,
        member_count=member_count,
        active_tests=sum(1 for p in progress if p.due_on >= today),
        average_percent=round(avg, 1),
    )
