"""Athlete activity feed: new assignments and new coach feedback.

Both streams are read fresh for a rolling window and merged newest first.
Nothing about the feed is persisted, so every item comes back unread.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from tracker.config import get_settings
from tracker.errors import NotFoundError
from tracker.models import Assignment, AssignmentRoster, Athlete, Comment, Result, TestDefinition

KIND_ASSIGNMENT = "assignment"
KIND_FEEDBACK = "feedback"


@dataclass
class FeedItem:
    kind: str
    title: str
    message: str
    occurred_on: dt.datetime
    reference_id: int
    unread: bool = True


def assignment_item(assignment_id: int, test_name: str, assigned_on: dt.datetime, due_on: dt.date) -> FeedItem:
    return FeedItem(
        kind=KIND_ASSIGNMENT,
        title="New test assigned",
        message=f"Your coach assigned you a new test: {test_name}. Due {due_on.strftime('%d/%m/%Y')}.",
        occurred_on=assigned_on,
        reference_id=assignment_id,
    )


def feedback_item(comment_id: int, test_name: str, body: str, commented_on: dt.datetime) -> FeedItem:
    return FeedItem(
        kind=KIND_FEEDBACK,
        title="New feedback",
        message=f"Your coach left feedback on {test_name}: {body}",
        occurred_on=commented_on,
        reference_id=comment_id,
    )


def merge_feed(*streams: Iterable[FeedItem], now: dt.datetime, window_days: int) -> list[FeedItem]:
    """Concatenate item streams, drop anything older than the window, newest first."""
    if window_days < 0:
        raise ValueError("window_days must be >= 0")
    since = now - dt.timedelta(days=window_days)
    items = [item for stream in streams for item in stream if item.occurred_on >= since]
    items.sort(key=lambda i: i.occurred_on, reverse=True)
    return items


def build_feed(
    session: Session,
    athlete_id: int,
    window_days: Optional[int] = None,
    now: Optional[dt.datetime] = None,
) -> list[FeedItem]:
    if window_days is None:
        window_days = get_settings().feed_window_days
    now = now or dt.datetime.utcnow()
    if window_days < 0:
        raise ValueError("window_days must be >= 0")
    if session.get(Athlete, athlete_id) is None:
        raise NotFoundError("athlete", athlete_id)
    since = now - dt.timedelta(days=window_days)

    assigned = session.execute(
        select(Assignment.id, TestDefinition.name, Assignment.assigned_on, Assignment.due_on)
        .join(AssignmentRoster, AssignmentRoster.assignment_id == Assignment.id)
        .join(TestDefinition, TestDefinition.id == Assignment.test_id)
        .where(AssignmentRoster.athlete_id == athlete_id, Assignment.assigned_on >= since)
    ).all()

    # Only the first comment on a result is surfaced, and only if it falls in the window.
    first_on = (
        select(Comment.result_id, func.min(Comment.commented_on).label("first_on"))
        .group_by(Comment.result_id)
        .subquery()
    )
    first_comments: dict[int, tuple] = {}
    for row in session.execute(
        select(Comment.id, Comment.result_id, TestDefinition.name, Comment.body, Comment.commented_on)
        .join(
            first_on,
            (first_on.c.result_id == Comment.result_id) & (first_on.c.first_on == Comment.commented_on),
        )
        .join(Result, Result.id == Comment.result_id)
        .join(Assignment, Assignment.id == Result.assignment_id)
        .join(TestDefinition, TestDefinition.id == Assignment.test_id)
        .where(Result.athlete_id == athlete_id, Comment.commented_on >= since)
        .order_by(Comment.commented_on, Comment.id)
    ).all():
        first_comments.setdefault(row.result_id, row)

    return merge_feed(
        (assignment_item(a.id, a.name, a.assigned_on, a.due_on) for a in assigned),
        (feedback_item(c.id, c.name, c.body, c.commented_on) for c in first_comments.values()),
        now=now,
        window_days=window_days,
    )
