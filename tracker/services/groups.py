"""Group creation and membership management."""

from __future__ import annotations

import datetime as dt
import random
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tracker.config import Settings, get_settings
from tracker.errors import CodeCollisionError, NotFoundError
from tracker.logging_config import get_logger, log_context
from tracker.models import Athlete, Coach, Group, Membership
from tracker.services.codes import allocate_group_code, group_code_taken
from tracker.validators import GroupCreateInput

logger = get_logger(__name__)


def get_group(session: Session, group_code: str, coach_id: Optional[int] = None, active_only: bool = True) -> Group:
    group = session.get(Group, group_code)
    if group is None or (active_only and not group.active):
        raise NotFoundError("group", group_code)
    if coach_id is not None and group.coach_id != coach_id:
        raise NotFoundError("group", group_code)
    return group


def create_group(
    session: Session,
    coach_id: int,
    name: str,
    description: str = "",
    *,
    settings: Optional[Settings] = None,
    rng: Optional[random.Random] = None,
    now: Optional[dt.datetime] = None,
) -> Group:
    """Create a group under a freshly allocated join code.

    The pre-insert collision check is only an optimisation; the primary key
    on ``groups.code`` is the real guard. A uniqueness violation at insert
    time means another writer took the code in between, so a new code is
    allocated and the insert retried.
    """
    settings = settings or get_settings()
    payload = GroupCreateInput(name=name, description=description)
    if session.get(Coach, coach_id) is None:
        raise NotFoundError("coach", coach_id)

    taken = group_code_taken(session)
    for attempt in range(1, settings.group_create_max_retries + 1):
        code = allocate_group_code(
            taken,
            length=settings.group_code_length,
            alphabet=settings.group_code_alphabet,
            max_attempts=settings.group_code_max_attempts,
            rng=rng,
        )
        group = Group(
            code=code,
            name=payload.name,
            description=payload.description,
            coach_id=coach_id,
            created_at=now or dt.datetime.utcnow(),
            active=True,
        )
        try:
            with session.begin_nested():
                session.add(group)
        except IntegrityError:
            logger.info(
                "group code taken at insert, reallocating",
                extra=log_context(code=code, attempt=attempt),
            )
            continue
        logger.info("group created", extra=log_context(code=code, coach_id=coach_id))
        return group
    raise CodeCollisionError(settings.group_create_max_retries)


def deactivate_group(session: Session, coach_id: int, group_code: str) -> Group:
    group = get_group(session, group_code, coach_id=coach_id)
    group.active = False
    session.flush()
    return group


def add_member(session: Session, group_code: str, athlete_id: int, now: Optional[dt.datetime] = None) -> Membership:
    """Join an athlete to a group; joining twice is a no-op."""
    get_group(session, group_code)
    if session.get(Athlete, athlete_id) is None:
        raise NotFoundError("athlete", athlete_id)
    existing = session.execute(
        select(Membership).where(Membership.group_code == group_code, Membership.athlete_id == athlete_id)
    ).scalar_one_or_none()
    if existing is not None:
        return existing
    membership = Membership(group_code=group_code, athlete_id=athlete_id, joined_at=now or dt.datetime.utcnow())
    session.add(membership)
    session.flush()
    return membership


def remove_member(session: Session, group_code: str, athlete_id: int) -> bool:
    """Remove an athlete from a group. Existing assignment rosters are untouched."""
    result = session.execute(
        delete(Membership).where(Membership.group_code == group_code, Membership.athlete_id == athlete_id)
    )
    session.flush()
    return result.rowcount > 0


def list_member_ids(session: Session, group_code: str) -> list[int]:
    rows = session.execute(
        select(Membership.athlete_id)
        .where(Membership.group_code == group_code)
        .order_by(Membership.joined_at, Membership.id)
    ).scalars()
    return list(rows)
