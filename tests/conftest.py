from __future__ import annotations

import datetime as dt

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tracker.db import build_engine
from tracker.models import Athlete, Base, Coach, Group, Membership, TestDefinition

NOW = dt.datetime(2026, 10, 19, 9, 0, 0)

SPRINT_TIERS = [
    {"label": "Beginner", "min": 0, "max": 10},
    {"label": "Intermediate", "min": 10.01, "max": 20},
    {"label": "Advanced", "min": 20.01, "max": 30},
]


@pytest.fixture()
def engine():
    eng = build_engine(
        "sqlite+pysqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session(engine):
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    s = factory()
    try:
        yield s
    finally:
        s.rollback()
        s.close()


@pytest.fixture()
def coach(session):
    c = Coach(id=1, full_name="Coach Carter", email="carter@example.com", created_at=NOW)
    session.add(c)
    session.flush()
    return c


@pytest.fixture()
def athletes(session):
    rows = [
        Athlete(id=i, full_name=f"Athlete {name}", email=f"{name.lower()}@example.com", created_at=NOW)
        for i, name in enumerate(["A", "B", "C", "D"], start=1)
    ]
    session.add_all(rows)
    session.flush()
    return rows


@pytest.fixture()
def sprint_test(session, coach):
    t = TestDefinition(
        id=1,
        coach_id=coach.id,
        name="30m sprint",
        description="",
        metric_kind="time_sec",
        tiers=list(SPRINT_TIERS),
        created_at=NOW,
    )
    session.add(t)
    session.flush()
    return t


@pytest.fixture()
def group(session, coach, athletes):
    """Group AB12C with athletes 1-3 as members; athlete 4 is not a member."""
    g = Group(code="AB12C", name="U16 Sprinters", description="", coach_id=coach.id, created_at=NOW, active=True)
    session.add(g)
    session.flush()
    for offset, athlete in enumerate(athletes[:3]):
        session.add(
            Membership(
                athlete_id=athlete.id,
                group_code=g.code,
                joined_at=NOW - dt.timedelta(days=10 - offset),
            )
        )
    session.flush()
    return g


class ScriptedRng:
    """Stands in for random.Random and hands out fixed code candidates."""

    def __init__(self, codes):
        self._codes = iter(codes)
        self.calls = 0

    def choices(self, population, k):
        self.calls += 1
        code = next(self._codes)
        assert len(code) == k
        return list(code)


@pytest.fixture()
def scripted_rng():
    return ScriptedRng
