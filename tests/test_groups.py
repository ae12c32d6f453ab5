"""Tests for group creation and membership."""

from __future__ import annotations

import datetime as dt

import pytest
from pydantic import ValidationError
from sqlalchemy import insert, select

from tracker.config import Settings
from tracker.errors import CodeCollisionError, NotFoundError
from tracker.models import Group, Membership
from tracker.services import groups

NOW = dt.datetime(2026, 10, 19, 9, 0, 0)


def _settings(**overrides) -> Settings:
    return Settings(database_url="sqlite://", **overrides)


class TestCreateGroup:
    def test_creates_active_group_with_fresh_code(self, session, coach):
        g = groups.create_group(session, coach.id, " U16 Sprinters ", "Tuesday squad", settings=_settings(), now=NOW)
        assert len(g.code) == 5
        assert g.name == "U16 Sprinters"
        assert g.active is True
        assert session.get(Group, g.code) is g

    def test_skips_code_already_in_store(self, session, coach, scripted_rng):
        session.execute(insert(Group).values(code="AB12C", name="Old", description="", coach_id=coach.id, created_at=NOW, active=True))
        rng = scripted_rng(["AB12C", "QW7RT"])
        g = groups.create_group(session, coach.id, "New", settings=_settings(), rng=rng)
        assert g.code == "QW7RT"
        assert rng.calls == 2

    def test_retries_when_insert_hits_unique_violation(self, session, coach, scripted_rng, monkeypatch):
        # Another writer takes the code between the check and the insert.
        session.execute(insert(Group).values(code="AB12C", name="Racer", description="", coach_id=coach.id, created_at=NOW, active=True))
        monkeypatch.setattr(groups, "group_code_taken", lambda s: (lambda code: False))
        rng = scripted_rng(["AB12C", "ZX81Q"])
        g = groups.create_group(session, coach.id, "Mine", settings=_settings(), rng=rng)
        assert g.code == "ZX81Q"
        codes = set(session.execute(select(Group.code)).scalars())
        assert codes == {"AB12C", "ZX81Q"}

    def test_gives_up_after_retry_budget(self, session, coach, scripted_rng, monkeypatch):
        session.execute(insert(Group).values(code="AB12C", name="Racer", description="", coach_id=coach.id, created_at=NOW, active=True))
        monkeypatch.setattr(groups, "group_code_taken", lambda s: (lambda code: False))
        rng = scripted_rng(["AB12C"] * 3)
        with pytest.raises(CodeCollisionError):
            groups.create_group(session, coach.id, "Mine", settings=_settings(group_create_max_retries=3), rng=rng)

    def test_exhausted_code_space(self, session, coach):
        session.execute(insert(Group).values(code="A", name="Only", description="", coach_id=coach.id, created_at=NOW, active=True))
        settings = _settings(group_code_length=1, group_code_alphabet="A", group_code_max_attempts=10)
        with pytest.raises(CodeCollisionError):
            groups.create_group(session, coach.id, "Second", settings=settings)

    def test_unknown_coach(self, session):
        with pytest.raises(NotFoundError):
            groups.create_group(session, 99, "Ghost", settings=_settings())

    def test_blank_name_rejected(self, session, coach):
        with pytest.raises(ValidationError):
            groups.create_group(session, coach.id, "   ", settings=_settings())


class TestGetGroup:
    def test_other_coach_cannot_see_group(self, session, group):
        assert groups.get_group(session, group.code, coach_id=group.coach_id) is group
        with pytest.raises(NotFoundError):
            groups.get_group(session, group.code, coach_id=group.coach_id + 1)

    def test_deactivated_group_is_not_found(self, session, group):
        groups.deactivate_group(session, group.coach_id, group.code)
        with pytest.raises(NotFoundError):
            groups.get_group(session, group.code)
        assert groups.get_group(session, group.code, active_only=False).active is False


class TestMembership:
    def test_members_listed_in_join_order(self, session, group):
        assert groups.list_member_ids(session, group.code) == [1, 2, 3]

    def test_add_member(self, session, group, athletes):
        groups.add_member(session, group.code, 4, now=NOW + dt.timedelta(minutes=1))
        assert groups.list_member_ids(session, group.code) == [1, 2, 3, 4]

    def test_join_twice_is_noop(self, session, group):
        first = session.execute(
            select(Membership).where(Membership.group_code == group.code, Membership.athlete_id == 1)
        ).scalar_one()
        assert groups.add_member(session, group.code, 1) is first
        assert groups.list_member_ids(session, group.code) == [1, 2, 3]

    def test_join_unknown_group_or_athlete(self, session, group):
        with pytest.raises(NotFoundError):
            groups.add_member(session, "NOPE1", 1)
        with pytest.raises(NotFoundError):
            groups.add_member(session, group.code, 404)

    def test_remove_member(self, session, group):
        assert groups.remove_member(session, group.code, 2) is True
        assert groups.remove_member(session, group.code, 2) is False
        assert groups.list_member_ids(session, group.code) == [1, 3]
