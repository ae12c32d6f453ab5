"""Tests for assignment creation and the roster snapshot."""

from __future__ import annotations

import datetime as dt

import pytest
from sqlalchemy import func, insert, select

from tracker.errors import DuplicateAssignmentError, EmptyRosterError, NotFoundError, PartialWriteError
from tracker.models import Assignment, AssignmentRoster, Comment, Group, Result
from tracker.services import groups, roster
from tracker.services.results import add_comment, submit_result

NOW = dt.datetime(2026, 10, 19, 9, 0, 0)
DUE = dt.date(2026, 10, 26)


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


class TestSnapshotRoster:
    def test_roster_matches_membership_at_creation(self, session, group, sprint_test):
        a = roster.snapshot_roster(session, group.coach_id, group.code, sprint_test.id, DUE, now=NOW)
        assert a.due_on == DUE
        assert a.assigned_on == NOW
        assert roster.roster_athlete_ids(session, a.id) == [1, 2, 3]
        stamped = session.execute(
            select(AssignmentRoster.group_code_at_assignment).where(AssignmentRoster.assignment_id == a.id)
        ).scalars().all()
        assert set(stamped) == {group.code}

    def test_snapshot_is_frozen_against_later_joins_and_leaves(self, session, group, sprint_test):
        a = roster.snapshot_roster(session, group.coach_id, group.code, sprint_test.id, DUE, now=NOW)
        groups.add_member(session, group.code, 4, now=NOW)
        groups.remove_member(session, group.code, 2)
        assert roster.roster_athlete_ids(session, a.id) == [1, 2, 3]
        assert groups.list_member_ids(session, group.code) == [1, 3, 4]

    def test_empty_group_refused(self, session, coach, sprint_test):
        session.add(Group(code="EMPTY", name="Nobody", description="", coach_id=coach.id, created_at=NOW, active=True))
        session.flush()
        with pytest.raises(EmptyRosterError):
            roster.snapshot_roster(session, coach.id, "EMPTY", sprint_test.id, DUE)
        assert _count(session, Assignment) == 0

    def test_group_emptied_after_members_left(self, session, group, sprint_test):
        for athlete_id in (1, 2, 3):
            groups.remove_member(session, group.code, athlete_id)
        with pytest.raises(EmptyRosterError):
            roster.snapshot_roster(session, group.coach_id, group.code, sprint_test.id, DUE)

    def test_duplicate_test_group_due_date(self, session, group, sprint_test):
        roster.snapshot_roster(session, group.coach_id, group.code, sprint_test.id, DUE)
        with pytest.raises(DuplicateAssignmentError):
            roster.snapshot_roster(session, group.coach_id, group.code, sprint_test.id, DUE)
        other = roster.snapshot_roster(session, group.coach_id, group.code, sprint_test.id, DUE + dt.timedelta(days=7))
        assert other.id is not None

    def test_concurrent_duplicate_reported_as_duplicate(self, session, group, sprint_test, monkeypatch):
        first = roster.snapshot_roster(session, group.coach_id, group.code, sprint_test.id, DUE)
        lookup = roster._existing_assignment_id
        calls = []

        # The pre-check misses the row, as if another request committed it in between.
        def racing_lookup(*args):
            calls.append(args)
            return None if len(calls) == 1 else lookup(*args)

        monkeypatch.setattr(roster, "_existing_assignment_id", racing_lookup)
        with pytest.raises(DuplicateAssignmentError):
            roster.snapshot_roster(session, group.coach_id, group.code, sprint_test.id, DUE)
        assert len(calls) == 2
        assert _count(session, Assignment) == 1
        assert roster.roster_athlete_ids(session, first.id) == [1, 2, 3]

    def test_other_coach_cannot_assign(self, session, group, sprint_test):
        with pytest.raises(NotFoundError):
            roster.snapshot_roster(session, group.coach_id + 1, group.code, sprint_test.id, DUE)

    def test_unknown_test(self, session, group):
        with pytest.raises(NotFoundError):
            roster.snapshot_roster(session, group.coach_id, group.code, 999, DUE)

    def test_failed_roster_write_leaves_nothing_behind(self, session, group, sprint_test, monkeypatch):
        # Athlete 999 does not exist, so the roster insert violates its foreign key.
        monkeypatch.setattr(roster, "list_member_ids", lambda s, code: [1, 999, 3])
        with pytest.raises(PartialWriteError) as exc:
            roster.snapshot_roster(session, group.coach_id, group.code, sprint_test.id, DUE)
        assert exc.value.expected == 3
        assert _count(session, Assignment) == 0
        assert _count(session, AssignmentRoster) == 0

    def test_retry_after_partial_write_succeeds(self, session, group, sprint_test, monkeypatch):
        monkeypatch.setattr(roster, "list_member_ids", lambda s, code: [1, 999])
        with pytest.raises(PartialWriteError):
            roster.snapshot_roster(session, group.coach_id, group.code, sprint_test.id, DUE)
        monkeypatch.undo()
        a = roster.snapshot_roster(session, group.coach_id, group.code, sprint_test.id, DUE)
        assert roster.roster_athlete_ids(session, a.id) == [1, 2, 3]


class TestMaintenance:
    def test_find_incomplete_assignments(self, session, group, sprint_test):
        good = roster.snapshot_roster(session, group.coach_id, group.code, sprint_test.id, DUE)
        session.execute(
            insert(Assignment).values(
                id=50, test_id=sprint_test.id, group_code=group.code, coach_id=group.coach_id,
                assigned_on=NOW, due_on=DUE + dt.timedelta(days=1),
            )
        )
        assert roster.find_incomplete_assignments(session) == [50]
        assert good.id not in roster.find_incomplete_assignments(session)

    def test_purge_assignment_removes_dependents(self, session, group, sprint_test):
        a = roster.snapshot_roster(session, group.coach_id, group.code, sprint_test.id, DUE)
        result = submit_result(session, a.id, 1, 12.0)
        add_comment(session, result.id, group.coach_id, "Good drive phase")
        roster.purge_assignment(session, a.id)
        for model in (Assignment, AssignmentRoster, Result, Comment):
            assert _count(session, model) == 0

    def test_purge_unknown_assignment(self, session):
        with pytest.raises(NotFoundError):
            roster.purge_assignment(session, 12345)
