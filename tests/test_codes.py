"""Tests for group join code allocation."""

from __future__ import annotations

import random

import pytest

from tracker.config import DEFAULT_CODE_ALPHABET
from tracker.errors import CodeCollisionError
from tracker.models import Group
from tracker.services.codes import allocate_group_code, group_code_taken


def test_default_code_shape():
    code = allocate_group_code(lambda c: False, rng=random.Random(7))
    assert len(code) == 5
    assert set(code) <= set(DEFAULT_CODE_ALPHABET)


def test_taken_code_is_skipped(scripted_rng):
    rng = scripted_rng(["AB12C", "AB12C", "ZZ9Z9"])
    code = allocate_group_code(lambda c: c == "AB12C", rng=rng)
    assert code == "ZZ9Z9"
    assert rng.calls == 3


def test_never_returns_taken_code_in_tiny_space():
    taken = {"A", "B"}
    for seed in range(20):
        code = allocate_group_code(lambda c: c in taken, length=1, alphabet="ABC", max_attempts=500, rng=random.Random(seed))
        assert code == "C"


def test_exhausted_space_raises():
    with pytest.raises(CodeCollisionError) as exc:
        allocate_group_code(lambda c: True, length=2, alphabet="AB", max_attempts=25, rng=random.Random(1))
    assert exc.value.attempts == 25


def test_custom_length_and_alphabet():
    code = allocate_group_code(lambda c: False, length=8, alphabet="XY", rng=random.Random(3))
    assert len(code) == 8
    assert set(code) <= {"X", "Y"}


@pytest.mark.parametrize("length,alphabet", [(0, "AB"), (-1, "AB"), (5, "")])
def test_bad_arguments(length, alphabet):
    with pytest.raises(ValueError):
        allocate_group_code(lambda c: False, length=length, alphabet=alphabet)


def test_group_code_taken_checks_store(session, coach):
    taken = group_code_taken(session)
    assert taken("AB12C") is False
    session.add(Group(code="AB12C", name="U16", description="", coach_id=coach.id, active=True))
    session.flush()
    assert taken("AB12C") is True
    assert taken("AB12D") is False
