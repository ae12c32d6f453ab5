from __future__ import annotations

import datetime as dt
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


METRIC_KINDS = ("distance", "time_min", "time_sec", "weight_reps", "repetitions", "custom")


class Base(DeclarativeBase):
    pass


class Coach(Base):
    __tablename__ = "coaches"
    id: Mapped[int] = mapped_column(primary_key=True)
    full_name: Mapped[str] = mapped_column(String(160))
    email: Mapped[str] = mapped_column(String(200), unique=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)


class Athlete(Base):
    __tablename__ = "athletes"
    id: Mapped[int] = mapped_column(primary_key=True)
    full_name: Mapped[str] = mapped_column(String(160))
    email: Mapped[str] = mapped_column(String(200), unique=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)


class Group(Base):
    __tablename__ = "groups"
    code: Mapped[str] = mapped_column(String(16), primary_key=True)
    name: Mapped[str] = mapped_column(String(120))
    description: Mapped[str] = mapped_column(Text, default="")
    coach_id: Mapped[int] = mapped_column(ForeignKey("coaches.id"), index=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)
    active: Mapped[bool] = mapped_column(Boolean, default=True)

    memberships: Mapped[list["Membership"]] = relationship(back_populates="group", cascade="all, delete-orphan")


class Membership(Base):
    __tablename__ = "memberships"
    id: Mapped[int] = mapped_column(primary_key=True)
    athlete_id: Mapped[int] = mapped_column(ForeignKey("athletes.id"), index=True)
    group_code: Mapped[str] = mapped_column(ForeignKey("groups.code"), index=True)
    joined_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)

    group: Mapped[Group] = relationship(back_populates="memberships")
    __table_args__ = (UniqueConstraint("athlete_id", "group_code", name="uq_membership_athlete_group"),)


class TestDefinition(Base):
    __tablename__ = "test_definitions"
    __test__ = False  # not a pytest class
    id: Mapped[int] = mapped_column(primary_key=True)
    coach_id: Mapped[int] = mapped_column(ForeignKey("coaches.id"), index=True)
    name: Mapped[str] = mapped_column(String(160))
    description: Mapped[str] = mapped_column(Text, default="")
    metric_kind: Mapped[str] = mapped_column(String(20))
    tiers: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)


class Assignment(Base):
    __tablename__ = "assignments"
    id: Mapped[int] = mapped_column(primary_key=True)
    test_id: Mapped[int] = mapped_column(ForeignKey("test_definitions.id"), index=True)
    group_code: Mapped[str] = mapped_column(ForeignKey("groups.code"), index=True)
    coach_id: Mapped[int] = mapped_column(ForeignKey("coaches.id"), index=True)
    assigned_on: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow, index=True)
    due_on: Mapped[dt.date] = mapped_column(Date, index=True)

    test: Mapped[TestDefinition] = relationship()
    roster: Mapped[list["AssignmentRoster"]] = relationship(
        back_populates="assignment", cascade="all, delete-orphan"
    )
    __table_args__ = (UniqueConstraint("test_id", "group_code", "due_on", name="uq_assignment_test_group_due"),)


class AssignmentRoster(Base):
    __tablename__ = "assignment_roster"
    id: Mapped[int] = mapped_column(primary_key=True)
    assignment_id: Mapped[int] = mapped_column(ForeignKey("assignments.id"), index=True)
    athlete_id: Mapped[int] = mapped_column(ForeignKey("athletes.id"), index=True)
    group_code_at_assignment: Mapped[str] = mapped_column(String(16))

    assignment: Mapped[Assignment] = relationship(back_populates="roster")
    __table_args__ = (UniqueConstraint("assignment_id", "athlete_id", name="uq_roster_assignment_athlete"),)


class Result(Base):
    __tablename__ = "results"
    id: Mapped[int] = mapped_column(primary_key=True)
    assignment_id: Mapped[int] = mapped_column(ForeignKey("assignments.id"), index=True)
    athlete_id: Mapped[int] = mapped_column(ForeignKey("athletes.id"), index=True)
    value: Mapped[float] = mapped_column(Float)
    recorded_on: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)


class Comment(Base):
    __tablename__ = "comments"
    id: Mapped[int] = mapped_column(primary_key=True)
    result_id: Mapped[int] = mapped_column(ForeignKey("results.id"), index=True)
    coach_id: Mapped[int] = mapped_column(ForeignKey("coaches.id"), index=True)
    body: Mapped[str] = mapped_column(Text)
    commented_on: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow, index=True)
    __table_args__ = (CheckConstraint("length(body) > 0", name="ck_comment_body_not_empty"),)
