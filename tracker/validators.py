"""Pydantic validation models for all coach- and athlete-facing entry points."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from tracker.models import METRIC_KINDS
from tracker.services.tiers import Tier, parse_value


class TierInput(BaseModel):
    label: str = Field(min_length=1, max_length=80)
    min: float
    max: float

    @field_validator("label")
    @classmethod
    def label_not_blank(cls, v):
        if not v.strip():
            raise ValueError("label must not be blank")
        return v.strip()

    @field_validator("min", "max", mode="before")
    @classmethod
    def accept_decimal_comma(cls, v):
        parsed = parse_value(v)
        if parsed is None:
            raise ValueError("bound must be a number")
        return parsed

    @model_validator(mode="after")
    def min_lte_max(self):
        if self.min > self.max:
            raise ValueError("min must be <= max")
        return self

    def to_tier(self) -> Tier:
        return Tier(label=self.label, min=self.min, max=self.max)


class TestDefinitionInput(BaseModel):
    __test__ = False  # not a pytest class

    name: str = Field(min_length=1, max_length=160)
    description: str = Field(default="", max_length=2000)
    metric_kind: str
    tiers: list[TierInput] = Field(min_length=1)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()

    @field_validator("metric_kind")
    @classmethod
    def valid_metric_kind(cls, v):
        if v not in METRIC_KINDS:
            raise ValueError(f"metric_kind must be one of {METRIC_KINDS}")
        return v


class GroupCreateInput(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str = Field(default="", max_length=2000)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()


class MembershipInput(BaseModel):
    athlete_id: int = Field(gt=0)


class AssignmentCreateInput(BaseModel):
    group_code: str = Field(min_length=1, max_length=16)
    test_id: int = Field(gt=0)
    due_on: date


class ResultInput(BaseModel):
    athlete_id: int = Field(gt=0)
    value: Any = None


class CommentInput(BaseModel):
    coach_id: int = Field(gt=0)
    body: str = Field(min_length=1, max_length=2000)

    @field_validator("body")
    @classmethod
    def body_not_blank(cls, v):
        if not v.strip():
            raise ValueError("body must not be blank")
        return v.strip()
